'''
The Data Store: the only place the billing code gets its records from.

Two implementations share one interface:
- SQLAlchemyDataStore: reads and writes the ORM tables through an AsyncSession.
- InMemoryDataStore: dict-backed, used by tests and local tooling.

Stores never filter on the soft-delete flag; the billing core does that, once.
Every write publishes the changed collection on the store's ChangeFeed so that
live consumers can recompute their reports.
'''
import asyncio
from abc import ABC, abstractmethod
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from . import models as db_models
from .engine import get_db_session
from ..models.enums import RecordKind
from ..models.records import (
    DateRange, Student, ClassSession, Fee, Payment, discipline_scope, fee_scope
)
from ..common.logger import log
from ..common.time import utc_now


# --- 1. Change notifications ---

class Subscription:
    """
    Async iterator over change notifications. Yields the RecordKind of each
    collection that changed. Close it (or use it as a context manager) to stop
    receiving notifications.
    """
    def __init__(self, feed: "ChangeFeed"):
        self._feed = feed
        self._queue: asyncio.Queue[RecordKind] = asyncio.Queue()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> RecordKind:
        return await self._queue.get()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def push(self, kind: RecordKind) -> None:
        self._queue.put_nowait(kind)

    def drain(self) -> set[RecordKind]:
        """Discards queued notifications, returning the kinds that were pending."""
        drained = set()
        while not self._queue.empty():
            drained.add(self._queue.get_nowait())
        return drained

    def close(self) -> None:
        self._feed.unsubscribe(self)


class ChangeFeed:
    """Fans out collection-change notifications to every open subscription."""
    def __init__(self):
        self._subscriptions: set[Subscription] = set()

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscriptions.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)

    def publish(self, kind: RecordKind) -> None:
        for subscription in list(self._subscriptions):
            subscription.push(kind)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

# Process-wide feed shared by the request-scoped SQLAlchemy stores.
change_feed = ChangeFeed()


# --- 2. The interface ---

class DataStore(ABC):
    """
    Supplies read-only snapshots of the four record collections.
    Optional date ranges are a query optimisation; callers still filter.
    """
    def __init__(self, feed: Optional[ChangeFeed] = None):
        self.feed = feed if feed is not None else ChangeFeed()

    def changes(self) -> Subscription:
        """Subscribes to change notifications for this store."""
        return self.feed.subscribe()

    @abstractmethod
    async def list_students(self) -> list[Student]: ...

    @abstractmethod
    async def get_student(self, student_id: UUID) -> Optional[Student]: ...

    @abstractmethod
    async def list_classes(self, date_range: Optional[DateRange] = None) -> list[ClassSession]: ...

    @abstractmethod
    async def list_fees(self) -> list[Fee]: ...

    @abstractmethod
    async def list_payments(self, date_range: Optional[DateRange] = None) -> list[Payment]: ...

    @abstractmethod
    async def add_student(self, student: Student) -> Student: ...

    @abstractmethod
    async def add_class(self, class_session: ClassSession) -> ClassSession: ...

    @abstractmethod
    async def add_fee(self, fee: Fee) -> Fee: ...

    @abstractmethod
    async def add_payment(self, payment: Payment) -> Payment: ...

    @abstractmethod
    async def soft_delete(self, kind: RecordKind, record_id: UUID) -> bool:
        """Flags a record as deleted. Returns False when the id is unknown."""


# --- 3. In-memory implementation ---

class InMemoryDataStore(DataStore):
    """
    Keeps records in dicts keyed by id. Writes take effect (and notify) immediately.
    """
    def __init__(self, feed: Optional[ChangeFeed] = None):
        super().__init__(feed)
        self._records: dict[RecordKind, dict[UUID, Student | ClassSession | Fee | Payment]] = {
            kind: {} for kind in RecordKind
        }

    def _put(self, kind: RecordKind, record):
        now = utc_now()
        record = record.model_copy(update={
            "created_at": record.created_at or now,
            "updated_at": record.updated_at or now,
        })
        self._records[kind][record.id] = record
        self.feed.publish(kind)
        return record

    async def list_students(self) -> list[Student]:
        return list(self._records[RecordKind.STUDENTS].values())

    async def get_student(self, student_id: UUID) -> Optional[Student]:
        return self._records[RecordKind.STUDENTS].get(student_id)

    async def list_classes(self, date_range: Optional[DateRange] = None) -> list[ClassSession]:
        classes = self._records[RecordKind.CLASSES].values()
        if date_range is None:
            return list(classes)
        return [c for c in classes if date_range.contains(c.scheduled_date)]

    async def list_fees(self) -> list[Fee]:
        return list(self._records[RecordKind.FEES].values())

    async def list_payments(self, date_range: Optional[DateRange] = None) -> list[Payment]:
        payments = self._records[RecordKind.PAYMENTS].values()
        if date_range is None:
            return list(payments)
        return [p for p in payments if date_range.contains(p.transaction_date)]

    async def add_student(self, student: Student) -> Student:
        return self._put(RecordKind.STUDENTS, student)

    async def add_class(self, class_session: ClassSession) -> ClassSession:
        return self._put(RecordKind.CLASSES, class_session)

    async def add_fee(self, fee: Fee) -> Fee:
        return self._put(RecordKind.FEES, fee)

    async def add_payment(self, payment: Payment) -> Payment:
        return self._put(RecordKind.PAYMENTS, payment)

    async def soft_delete(self, kind: RecordKind, record_id: UUID) -> bool:
        record = self._records[kind].get(record_id)
        if record is None:
            return False
        self._records[kind][record_id] = record.model_copy(update={"deleted": True, "updated_at": utc_now()})
        self.feed.publish(kind)
        return True


# --- 4. SQLAlchemy implementation ---

ORM_MODELS = {
    RecordKind.STUDENTS: db_models.Students,
    RecordKind.CLASSES: db_models.Classes,
    RecordKind.FEES: db_models.Fees,
    RecordKind.PAYMENTS: db_models.Payments,
}

def student_from_row(row: db_models.Students) -> Student:
    return Student.model_validate(row)

def class_from_row(row: db_models.Classes) -> ClassSession:
    return ClassSession(
        id=row.id,
        title=row.title,
        discipline=row.discipline,
        category=row.category,
        session_type=row.session_type,
        description=row.description,
        scheduled_date=row.scheduled_date,
        duration_minutes=row.duration_minutes,
        location=row.location,
        student_ids=[link.student_id for link in row.class_students],
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted=row.deleted,
    )

def fee_from_row(row: db_models.Fees) -> Fee:
    return Fee(
        id=row.id,
        scope=fee_scope(row.student_id),
        discipline=discipline_scope(row.discipline),
        session_type=row.session_type,
        fee_type=row.fee_type,
        amount=row.amount,
        currency_code=row.currency_code,
        effective_date=row.effective_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted=row.deleted,
    )

def payment_from_row(row: db_models.Payments) -> Payment:
    return Payment.model_validate(row)

def _timestamps(record) -> dict:
    """Only pass timestamps the record already has, so column defaults fill the rest."""
    return {
        key: value for key, value in
        (("created_at", record.created_at), ("updated_at", record.updated_at))
        if value is not None
    }


class SQLAlchemyDataStore(DataStore):
    """
    Data store backed by the ORM tables.
    Writes are flushed, not committed; the session owner commits. Change
    notifications are published only once the session commits.
    """
    def __init__(self, db: AsyncSession, feed: Optional[ChangeFeed] = None):
        super().__init__(feed if feed is not None else change_feed)
        self.db = db
        self._pending: set[RecordKind] = set()
        event.listen(db.sync_session, "after_commit", self._publish_pending)
        event.listen(db.sync_session, "after_rollback", self._discard_pending)

    def _publish_pending(self, session) -> None:
        pending, self._pending = self._pending, set()
        for kind in sorted(pending):
            self.feed.publish(kind)

    def _discard_pending(self, session) -> None:
        self._pending.clear()

    # --- Reads ---

    async def list_students(self) -> list[Student]:
        try:
            stmt = select(db_models.Students).order_by(db_models.Students.name)
            result = await self.db.execute(stmt)
            return [student_from_row(row) for row in result.scalars().all()]
        except Exception as e:
            log.error(f"Database error while listing students: {e}", exc_info=True)
            raise

    async def get_student(self, student_id: UUID) -> Optional[Student]:
        try:
            row = await self.db.get(db_models.Students, student_id)
            return student_from_row(row) if row else None
        except Exception as e:
            log.error(f"Database error while fetching student {student_id}: {e}", exc_info=True)
            raise

    async def list_classes(self, date_range: Optional[DateRange] = None) -> list[ClassSession]:
        try:
            stmt = select(db_models.Classes).options(
                selectinload(db_models.Classes.class_students)
            ).order_by(db_models.Classes.scheduled_date)
            if date_range is not None:
                stmt = stmt.filter(
                    db_models.Classes.scheduled_date >= date_range.date_from,
                    db_models.Classes.scheduled_date <= date_range.date_to
                )
            result = await self.db.execute(stmt)
            return [class_from_row(row) for row in result.scalars().all()]
        except Exception as e:
            log.error(f"Database error while listing classes: {e}", exc_info=True)
            raise

    async def list_fees(self) -> list[Fee]:
        try:
            stmt = select(db_models.Fees).order_by(db_models.Fees.effective_date)
            result = await self.db.execute(stmt)
            return [fee_from_row(row) for row in result.scalars().all()]
        except Exception as e:
            log.error(f"Database error while listing fees: {e}", exc_info=True)
            raise

    async def list_payments(self, date_range: Optional[DateRange] = None) -> list[Payment]:
        try:
            stmt = select(db_models.Payments).order_by(db_models.Payments.transaction_date)
            if date_range is not None:
                stmt = stmt.filter(
                    db_models.Payments.transaction_date >= date_range.date_from,
                    db_models.Payments.transaction_date <= date_range.date_to
                )
            result = await self.db.execute(stmt)
            return [payment_from_row(row) for row in result.scalars().all()]
        except Exception as e:
            log.error(f"Database error while listing payments: {e}", exc_info=True)
            raise

    # --- Writes ---

    async def _add(self, kind: RecordKind, row):
        self.db.add(row)
        await self.db.flush()
        self._pending.add(kind)
        return row

    async def add_student(self, student: Student) -> Student:
        row = db_models.Students(
            id=student.id,
            name=student.name,
            email=student.email,
            phone=student.phone,
            country=student.country,
            currency_code=student.currency_code.value,
            deleted=student.deleted,
            **_timestamps(student)
        )
        return student_from_row(await self._add(RecordKind.STUDENTS, row))

    async def add_class(self, class_session: ClassSession) -> ClassSession:
        row = db_models.Classes(
            id=class_session.id,
            title=class_session.title,
            discipline=class_session.discipline,
            category=class_session.category,
            session_type=class_session.session_type.value,
            description=class_session.description,
            scheduled_date=class_session.scheduled_date,
            duration_minutes=class_session.duration_minutes,
            location=class_session.location,
            deleted=class_session.deleted,
            class_students=[
                db_models.ClassStudents(student_id=student_id)
                for student_id in dict.fromkeys(class_session.student_ids)
            ],
            **_timestamps(class_session)
        )
        return class_from_row(await self._add(RecordKind.CLASSES, row))

    async def add_fee(self, fee: Fee) -> Fee:
        row = db_models.Fees(
            id=fee.id,
            student_id=fee.scope.student_id,
            discipline=fee.discipline.name if fee.discipline.is_specific else None,
            session_type=fee.session_type.value,
            fee_type=fee.fee_type.value,
            amount=fee.amount,
            currency_code=fee.currency_code.value,
            effective_date=fee.effective_date,
            deleted=fee.deleted,
            **_timestamps(fee)
        )
        return fee_from_row(await self._add(RecordKind.FEES, row))

    async def add_payment(self, payment: Payment) -> Payment:
        row = db_models.Payments(
            id=payment.id,
            student_id=payment.student_id,
            amount=payment.amount,
            currency_code=payment.currency_code.value,
            transaction_date=payment.transaction_date,
            payment_method=payment.payment_method,
            notes=payment.notes,
            deleted=payment.deleted,
            **_timestamps(payment)
        )
        return payment_from_row(await self._add(RecordKind.PAYMENTS, row))

    async def soft_delete(self, kind: RecordKind, record_id: UUID) -> bool:
        row = await self.db.get(ORM_MODELS[kind], record_id)
        if row is None:
            log.warning(f"Tried to soft-delete non-existent {kind.value} record {record_id}")
            return False
        row.deleted = True
        await self.db.flush()
        self._pending.add(kind)
        return True


# --- 5. FastAPI dependency ---

async def get_data_store(db: Annotated[AsyncSession, Depends(get_db_session)]) -> DataStore:
    """Provides a request-scoped SQLAlchemy store sharing the process-wide change feed."""
    return SQLAlchemyDataStore(db)
