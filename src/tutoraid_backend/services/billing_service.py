'''
Service for producing billing reports from the data store.
'''
from datetime import datetime
from typing import Optional, Annotated, AsyncIterator
from uuid import UUID
from fastapi import Depends, HTTPException, status

from ..database.store import DataStore, get_data_store
from ..models.records import DateRange
from ..models import billing as billing_models
from ..core.billing import compute_billing_summary, compute_statement
from ..common.exceptions import InvalidDateRangeError, StudentNotFoundError
from ..common.logger import log
from ..common.time import utc_now


class BillingService:
    """
    Fetches record snapshots from the store and hands them to the billing core.
    Holds no state between calls: every report is computed from fresh snapshots.
    """
    def __init__(self, store: Annotated[DataStore, Depends(get_data_store)]):
        self.store = store

    # --- 1. Validation Helpers ---

    def _validate_date_range(self, date_from: Optional[datetime], date_to: Optional[datetime]) -> DateRange:
        """
        Builds the DateRange for a request, rejecting it before any data access.
        Raises HTTPException(400) on a missing or reversed range.
        """
        try:
            return DateRange.from_bounds(date_from, date_to)
        except InvalidDateRangeError as e:
            log.warning(f"Rejected billing request with invalid date range ({date_from} - {date_to}): {e}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    # --- 2. Internal Report Builders (No HTTP) ---

    async def get_billing_summary(self, date_range: DateRange) -> billing_models.BillingSummary:
        log.info(f"Computing billing summary for {date_range.date_from.isoformat()} - {date_range.date_to.isoformat()}")
        students = await self.store.list_students()
        classes = await self.store.list_classes(date_range)
        fees = await self.store.list_fees()
        payments = await self.store.list_payments(date_range)

        summary = compute_billing_summary(date_range, students, classes, fees, payments)
        flagged = summary.students_with_billing_issues
        if flagged:
            log.warning(f"{len(flagged)} student(s) have classes with no matching hourly fee: {[str(i) for i in flagged]}")
        return summary

    async def get_statement(self, student_id: UUID, date_range: DateRange) -> billing_models.Statement:
        """
        Raises StudentNotFoundError when the student does not exist (or is soft-deleted).
        """
        log.info(f"Computing statement for student {student_id}")
        student = await self.store.get_student(student_id)
        if student is None or student.deleted:
            raise StudentNotFoundError(f"Student {student_id} not found.")

        classes = await self.store.list_classes(date_range)
        fees = await self.store.list_fees()
        payments = await self.store.list_payments(date_range)
        return compute_statement(student_id, date_range, student, classes, fees, payments)

    async def watch_billing_summary(self, date_range: DateRange) -> AsyncIterator[billing_models.BillingSummary]:
        """
        Yields a summary now and a fresh one after every change to the store.
        Notifications that pile up while a summary is being computed collapse
        into a single recomputation.
        """
        with self.store.changes() as subscription:
            yield await self.get_billing_summary(date_range)
            async for kind in subscription:
                stale = subscription.drain() | {kind}
                log.info(f"Recomputing billing summary after changes to: {sorted(k.value for k in stale)}")
                yield await self.get_billing_summary(date_range)

    # --- 3. Public API-facing Methods ---

    async def get_billing_summary_for_api(
        self,
        date_from: Optional[datetime],
        date_to: Optional[datetime]
    ) -> billing_models.BillingSummary:
        date_range = self._validate_date_range(date_from, date_to)
        try:
            return await self.get_billing_summary(date_range)
        except Exception as e:
            log.error(f"Error in get_billing_summary_for_api: {e}", exc_info=True)
            raise

    async def get_current_month_summary_for_api(self, now: Optional[datetime] = None) -> billing_models.BillingSummary:
        date_range = DateRange.month_of(now or utc_now())
        return await self.get_billing_summary(date_range)

    async def get_statement_for_api(
        self,
        student_id: UUID,
        date_from: Optional[datetime],
        date_to: Optional[datetime]
    ) -> billing_models.Statement:
        date_range = self._validate_date_range(date_from, date_to)
        try:
            return await self.get_statement(student_id, date_range)
        except StudentNotFoundError as e:
            log.warning(f"Statement requested for unknown student {student_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found.") from e
        except Exception as e:
            log.error(f"Error in get_statement_for_api for student {student_id}: {e}", exc_info=True)
            raise
