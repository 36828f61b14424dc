'''
Tests for the BillingService against the seeded in-memory store.
'''
import pytest
from decimal import Decimal
from fastapi import HTTPException

from tutoraid_backend.common.exceptions import StudentNotFoundError
from tutoraid_backend.database.store import InMemoryDataStore
from tutoraid_backend.models.enums import RecordKind, PaymentStatus
from tutoraid_backend.models.records import DateRange
from tutoraid_backend.services.billing_service import BillingService

from tests.constants import (
    STUDENT_ALICE_ID, STUDENT_BOB_ID, STUDENT_CARA_ID, UNKNOWN_STUDENT_ID,
    JUNE_START, JUNE_END, utc
)
from tests.database.factories import ClassSessionFactory, PaymentFactory

JUNE = DateRange(date_from=JUNE_START, date_to=JUNE_END)


class FailingStore(InMemoryDataStore):
    """A store whose reads blow up, standing in for a backend outage."""
    async def list_students(self):
        raise ConnectionError("backend unavailable")

    async def get_student(self, student_id):
        raise ConnectionError("backend unavailable")


@pytest.mark.anyio
class TestBillingSummaryService:

    async def test_june_summary(self, billing_service: BillingService):
        summary = await billing_service.get_billing_summary(JUNE)

        rows = {row.student_id: row for row in summary.student_details}
        assert [row.student_name for row in summary.student_details] == ["Alice", "Bob", "Cara"]

        assert rows[STUDENT_ALICE_ID].total_billed == Decimal("120.00")
        assert rows[STUDENT_ALICE_ID].total_paid == Decimal("60.00")
        assert rows[STUDENT_ALICE_ID].payment_status == PaymentStatus.PARTIALLY_PAID

        assert rows[STUDENT_BOB_ID].total_billed == Decimal("25.00")
        assert rows[STUDENT_BOB_ID].balance == Decimal("-15.00")
        assert rows[STUDENT_BOB_ID].payment_status == PaymentStatus.PAID

        assert rows[STUDENT_CARA_ID].has_billing_issues is True
        assert rows[STUDENT_CARA_ID].total_billed == Decimal(0)

        assert summary.total_accrued == Decimal("145.00")
        assert summary.total_realized == Decimal("100.00")
        assert summary.total_outstanding == Decimal("45.00")

    async def test_summary_for_api_rejects_missing_range(self, billing_service: BillingService):
        with pytest.raises(HTTPException) as exc_info:
            await billing_service.get_billing_summary_for_api(None, JUNE_END)
        assert exc_info.value.status_code == 400

    async def test_invalid_range_rejected_before_data_access(self):
        service = BillingService(store=FailingStore())
        with pytest.raises(HTTPException) as exc_info:
            await service.get_billing_summary_for_api(JUNE_END, JUNE_START)
        assert exc_info.value.status_code == 400

    async def test_store_failure_propagates_unchanged(self):
        service = BillingService(store=FailingStore())
        with pytest.raises(ConnectionError):
            await service.get_billing_summary_for_api(JUNE_START, JUNE_END)

    async def test_current_month_summary(self, billing_service: BillingService):
        summary = await billing_service.get_current_month_summary_for_api(now=utc(2024, 6, 18, 12))

        assert summary.date_range.date_from == JUNE_START
        assert summary.date_range.date_to == JUNE_END
        assert summary.total_accrued == Decimal("145.00")


@pytest.mark.anyio
class TestStatementService:

    async def test_statement_for_alice(self, billing_service: BillingService):
        statement = await billing_service.get_statement(STUDENT_ALICE_ID, JUNE)

        assert statement.student.name == "Alice"
        assert [item.class_session.scheduled_date for item in statement.items] == [
            utc(2024, 6, 3, 16), utc(2024, 6, 17, 16)
        ]
        assert statement.total_charges == Decimal("120.00")
        assert statement.total_paid == Decimal("60.00")
        assert statement.balance == Decimal("60.00")

    async def test_statement_for_student_with_only_subscription_fee(self, billing_service: BillingService):
        statement = await billing_service.get_statement(STUDENT_CARA_ID, JUNE)

        assert len(statement.items) == 1
        assert statement.items[0].fee is None
        assert statement.has_unresolved_fees is True

    async def test_unknown_student_raises_not_found(self, billing_service: BillingService):
        with pytest.raises(StudentNotFoundError):
            await billing_service.get_statement(UNKNOWN_STUDENT_ID, JUNE)

    async def test_unknown_student_is_404_for_api(self, billing_service: BillingService):
        with pytest.raises(HTTPException) as exc_info:
            await billing_service.get_statement_for_api(UNKNOWN_STUDENT_ID, JUNE_START, JUNE_END)
        assert exc_info.value.status_code == 404

    async def test_soft_deleted_student_is_404_for_api(self, billing_service: BillingService, seeded_store: InMemoryDataStore):
        await seeded_store.soft_delete(RecordKind.STUDENTS, STUDENT_BOB_ID)
        with pytest.raises(HTTPException) as exc_info:
            await billing_service.get_statement_for_api(STUDENT_BOB_ID, JUNE_START, JUNE_END)
        assert exc_info.value.status_code == 404


@pytest.mark.anyio
class TestWatchBillingSummary:

    async def test_yields_fresh_summary_after_each_change(self, billing_service: BillingService, seeded_store: InMemoryDataStore):
        summaries = billing_service.watch_billing_summary(JUNE)

        first = await summaries.__anext__()
        assert first.total_realized == Decimal("100.00")

        await seeded_store.add_payment(PaymentFactory(student_id=STUDENT_CARA_ID, amount=Decimal("5.00")))
        second = await summaries.__anext__()
        assert second.total_realized == Decimal("105.00")

        await summaries.aclose()
        assert seeded_store.feed.subscriber_count == 0

    async def test_burst_of_changes_collapses_into_one_summary(self, billing_service: BillingService, seeded_store: InMemoryDataStore):
        summaries = billing_service.watch_billing_summary(JUNE)
        await summaries.__anext__()

        await seeded_store.add_class(ClassSessionFactory(student_ids=[STUDENT_ALICE_ID], scheduled_date=utc(2024, 6, 20)))
        await seeded_store.add_class(ClassSessionFactory(student_ids=[STUDENT_ALICE_ID], scheduled_date=utc(2024, 6, 21)))

        latest = await summaries.__anext__()
        assert latest.total_accrued == Decimal("265.00")

        await summaries.aclose()
