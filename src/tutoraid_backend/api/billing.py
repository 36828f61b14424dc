'''
API endpoints for billing reports.
'''
from datetime import datetime
from typing import Annotated, Any
from uuid import UUID
from fastapi import APIRouter, Depends, Query

from ..models import billing as billing_models
from ..services.billing_service import BillingService

# Optional here so that a missing bound is reported as a 400 by the service
DateFrom = Annotated[datetime | None, Query(alias="from", description="Start of the range (inclusive)")]
DateTo = Annotated[datetime | None, Query(alias="to", description="End of the range (inclusive)")]

class BillingAPI:
    """
    A class to encapsulate the endpoints for billing reports.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/billing",
            tags=["Billing"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/summary",
                self.get_billing_summary,
                methods=["GET"],
                response_model=billing_models.BillingSummary)
        self.router.add_api_route(
                "/current-month",
                self.get_current_month_summary,
                methods=["GET"],
                response_model=billing_models.BillingSummary)
        self.router.add_api_route(
                "/students/{student_id}/statement",
                self.get_student_statement,
                methods=["GET"],
                response_model=billing_models.Statement)

    async def get_billing_summary(
        self,
        billing_service: Annotated[BillingService, Depends(BillingService)],
        date_from: DateFrom = None,
        date_to: DateTo = None
    ) -> Any:
        """
        Accrued, realized and outstanding totals for the range, with a
        per-student breakdown sorted by student name.
        """
        return await billing_service.get_billing_summary_for_api(date_from, date_to)

    async def get_current_month_summary(
        self,
        billing_service: Annotated[BillingService, Depends(BillingService)]
    ) -> Any:
        """
        The billing summary for the current calendar month.
        """
        return await billing_service.get_current_month_summary_for_api()

    async def get_student_statement(
        self,
        student_id: UUID,
        billing_service: Annotated[BillingService, Depends(BillingService)],
        date_from: DateFrom = None,
        date_to: DateTo = None
    ) -> Any:
        """
        Line-itemized classes and payments for one student over the range.
        """
        return await billing_service.get_statement_for_api(student_id, date_from, date_to)

# Instantiate the class and export its router
billing_api = BillingAPI()
router = billing_api.router
