'''
Report shapes produced by the billing core: the Billing Summary and the
Student Statement.
'''
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import CurrencyCode, PaymentStatus
from .records import DateRange, Student, ClassSession, Fee, Payment
from ..core.currency import get_currency_symbol


# --- 1. Billing Summary ---

class StudentBillingDetail(BaseModel):
    """
    One row of the summary's per-student breakdown.
    """
    student_id: UUID
    student_name: str
    currency_code: CurrencyCode
    total_billed: Decimal
    total_paid: Decimal
    has_billing_issues: bool = False

    @computed_field
    @property
    def balance(self) -> Decimal:
        return self.total_billed - self.total_paid

    @computed_field
    @property
    def payment_status(self) -> PaymentStatus:
        if self.total_billed <= 0:
            return PaymentStatus.NO_CHARGES
        if self.balance <= 0:
            return PaymentStatus.PAID
        if self.total_paid > 0:
            return PaymentStatus.PARTIALLY_PAID
        return PaymentStatus.UNPAID

class BillingSummary(BaseModel):
    date_range: DateRange
    total_accrued: Decimal
    total_realized: Decimal
    total_outstanding: Decimal
    student_details: list[StudentBillingDetail]

    @computed_field
    @property
    def students_with_billing_issues(self) -> list[UUID]:
        return [detail.student_id for detail in self.student_details if detail.has_billing_issues]


# --- 2. Student Statement ---

class StatementItem(BaseModel):
    """
    A class the student attended, with the fee that priced it.
    `fee` is None when no hourly fee matched; the charge is then zero.
    """
    class_session: ClassSession = Field(alias="class")
    fee: Optional[Fee] = None
    charge: Decimal

    model_config = ConfigDict(populate_by_name=True)

    @computed_field
    @property
    def currency_symbol(self) -> str:
        return get_currency_symbol(self.fee.currency_code if self.fee else None)

class Statement(BaseModel):
    """
    Line-itemized statement for one student over a date range.
    Totals are derived from `items` and `payments`.
    """
    student: Student
    date_range: DateRange
    items: list[StatementItem]
    payments: list[Payment]

    @computed_field
    @property
    def total_charges(self) -> Decimal:
        return sum((item.charge for item in self.items), Decimal(0))

    @computed_field
    @property
    def total_paid(self) -> Decimal:
        return sum((payment.amount for payment in self.payments), Decimal(0))

    @computed_field
    @property
    def balance(self) -> Decimal:
        return self.total_charges - self.total_paid

    @computed_field
    @property
    def has_unresolved_fees(self) -> bool:
        return any(item.fee is None for item in self.items)
