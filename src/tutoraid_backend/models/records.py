'''
Pydantic models for the four record collections the billing core reads:
Students, Classes, Fees and Payments, plus the DateRange every report uses.
'''
import calendar
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Literal, Annotated, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, AfterValidator, model_validator

from .enums import CurrencyCode, SessionType, FeeType
from ..common.exceptions import InvalidDateRangeError


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# --- 1. Date Range ---

class DateRange(BaseModel):
    """
    An inclusive [from, to] window. Serialized with the keys "from" and "to".
    """
    date_from: UtcDatetime = Field(alias="from")
    date_to: UtcDatetime = Field(alias="to")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.date_from > self.date_to:
            raise ValueError("Date range start must not be after its end.")
        return self

    @classmethod
    def from_bounds(cls, date_from: Optional[datetime], date_to: Optional[datetime]) -> "DateRange":
        """
        Builds a range from optional request bounds.
        Raises InvalidDateRangeError when a bound is missing or the bounds are reversed.
        """
        if date_from is None or date_to is None:
            raise InvalidDateRangeError("Date range is required.")
        date_from, date_to = as_utc(date_from), as_utc(date_to)
        if date_from > date_to:
            raise InvalidDateRangeError(
                f"Date range start {date_from.isoformat()} is after its end {date_to.isoformat()}."
            )
        return cls(date_from=date_from, date_to=date_to)

    @classmethod
    def month_of(cls, moment: datetime) -> "DateRange":
        """The calendar month containing `moment`, first instant to last instant."""
        moment = as_utc(moment)
        last_day = calendar.monthrange(moment.year, moment.month)[1]
        start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        end = moment.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999999)
        return cls(date_from=start, date_to=end)

    def contains(self, moment: datetime) -> bool:
        return self.date_from <= as_utc(moment) <= self.date_to


# --- 2. Tagged scopes for Fee records ---

class AnyDiscipline(BaseModel):
    """Wildcard: the fee applies to every discipline."""
    kind: Literal["any"] = "any"

    model_config = ConfigDict(frozen=True)

    @property
    def is_specific(self) -> bool:
        return False

    def matches(self, discipline: str) -> bool:
        return True

class SpecificDiscipline(BaseModel):
    """The fee applies only to classes whose discipline equals `name` exactly."""
    kind: Literal["specific"] = "specific"
    name: str = Field(min_length=1)

    model_config = ConfigDict(frozen=True)

    @property
    def is_specific(self) -> bool:
        return True

    def matches(self, discipline: str) -> bool:
        return self.name == discipline

DisciplineScope = Annotated[
    Union[AnyDiscipline, SpecificDiscipline],
    Field(discriminator='kind')
]

class GlobalFee(BaseModel):
    """Default rate for every student."""
    kind: Literal["global"] = "global"

    model_config = ConfigDict(frozen=True)

    @property
    def student_id(self) -> None:
        return None

    def applies_to(self, student_id: UUID) -> bool:
        return True

class StudentFee(BaseModel):
    """Rate for one student only."""
    kind: Literal["student"] = "student"
    student_id: UUID

    model_config = ConfigDict(frozen=True)

    def applies_to(self, student_id: UUID) -> bool:
        return self.student_id == student_id

FeeScope = Annotated[
    Union[GlobalFee, StudentFee],
    Field(discriminator='kind')
]

def discipline_scope(discipline: Optional[str]) -> AnyDiscipline | SpecificDiscipline:
    """Maps a stored discipline column (NULL or "" means any) to its scope."""
    if not discipline:
        return AnyDiscipline()
    return SpecificDiscipline(name=discipline)

def fee_scope(student_id: Optional[UUID]) -> GlobalFee | StudentFee:
    """Maps a stored student_id column (NULL means every student) to its scope."""
    if student_id is None:
        return GlobalFee()
    return StudentFee(student_id=student_id)


# --- 3. Records ---

class Record(BaseModel):
    """Fields every stored record carries."""
    id: UUID = Field(default_factory=uuid4)
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None
    deleted: bool = False

    model_config = ConfigDict(from_attributes=True)

class Student(Record):
    name: str
    email: str
    phone: Optional[str] = None
    country: Optional[str] = None
    currency_code: CurrencyCode

class ClassSession(Record):
    """
    A scheduled teaching session. Every enrolled student is billed
    independently for the occurrence.
    """
    title: str
    discipline: str
    category: Optional[str] = None
    session_type: SessionType
    description: Optional[str] = None
    scheduled_date: UtcDatetime
    duration_minutes: int = Field(default=60, ge=0)
    location: Optional[str] = None
    student_ids: list[UUID] = []

class Fee(Record):
    scope: FeeScope = GlobalFee()
    discipline: DisciplineScope = AnyDiscipline()
    session_type: SessionType
    fee_type: FeeType
    amount: Decimal = Field(ge=0)
    currency_code: CurrencyCode
    effective_date: UtcDatetime

class Payment(Record):
    student_id: UUID
    amount: Decimal = Field(ge=0)
    currency_code: CurrencyCode
    transaction_date: UtcDatetime
    payment_method: str
    notes: Optional[str] = None
