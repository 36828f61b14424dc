'''
The billing core: pure functions that turn record snapshots into reports.

Both reports run the same pipeline:
    snapshots -> drop soft-deleted / out-of-range records -> resolve a fee
    per (student, class) -> aggregate -> sort.

Nothing here touches the database or keeps state between calls, so the
functions are safe to call repeatedly with fresh snapshots.
'''
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from .fee_resolution import resolve_fee, charge_for
from ..models.records import DateRange, Student, ClassSession, Fee, Payment
from ..models.billing import BillingSummary, StudentBillingDetail, Statement, StatementItem
from ..common.exceptions import StudentNotFoundError
from ..common.logger import log


# --- Snapshot filters ---

def active_classes(classes: Iterable[ClassSession], date_range: DateRange) -> list[ClassSession]:
    return [c for c in classes if not c.deleted and date_range.contains(c.scheduled_date)]

def active_payments(payments: Iterable[Payment], date_range: DateRange) -> list[Payment]:
    return [p for p in payments if not p.deleted and date_range.contains(p.transaction_date)]

def active_fees(fees: Iterable[Fee]) -> list[Fee]:
    # Fees are not range-filtered: only their effective date relative to each class matters.
    return [f for f in fees if not f.deleted]

def fees_for_student(fees: Iterable[Fee], student_id: UUID) -> list[Fee]:
    """The student's own fees plus the global defaults, in input order."""
    return [f for f in fees if f.scope.applies_to(student_id)]


# --- Billing Summary ---

def compute_billing_summary(
    date_range: DateRange,
    students: Iterable[Student],
    classes: Iterable[ClassSession],
    fees: Iterable[Fee],
    payments: Iterable[Payment],
) -> BillingSummary:
    """
    Accrued charges, realized payments and outstanding balance for every student
    with a class or a payment inside `date_range`.

    Students whose record is missing or soft-deleted are left out of the report.
    A class that no fee can price adds nothing to the bill and flags the student
    with `has_billing_issues`.
    """
    student_lookup = {s.id: s for s in students if not s.deleted}
    classes_in_range = active_classes(classes, date_range)
    payments_in_range = active_payments(payments, date_range)
    fees_in_force = active_fees(fees)

    details: dict[UUID, StudentBillingDetail] = {}
    skipped: set[UUID] = set()

    def detail_for(student_id: UUID) -> Optional[StudentBillingDetail]:
        if student_id in details:
            return details[student_id]
        student = student_lookup.get(student_id)
        if student is None:
            skipped.add(student_id)
            return None
        details[student_id] = StudentBillingDetail(
            student_id=student.id,
            student_name=student.name,
            currency_code=student.currency_code,
            total_billed=Decimal(0),
            total_paid=Decimal(0),
        )
        return details[student_id]

    student_fees: dict[UUID, list[Fee]] = {}

    for class_session in classes_in_range:
        # a student listed twice on one class is still billed once
        for student_id in dict.fromkeys(class_session.student_ids):
            detail = detail_for(student_id)
            if detail is None:
                continue
            if student_id not in student_fees:
                student_fees[student_id] = fees_for_student(fees_in_force, student_id)
            fee = resolve_fee(class_session, student_fees[student_id])
            if fee is None:
                detail.has_billing_issues = True
            detail.total_billed += charge_for(fee)

    for payment in payments_in_range:
        detail = detail_for(payment.student_id)
        if detail is None:
            continue
        detail.total_paid += payment.amount

    if skipped:
        log.warning(f"Billing summary skipped {len(skipped)} unknown or deleted student id(s): {sorted(map(str, skipped))}")

    total_accrued = sum((d.total_billed for d in details.values()), Decimal(0))
    total_realized = sum((d.total_paid for d in details.values()), Decimal(0))

    return BillingSummary(
        date_range=date_range,
        total_accrued=total_accrued,
        total_realized=total_realized,
        total_outstanding=total_accrued - total_realized,
        student_details=sorted(details.values(), key=_by_student_name),
    )

def _by_student_name(detail: StudentBillingDetail) -> tuple[str, str, str]:
    return (detail.student_name.casefold(), detail.student_name, str(detail.student_id))


# --- Student Statement ---

def compute_statement(
    student_id: UUID,
    date_range: DateRange,
    student: Optional[Student],
    classes: Iterable[ClassSession],
    fees: Iterable[Fee],
    payments: Iterable[Payment],
) -> Statement:
    """
    Line items (class, resolved fee, charge) and payments for one student.

    Raises StudentNotFoundError when `student` is missing, soft-deleted or
    belongs to another id. Unpriced classes become items with `fee=None` and a
    zero charge. Items are ordered by class date; payments keep input order.
    """
    if student is None or student.deleted or student.id != student_id:
        raise StudentNotFoundError(f"Student {student_id} not found.")

    own_classes = [c for c in active_classes(classes, date_range) if student_id in c.student_ids]
    own_fees = fees_for_student(active_fees(fees), student_id)
    own_payments = [p for p in active_payments(payments, date_range) if p.student_id == student_id]

    items = []
    for class_session in own_classes:
        fee = resolve_fee(class_session, own_fees)
        items.append(StatementItem(class_session=class_session, fee=fee, charge=charge_for(fee)))
    items.sort(key=lambda item: item.class_session.scheduled_date)

    return Statement(
        student=student,
        date_range=date_range,
        items=items,
        payments=own_payments,
    )

