'''
Picks the one authoritative hourly Fee that prices a class occurrence.
'''
from decimal import Decimal
from typing import Iterable, Optional

from ..models.enums import FeeType
from ..models.records import ClassSession, Fee


def is_candidate(fee: Fee, class_session: ClassSession) -> bool:
    """
    A fee can price a class when it is hourly, has the same session type,
    covers the class discipline (exactly, or as a wildcard) and is already
    in effect at the scheduled time.
    """
    return (
        fee.fee_type == FeeType.HOURLY
        and fee.session_type == class_session.session_type
        and fee.discipline.matches(class_session.discipline)
        and fee.effective_date <= class_session.scheduled_date
    )


def resolve_fee(class_session: ClassSession, candidate_fees: Iterable[Fee]) -> Optional[Fee]:
    """
    Returns the best matching fee for `class_session`, or None when nothing matches.

    `candidate_fees` must already be limited to non-deleted fees that apply to the
    student being billed (their own fees plus global defaults).

    Best match:
    1. A discipline-specific fee always beats a wildcard fee, whatever the dates.
    2. Within the same tier the most recent effective date wins.
    Exact ties keep the first fee in input order.
    """
    candidates = [fee for fee in candidate_fees if is_candidate(fee, class_session)]
    if not candidates:
        return None
    return max(candidates, key=lambda fee: (fee.discipline.is_specific, fee.effective_date))


def charge_for(fee: Optional[Fee]) -> Decimal:
    """The amount billed per student for one class priced by `fee`."""
    return fee.amount if fee is not None else Decimal(0)
