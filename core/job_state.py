# core/job_state.py: delivery lifecycle, completion rules and payment bookkeeping

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional

from core.dates import parse_date
from core.errors import PaymentError, TransitionError
from core.roles import Capability, has_capability

PAYMENT_TOLERANCE = 0.005


class JobStatus(str, Enum):
    TO_BE_SCHEDULED = "to_be_scheduled"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.TO_BE_SCHEDULED: frozenset({JobStatus.SCHEDULED, JobStatus.CANCELLED}),
    JobStatus.SCHEDULED: frozenset({JobStatus.IN_PROGRESS, JobStatus.COMPLETED, JobStatus.CANCELLED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}

TERMINAL = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def _field(job, name, default=None):
    if isinstance(job, Mapping):
        return job.get(name, default)
    return getattr(job, name, default)


def _money(value) -> float:
    try:
        return float(value) if value not in (None, "") else 0.0
    except (TypeError, ValueError):
        return 0.0


def parse_status(value) -> JobStatus:
    try:
        return JobStatus(value)
    except ValueError:
        raise TransitionError(f"Unknown job status: {value}")


def can_transition(current, target) -> bool:
    current, target = parse_status(current), parse_status(target)
    return current == target or target in TRANSITIONS[current]


def check_transition(current, target) -> JobStatus:
    """Return the target status, or raise ``TransitionError`` if the move is not allowed."""
    current_s, target_s = parse_status(current), parse_status(target)
    if current_s == target_s:
        return target_s
    if target_s not in TRANSITIONS[current_s]:
        raise TransitionError(f"Cannot change a {current_s.value} delivery to {target_s.value}")
    return target_s


def check_schedule_fields(status, delivery_date, assigned_driver) -> None:
    """A to-be-scheduled job has no date or driver; any dated status needs a date."""
    status = parse_status(status)
    if status == JobStatus.TO_BE_SCHEDULED:
        if delivery_date is not None or assigned_driver is not None:
            raise TransitionError("A delivery waiting to be scheduled cannot have a date or driver")
    elif status in (JobStatus.SCHEDULED, JobStatus.IN_PROGRESS) and parse_date(delivery_date) is None:
        raise TransitionError("Delivery date is required to schedule a delivery")


def can_complete(role, user_id: Optional[int], job) -> bool:
    """
    Office and admin can complete any scheduled delivery; a driver only
    the ones assigned to them.
    """
    if _field(job, "status") not in (JobStatus.SCHEDULED.value, JobStatus.IN_PROGRESS.value):
        return False
    if has_capability(role, Capability.COMPLETE_ANY_JOB):
        return True
    return (
        has_capability(role, Capability.COMPLETE_ASSIGNED_JOB)
        and user_id is not None
        and _field(job, "assigned_driver") == user_id
    )


def check_payment(total_amount, payment_received) -> None:
    total, received = _money(total_amount), _money(payment_received)
    if received < 0:
        raise PaymentError("Payment received cannot be negative")
    if received > total + PAYMENT_TOLERANCE:
        raise PaymentError("Payment exceeds amount due")


def completion_changes(job, payment_amount=None, driver_notes: Optional[str] = None) -> dict:
    """
    Fields to send when a delivery is marked complete. Collected money is
    added to what was already received; no payment at all is fine.
    """
    check_transition(_field(job, "status"), JobStatus.COMPLETED)
    amount = _money(payment_amount)
    if amount < 0:
        raise PaymentError("Payment collected cannot be negative")

    changes = {"status": JobStatus.COMPLETED.value}
    if driver_notes and driver_notes.strip():
        changes["driver_notes"] = driver_notes.strip()
    if amount > 0:
        new_total = _money(_field(job, "payment_received")) + amount
        check_payment(_field(job, "total_amount"), new_total)
        changes["payment_received"] = round(new_total, 2)
    return changes


def is_settled(total_amount, payment_received) -> bool:
    total = _money(total_amount)
    return total > 0 and _money(payment_received) + PAYMENT_TOLERANCE >= total


@dataclass(frozen=True)
class PaymentSummary:
    total_due: float
    already_paid: float
    amount_due: float
    is_fully_paid: bool
    is_partially_paid: bool


def payment_summary(job) -> PaymentSummary:
    products = _field(job, "products") or []
    products_total = sum(_money(_field(p, "total_price")) for p in products)
    total_due = _money(_field(job, "total_amount")) or products_total
    already_paid = _money(_field(job, "payment_received"))
    paid_flag = bool(_field(job, "paid"))

    is_fully_paid = paid_flag or is_settled(total_due, already_paid)
    amount_due = 0.0 if paid_flag else max(0.0, round(total_due - already_paid, 2))
    return PaymentSummary(
        total_due=total_due,
        already_paid=already_paid,
        amount_due=amount_due,
        is_fully_paid=is_fully_paid,
        is_partially_paid=not is_fully_paid and already_paid > 0,
    )
