import pytest

from core.errors import PaymentError, TransitionError
from core.job_state import (
    TERMINAL,
    JobStatus,
    can_complete,
    can_transition,
    check_payment,
    check_schedule_fields,
    check_transition,
    completion_changes,
    is_settled,
    payment_summary,
)


def test_terminal_states():
    assert TERMINAL == {JobStatus.COMPLETED, JobStatus.CANCELLED}


@pytest.mark.parametrize(
    "current, target",
    [
        ("to_be_scheduled", "scheduled"),
        ("scheduled", "in_progress"),
        ("scheduled", "completed"),
        ("in_progress", "completed"),
        ("in_progress", "cancelled"),
        ("completed", "completed"),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    assert check_transition(current, target) == JobStatus(target)


@pytest.mark.parametrize(
    "current, target",
    [
        ("completed", "scheduled"),
        ("cancelled", "scheduled"),
        ("to_be_scheduled", "completed"),
        ("in_progress", "to_be_scheduled"),
    ],
)
def test_rejected_transitions(current, target):
    assert not can_transition(current, target)
    with pytest.raises(TransitionError):
        check_transition(current, target)


def test_unknown_status():
    with pytest.raises(TransitionError):
        check_transition("scheduled", "lost")


def test_schedule_fields():
    check_schedule_fields("to_be_scheduled", None, None)
    check_schedule_fields("scheduled", "2025-03-10", None)
    with pytest.raises(TransitionError):
        check_schedule_fields("to_be_scheduled", "2025-03-10", None)
    with pytest.raises(TransitionError):
        check_schedule_fields("scheduled", None, 2)


def test_can_complete_by_role():
    job = {"status": "scheduled", "assigned_driver": 3}
    assert can_complete("office", 1, job)
    assert can_complete("admin", 1, job)
    assert can_complete("driver", 3, job)
    assert not can_complete("driver", 4, job)
    assert not can_complete("driver", None, job)


@pytest.mark.parametrize("status", ["to_be_scheduled", "completed", "cancelled"])
def test_cannot_complete_outside_active_states(status):
    assert not can_complete("admin", 1, {"status": status, "assigned_driver": 1})


def test_check_payment():
    check_payment(50, 50)
    check_payment(50, 0)
    with pytest.raises(PaymentError, match="exceeds"):
        check_payment(50, 60)
    with pytest.raises(PaymentError):
        check_payment(50, -1)


def test_completion_adds_to_existing_payment():
    job = {"status": "in_progress", "total_amount": 100, "payment_received": 40}
    changes = completion_changes(job, "60", " left at gate ")
    assert changes == {"status": "completed", "driver_notes": "left at gate", "payment_received": 100.0}


def test_completion_without_payment():
    assert completion_changes({"status": "scheduled", "total_amount": 100}) == {"status": "completed"}


def test_completion_overpayment_rejected():
    with pytest.raises(PaymentError):
        completion_changes({"status": "scheduled", "total_amount": 50, "payment_received": 0}, 80)


def test_completion_respects_transitions():
    # completed -> completed is a no-op
    assert completion_changes({"status": "completed", "total_amount": 10})["status"] == "completed"
    with pytest.raises(TransitionError):
        completion_changes({"status": "cancelled", "total_amount": 10})


def test_full_payment_summary():
    summary = payment_summary({"total_amount": 50, "payment_received": 50, "paid": False})
    assert summary.is_fully_paid
    assert summary.amount_due == 0
    assert not summary.is_partially_paid


def test_partial_payment_summary():
    summary = payment_summary({"total_amount": 120, "payment_received": 20})
    assert summary.amount_due == 100
    assert summary.is_partially_paid


def test_summary_falls_back_to_product_totals():
    job = {"total_amount": 0, "products": [{"total_price": 30}, {"total_price": 12.5}]}
    assert payment_summary(job).total_due == 42.5


def test_paid_flag_clears_amount_due():
    summary = payment_summary({"total_amount": 80, "payment_received": 0, "paid": True})
    assert summary.amount_due == 0
    assert summary.is_fully_paid


def test_is_settled_needs_a_positive_total():
    assert not is_settled(0, 0)
    assert is_settled(10, 10)
