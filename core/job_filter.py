# core/job_filter.py: derive what the delivery board shows from the full job list

from datetime import date, timedelta
from typing import Dict, List, Literal, Mapping, Optional, Sequence

from core.dates import normalize_date
from core.job_state import JobStatus, is_settled

Mode = Literal["normal", "unscheduled"]


def is_unscheduled(job: Mapping) -> bool:
    return job.get("status") == JobStatus.TO_BE_SCHEDULED.value or not job.get("delivery_date")


def _matches_search(job: Mapping, term: str) -> bool:
    term = term.lower()
    return term in (job.get("customer_name") or "").lower() or term in (job.get("address") or "").lower()


def filter_jobs(
    jobs: Sequence[Mapping],
    mode: Mode = "normal",
    date=None,
    search_term: str = "",
    status_filter: str = "all",
) -> List[Mapping]:
    """
    Visible subset of ``jobs`` for the board.

    ``unscheduled`` mode lists jobs still waiting for a date and ignores the
    date and status filters. ``normal`` mode lists dated jobs on the
    selected calendar day, optionally narrowed by status; without a
    readable day it lists nothing. The search term
    then matches customer name or address in either mode. Completed jobs
    sink to the bottom; the input list is never modified.
    """
    if mode == "unscheduled":
        visible = [j for j in jobs if is_unscheduled(j)]
    else:
        selected = normalize_date(date)
        visible = [
            j for j in jobs
            if not is_unscheduled(j) and selected and normalize_date(j.get("delivery_date")) == selected
        ]
        if status_filter and status_filter != "all":
            visible = [j for j in visible if j.get("status") == status_filter]

    if search_term:
        visible = [j for j in visible if _matches_search(j, search_term)]

    return sorted(visible, key=lambda j: j.get("status") == JobStatus.COMPLETED.value)


def count_unscheduled(jobs: Sequence[Mapping]) -> int:
    return sum(1 for j in jobs if is_unscheduled(j))


def needs_collection(job: Mapping) -> bool:
    total = float(job.get("total_amount") or 0)
    if total <= 0 or job.get("paid"):
        return False
    if job.get("status") == JobStatus.TO_BE_SCHEDULED.value:
        return False
    return not is_settled(total, job.get("payment_received"))


def count_unpaid(jobs: Sequence[Mapping]) -> int:
    return sum(1 for j in jobs if needs_collection(j))


def jobs_on(jobs: Sequence[Mapping], day) -> List[Mapping]:
    wanted = normalize_date(day)
    return [j for j in jobs if not is_unscheduled(j) and normalize_date(j.get("delivery_date")) == wanted]


def calendar_days(jobs: Sequence[Mapping], today: date, before: int = 3, after: int = 10) -> List[Dict]:
    days = []
    for offset in range(-before, after + 1):
        day = today + timedelta(days=offset)
        day_jobs = jobs_on(jobs, day)
        completed = sum(1 for j in day_jobs if j.get("status") == JobStatus.COMPLETED.value)
        days.append({
            "date": day.isoformat(),
            "weekday": day.strftime("%a"),
            "is_today": offset == 0,
            "is_past": offset < 0,
            "job_count": len(day_jobs),
            "completed_count": completed,
            "pending_count": len(day_jobs) - completed,
        })
    return days


def dashboard_stats(jobs: Sequence[Mapping], today: Optional[date] = None) -> Dict[str, int]:
    day = today or date.today()
    return {
        "today_jobs": len(jobs_on(jobs, day)),
        "total_jobs": len(jobs),
        "completed_jobs": sum(1 for j in jobs if j.get("status") == JobStatus.COMPLETED.value),
        "pending_payments": sum(
            1 for j in jobs if j.get("status") == JobStatus.COMPLETED.value and not j.get("paid")
        ),
    }
