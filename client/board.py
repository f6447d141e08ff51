import logging
from typing import Dict, List, Optional

from client.api import ApiClient, ApiError, NotFoundError
from client.notify import Notifier
from client.session import Session
from core.dates import today
from core.errors import ServiceError
from core.job_builder import parse_driver_id
from core.job_filter import calendar_days, count_unpaid, count_unscheduled, dashboard_stats, filter_jobs
from core.job_state import JobStatus, can_complete, completion_changes, payment_summary
from core.roles import Capability

logger = logging.getLogger(__name__)


class JobBoard:
    """
    The in-memory delivery list behind the schedule screen.

    Every change is sent to the server first; the local list only changes
    once the server has accepted it, so a rejected request leaves the board
    exactly as it was.
    """

    def __init__(self, api: ApiClient, notifier: Notifier, session: Session):
        self.api = api
        self.notifier = notifier
        self.session = session
        self.jobs: List[dict] = []
        session.on_logout(lambda _s: self.jobs.clear())

    def refresh(self) -> List[dict]:
        try:
            jobs = self.api.list_jobs()
        except ApiError as e:
            self.notifier.error("Failed to load jobs")
            logger.error("Failed to load jobs: %s", e.message)
            return self.jobs

        if not self.session.can(Capability.VIEW_ALL_JOBS):
            jobs = [j for j in jobs if j.get("assigned_driver") == self.session.user_id]
        self.jobs = jobs
        return self.jobs

    def visible(self, mode: str = "normal", date=None, search_term: str = "", status_filter: str = "all") -> List[dict]:
        return filter_jobs(self.jobs, mode=mode, date=date or today(), search_term=search_term, status_filter=status_filter)

    def find(self, job_id: int) -> Optional[dict]:
        return next((j for j in self.jobs if j.get("id") == job_id), None)

    def _replace(self, job: dict) -> None:
        self.jobs = [job if j.get("id") == job.get("id") else j for j in self.jobs]

    def open_job(self, job_id: int) -> Optional[dict]:
        try:
            job = self.api.get_job(job_id)
        except NotFoundError:
            self.notifier.error("Job not found")
            self.jobs = [j for j in self.jobs if j.get("id") != job_id]
            return None
        except ApiError as e:
            self.notifier.error(e.message)
            return None
        self._replace(job)
        return job

    # -------------------------------
    # Lifecycle actions
    # -------------------------------
    def schedule(self, job_id: int, delivery_date: str, assigned_driver=None) -> Optional[dict]:
        changes = {
            "delivery_date": delivery_date,
            "assigned_driver": parse_driver_id(assigned_driver),
            "status": JobStatus.SCHEDULED.value,
        }
        try:
            job = self.api.update_job(job_id, changes)
        except ApiError as e:
            logger.error("Failed to schedule job %s: %s", job_id, e.message)
            self.notifier.error("Failed to schedule delivery")
            return None
        self._replace(job)
        self.notifier.success("Delivery scheduled successfully!")
        return job

    def complete(self, job_id: int, driver_notes: str = None, payment_amount=None) -> Optional[dict]:
        job = self.find(job_id)
        if job is None:
            self.notifier.error("Job not found")
            return None
        if not can_complete(self.session.role, self.session.user_id, job):
            self.notifier.error("You cannot complete this delivery")
            return None

        try:
            changes = completion_changes(job, payment_amount, driver_notes)
            updated = self.api.update_job(job_id, changes)
        except ApiError as e:
            logger.error("Failed to complete job %s: %s", job_id, e.message)
            self.notifier.error("Failed to complete delivery")
            return None
        except ServiceError as e:
            self.notifier.error(e.message)
            return None
        self._replace(updated)
        self.notifier.success("Delivery completed successfully!")
        return updated

    def delete(self, job_id: int) -> bool:
        if not self.session.can(Capability.DELETE_JOBS):
            self.notifier.error("Only an admin can delete deliveries")
            return False
        try:
            self.api.delete_job(job_id)
        except ApiError as e:
            logger.error("Failed to delete job %s: %s", job_id, e.message)
            self.notifier.error("Failed to delete job")
            return False
        self.jobs = [j for j in self.jobs if j.get("id") != job_id]
        self.notifier.success("Job deleted successfully")
        return True

    # -------------------------------
    # Derived views
    # -------------------------------
    def payment(self, job_id: int):
        job = self.find(job_id)
        return payment_summary(job) if job else None

    def summary(self, day=None) -> Dict[str, int]:
        day = day or today()
        stats = dashboard_stats(self.jobs, day)
        stats["unscheduled_jobs"] = count_unscheduled(self.jobs)
        stats["unpaid_jobs"] = count_unpaid(filter_jobs(self.jobs, date=day))
        return stats

    def calendar(self, day=None) -> List[Dict]:
        return calendar_days(self.jobs, day or today())
