import logging
import math
from datetime import date, datetime, time
from typing import Callable, Dict, List, Optional, Union

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler

from .db import BillStore
from .models import Bill, Reminder
from .notify import NotificationSink

logger = logging.getLogger("smartwallet.reminders")

DUE_SOON_DAYS = 3
_DAY_SECONDS = 24 * 60 * 60


def _midnight(d: date) -> datetime:
    return datetime.combine(d, time.min)


def days_until(due: date, now: Union[date, datetime]) -> int:
    """Whole days from ``now`` to the start of ``due``, partial days rounded up."""
    if not isinstance(now, datetime):
        now = _midnight(now)
    return math.ceil((_midnight(due) - now).total_seconds() / _DAY_SECONDS)


def classify_bill(bill: Bill, now: Union[date, datetime]) -> Optional[Reminder]:
    if bill.is_paid:
        return None

    days = days_until(bill.due_date, now)
    if days < 0:
        return Reminder(
            id=f"reminder_{bill.id}",
            bill_id=bill.id,
            reminder_date=bill.due_date,
            type="overdue",
            message=f"{bill.name} is {abs(days)} days overdue",
        )
    if days <= DUE_SOON_DAYS:
        return Reminder(
            id=f"reminder_{bill.id}",
            bill_id=bill.id,
            reminder_date=bill.due_date,
            type="due_soon",
            message=f"{bill.name} is due in {days} days",
        )
    return None


class ReminderScheduler:
    """Builds a user's reminder list and queues delivery of future ones.

    Jobs are keyed by reminder id so a later run replaces the earlier job,
    and ``cancel_for_bill`` drops the job when a bill is paid or removed.
    Reminders whose date is today or already past get no job at all; they
    only show up in the list.
    """

    def __init__(
        self,
        store: BillStore,
        sink: NotificationSink,
        scheduler: BaseScheduler,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.sink = sink
        self.scheduler = scheduler
        self.clock = clock
        self._jobs: Dict[str, str] = {}  # reminder id -> job id
        self.scheduler.add_listener(self._job_done, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)

    def _job_done(self, event: JobExecutionEvent) -> None:
        # One-shot jobs leave the scheduler once they run or are missed; ids match reminder ids.
        self._jobs.pop(event.job_id, None)

    def upcoming(self, user_id: str) -> List[Reminder]:
        try:
            bills = self.store.list(user_id)
        except Exception:
            logger.exception("Could not read bills for user %s", user_id)
            return []

        now = self.clock()
        reminders = []
        for bill in bills:
            r = classify_bill(bill, now)
            if r is not None:
                reminders.append(r)
        return reminders

    def schedule(self, user_id: str) -> List[Reminder]:
        """Classify the user's bills and register a job per future reminder."""
        reminders = self.upcoming(user_id)
        now = self.clock()
        for r in reminders:
            run_at = _midnight(r.reminder_date)
            if (run_at - now).total_seconds() <= 0:
                logger.debug("No delivery queued for %s (date %s not in the future)", r.id, r.reminder_date)
                continue
            self.cancel(r.id)
            job = self.scheduler.add_job(
                self.sink.deliver,
                "date",
                run_date=run_at,
                args=[r],
                id=r.id,
                replace_existing=True,
            )
            self._jobs[r.id] = job.id
            logger.info("Queued %s for %s", r.id, run_at.isoformat())
        return reminders

    def scheduled_ids(self) -> List[str]:
        """Reminder ids whose delivery is still pending."""
        live = {j.id for j in self.scheduler.get_jobs()}
        self._jobs = {r: j for r, j in self._jobs.items() if j in live}
        return list(self._jobs)

    def cancel(self, reminder_id: str) -> bool:
        job_id = self._jobs.pop(reminder_id, None)
        if job_id is None:
            return False
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            # Already fired.
            return False
        logger.info("Cancelled %s", reminder_id)
        return True

    def cancel_for_bill(self, bill_id: str) -> bool:
        return self.cancel(f"reminder_{bill_id}")
