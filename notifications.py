"""
Due-date alerts for active expenses.

``check_notifications`` scans active expenses against a reference date and
produces an alert when an expense is exactly 7, 3 or 0 days from its due day.
Each alert carries a de-duplication key built from the expense, the threshold
and the date, so scanning again on the same day emits nothing new.

``NotificationScheduler`` re-runs a check on a fixed interval in a background
thread until it is stopped.
"""

import logging
import os
import threading
from datetime import date
from typing import Callable, Iterable, List, Optional

from dates import days_until_due
from models import Expense, Notification, NotificationType

logger = logging.getLogger(__name__)

ALERT_THRESHOLDS = (7, 3, 0)
CHECK_INTERVAL_SECONDS = float(os.environ.get("NOTIFICATION_INTERVAL_SECONDS", 60))


def dedup_key(expense_id: str, threshold: int, day: date) -> str:
    return f"{expense_id}:{threshold}:{day.isoformat()}"


def due_message(expense: Expense, days: int) -> str:
    if days == 0:
        return f"{expense.name} is due today!"
    return f"{expense.name} is due in {days} days (day {expense.due_day})"


def check_notifications(
    expenses: Iterable[Expense],
    existing: Iterable[Notification] = (),
    today: Optional[date] = None,
) -> List[Notification]:
    """Return the new due-date notifications for ``today``.

    Keys already present in ``existing`` are skipped, so the result is empty
    when the same day has been scanned before.
    """
    today = today or date.today()
    seen = {n.dedup_key for n in existing if n.dedup_key}

    emitted = []
    for expense in expenses:
        if not expense.is_active or expense.due_day is None:
            continue

        days = days_until_due(expense.due_day, today)
        if days not in ALERT_THRESHOLDS:
            continue

        key = dedup_key(expense.id, days, today)
        if key in seen:
            continue
        seen.add(key)

        emitted.append(
            Notification(
                type=NotificationType.DUE_DATE,
                message=due_message(expense, days),
                expense_id=expense.id,
                dedup_key=key,
            )
        )
        logger.info("Due-date alert for %s (%d days)", expense.name, days)

    return emitted


class NotificationScheduler:
    """Calls ``check`` once on start, then every ``interval`` seconds.

    ``stop`` must be called on teardown; the context-manager form does it.
    A check that raises is logged and the schedule carries on.
    """

    def __init__(self, check: Callable[[], object], interval: float = CHECK_INTERVAL_SECONDS):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.check = check
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._run_check()
        self._thread = threading.Thread(target=self._loop, name="notification-check", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self):
        while not self._stop.wait(self.interval):
            self._run_check()

    def _run_check(self):
        try:
            self.check()
        except Exception:
            logger.exception("Notification check failed")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
