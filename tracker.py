"""
tracker.py
----------
In-memory state for one user's expenses, income, payments and notifications.

Every mutation goes through ``_commit``: memory is updated first, subscribers
are told, then the snapshot is handed to storage. A storage failure is logged
and never rolls the in-memory change back.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

import expenses as expense_agg
import income as income_agg
from dates import current_month_key
from models import Category, Expense, Income, Notification, NotificationType, PaymentRecord
from notifications import check_notifications
from payments import PaymentLedger

logger = logging.getLogger(__name__)

Listener = Callable[[str, "ExpenseTracker"], None]


class ExpenseTracker:
    def __init__(self, storage=None, user_id: Optional[str] = None,
                 today: Callable[[], date] = date.today, executor=None):
        self.storage = storage
        self.user_id = user_id
        self.today = today
        self.executor = executor

        self.expenses: List[Expense] = []
        self.ledger = PaymentLedger()
        self.notifications: List[Notification] = []
        self.incomes: List[Income] = []
        self.dark_mode = False

        self._listeners: List[Listener] = []

    # --- Observers ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(event, tracker)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str):
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception:
                logger.exception("Listener failed on %s", event)

    def _commit(self, event: str):
        self._notify(event)
        self.save()

    # --- Expenses ---

    def _find_expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def add_expense(self, **fields) -> Expense:
        expense = Expense(**fields)
        self.expenses.append(expense)
        self._commit("expense_added")
        self.check_notifications()
        return expense

    def update_expense(self, expense_id: str, **updates) -> Optional[Expense]:
        current = self._find_expense(expense_id)
        if current is None:
            logger.warning("update_expense: unknown expense %s", expense_id)
            return None

        updates.pop("id", None)
        updated = Expense.model_validate({**current.model_dump(), **updates})
        self.expenses = [updated if e.id == expense_id else e for e in self.expenses]
        self._commit("expense_updated")
        self.check_notifications()
        return updated

    def delete_expense(self, expense_id: str) -> bool:
        if self._find_expense(expense_id) is None:
            logger.warning("delete_expense: unknown expense %s", expense_id)
            return False

        self.expenses = [e for e in self.expenses if e.id != expense_id]
        removed = self.ledger.remove_expense(expense_id)
        logger.debug("Deleted expense %s and %d payment records", expense_id, removed)
        self._commit("expense_deleted")
        return True

    def toggle_expense_active(self, expense_id: str) -> bool:
        expense = self._find_expense(expense_id)
        if expense is None:
            logger.warning("toggle_expense_active: unknown expense %s", expense_id)
            return False

        expense.is_active = not expense.is_active
        self._commit("expense_updated")
        return True

    # --- Payments ---

    @property
    def payment_history(self) -> List[PaymentRecord]:
        return self.ledger.records

    def mark_paid(self, expense_id: str, month: Optional[str] = None,
                  paid_amount: Optional[float] = None) -> Optional[PaymentRecord]:
        expense = self._find_expense(expense_id)
        if expense is None:
            logger.warning("mark_paid: unknown expense %s", expense_id)
            return None

        record = self.ledger.mark_paid(
            expense_id, month or self.current_month(), expense.value, paid_amount=paid_amount
        )
        self._commit("payment_marked")
        return record

    def unmark_paid(self, expense_id: str, month: Optional[str] = None) -> bool:
        changed = self.ledger.unmark_paid(expense_id, month or self.current_month())
        if changed:
            self._commit("payment_unmarked")
        return changed

    def is_paid(self, expense_id: str, month: str) -> bool:
        return self.ledger.is_paid(expense_id, month)

    def is_paid_this_month(self, expense_id: str) -> bool:
        return self.ledger.is_paid(expense_id, self.current_month())

    # --- Notifications ---

    def add_notification(self, type: NotificationType, message: str,
                         expense_id: Optional[str] = None) -> Notification:
        notification = Notification(type=type, message=message, expense_id=expense_id)
        self.notifications.append(notification)
        self._commit("notification_added")
        return notification

    def mark_notification_read(self, notification_id: str) -> bool:
        for notification in self.notifications:
            if notification.id == notification_id:
                notification.read = True
                self._commit("notification_read")
                return True
        return False

    def clear_notifications(self):
        self.notifications = []
        self._commit("notifications_cleared")

    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    def check_notifications(self) -> List[Notification]:
        new = check_notifications(self.expenses, self.notifications, today=self.today())
        if new:
            self.notifications.extend(new)
            self._commit("notifications_checked")
        return new

    # --- Income ---

    def _find_income(self, income_id: str) -> Optional[Income]:
        return next((i for i in self.incomes if i.id == income_id), None)

    def add_income(self, amount: float, source: str, month: Optional[str] = None) -> Income:
        entry = Income(amount=amount, source=source, month=month or self.current_month())
        self.incomes.append(entry)
        self._commit("income_added")
        return entry

    def update_income(self, income_id: str, **updates) -> Optional[Income]:
        current = self._find_income(income_id)
        if current is None:
            logger.warning("update_income: unknown income %s", income_id)
            return None

        updates.pop("id", None)
        updated = Income.model_validate({**current.model_dump(), **updates})
        self.incomes = [updated if i.id == income_id else i for i in self.incomes]
        self._commit("income_updated")
        return updated

    def delete_income(self, income_id: str) -> bool:
        if self._find_income(income_id) is None:
            logger.warning("delete_income: unknown income %s", income_id)
            return False
        self.incomes = [i for i in self.incomes if i.id != income_id]
        self._commit("income_deleted")
        return True

    # --- Preferences ---

    def toggle_dark_mode(self) -> bool:
        self.dark_mode = not self.dark_mode
        self._commit("preferences_updated")
        return self.dark_mode

    # --- Computed ---

    def current_month(self) -> str:
        return current_month_key(self.today())

    def total_monthly(self) -> float:
        return expense_agg.total_monthly(self.expenses)

    def total_income(self) -> float:
        return income_agg.total_income(self.incomes)

    def current_month_income(self) -> float:
        return income_agg.current_month_income(self.incomes, today=self.today())

    def expenses_by_category(self) -> Dict[Category, List[Expense]]:
        return expense_agg.by_category(self.expenses)

    def upcoming_expenses(self, days: int = expense_agg.UPCOMING_WINDOW_DAYS) -> List[Expense]:
        return expense_agg.upcoming(self.expenses, days, today=self.today())

    # --- Persistence ---

    def to_document(self) -> dict:
        return {
            "expenses": [e.to_document() for e in self.expenses],
            "paymentHistory": [p.to_document() for p in self.ledger.records],
            "notifications": [n.to_document() for n in self.notifications],
            "incomes": [i.to_document() for i in self.incomes],
            "darkMode": self.dark_mode,
        }

    def apply_document(self, data: dict):
        """Replace state with the contents of a snapshot; missing keys load empty."""
        if not isinstance(data, dict):
            raise TypeError(f"snapshot must be an object, got {type(data).__name__}")
        loaded_expenses = [Expense.model_validate(e) for e in data.get("expenses") or []]
        records = [PaymentRecord.model_validate(p) for p in data.get("paymentHistory") or []]
        loaded_notifications = [Notification.model_validate(n) for n in data.get("notifications") or []]
        loaded_incomes = [Income.model_validate(i) for i in data.get("incomes") or []]

        self.expenses = loaded_expenses
        self.ledger = PaymentLedger(records)
        self.notifications = loaded_notifications
        self.incomes = loaded_incomes
        self.dark_mode = bool(data.get("darkMode", False))

    def load(self, user_id: Optional[str] = None) -> bool:
        if user_id is not None:
            self.user_id = user_id
        if self.storage is None:
            return False

        try:
            data = self.storage.load(self.user_id)
        except Exception:
            logger.exception("Loading snapshot failed")
            return False
        if not data:
            return False

        try:
            self.apply_document(data)
        except (ValidationError, TypeError, AttributeError) as e:
            logger.error("Snapshot for %s is malformed, keeping current state: %s", self.user_id, e)
            return False

        self._notify("loaded")
        return True

    def save(self):
        if self.storage is None:
            return
        document = self.to_document()
        if self.executor is not None:
            self.executor.submit(self._persist, document)
        else:
            self._persist(document)

    def _persist(self, document: dict) -> bool:
        try:
            return self.storage.merge(self.user_id, document)
        except Exception:
            logger.exception("Saving snapshot failed; in-memory state kept")
            return False
