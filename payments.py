"""Per-expense, per-month payment status."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from models import PaymentRecord, utcnow

logger = logging.getLogger(__name__)


class PaymentLedger:
    """
    Holds at most one PaymentRecord per (expense id, month) pair.

    Mark/unmark operations update the existing record in place; they never
    add a second record for the same pair.
    """

    def __init__(self, records: Optional[Iterable[PaymentRecord]] = None):
        self.records: List[PaymentRecord] = list(records or [])

    def find(self, expense_id: str, month: str) -> Optional[PaymentRecord]:
        for record in self.records:
            if record.expense_id == expense_id and record.month == month:
                return record
        return None

    def mark_paid(
        self,
        expense_id: str,
        month: str,
        expense_value: float,
        paid_amount: Optional[float] = None,
        paid_at: Optional[datetime] = None,
    ) -> PaymentRecord:
        if paid_amount is not None and paid_amount < 0:
            raise ValueError("paid amount cannot be negative")
        paid_value = paid_amount if paid_amount is not None else expense_value
        paid_at = paid_at or utcnow()

        record = self.find(expense_id, month)
        if record is None:
            record = PaymentRecord(expense_id=expense_id, month=month)
            self.records.append(record)

        record.paid = True
        record.paid_date = paid_at
        record.paid_value = paid_value
        return record

    def unmark_paid(self, expense_id: str, month: str) -> bool:
        record = self.find(expense_id, month)
        if record is None:
            logger.debug("No payment record for %s in %s; nothing to unmark", expense_id, month)
            return False

        record.paid = False
        record.paid_date = None
        record.paid_value = None
        return True

    def is_paid(self, expense_id: str, month: str) -> bool:
        record = self.find(expense_id, month)
        return bool(record and record.paid)

    def remove_expense(self, expense_id: str) -> int:
        """Drop every record of a deleted expense; returns how many went."""
        before = len(self.records)
        self.records = [r for r in self.records if r.expense_id != expense_id]
        return before - len(self.records)

    def history(self, expense_id: str) -> List[PaymentRecord]:
        return sorted(
            (r for r in self.records if r.expense_id == expense_id),
            key=lambda r: r.month,
        )
