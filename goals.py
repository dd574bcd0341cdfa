"""Purchase goals committed from savings plans, with monthly progress and AI analyses.

Goals live in the ``purchaseGoals`` namespace of the user's snapshot so they
never overwrite the expense data stored beside them.
"""

import logging
from datetime import date
from typing import Callable, List, Optional

from pydantic import ValidationError

from dates import month_key, parse_month_key
from models import PlanAnalysis, PurchaseGoal, SavingsPlan, SavingsProgress, utcnow

logger = logging.getLogger(__name__)

GOALS_NAMESPACE = "purchaseGoals"


class GoalTracker:
    def __init__(self, storage=None, user_id: Optional[str] = None,
                 today: Callable[[], date] = date.today):
        self.storage = storage
        self.user_id = user_id
        self.today = today
        self.goals: List[PurchaseGoal] = []
        self.progress: List[SavingsProgress] = []
        self.analyses: List[PlanAnalysis] = []

    # --- Goals ---

    def get_goal(self, goal_id: str) -> Optional[PurchaseGoal]:
        return next((g for g in self.goals if g.id == goal_id), None)

    def active_goals(self) -> List[PurchaseGoal]:
        return [g for g in self.goals if g.status == "active"]

    def add_goal(self, **fields) -> PurchaseGoal:
        goal = PurchaseGoal(**fields)
        self.goals.append(goal)
        self.save()
        return goal

    def create_goal_from_plan(self, plan: SavingsPlan, priority: str = "medium",
                              category: str = "other", description: Optional[str] = None) -> PurchaseGoal:
        """Commit a computed plan as a persisted goal. Plans are never saved on their own."""
        return self.add_goal(
            item=plan.item,
            description=description,
            target_amount=plan.target_amount,
            monthly_saving=plan.monthly_saving,
            current_saved=0.0,
            start_date=plan.start_date,
            estimated_end_date=plan.end_date,
            status="active",
            priority=priority,
            category=category,
        )

    def update_goal(self, goal_id: str, **updates) -> Optional[PurchaseGoal]:
        current = self.get_goal(goal_id)
        if current is None:
            logger.warning("update_goal: unknown goal %s", goal_id)
            return None

        updates.pop("id", None)
        updates["updated_at"] = utcnow()
        updated = PurchaseGoal.model_validate({**current.model_dump(), **updates})
        self.goals = [updated if g.id == goal_id else g for g in self.goals]
        self.save()
        return updated

    def delete_goal(self, goal_id: str) -> bool:
        if self.get_goal(goal_id) is None:
            return False
        self.goals = [g for g in self.goals if g.id != goal_id]
        self.progress = [p for p in self.progress if p.goal_id != goal_id]
        self.analyses = [a for a in self.analyses if a.goal_id != goal_id]
        self.save()
        return True

    # --- Progress ---

    def goal_progress(self, goal_id: str) -> List[SavingsProgress]:
        return [p for p in self.progress if p.goal_id == goal_id]

    def _find_progress(self, goal_id: str, month: str) -> Optional[SavingsProgress]:
        return next((p for p in self.progress if p.goal_id == goal_id and p.month == month), None)

    def add_progress(self, goal_id: str, month: str, **fields) -> SavingsProgress:
        """Insert the month's progress, or merge into the existing entry."""
        existing = self._find_progress(goal_id, month)
        if existing is None:
            entry = SavingsProgress(goal_id=goal_id, month=month, **fields)
            self.progress.append(entry)
        else:
            entry = SavingsProgress.model_validate({**existing.model_dump(), **fields})
            self.progress = [entry if p is existing else p for p in self.progress]
        self.save()
        return entry

    def update_progress(self, goal_id: str, month: str, **updates) -> Optional[SavingsProgress]:
        existing = self._find_progress(goal_id, month)
        if existing is None:
            return None
        updated = SavingsProgress.model_validate({**existing.model_dump(), **updates})
        self.progress = [updated if p is existing else p for p in self.progress]
        self.save()
        return updated

    def record_contribution(self, goal_id: str, amount: float,
                            month: Optional[str] = None) -> Optional[SavingsProgress]:
        """
        Add money put aside for a goal.

        Updates the goal's amount saved, marks it completed once the target
        is reached, and upserts the month's progress. A month is on track
        when the total saved is at least the planned total up to that month.
        """
        goal = self.get_goal(goal_id)
        if goal is None:
            logger.warning("record_contribution: unknown goal %s", goal_id)
            return None
        if amount <= 0:
            raise ValueError("contribution must be positive")

        month = month or month_key(self.today())
        saved = goal.current_saved + amount
        status = "completed" if saved >= goal.target_amount else goal.status
        self.update_goal(goal_id, current_saved=saved, status=status)

        months_elapsed = _months_between(goal.start_date, month) + 1
        planned_total = min(goal.monthly_saving * months_elapsed, goal.target_amount)
        existing = self._find_progress(goal_id, month)
        actual = (existing.actual_amount if existing else 0.0) + amount

        return self.add_progress(
            goal_id,
            month,
            planned_amount=goal.monthly_saving,
            actual_amount=actual,
            cumulative_total=min(saved, goal.target_amount),
            percent_complete=min(saved / goal.target_amount * 100, 100.0),
            on_track=saved >= planned_total,
        )

    # --- AI analyses ---

    def get_analysis(self, goal_id: str) -> Optional[PlanAnalysis]:
        return next((a for a in self.analyses if a.goal_id == goal_id), None)

    def save_analysis(self, goal_id: str, analysis: PlanAnalysis) -> PlanAnalysis:
        """Keep one analysis per goal; a newer one replaces the old."""
        analysis = analysis.model_copy(update={"goal_id": goal_id})
        self.analyses = [a for a in self.analyses if a.goal_id != goal_id] + [analysis]
        self.save()
        return analysis

    # --- Persistence ---

    def to_document(self) -> dict:
        return {
            GOALS_NAMESPACE: {
                "goals": [g.to_document() for g in self.goals],
                "progress": [p.to_document() for p in self.progress],
                "analyses": [a.to_document() for a in self.analyses],
            }
        }

    def load(self, user_id: Optional[str] = None) -> bool:
        if user_id is not None:
            self.user_id = user_id
        if self.storage is None:
            return False

        try:
            data = self.storage.load(self.user_id) or {}
        except Exception:
            logger.exception("Loading purchase goals failed")
            return False

        section = data.get(GOALS_NAMESPACE) if isinstance(data, dict) else None
        if not section:
            return False
        if not isinstance(section, dict):
            logger.error("Purchase goals for %s are not an object, keeping current state", self.user_id)
            return False
        try:
            goals = [PurchaseGoal.model_validate(g) for g in section.get("goals") or []]
            progress = [SavingsProgress.model_validate(p) for p in section.get("progress") or []]
            analyses = [PlanAnalysis.model_validate(a) for a in section.get("analyses") or []]
        except (ValidationError, TypeError) as e:
            logger.error("Purchase goals for %s are malformed: %s", self.user_id, e)
            return False

        self.goals, self.progress, self.analyses = goals, progress, analyses
        return True

    def save(self) -> bool:
        if self.storage is None:
            return False
        try:
            return self.storage.merge(self.user_id, self.to_document())
        except Exception:
            logger.exception("Saving purchase goals failed; in-memory state kept")
            return False


def _months_between(start: date, month: str) -> int:
    first = parse_month_key(month)
    return max((first.year - start.year) * 12 + (first.month - start.month), 0)
