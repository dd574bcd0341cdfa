from datetime import date

import pytest

from goals import GoalTracker
from models import PlanAnalysis
from savings import calculate_savings_plan
from tracker import ExpenseTracker

TODAY = date(2024, 11, 10)


@pytest.fixture
def goals(memory_storage):
    return GoalTracker(storage=memory_storage, user_id="user-1", today=lambda: TODAY)


@pytest.fixture
def plan():
    return calculate_savings_plan("Laptop", 3000, 5000, 2000, 1500, today=TODAY)


def test_create_goal_from_plan(goals, plan, memory_storage):
    goal = goals.create_goal_from_plan(plan, priority="high", category="electronics")

    assert goal.item == "Laptop"
    assert goal.target_amount == 3000
    assert goal.monthly_saving == pytest.approx(540)
    assert goal.current_saved == 0
    assert goal.start_date == TODAY
    assert goal.estimated_end_date == date(2025, 5, 10)
    assert goal.status == "active"
    assert goals.active_goals() == [goal]

    stored = memory_storage.documents["user-1"]["purchaseGoals"]["goals"]
    assert stored[0]["targetAmount"] == 3000


def test_computing_a_plan_saves_nothing(memory_storage):
    calculate_savings_plan("Laptop", 3000, 5000, 2000, 1500, today=TODAY)
    assert memory_storage.saves == 0


def test_update_goal_refreshes_timestamp(goals, plan):
    goal = goals.create_goal_from_plan(plan)
    updated = goals.update_goal(goal.id, status="paused")

    assert updated.status == "paused"
    assert updated.updated_at >= goal.updated_at
    assert goals.active_goals() == []
    assert goals.update_goal("missing", status="paused") is None


def test_delete_goal_cascades(goals, plan):
    goal = goals.create_goal_from_plan(plan)
    goals.add_progress(goal.id, "2024-11", planned_amount=540, actual_amount=540)
    goals.save_analysis(goal.id, PlanAnalysis())

    assert goals.delete_goal(goal.id) is True
    assert goals.goals == []
    assert goals.progress == []
    assert goals.analyses == []
    assert goals.delete_goal(goal.id) is False


def test_add_progress_upserts(goals, plan):
    goal = goals.create_goal_from_plan(plan)
    goals.add_progress(goal.id, "2024-11", planned_amount=540, actual_amount=200)
    goals.add_progress(goal.id, "2024-11", actual_amount=540)

    entries = goals.goal_progress(goal.id)
    assert len(entries) == 1
    assert entries[0].actual_amount == 540
    assert entries[0].planned_amount == 540


def test_update_progress(goals, plan):
    goal = goals.create_goal_from_plan(plan)
    goals.add_progress(goal.id, "2024-11", planned_amount=540)
    assert goals.update_progress(goal.id, "2024-11", on_track=False).on_track is False
    assert goals.update_progress(goal.id, "2025-01", on_track=False) is None


def test_record_contribution_tracks_progress(goals, plan):
    goal = goals.create_goal_from_plan(plan)

    first = goals.record_contribution(goal.id, 600)
    assert first.month == "2024-11"
    assert first.cumulative_total == 600
    assert first.percent_complete == pytest.approx(20)
    assert first.on_track is True

    behind = goals.record_contribution(goal.id, 100, month="2025-01")
    # planned by Jan: 3 x 540 = 1620, saved 700
    assert behind.on_track is False
    assert goals.get_goal(goal.id).current_saved == 700


def test_record_contribution_completes_goal(goals, plan):
    goal = goals.create_goal_from_plan(plan)
    progress = goals.record_contribution(goal.id, 3500)

    assert progress.cumulative_total == 3000
    assert progress.percent_complete == 100
    assert goals.get_goal(goal.id).status == "completed"


def test_record_contribution_rejects_non_positive(goals, plan):
    goal = goals.create_goal_from_plan(plan)
    with pytest.raises(ValueError):
        goals.record_contribution(goal.id, 0)
    assert goals.record_contribution("missing", 10) is None


def test_save_analysis_replaces_previous(goals, plan):
    goal = goals.create_goal_from_plan(plan)
    goals.save_analysis(goal.id, PlanAnalysis(tips=["old"]))
    goals.save_analysis(goal.id, PlanAnalysis(tips=["new"]))

    assert len(goals.analyses) == 1
    assert goals.get_analysis(goal.id).tips == ["new"]
    assert goals.get_analysis(goal.id).goal_id == goal.id


def test_goals_and_expenses_share_one_document(memory_storage, plan):
    expenses = ExpenseTracker(storage=memory_storage, user_id="user-1", today=lambda: TODAY)
    goals = GoalTracker(storage=memory_storage, user_id="user-1", today=lambda: TODAY)

    expenses.add_income(5000.0, "Salary")
    goal = goals.create_goal_from_plan(plan)
    expenses.add_income(100.0, "Gift")

    document = memory_storage.documents["user-1"]
    assert len(document["incomes"]) == 2
    assert document["purchaseGoals"]["goals"][0]["id"] == goal.id

    reloaded = GoalTracker(storage=memory_storage, today=lambda: TODAY)
    assert reloaded.load("user-1") is True
    assert [g.id for g in reloaded.goals] == [goal.id]


def test_load_without_goals_namespace(memory_storage):
    memory_storage.documents["user-9"] = {"expenses": []}
    assert GoalTracker(storage=memory_storage).load("user-9") is False


def test_storage_failure_keeps_goals(failing_storage, plan):
    goals = GoalTracker(storage=failing_storage, user_id="u", today=lambda: TODAY)
    goal = goals.create_goal_from_plan(plan)
    assert goals.goals == [goal]
    assert goals.save() is False


@pytest.mark.parametrize("snapshot", [
    [{"purchaseGoals": {}}],
    {"purchaseGoals": ["not", "an", "object"]},
    {"purchaseGoals": {"goals": 5}},
    {"purchaseGoals": {"goals": [{"item": "Bike"}]}},
])
def test_wrongly_shaped_goals_keep_state(memory_storage, snapshot):
    goals = GoalTracker(storage=memory_storage, user_id="user-5", today=lambda: TODAY)
    kept = goals.add_goal(item="Bike", target_amount=1000, monthly_saving=200,
                          start_date=TODAY, estimated_end_date=TODAY)
    memory_storage.documents["user-5"] = snapshot

    assert goals.load() is False
    assert goals.goals == [kept]
