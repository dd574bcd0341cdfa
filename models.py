"""Data model for expenses, income, payments, notifications and purchase goals.

Persisted entities are pydantic models serialized with camelCase aliases, the
shape of the per-user snapshot document. Savings plans are derived values and
live here as plain dataclasses.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Category(str, Enum):
    SUBSCRIPTIONS = "subscriptions"
    EDUCATION = "education"
    HOUSING = "housing"
    TRANSPORT = "transport"
    HEALTH = "health"
    OTHER = "other"


CATEGORY_LABELS = {
    Category.SUBSCRIPTIONS: "Subscriptions",
    Category.EDUCATION: "Education",
    Category.HOUSING: "Housing",
    Category.TRANSPORT: "Transport",
    Category.HEALTH: "Health",
    Category.OTHER: "Other",
}


class SnapshotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# --- Persisted entities ---

class Expense(SnapshotModel):
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    value: float = Field(..., ge=0, description="Monthly amount")
    due_day: Optional[int] = Field(None, ge=1, le=31, description="Day of month (1-31)")
    category: Category = Category.OTHER
    is_active: bool = True
    end_date: Optional[date] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class PaymentRecord(SnapshotModel):
    expense_id: str
    month: str = Field(..., pattern=MONTH_PATTERN)
    paid: bool = False
    paid_date: Optional[datetime] = None
    paid_value: Optional[float] = None


class Income(SnapshotModel):
    id: str = Field(default_factory=new_id)
    amount: float = Field(..., ge=0)
    source: str
    month: str = Field(..., pattern=MONTH_PATTERN)
    created_at: datetime = Field(default_factory=utcnow)


class NotificationType(str, Enum):
    DUE_DATE = "due-date"
    VALUE_INCREASE = "value-increase"
    CATEGORY_LIMIT = "category-limit"


class Notification(SnapshotModel):
    id: str = Field(default_factory=new_id)
    type: NotificationType
    message: str
    expense_id: Optional[str] = None
    date: datetime = Field(default_factory=utcnow)
    read: bool = False
    # "<expense id>:<threshold>:<YYYY-MM-DD>" for due-date alerts
    dedup_key: Optional[str] = None


GoalStatus = Literal["active", "completed", "paused", "cancelled"]
Priority = Literal["high", "medium", "low"]


class PurchaseGoal(SnapshotModel):
    id: str = Field(default_factory=new_id)
    item: str = Field(..., min_length=1)
    description: Optional[str] = None
    target_amount: float = Field(..., gt=0)
    monthly_saving: float = Field(..., gt=0)
    current_saved: float = Field(0.0, ge=0)
    start_date: date
    estimated_end_date: date
    status: GoalStatus = "active"
    priority: Priority = "medium"
    category: str = "other"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SavingsProgress(SnapshotModel):
    goal_id: str
    month: str = Field(..., pattern=MONTH_PATTERN)
    planned_amount: float = 0.0
    actual_amount: float = 0.0
    cumulative_total: float = 0.0
    percent_complete: float = 0.0
    on_track: bool = True


class Viability(SnapshotModel):
    is_realistic: bool = True
    success_probability: float = 70
    risks: List[str] = []
    reasoning: str = "Analysis not available"
    suggested_amount: Optional[float] = None
    alternatives: Optional[List[str]] = None


class AccelerationOption(SnapshotModel):
    scenario: Literal["light", "moderate", "intense"] = "light"
    months_reduced: int = 0
    additional_monthly_saving: float = 0.0
    suggestions: List[str] = []
    description: str = ""


class PlanAnalysis(SnapshotModel):
    goal_id: str = ""
    viability: Viability = Field(default_factory=Viability)
    acceleration_options: List[AccelerationOption] = []
    tips: List[str] = []
    generated_at: datetime = Field(default_factory=utcnow)


# --- Derived values ---

@dataclass
class MonthlyBreakdown:
    month: str  # YYYY-MM
    month_label: str  # Mon/YYYY
    planned_amount: float
    cumulative_total: float
    percent_complete: float


@dataclass
class SavingsPlan:
    item: str
    target_amount: float
    months_needed: int
    monthly_saving: float
    start_date: date
    end_date: date
    monthly_surplus: float
    suggested_saving: float
    breakdown: List[MonthlyBreakdown] = field(default_factory=list)
