"""
Schemas for the Financial Tool

Request bodies, stored records and derived results. Fields are snake_case in
Python and camelCase on the wire (``monthly_amount`` <-> ``monthlyAmount``).
These server-side schemas are the authoritative validation rules.
"""
import re
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EXPENSE_CATEGORIES = ("Food", "Transportation", "Housing", "Entertainment", "Utilities")
DEFAULT_CATEGORY_COLORS = {
    "Food": "#10B981",
    "Transportation": "#3B82F6",
    "Housing": "#8B5CF6",
    "Entertainment": "#F59E0B",
    "Utilities": "#EF4444",
}

PeriodUnit = Literal["month", "quarter", "year"]
ExpenseCategory = Literal["Food", "Transportation", "Housing", "Entertainment", "Utilities"]

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _iso_date(value):
    if isinstance(value, date) or (isinstance(value, str) and _ISO_DATE.match(value)):
        return value
    raise ValueError("Invalid date format")


class Transaction(CamelModel):
    """
    Income or expense movement fed to the calculations
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: Optional[str] = None
    amount: float = Field(..., gt=0)
    type: Literal["income", "expense"]
    category: str = ""
    description: str = ""
    date: date


# ---------- Wages ----------

class WageEntryCreate(CamelModel):
    monthly_amount: float = Field(..., gt=0, le=1_000_000, description="Monthly wage in currency units")
    description: Optional[str] = Field(None, max_length=200)
    effective_date: date = Field(..., description="Date the wage takes effect")

    @field_validator("effective_date", mode="before")
    @classmethod
    def check_effective_date(cls, v):
        return _iso_date(v)


class WageEntry(WageEntryCreate):
    """
    Stored wage entry
    Table: "wages"
    """
    id: int
    created_at: datetime

    @property
    def annual_amount(self) -> float:
        return self.monthly_amount * 12


# ---------- Expenses ----------

class ExpenseEntryCreate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    amount: float = Field(..., gt=0, le=100_000, description="Amount spent (positive value)")
    description: str = Field(..., min_length=1, max_length=200)
    category: ExpenseCategory
    date: date

    @field_validator("date", mode="before")
    @classmethod
    def check_date(cls, v):
        return _iso_date(v)


class ExpenseEntry(ExpenseEntryCreate):
    """
    Stored expense entry
    Table: "expenses"
    """
    id: int
    created_at: datetime

    def to_transaction(self) -> Transaction:
        return Transaction(
            id=f"expense-{self.id}",
            amount=self.amount,
            type="expense",
            category=self.category,
            description=self.description,
            date=self.date,
        )


class Category(CamelModel):
    """
    Expense category with a display color
    Table: "categories"
    """
    id: int
    name: str
    color: str = "#6B7280"


# ---------- Budgets ----------

class Budget(CamelModel):
    category: str
    budget_amount: float = Field(..., ge=0)


class BudgetResult(Budget):
    period: PeriodUnit
    spent_amount: float
    percent_used: float
    status: Literal["under", "ontrack", "over"]


class InsightsRequest(CamelModel):
    period: PeriodUnit = "month"
    budgets: List[Budget] = Field(default_factory=list)
