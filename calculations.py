"""
Financial calculations over in-memory transaction lists.

Every function here is pure: inputs are never mutated and nothing is cached.
Ratios whose denominator is zero are reported as 0.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from periods import DateRange, get_period_info, month_range, shift_month
from schemas import Budget, BudgetResult, Transaction, WageEntry

TOP_CATEGORY_LIMIT = 5
ONTRACK_THRESHOLD = 80.0
OVER_THRESHOLD = 100.0
STABLE_THRESHOLD = 5.0


@dataclass(frozen=True)
class CategoryShare:
    category: str
    amount: float
    percentage: float


@dataclass(frozen=True)
class FinancialSummary:
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_savings: float = 0.0
    savings_rate: float = 0.0
    top_categories: List[CategoryShare] = field(default_factory=list)


@dataclass(frozen=True)
class SpendingTrend:
    current: float
    previous: float
    change_percent: float
    trending: str  # "up" | "down" | "stable"


# ---------- Utils ----------

def _in_range(transactions: Iterable[Transaction], period: DateRange) -> List[Transaction]:
    return [t for t in transactions if period.contains(t.date)]


def _expense_total(transactions: Iterable[Transaction], period: DateRange) -> float:
    return sum((t.amount for t in transactions if t.type == "expense" and period.contains(t.date)), 0.0)


def _ratio(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


# ---------- Summary ----------

def summarize(transactions: Sequence[Transaction], period: DateRange) -> FinancialSummary:
    """Totals, savings rate and top spending categories within ``period``.

    Both range endpoints are inclusive. Categories with equal totals keep the
    order in which they were first encountered.
    """
    selected = _in_range(transactions, period)
    total_income = sum((t.amount for t in selected if t.type == "income"), 0.0)
    total_expenses = sum((t.amount for t in selected if t.type == "expense"), 0.0)
    net_savings = total_income - total_expenses

    by_category: Dict[str, float] = {}
    for t in selected:
        if t.type == "expense":
            by_category[t.category] = by_category.get(t.category, 0.0) + t.amount

    ranked = sorted(by_category.items(), key=lambda kv: kv[1], reverse=True)
    top = [
        CategoryShare(category=name, amount=amount, percentage=_ratio(amount, total_expenses))
        for name, amount in ranked[:TOP_CATEGORY_LIMIT]
    ]
    return FinancialSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        net_savings=net_savings,
        savings_rate=_ratio(net_savings, total_income),
        top_categories=top,
    )


# ---------- Budgets ----------

def budget_status(percent_used: float) -> str:
    if percent_used > OVER_THRESHOLD:
        return "over"
    if percent_used > ONTRACK_THRESHOLD:
        return "ontrack"
    return "under"


def evaluate_budgets(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    unit: str,
    now: Optional[date] = None,
) -> List[BudgetResult]:
    """Compare category spending in the current ``unit`` period against each budget."""
    current = get_period_info(unit, now).current
    results = []
    for budget in budgets:
        spent = sum(
            (t.amount for t in transactions
             if t.category == budget.category and t.type == "expense" and current.contains(t.date)),
            0.0,
        )
        percent_used = _ratio(spent, budget.budget_amount)
        results.append(BudgetResult(
            category=budget.category,
            budget_amount=budget.budget_amount,
            period=unit,
            spent_amount=spent,
            percent_used=percent_used,
            status=budget_status(percent_used),
        ))
    return results


# ---------- Trends ----------

def classify_trend(change_percent: float) -> str:
    if abs(change_percent) > STABLE_THRESHOLD:
        return "up" if change_percent > 0 else "down"
    return "stable"


def detect_trend(transactions: Sequence[Transaction], unit: str, now: Optional[date] = None) -> SpendingTrend:
    info = get_period_info(unit, now)
    current = _expense_total(transactions, info.current)
    previous = _expense_total(transactions, info.previous)
    change_percent = (current - previous) / previous * 100 if previous > 0 else 0.0
    return SpendingTrend(
        current=current,
        previous=previous,
        change_percent=change_percent,
        trending=classify_trend(change_percent),
    )


def project_monthly_expenses(transactions: Sequence[Transaction], now: Optional[date] = None) -> float:
    """Linear projection of this month's spending onto a 30-day month."""
    now = now or date.today()
    spent = _expense_total(transactions, get_period_info("month", now).current)
    days_in_month = 30
    days_passed = min(now.day, days_in_month)
    return spent / days_passed * days_in_month


# ---------- Wages ----------

def annual_wage(entry: Optional[WageEntry]) -> float:
    return entry.monthly_amount * 12 if entry else 0.0


def wage_in_effect(wages: Iterable[WageEntry], on: date) -> Optional[WageEntry]:
    """Latest wage whose effective date is on or before ``on``."""
    eligible = [w for w in wages if w.effective_date <= on]
    if not eligible:
        return None
    return max(eligible, key=lambda w: (w.effective_date, w.created_at))


def wage_income(
    wages: Sequence[WageEntry], period: DateRange, now: Optional[date] = None
) -> List[Transaction]:
    """One income transaction per calendar month of ``period``.

    Each month is credited with the wage in effect at its last day. Months
    before the first wage, or starting after ``now``, produce nothing.
    """
    now = now or date.today()
    last = min(period.end, now)
    income = []
    year, month = period.start.year, period.start.month
    while date(year, month, 1) <= last:
        span = month_range(year, month)
        wage = wage_in_effect(wages, span.end)
        if wage is not None:
            income.append(Transaction(
                id=f"wage-{wage.id}-{year:04d}-{month:02d}",
                amount=wage.monthly_amount,
                type="income",
                date=max(span.start, period.start),
                category="Wage",
                description=wage.description or "Monthly wage",
            ))
        year, month = shift_month(year, month, 1)
    return income
