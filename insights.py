"""
Rule-based spending insights.

Each rule looks at one number from the summary, the budget results or the
trend and, when its threshold is crossed, adds a fixed message.
"""
from typing import List, Sequence

from calculations import FinancialSummary, SpendingTrend
from schemas import BudgetResult

LOW_SAVINGS_RATE = 10
HIGH_SAVINGS_RATE = 20
SPENDING_INCREASE_ALERT = 15
SPENDING_DECREASE_PRAISE = -10
CATEGORY_CONCENTRATION = 30


def generate_insights(
    summary: FinancialSummary,
    budget_results: Sequence[BudgetResult],
    trend: SpendingTrend,
) -> List[str]:
    insights: List[str] = []

    if summary.savings_rate < LOW_SAVINGS_RATE:
        insights.append("Your savings rate is below 10%. Consider reducing expenses or increasing income.")
    elif summary.savings_rate > HIGH_SAVINGS_RATE:
        insights.append("Excellent savings rate! You're building a strong financial foundation.")

    over = [b.category for b in budget_results if b.status == "over"]
    if over:
        insights.append(f"You're over budget in {len(over)} category(s): {', '.join(over)}.")

    if trend.trending == "up" and trend.change_percent > SPENDING_INCREASE_ALERT:
        insights.append(
            f"Your spending increased by {trend.change_percent:.1f}% compared to last period. Review your expenses."
        )
    elif trend.trending == "down" and trend.change_percent < SPENDING_DECREASE_PRAISE:
        insights.append(
            f"Great job! You reduced spending by {abs(trend.change_percent):.1f}% compared to last period."
        )

    if summary.top_categories:
        top = summary.top_categories[0]
        if top.percentage > CATEGORY_CONCENTRATION:
            insights.append(
                f"{top.category} accounts for {top.percentage:.1f}% of your spending. "
                "Consider if this aligns with your priorities."
            )

    return insights
