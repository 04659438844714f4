"""
Calendar periods used for reporting.

A period is a calendar-aligned month, quarter or year anchored to "today".
"""
from dataclasses import dataclass
from datetime import date, datetime
from calendar import monthrange
from typing import List, Optional, Union

PERIOD_UNITS = ("month", "quarter", "year")


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


@dataclass(frozen=True)
class PeriodInfo:
    current: DateRange
    previous: DateRange
    label: str


# ---------- Utils ----------

def month_range(year: int, month: int) -> DateRange:
    return DateRange(date(year, month, 1), date(year, month, monthrange(year, month)[1]))


def shift_month(year: int, month: int, delta: int):
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def quarter_range(year: int, month: int) -> DateRange:
    first = 3 * ((month - 1) // 3) + 1
    return DateRange(month_range(year, first).start, month_range(year, first + 2).end)


def year_range(year: int) -> DateRange:
    return DateRange(date(year, 1, 1), date(year, 12, 31))


# ---------- Period info ----------

def get_period_info(unit: str, now: Optional[date] = None) -> PeriodInfo:
    """Current and previous ranges for ``unit`` plus a display label.

    ``now`` defaults to today's date.
    """
    now = now or date.today()
    if unit == "month":
        current = month_range(now.year, now.month)
        previous = month_range(*shift_month(now.year, now.month, -1))
        return PeriodInfo(current, previous, current.start.strftime("%B %Y"))
    if unit == "quarter":
        current = quarter_range(now.year, now.month)
        previous = quarter_range(*shift_month(now.year, now.month, -3))
        return PeriodInfo(current, previous, f"Q{(now.month - 1) // 3 + 1} {current.start.year}")
    if unit == "year":
        return PeriodInfo(year_range(now.year), year_range(now.year - 1), str(now.year))
    raise ValueError(f"period must be one of {', '.join(PERIOD_UNITS)}")


def months_in_year(year: int) -> List[date]:
    return [date(year, m, 1) for m in range(1, 13)]


def quarters_in_year(year: int) -> List[date]:
    return [date(year, m, 1) for m in (1, 4, 7, 10)]


def is_date_in_period(value: Union[date, str], period: DateRange) -> bool:
    if isinstance(value, str):
        value = datetime.strptime(value, "%Y-%m-%d").date()
    return period.contains(value)


def period_progress(unit: str, now: Optional[date] = None) -> float:
    """Fraction of the current period already elapsed, clamped to [0, 1]."""
    now = now or date.today()
    current = get_period_info(unit, now).current
    total_days = (current.end - current.start).days
    elapsed_days = (now - current.start).days
    return min(max(elapsed_days / total_days, 0.0), 1.0)
