"""
Pay period resolution.

Periods are closed date ranges ``[start, end]``; ``start_at`` / ``end_at``
give the 00:00:00.000 and 23:59:59.999 boundaries used for timestamp
filters. One policy is active system-wide (``settings.payroll.period_policy``)
unless the attendance settings carry an explicit period.
"""
import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from hr_payroll.core.config import settings
from hr_payroll.core.exceptions import PayrollValidationError

SEMIMONTHLY = "semimonthly"
BIWEEKLY = "biweekly"

END_OF_DAY = time(23, 59, 59, 999000)


class PayPeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="before")
    @classmethod
    def _check_range(cls, data):
        if isinstance(data, dict):
            start, end = data.get("start"), data.get("end")
            if start is None or end is None:
                raise PayrollValidationError("Payroll period requires both start and end dates")
            if isinstance(start, date) and isinstance(end, date) and start > end:
                raise PayrollValidationError(
                    f"Malformed period: start {start.isoformat()} is after end {end.isoformat()}",
                    details={"period_start": start.isoformat(), "period_end": end.isoformat()},
                )
        return data

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.start, time.min)

    @property
    def end_at(self) -> datetime:
        return datetime.combine(self.end, END_OF_DAY)

    def contains(self, moment) -> bool:
        if isinstance(moment, datetime):
            return self.start_at <= moment <= self.end_at
        return self.start <= moment <= self.end

    def overlaps(self, start: date, end: date) -> bool:
        return self.start <= end and start <= self.end


def semimonthly_period(today: date) -> PayPeriod:
    if today.day <= 15:
        return PayPeriod(start=today.replace(day=1), end=today.replace(day=15))
    return PayPeriod(start=today.replace(day=16), end=today.replace(day=days_in_month(today)))


def first_monday(year: int) -> date:
    jan_first = date(year, 1, 1)
    return jan_first + timedelta(days=(7 - jan_first.weekday()) % 7)


def biweekly_period(today: date) -> PayPeriod:
    anchor = first_monday(today.year)
    # Floor division keeps early-January dates in the period that started last year
    index = (today - anchor).days // 14
    start = anchor + timedelta(days=14 * index)
    return PayPeriod(start=start, end=start + timedelta(days=13))


def resolve_period(
    today: date,
    policy: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> PayPeriod:
    """Explicit start/end win; otherwise the configured policy decides."""
    if start is not None or end is not None:
        return PayPeriod(start=start, end=end)
    policy = policy or settings.payroll.period_policy
    if policy == SEMIMONTHLY:
        return semimonthly_period(today)
    if policy == BIWEEKLY:
        return biweekly_period(today)
    raise PayrollValidationError(f"Unknown period policy: {policy}")


def effective_end(period: PayPeriod, today: date) -> date:
    """Live computations never look past today."""
    return min(period.end, today)


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def period_factor(period_days: int) -> float:
    """0.5 for a half-month cycle, 1.0 for anything longer."""
    return 0.5 if period_days <= 16 else 1.0


def working_days(start: date, end: date, weekdays: Iterable[int]) -> List[date]:
    allowed = set(weekdays)
    days = []
    current = start
    while current <= end:
        if current.weekday() in allowed:
            days.append(current)
        current += timedelta(days=1)
    return days


def count_working_days(start: date, end: date, weekdays: Iterable[int]) -> int:
    return len(working_days(start, end, weekdays))


def working_days_basis(period: PayPeriod, weekdays: Iterable[int], basis: Optional[str] = None) -> int:
    """
    Day count the daily rate divides the monthly salary by.

    ``month`` counts working days in the calendar month the period starts in;
    ``period`` counts them inside the period itself. Zero is returned as-is;
    the deduction calculator substitutes its default.
    """
    basis = basis or settings.payroll.daily_rate_basis
    weekdays = list(weekdays)
    if basis == "period":
        return count_working_days(period.start, period.end, weekdays)
    month_start = period.start.replace(day=1)
    month_end = period.start.replace(day=days_in_month(period.start))
    return count_working_days(month_start, month_end, weekdays)
