"""
Attendance deduction arithmetic.

Pure functions over floats. Degenerate inputs (zero working days, negative
durations) resolve to safe defaults instead of raising: payroll must always
produce a number.
"""
import logging
from datetime import datetime
from typing import Optional

from hr_payroll.core.config import settings
from hr_payroll.models.attendance import AttendanceStatus
from hr_payroll.services.attendance_classifier import seconds_early, seconds_late, worked_hours

logger = logging.getLogger(__name__)


def _shift(shift_hours: Optional[float]) -> float:
    if not shift_hours or shift_hours <= 0:
        return settings.payroll.standard_shift_hours
    return shift_hours


def safe_working_days(working_days: Optional[int]) -> int:
    if not working_days or working_days <= 0:
        logger.warning(
            f"Working days resolved to {working_days!r}; falling back to {settings.payroll.default_working_days}"
        )
        return settings.payroll.default_working_days
    return working_days


def daily_rate(basic_salary: float, working_days: Optional[int]) -> float:
    return max(0.0, basic_salary or 0.0) / safe_working_days(working_days)


def hourly_rate(basic_salary: float, working_days: Optional[int], shift_hours: Optional[float] = None) -> float:
    return daily_rate(basic_salary, working_days) / _shift(shift_hours)


def per_second_rate(basic_salary: float, working_days: Optional[int], shift_hours: Optional[float] = None) -> float:
    return hourly_rate(basic_salary, working_days, shift_hours) / 3600


def _capped_seconds_deduction(
    seconds: float,
    basic_salary: float,
    working_days: Optional[int],
    shift_hours: Optional[float],
) -> float:
    seconds = max(0.0, seconds)
    if seconds == 0:
        return 0.0
    cap = daily_rate(basic_salary, working_days) * settings.payroll.late_cap_ratio
    return min(seconds * per_second_rate(basic_salary, working_days, shift_hours), cap)


def late_deduction(
    basic_salary: float,
    working_days: Optional[int],
    late_seconds: float,
    shift_hours: Optional[float] = None,
) -> float:
    """Per-second pay for the time late, capped at half a day's pay."""
    return _capped_seconds_deduction(late_seconds, basic_salary, working_days, shift_hours)


def early_timeout_deduction(
    basic_salary: float,
    working_days: Optional[int],
    early_seconds: float,
    shift_hours: Optional[float] = None,
) -> float:
    return _capped_seconds_deduction(early_seconds, basic_salary, working_days, shift_hours)


def absence_deduction(basic_salary: float, working_days: Optional[int]) -> float:
    return daily_rate(basic_salary, working_days)


def partial_deduction(
    basic_salary: float,
    working_days: Optional[int],
    hours_worked: float,
    shift_hours: Optional[float] = None,
) -> float:
    shift = _shift(shift_hours)
    hours_short = max(0.0, shift - max(0.0, hours_worked))
    return hours_short * hourly_rate(basic_salary, working_days, shift)


def calculate_deduction(
    status: str,
    basic_salary: float,
    working_days: Optional[int],
    time_in: Optional[datetime] = None,
    time_out: Optional[datetime] = None,
    expected_time_in: Optional[datetime] = None,
    expected_time_out: Optional[datetime] = None,
    shift_hours: Optional[float] = None,
    include_early_timeout: Optional[bool] = None,
    overnight: bool = False,
) -> float:
    """
    Deduction for one classified day.

    ``expected_time_in`` already includes the grace minute. Early time-out is
    only charged on PRESENT/LATE days (a PARTIAL day is charged by hours
    short instead) and only when enabled. ``overnight`` is set for shifts that
    cross midnight so clock differences wrap.
    """
    if include_early_timeout is None:
        include_early_timeout = settings.payroll.early_timeout_deduction

    amount = 0.0
    if status == AttendanceStatus.ABSENT.value:
        amount = absence_deduction(basic_salary, working_days)
    elif status == AttendanceStatus.PARTIAL.value:
        amount = partial_deduction(basic_salary, working_days, worked_hours(time_in, time_out), shift_hours)
    elif status == AttendanceStatus.LATE.value and time_in is not None and expected_time_in is not None:
        amount = late_deduction(
            basic_salary, working_days, seconds_late(time_in, expected_time_in, overnight), shift_hours
        )

    if (
        include_early_timeout
        and status in (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)
        and time_out is not None
        and expected_time_out is not None
    ):
        amount += early_timeout_deduction(
            basic_salary, working_days, seconds_early(time_out, expected_time_out, overnight), shift_hours
        )
    return max(0.0, amount)
