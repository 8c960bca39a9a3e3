"""
Attendance classification.

All window arithmetic is done in minutes (or seconds) since midnight. A
window whose start is after its end wraps past midnight ("overnight"). No
function here reads the wall clock; callers pass ``now``.
"""
from datetime import date, datetime, time, timedelta
from typing import NamedTuple, Optional

from hr_payroll.core.config import settings
from hr_payroll.models.attendance import AttendanceStatus
from hr_payroll.schemas.attendance import AttendanceConfig

SECONDS_PER_DAY = 24 * 3600
HALF_DAY_SECONDS = SECONDS_PER_DAY // 2


def parse_hhmm(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_since_midnight(moment) -> int:
    return moment.hour * 60 + moment.minute


def seconds_since_midnight(moment) -> int:
    return moment.hour * 3600 + moment.minute * 60 + moment.second


class TimeWindow(NamedTuple):
    start: int
    end: int

    @classmethod
    def from_strings(cls, start: str, end: str) -> "TimeWindow":
        return cls(parse_hhmm(start), parse_hhmm(end))

    @property
    def is_overnight(self) -> bool:
        return self.start > self.end

    def contains(self, minute: int) -> bool:
        if self.is_overnight:
            return minute >= self.start or minute <= self.end
        return self.start <= minute <= self.end


def time_in_window(config: AttendanceConfig) -> TimeWindow:
    return TimeWindow.from_strings(config.time_in_start, config.time_in_end)


def time_out_window(config: AttendanceConfig) -> TimeWindow:
    return TimeWindow.from_strings(config.time_out_start, config.time_out_end)


def shift_crosses_midnight(config: AttendanceConfig) -> bool:
    """True when the time-in window wraps past midnight or the shift ends on the next day."""
    window = time_in_window(config)
    return window.is_overnight or parse_hhmm(config.time_out_start) < window.start


def _at_minutes(day: date, minutes: int) -> datetime:
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def expected_time_in(day: date, config: AttendanceConfig, grace_minutes: Optional[int] = None) -> datetime:
    """``time_in_end`` plus the grace window; late seconds accrue after this."""
    if grace_minutes is None:
        grace_minutes = settings.payroll.grace_minutes
    return _at_minutes(day, parse_hhmm(config.time_in_end) + grace_minutes)


def expected_time_out(day: date, config: AttendanceConfig) -> datetime:
    return _at_minutes(day, parse_hhmm(config.time_out_start))


def _clock_delta(later, earlier, overnight: bool = False) -> int:
    """
    Seconds from ``earlier`` to ``later`` on a 24h clock.

    Same-day shifts take the plain difference. Shifts that cross midnight
    fold it into (-12h, 12h] so a punch just after midnight counts against
    the previous evening.
    """
    delta = seconds_since_midnight(later) - seconds_since_midnight(earlier)
    if not overnight:
        return delta
    if delta > HALF_DAY_SECONDS:
        delta -= SECONDS_PER_DAY
    elif delta <= -HALF_DAY_SECONDS:
        delta += SECONDS_PER_DAY
    return delta


def seconds_late(time_in: datetime, expected: datetime, overnight: bool = False) -> int:
    return max(0, _clock_delta(time_in, expected, overnight))


def seconds_early(time_out: datetime, expected: datetime, overnight: bool = False) -> int:
    return max(0, _clock_delta(expected, time_out, overnight))


def late_seconds(time_in: datetime, config: AttendanceConfig) -> int:
    """Seconds past ``time_in_end`` plus grace for a time-in under ``config``."""
    expected = expected_time_in(time_in.date(), config)
    return seconds_late(time_in, expected, shift_crosses_midnight(config))


def worked_hours(time_in: Optional[datetime], time_out: Optional[datetime]) -> float:
    if time_in is None or time_out is None:
        return 0.0
    seconds = (time_out - time_in).total_seconds()
    if seconds < 0:
        # time-out recorded against the start date of an overnight shift
        seconds += SECONDS_PER_DAY
    return seconds / 3600


def classify_time_in(time_in: datetime, config: AttendanceConfig) -> str:
    if late_seconds(time_in, config) > 0:
        return AttendanceStatus.LATE.value
    return AttendanceStatus.PRESENT.value


def classify_time_out(
    status: str,
    time_in: datetime,
    time_out: datetime,
    shift_hours: Optional[float] = None,
) -> str:
    if shift_hours is None:
        shift_hours = settings.payroll.standard_shift_hours
    if worked_hours(time_in, time_out) < shift_hours:
        return AttendanceStatus.PARTIAL.value
    return status


def classify_punches(
    time_in: Optional[datetime],
    time_out: Optional[datetime],
    config: AttendanceConfig,
    shift_hours: Optional[float] = None,
) -> Optional[str]:
    """Status implied by the punches alone; ``None`` when there is no time-in."""
    if time_in is None:
        return None
    status = classify_time_in(time_in, config)
    if time_out is not None:
        status = classify_time_out(status, time_in, time_out, shift_hours)
    return status


def is_past_cutoff(now: datetime, config: AttendanceConfig) -> bool:
    """True once today's ``time_out_end`` has passed."""
    current = minutes_since_midnight(now)
    window = time_out_window(config)
    if window.is_overnight:
        return window.end < current < window.start
    return current > window.end


def effective_status(
    record,
    day: date,
    now: datetime,
    config: AttendanceConfig,
    shift_hours: Optional[float] = None,
    employed_from: Optional[date] = None,
) -> Optional[str]:
    """
    The live status of one employee-day.

    Days with a time-in are re-derived from their punches so that live
    previews and release-time recomputation agree regardless of what was
    stored at punch time. A stored ABSENT record stays ABSENT, except that
    today reads PENDING until the cutoff.

    Days with no time-in and no stored absence only become ABSENT when
    auto-mark-absent is enabled, and never before ``employed_from``: a past
    day is ABSENT, today is PENDING until the cutoff and ABSENT after it.
    Otherwise such days have no status. Future days never have one.
    """
    today = now.date()
    if day > today:
        return None
    if record is not None and record.time_in is not None:
        return classify_punches(record.time_in, record.time_out, config, shift_hours)

    past_cutoff = day < today or is_past_cutoff(now, config)
    if record is not None and getattr(record, "status", None) == AttendanceStatus.ABSENT.value:
        return AttendanceStatus.ABSENT.value if past_cutoff else AttendanceStatus.PENDING.value

    if not config.auto_mark_absent:
        return None
    if employed_from is not None and day < employed_from:
        return None
    if past_cutoff:
        return AttendanceStatus.ABSENT.value
    return AttendanceStatus.PENDING.value
