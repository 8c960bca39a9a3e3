from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date, datetime
from typing import List, Optional

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

WEEKDAY_CODES = ["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]


def parse_working_days(value: str) -> List[int]:
    """'MON,TUE,...' -> sorted weekday numbers (Monday == 0)."""
    days = set()
    for part in (value or "").split(","):
        code = part.strip().upper()[:3]
        if not code:
            continue
        if code not in WEEKDAY_CODES:
            raise ValueError(f"Unknown weekday code: {part!r}")
        days.add(WEEKDAY_CODES.index(code))
    return sorted(days)


class AttendanceConfig(BaseModel):
    """Time windows and calendar the classifier works against."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    time_in_start: str = Field(default="08:00", pattern=HHMM_PATTERN)
    time_in_end: str = Field(default="09:30", pattern=HHMM_PATTERN)
    time_out_start: str = Field(default="17:00", pattern=HHMM_PATTERN)
    time_out_end: str = Field(default="19:00", pattern=HHMM_PATTERN)
    auto_mark_absent: bool = True
    working_days: str = "MON,TUE,WED,THU,FRI"
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    @field_validator("working_days")
    @classmethod
    def _check_working_days(cls, v: str) -> str:
        if not parse_working_days(v):
            raise ValueError("At least one working day must be configured")
        return v

    @property
    def weekdays(self) -> List[int]:
        return parse_working_days(self.working_days)


class AttendanceSettingsUpdate(BaseModel):
    time_in_start: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    time_in_end: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    time_out_start: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    time_out_end: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    auto_mark_absent: Optional[bool] = None
    working_days: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    @field_validator("working_days")
    @classmethod
    def _check_working_days(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not parse_working_days(v):
            raise ValueError("At least one working day must be configured")
        return v


class PunchRequest(BaseModel):
    employee_id: int


class PunchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: int
    day: date
    action: str  # "time_in" | "time_out"
    status: str
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None
    seconds_late: int = 0


class AbsenceJobRequest(BaseModel):
    day: Optional[date] = None


class AbsenceJobResult(BaseModel):
    day: date
    ran: bool
    reason: Optional[str] = None
    records_created: int = 0
    records_updated: int = 0
    deductions_created: int = 0
    already_absent: int = 0
