"""
Payroll schemas.

Two groups live here:
- engine inputs: the per-employee accumulator the pure calculation modules
  consume, validated straight from ORM rows (``from_attributes``);
- the breakdown: the itemized audit record the assembler produces. A
  released entry stores ``PayrollBreakdown.model_dump(mode="json")`` verbatim.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Any, Dict, List, Optional


# --- Engine inputs ---

class AttendanceDayInput(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True, populate_by_name=True)

    day: date = Field(validation_alias="date")
    status: str
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None


class StandingDeductionInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str] = None
    amount: float
    applied_at: datetime
    is_mandatory: bool = False
    is_active: bool = True
    notes: Optional[str] = None


class LoanInput(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    amount: float
    monthly_payment_percent: float
    balance: float
    status: str
    start_date: date
    end_date: date
    purpose: Optional[str] = None


class OverloadInput(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    type: str
    amount: float
    notes: Optional[str] = None
    applied_at: datetime


class EmployeePayrollInput(BaseModel):
    """Everything the engine needs for one employee and one period."""
    model_config = ConfigDict(frozen=True)

    employee_id: int
    basic_salary: Optional[float] = None  # monthly
    employed_from: Optional[date] = None
    attendance: List[AttendanceDayInput] = []
    deductions: List[StandingDeductionInput] = []
    loans: List[LoanInput] = []
    overload: List[OverloadInput] = []


# --- Breakdown (audit record) ---

class OverloadItem(BaseModel):
    id: int
    type: str
    amount: float
    notes: Optional[str] = None


class AttendanceDeductionItem(BaseModel):
    day: date
    status: str
    amount: float
    description: str
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None


class StandingDeductionItem(BaseModel):
    id: int
    name: str
    amount: float
    is_mandatory: bool
    applied_at: datetime
    notes: Optional[str] = None


class LoanPaymentItem(BaseModel):
    loan_id: int
    purpose: Optional[str] = None
    monthly_payment: float
    period_factor: float
    amount: float
    balance_before: float
    remaining_balance: float


class PayrollBreakdown(BaseModel):
    employee_id: int
    period_start: date
    period_end: date
    effective_end: date
    period_days: int
    working_days: int
    monthly_salary: float
    daily_rate: float
    basic_salary: float  # period base salary
    loan_payment_strategy: str

    overload_items: List[OverloadItem] = []
    attendance_deduction_items: List[AttendanceDeductionItem] = []
    standing_deduction_items: List[StandingDeductionItem] = []
    loan_payment_items: List[LoanPaymentItem] = []

    total_overload: float = 0.0
    total_attendance_deductions: float = 0.0
    total_standing_deductions: float = 0.0
    total_loan_payments: float = 0.0
    gross_pay: float = 0.0
    total_deductions: float = 0.0
    net_pay: float = 0.0

    warnings: List[str] = []

    def to_snapshot(self) -> Dict[str, Any]:
        """JSON-safe dict persisted as the release snapshot."""
        return self.model_dump(mode="json")


# --- Requests / responses ---

class ReleaseRequest(BaseModel):
    period_start: date
    period_end: date
    employee_ids: List[int] = Field(..., min_length=1)


class ReleaseError(BaseModel):
    employee_id: Optional[int] = None
    message: str


class ReleaseResult(BaseModel):
    released_count: int
    breakdowns: List[PayrollBreakdown] = []
    errors: List[ReleaseError] = []


class GenerateRequest(BaseModel):
    period_start: Optional[date] = None
    period_end: Optional[date] = None


class PayrollEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    period_start: date
    period_end: date
    basic_salary: float
    overtime: float
    deductions: float
    net_pay: float
    status: str
    processed_at: Optional[datetime] = None
    released_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None


class PayrollSummary(BaseModel):
    period_start: date
    period_end: date
    total_employees: int
    total_gross_pay: float
    total_deductions: float
    total_net_pay: float
    has_released: bool
    entries: List[Dict[str, Any]] = []


class ScheduleCreate(BaseModel):
    scheduled_date: datetime
    notes: Optional[str] = None


class ScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scheduled_date: datetime
    notes: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ScheduledReleaseResult(BaseModel):
    ran: bool
    reason: Optional[str] = None
    schedule_id: Optional[int] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    released_count: int = 0
    employee_ids: List[int] = []


class ArchiveRequest(BaseModel):
    before: date


class ArchiveResult(BaseModel):
    before: date
    archived_count: int
