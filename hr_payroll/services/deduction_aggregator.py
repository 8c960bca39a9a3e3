"""
Partitions every deduction source for one employee and period into the
attendance, standing and loan buckets.
"""
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from hr_payroll.models.attendance import AttendanceStatus
from hr_payroll.models.loan import LoanStatus
from hr_payroll.schemas.attendance import AttendanceConfig
from hr_payroll.schemas.payroll import (
    AttendanceDayInput,
    AttendanceDeductionItem,
    EmployeePayrollInput,
    LoanPaymentItem,
    StandingDeductionItem,
)
from hr_payroll.services import attendance_classifier as classifier
from hr_payroll.services.deduction_calculator import calculate_deduction
from hr_payroll.services.loan_amortizer import (
    LoanPaymentStrategy,
    loan_overlaps,
    monthly_payment,
    scheduled_payment,
    strategy_factor,
)
from hr_payroll.services.period_resolver import PayPeriod, effective_end, working_days

# Deduction types the attendance engine computes live; persisted rows under
# these names never count as standing deductions.
ATTENDANCE_DEDUCTION_NAMES = frozenset({
    "Late Arrival",
    "Early Time-Out",
    "Absence Deduction",
    "Partial Attendance",
    "Absent",
    "Late",
    "Tardiness",
})


def is_attendance_deduction(name: str) -> bool:
    return (name or "").strip().lower() in {n.lower() for n in ATTENDANCE_DEDUCTION_NAMES}


class AggregatedDeductions(BaseModel):
    attendance_items: List[AttendanceDeductionItem] = []
    standing_items: List[StandingDeductionItem] = []
    loan_items: List[LoanPaymentItem] = []

    total_attendance_deductions: float = 0.0
    total_standing_deductions: float = 0.0
    total_loan_payments: float = 0.0

    @property
    def total_deductions(self) -> float:
        return self.total_attendance_deductions + self.total_standing_deductions + self.total_loan_payments


def _describe(status: str, record: Optional[AttendanceDayInput], config: AttendanceConfig) -> str:
    if status == AttendanceStatus.ABSENT.value:
        return "Absent (full record)"
    if status == AttendanceStatus.LATE.value and record is not None and record.time_in is not None:
        late = classifier.late_seconds(record.time_in, config)
        minutes, seconds = divmod(late, 60)
        return f"Late by {minutes} min {seconds} s"
    if status == AttendanceStatus.PARTIAL.value and record is not None:
        hours = classifier.worked_hours(record.time_in, record.time_out)
        return f"Partial attendance ({hours:.2f} h worked)"
    return "Early time-out"


def attendance_deductions(
    data: EmployeePayrollInput,
    period: PayPeriod,
    now: datetime,
    config: AttendanceConfig,
    working_day_count: int,
    monthly_salary: float,
) -> List[AttendanceDeductionItem]:
    """One item per working day up to today that costs the employee money."""
    by_day: Dict[date, AttendanceDayInput] = {a.day: a for a in data.attendance}
    last_day = effective_end(period, now.date())
    overnight = classifier.shift_crosses_midnight(config)
    items = []
    if last_day < period.start:
        return items

    for day in working_days(period.start, last_day, config.weekdays):
        record = by_day.get(day)
        status = classifier.effective_status(record, day, now, config, employed_from=data.employed_from)
        if status is None or status == AttendanceStatus.PENDING.value:
            continue
        amount = calculate_deduction(
            status,
            monthly_salary,
            working_day_count,
            time_in=record.time_in if record else None,
            time_out=record.time_out if record else None,
            expected_time_in=classifier.expected_time_in(day, config),
            expected_time_out=classifier.expected_time_out(day, config),
            overnight=overnight,
        )
        if amount <= 0:
            continue
        items.append(AttendanceDeductionItem(
            day=day,
            status=status,
            amount=amount,
            description=_describe(status, record, config),
            time_in=record.time_in if record else None,
            time_out=record.time_out if record else None,
        ))
    return items


def standing_deductions(data: EmployeePayrollInput, period: PayPeriod) -> List[StandingDeductionItem]:
    items = []
    for d in sorted(data.deductions, key=lambda item: (item.applied_at, item.id)):
        if not d.is_active or is_attendance_deduction(d.name):
            continue
        if not d.is_mandatory and not period.contains(d.applied_at):
            continue
        items.append(StandingDeductionItem(
            id=d.id,
            name=d.name,
            amount=max(0.0, d.amount),
            is_mandatory=d.is_mandatory,
            applied_at=d.applied_at,
            notes=d.notes,
        ))
    return items


def loan_payments(
    data: EmployeePayrollInput,
    period: PayPeriod,
    strategy: Optional[LoanPaymentStrategy] = None,
) -> List[LoanPaymentItem]:
    items = []
    factor = strategy_factor(period.days, strategy)
    for loan in sorted(data.loans, key=lambda item: item.id):
        if loan.status != LoanStatus.ACTIVE.value:
            continue
        if not loan_overlaps(loan.start_date, loan.end_date, period.start, period.end):
            continue
        monthly = monthly_payment(loan.amount, loan.monthly_payment_percent)
        amount = scheduled_payment(loan.balance, monthly * factor)
        if amount <= 0:
            continue
        items.append(LoanPaymentItem(
            loan_id=loan.id,
            purpose=loan.purpose,
            monthly_payment=monthly,
            period_factor=factor,
            amount=amount,
            balance_before=loan.balance,
            remaining_balance=max(0.0, loan.balance - amount),
        ))
    return items


def aggregate(
    data: EmployeePayrollInput,
    period: PayPeriod,
    now: datetime,
    config: AttendanceConfig,
    working_day_count: int,
    strategy: Optional[LoanPaymentStrategy] = None,
) -> AggregatedDeductions:
    monthly_salary = data.basic_salary or 0.0
    attendance = attendance_deductions(data, period, now, config, working_day_count, monthly_salary)
    standing = standing_deductions(data, period)
    loans = loan_payments(data, period, strategy)
    return AggregatedDeductions(
        attendance_items=attendance,
        standing_items=standing,
        loan_items=loans,
        total_attendance_deductions=sum(i.amount for i in attendance),
        total_standing_deductions=sum(i.amount for i in standing),
        total_loan_payments=sum(i.amount for i in loans),
    )
