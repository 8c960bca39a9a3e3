"""
Payroll assembly: the one place gross, deductions and net are computed.

Live previews, pending generation and release all call ``assemble``; the
result is the audit record that a release freezes as its snapshot.
"""
import logging
import math
from datetime import datetime
from typing import Optional

from hr_payroll.core.exceptions import ComputationError
from hr_payroll.schemas.attendance import AttendanceConfig
from hr_payroll.schemas.payroll import EmployeePayrollInput, OverloadItem, PayrollBreakdown
from hr_payroll.services.deduction_aggregator import aggregate
from hr_payroll.services.deduction_calculator import daily_rate, safe_working_days
from hr_payroll.services.loan_amortizer import LoanPaymentStrategy, active_strategy
from hr_payroll.services.period_resolver import PayPeriod, effective_end, period_factor, working_days_basis

logger = logging.getLogger(__name__)

MISSING_SALARY_WARNING = "No salary basis assigned; payroll figures are zeroed"


def period_base_salary(monthly_salary: float, period_days: int) -> float:
    return max(0.0, monthly_salary) * period_factor(period_days)


def assemble(
    data: EmployeePayrollInput,
    period: PayPeriod,
    now: datetime,
    config: AttendanceConfig,
    working_day_count: Optional[int] = None,
    strategy: Optional[LoanPaymentStrategy] = None,
) -> PayrollBreakdown:
    """
    Build the itemized breakdown for one employee and one period.

    Args:
        data: The employee's accumulated payroll inputs.
        period: The pay period.
        now: Local wall-clock time; days after ``now`` never contribute.
        config: Attendance windows and working weekdays.
        working_day_count: Divisor for the daily rate. Derived from the
            configured basis when omitted.
        strategy: Loan payment strategy; the configured one when omitted.

    Returns:
        PayrollBreakdown with full-precision items and cent-rounded totals.
    """
    strategy = strategy or active_strategy()
    if working_day_count is None:
        working_day_count = working_days_basis(period, config.weekdays)
    working_day_count = safe_working_days(working_day_count)

    common = dict(
        employee_id=data.employee_id,
        period_start=period.start,
        period_end=period.end,
        effective_end=max(period.start, effective_end(period, now.date())),
        period_days=period.days,
        working_days=working_day_count,
        loan_payment_strategy=strategy.value,
    )

    if data.basic_salary is None:
        logger.warning(f"Employee {data.employee_id} has no salary basis; returning a zeroed breakdown")
        return PayrollBreakdown(
            monthly_salary=0.0,
            daily_rate=0.0,
            basic_salary=0.0,
            warnings=[MISSING_SALARY_WARNING],
            **common,
        )

    monthly = data.basic_salary
    if not math.isfinite(monthly):
        raise ComputationError(
            f"Salary basis for employee {data.employee_id} is not a finite number",
            details={"employee_id": data.employee_id},
        )
    base = period_base_salary(monthly, period.days)

    overload_items = [
        OverloadItem(id=o.id, type=o.type, amount=max(0.0, o.amount), notes=o.notes)
        for o in sorted(data.overload, key=lambda o: (o.applied_at, o.id))
        if period.contains(o.applied_at)
    ]
    total_overload = sum(i.amount for i in overload_items)

    deductions = aggregate(data, period, now, config, working_day_count, strategy)
    total_deductions = deductions.total_deductions

    gross = round(base + total_overload, 2)
    total_deductions = round(total_deductions, 2)
    net = round(max(0.0, gross - total_deductions), 2)

    warnings = []
    if total_deductions > gross:
        warnings.append(
            f"Deductions ({total_deductions:.2f}) exceed gross pay ({gross:.2f}); net pay floored at zero"
        )

    return PayrollBreakdown(
        monthly_salary=monthly,
        daily_rate=daily_rate(monthly, working_day_count),
        basic_salary=base,
        overload_items=overload_items,
        attendance_deduction_items=deductions.attendance_items,
        standing_deduction_items=deductions.standing_items,
        loan_payment_items=deductions.loan_items,
        total_overload=total_overload,
        total_attendance_deductions=deductions.total_attendance_deductions,
        total_standing_deductions=deductions.total_standing_deductions,
        total_loan_payments=deductions.total_loan_payments,
        gross_pay=gross,
        total_deductions=total_deductions,
        net_pay=net,
        warnings=warnings,
        **common,
    )
