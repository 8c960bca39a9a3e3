"""
Payroll Service Layer

This module provides the read side of payroll: live previews, pending
entries, summaries and archived breakdowns. It encapsulates all database
access, keeping the routers focused on HTTP request/response handling.

Architecture:
- Router -> Service (this module) -> Models
- Every figure comes from ``payroll_assembler.assemble``; nothing here
  computes pay on its own
- Released entries are read from their stored snapshot, never recomputed
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from hr_payroll.core.clock import now_local
from hr_payroll.core.exceptions import NotFoundError, PayrollValidationError
from hr_payroll.models.attendance import AttendanceRecord, AttendanceSettings
from hr_payroll.models.deduction import Deduction, DeductionType
from hr_payroll.models.employee import Employee
from hr_payroll.models.loan import Loan, LoanStatus
from hr_payroll.models.overload_pay import OverloadPay
from hr_payroll.models.payroll import PayrollEntry, PayrollStatus
from hr_payroll.schemas.attendance import AttendanceConfig
from hr_payroll.schemas.payroll import (
    AttendanceDayInput,
    EmployeePayrollInput,
    LoanInput,
    OverloadInput,
    PayrollBreakdown,
    PayrollSummary,
    StandingDeductionInput,
)
from hr_payroll.services.payroll_assembler import assemble
from hr_payroll.services.period_resolver import PayPeriod, resolve_period

logger = logging.getLogger(__name__)


def get_attendance_config(db: Session) -> AttendanceConfig:
    """The stored attendance settings, or the defaults when none are saved."""
    row = db.query(AttendanceSettings).order_by(AttendanceSettings.id).first()
    if row is None:
        return AttendanceConfig()
    return AttendanceConfig.model_validate(row)


def current_period(db: Session, today: Optional[date] = None) -> PayPeriod:
    """
    The period in effect today.

    An explicit period saved in the attendance settings wins over the
    configured period policy.
    """
    today = today or now_local().date()
    config = get_attendance_config(db)
    if config.period_start and config.period_end:
        return resolve_period(today, start=config.period_start, end=config.period_end)
    return resolve_period(today)


def resolve_request_period(
    db: Session,
    period_start: Optional[date],
    period_end: Optional[date],
    today: Optional[date] = None,
) -> PayPeriod:
    if period_start is None and period_end is None:
        return current_period(db, today)
    if period_start is None or period_end is None:
        raise PayrollValidationError("Both period_start and period_end are required when either is given")
    return PayPeriod(start=period_start, end=period_end)


def employed_from(employee: Employee) -> Optional[date]:
    """First day the employee can be charged an inferred absence."""
    if employee.created_at is None:
        return None
    return employee.created_at.date()


def build_payroll_input(db: Session, employee: Employee, period: PayPeriod) -> EmployeePayrollInput:
    """
    Fold every payroll source for one employee and period into the
    accumulator the engine consumes. Rows are ordered so the same data
    always yields the same input.
    """
    attendance = db.query(AttendanceRecord).filter(
        AttendanceRecord.employee_id == employee.id,
        AttendanceRecord.date >= period.start,
        AttendanceRecord.date <= period.end,
    ).order_by(AttendanceRecord.date).all()

    deductions = db.query(Deduction).join(DeductionType).options(
        joinedload(Deduction.deduction_type)
    ).filter(
        Deduction.employee_id == employee.id,
        Deduction.archived_at.is_(None),
        or_(
            DeductionType.is_mandatory.is_(True),
            Deduction.applied_at.between(period.start_at, period.end_at),
        ),
    ).order_by(Deduction.applied_at, Deduction.id).all()

    loans = db.query(Loan).filter(
        Loan.employee_id == employee.id,
        Loan.status == LoanStatus.ACTIVE.value,
    ).order_by(Loan.id).all()

    overload = db.query(OverloadPay).filter(
        OverloadPay.employee_id == employee.id,
        OverloadPay.archived_at.is_(None),
        OverloadPay.applied_at.between(period.start_at, period.end_at),
    ).order_by(OverloadPay.applied_at, OverloadPay.id).all()

    return EmployeePayrollInput(
        employee_id=employee.id,
        basic_salary=employee.basic_salary,
        employed_from=employed_from(employee),
        attendance=[AttendanceDayInput.model_validate(a) for a in attendance],
        deductions=[
            StandingDeductionInput(
                id=d.id,
                name=d.deduction_type.name,
                description=d.deduction_type.description,
                amount=d.amount,
                applied_at=d.applied_at,
                is_mandatory=d.deduction_type.is_mandatory,
                is_active=d.deduction_type.is_active,
                notes=d.notes,
            )
            for d in deductions
        ],
        loans=[LoanInput.model_validate(loan) for loan in loans],
        overload=[OverloadInput.model_validate(o) for o in overload],
    )


def get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).options(
        joinedload(Employee.personnel_type)
    ).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


def compute_breakdown(
    db: Session,
    employee: Employee,
    period: PayPeriod,
    now: datetime,
    config: Optional[AttendanceConfig] = None,
) -> PayrollBreakdown:
    config = config or get_attendance_config(db)
    return assemble(build_payroll_input(db, employee, period), period, now, config)


def compute_live_preview(
    db: Session,
    employee_id: int,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> PayrollBreakdown:
    """
    Compute an employee's payroll for a period without persisting anything.

    Args:
        db: Database session
        employee_id: ID of the employee
        period_start: First day of the period (current period when omitted)
        period_end: Last day of the period
        now: Local time; days after it never contribute deductions

    Returns:
        PayrollBreakdown. An employee with no salary basis gets a zeroed
        breakdown carrying a warning instead of an error.
    """
    now = now or now_local()
    period = resolve_request_period(db, period_start, period_end, now.date())
    employee = get_employee(db, employee_id)
    return compute_breakdown(db, employee, period, now)


def get_archived_breakdown(db: Session, entry_id: int) -> Dict[str, Any]:
    """Return the frozen breakdown of a released (or archived) entry verbatim."""
    entry = db.query(PayrollEntry).filter(PayrollEntry.id == entry_id).first()
    if not entry:
        raise NotFoundError(f"Payroll entry {entry_id} not found")
    if entry.breakdown is None:
        raise NotFoundError(f"Payroll entry {entry_id} has no released breakdown")
    return entry.breakdown


def find_open_entry(db: Session, employee_id: int, period: PayPeriod) -> Optional[PayrollEntry]:
    """The single non-archived entry for (employee, period), if any."""
    return db.query(PayrollEntry).filter(
        PayrollEntry.employee_id == employee_id,
        PayrollEntry.period_start == period.start,
        PayrollEntry.period_end == period.end,
        PayrollEntry.status != PayrollStatus.ARCHIVED.value,
    ).first()


def released_overlapping(db: Session, period: PayPeriod) -> List[PayrollEntry]:
    return db.query(PayrollEntry).filter(
        PayrollEntry.status == PayrollStatus.RELEASED.value,
        PayrollEntry.period_start <= period.end,
        PayrollEntry.period_end >= period.start,
    ).order_by(PayrollEntry.id).all()


def apply_figures(entry: PayrollEntry, breakdown: PayrollBreakdown):
    entry.basic_salary = round(breakdown.basic_salary, 2)
    entry.overtime = round(breakdown.total_overload, 2)
    entry.deductions = breakdown.total_deductions
    entry.net_pay = breakdown.net_pay


def active_employees(db: Session) -> List[Employee]:
    return db.query(Employee).options(
        joinedload(Employee.personnel_type)
    ).filter(Employee.is_active.is_(True)).order_by(Employee.id).all()


def generate_pending(
    db: Session,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> List[PayrollEntry]:
    """
    Create or refresh PENDING entries with live figures for every active
    employee that has a salary basis. Released entries are left untouched
    and no snapshot is stored.
    """
    now = now or now_local()
    period = resolve_request_period(db, period_start, period_end, now.date())
    config = get_attendance_config(db)
    released_ids = {e.employee_id for e in released_overlapping(db, period)}

    entries = []
    try:
        for employee in active_employees(db):
            if employee.basic_salary is None or employee.id in released_ids:
                continue
            breakdown = compute_breakdown(db, employee, period, now, config)
            entry = find_open_entry(db, employee.id, period)
            if entry is None:
                entry = PayrollEntry(
                    employee_id=employee.id,
                    period_start=period.start,
                    period_end=period.end,
                    status=PayrollStatus.PENDING.value,
                )
                db.add(entry)
            apply_figures(entry, breakdown)
            entry.processed_at = now
            entries.append(entry)
        db.commit()
    except Exception:
        db.rollback()
        raise

    for entry in entries:
        db.refresh(entry)
    logger.info(f"Generated {len(entries)} pending payroll entries for {period.start} - {period.end}")
    return entries


def get_payroll_summary(
    db: Session,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> PayrollSummary:
    """
    Totals across active employees for a period.

    Employees with a released entry for exactly this period contribute the
    figures from its snapshot; everyone else contributes a live preview.
    """
    now = now or now_local()
    period = resolve_request_period(db, period_start, period_end, now.date())
    config = get_attendance_config(db)

    rows = []
    gross = deductions = net = 0.0
    has_released = False
    for employee in active_employees(db):
        entry = find_open_entry(db, employee.id, period)
        if entry is not None and entry.status == PayrollStatus.RELEASED.value and entry.breakdown:
            snapshot = entry.breakdown
            has_released = True
            source = "snapshot"
        else:
            snapshot = compute_breakdown(db, employee, period, now, config).to_snapshot()
            source = "live"
        gross += snapshot["gross_pay"]
        deductions += snapshot["total_deductions"]
        net += snapshot["net_pay"]
        rows.append({
            "employee_id": employee.id,
            "employee_name": employee.name,
            "entry_id": entry.id if entry else None,
            "status": entry.status if entry else None,
            "source": source,
            "gross_pay": snapshot["gross_pay"],
            "total_deductions": snapshot["total_deductions"],
            "net_pay": snapshot["net_pay"],
            "warnings": snapshot.get("warnings", []),
        })

    return PayrollSummary(
        period_start=period.start,
        period_end=period.end,
        total_employees=len(rows),
        total_gross_pay=round(gross, 2),
        total_deductions=round(deductions, 2),
        total_net_pay=round(net, 2),
        has_released=has_released,
        entries=rows,
    )
