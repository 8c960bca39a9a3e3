"""
Payroll release.

Lifecycle: PENDING -> RELEASED -> ARCHIVED, one way only. A release
recomputes every breakdown from live data, freezes it as the entry's
snapshot and applies the loan payments it contains, all inside a single
transaction for the whole batch.
"""
from datetime import date, datetime
from typing import List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hr_payroll.core.clock import now_local
from hr_payroll.core.exceptions import ConflictError, NotFoundError, PayrollValidationError, PersistenceError
from hr_payroll.models.employee import Employee
from hr_payroll.models.loan import Loan, LoanPayment
from hr_payroll.models.payroll import PayrollEntry, PayrollStatus
from hr_payroll.schemas.payroll import PayrollBreakdown, ReleaseResult
from hr_payroll.services.audit import AuditService
from hr_payroll.services.loan_amortizer import apply_payment
from hr_payroll.services.notification import NotificationService
from hr_payroll.services.payroll_service import (
    apply_figures,
    compute_breakdown,
    find_open_entry,
    get_attendance_config,
    released_overlapping,
)
from hr_payroll.services.period_resolver import PayPeriod

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    PayrollStatus.PENDING.value: {PayrollStatus.RELEASED.value},
    PayrollStatus.RELEASED.value: {PayrollStatus.ARCHIVED.value},
    PayrollStatus.ARCHIVED.value: set(),
}


def transition(entry: PayrollEntry, target: str):
    if target not in ALLOWED_TRANSITIONS.get(entry.status, set()):
        raise ConflictError(
            f"Payroll entry {entry.id} cannot move from {entry.status} to {target}",
            details={"entry_id": entry.id, "status": entry.status, "target": target},
        )
    entry.status = target


def _entry_state(entry: PayrollEntry) -> dict:
    return {
        "status": entry.status,
        "net_pay": entry.net_pay,
        "deductions": entry.deductions,
        "released_at": entry.released_at,
        "archived_at": entry.archived_at,
    }


def _validate_employees(db: Session, employee_ids: List[int]) -> List[Employee]:
    """Fail closed: every targeted employee must exist and carry a salary basis."""
    unique_ids = list(dict.fromkeys(employee_ids))
    employees = {e.id: e for e in db.query(Employee).filter(Employee.id.in_(unique_ids)).all()}

    unknown = [i for i in unique_ids if i not in employees]
    missing_salary = [i for i in unique_ids if i in employees and employees[i].basic_salary is None]
    if unknown or missing_salary:
        parts = []
        if missing_salary:
            parts.append(f"missing salary basis for employees {missing_salary}")
        if unknown:
            parts.append(f"unknown employees {unknown}")
        raise PayrollValidationError(
            f"Release rejected: {'; '.join(parts)}",
            details={"missing_salary": missing_salary, "unknown_employees": unknown},
        )
    return [employees[i] for i in unique_ids]


def _apply_loan_payments(db: Session, entry: PayrollEntry, breakdown: PayrollBreakdown, now: datetime):
    for item in breakdown.loan_payment_items:
        loan = db.query(Loan).filter(Loan.id == item.loan_id).first()
        balance_before = loan.balance
        loan.balance, loan.status = apply_payment(loan.balance, item.amount)
        db.add(LoanPayment(
            loan_id=loan.id,
            payroll_entry_id=entry.id,
            amount=item.amount,
            balance_before=balance_before,
            balance_after=loan.balance,
            paid_at=now,
        ))


def release(
    db: Session,
    period_start: date,
    period_end: date,
    employee_ids: List[int],
    now: Optional[datetime] = None,
) -> ReleaseResult:
    """
    Release payroll for a batch of employees.

    Args:
        db: Database session
        period_start: First day of the period
        period_end: Last day of the period
        employee_ids: Employees to release
        now: Local release time

    Returns:
        ReleaseResult with one breakdown per released employee.

    Raises:
        PayrollValidationError: malformed range, unknown employees, or any
            employee without a salary basis (nothing is released).
        ConflictError: a RELEASED entry already overlaps the period.
        PersistenceError: the batch could not be committed; it was rolled back.
    """
    now = now or now_local()
    period = PayPeriod(start=period_start, end=period_end)
    if not employee_ids:
        raise PayrollValidationError("At least one employee is required for a release")

    conflicts = released_overlapping(db, period)
    if conflicts:
        ids = [e.id for e in conflicts]
        logger.warning(f"Release for {period.start} - {period.end} refused; overlapping released entries {ids}")
        raise ConflictError(
            f"Payroll already released for an overlapping period (entries {ids}); archive them first",
            details={"conflicting_entry_ids": ids},
        )

    employees = _validate_employees(db, employee_ids)
    config = get_attendance_config(db)
    audit = AuditService(db)
    period_label = f"{period.start.isoformat()} to {period.end.isoformat()}"

    breakdowns = []
    try:
        for employee in employees:
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
                db.flush()
            before = _entry_state(entry)

            transition(entry, PayrollStatus.RELEASED.value)
            apply_figures(entry, breakdown)
            entry.breakdown = breakdown.to_snapshot()
            entry.processed_at = entry.processed_at or now
            entry.released_at = now

            _apply_loan_payments(db, entry, breakdown, now)

            audit.log_action(
                action="payroll_released",
                entity_type="payroll_entry",
                entity_id=entry.id,
                details={
                    "employee_id": employee.id,
                    "period_start": period.start,
                    "period_end": period.end,
                    "loan_payments": [i.model_dump(mode="json") for i in breakdown.loan_payment_items],
                },
                before_state=before,
                after_state=_entry_state(entry),
            )
            NotificationService.notify_payroll_released(db, employee.id, entry.id, period_label, breakdown.net_pay)
            breakdowns.append(breakdown)

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Release for {period_label} rolled back: {e}", exc_info=True)
        raise PersistenceError(details={"period_start": period.start.isoformat(), "period_end": period.end.isoformat()})
    except Exception:
        db.rollback()
        raise

    logger.info(f"Released payroll for {len(breakdowns)} employees ({period_label})")
    return ReleaseResult(released_count=len(breakdowns), breakdowns=breakdowns, errors=[])


def archive_entry(db: Session, entry_id: int, now: Optional[datetime] = None) -> PayrollEntry:
    """RELEASED -> ARCHIVED. The snapshot is kept unchanged."""
    now = now or now_local()
    entry = db.query(PayrollEntry).filter(PayrollEntry.id == entry_id).first()
    if not entry:
        raise NotFoundError(f"Payroll entry {entry_id} not found")

    before = _entry_state(entry)
    transition(entry, PayrollStatus.ARCHIVED.value)
    try:
        entry.archived_at = now
        AuditService.log(
            db, "payroll_archived", "payroll_entry", entry.id,
            {"employee_id": entry.employee_id},
            before_state=before, after_state=_entry_state(entry)
        )
        db.commit()
        db.refresh(entry)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Archived payroll entry {entry.id}")
    return entry


def archive_released_before(db: Session, cutoff: date, now: Optional[datetime] = None) -> int:
    """Archive every RELEASED entry whose period ended before ``cutoff``."""
    now = now or now_local()
    entries = db.query(PayrollEntry).filter(
        PayrollEntry.status == PayrollStatus.RELEASED.value,
        PayrollEntry.period_end < cutoff,
    ).all()

    try:
        for entry in entries:
            transition(entry, PayrollStatus.ARCHIVED.value)
            entry.archived_at = now
        if entries:
            AuditService.log(
                db, "payroll_archived_bulk", "payroll_entry", None,
                {"cutoff": cutoff, "entry_ids": [e.id for e in entries]}
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Archived {len(entries)} released payroll entries ending before {cutoff}")
    return len(entries)
