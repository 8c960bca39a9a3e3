"""Next scheduled payroll release, persisted with an explicit active flag."""
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.orm import Session

from hr_payroll.core.clock import now_local
from hr_payroll.core.exceptions import NotFoundError
from hr_payroll.models.payroll import PayrollSchedule
from hr_payroll.schemas.payroll import ScheduleCreate, ScheduledReleaseResult
from hr_payroll.services import release_orchestrator
from hr_payroll.services.audit import AuditService
from hr_payroll.services.payroll_service import active_employees, current_period, released_overlapping

logger = logging.getLogger(__name__)


def get_active_schedule(db: Session) -> Optional[PayrollSchedule]:
    return db.query(PayrollSchedule).filter(
        PayrollSchedule.is_active.is_(True)
    ).order_by(PayrollSchedule.id.desc()).first()


def _require_active(db: Session) -> PayrollSchedule:
    schedule = get_active_schedule(db)
    if schedule is None:
        raise NotFoundError("No active payroll schedule")
    return schedule


def create_schedule(db: Session, payload: ScheduleCreate) -> PayrollSchedule:
    """Create the next release schedule; any previously active one is deactivated."""
    try:
        previous = db.query(PayrollSchedule).filter(PayrollSchedule.is_active.is_(True)).all()
        for old in previous:
            old.is_active = False
        schedule = PayrollSchedule(scheduled_date=payload.scheduled_date, notes=payload.notes, is_active=True)
        db.add(schedule)
        db.flush()
        AuditService.log(
            db, "payroll_schedule_created", "payroll_schedule", schedule.id,
            {"scheduled_date": payload.scheduled_date, "deactivated": [s.id for s in previous]}
        )
        db.commit()
        db.refresh(schedule)
    except Exception:
        db.rollback()
        raise
    logger.info(f"Payroll release scheduled for {schedule.scheduled_date.isoformat()}")
    return schedule


def update_schedule(db: Session, payload: ScheduleCreate) -> PayrollSchedule:
    schedule = _require_active(db)
    before = {"scheduled_date": schedule.scheduled_date, "notes": schedule.notes}
    try:
        schedule.scheduled_date = payload.scheduled_date
        schedule.notes = payload.notes
        AuditService.log(
            db, "payroll_schedule_updated", "payroll_schedule", schedule.id, {},
            before_state=before,
            after_state={"scheduled_date": payload.scheduled_date, "notes": payload.notes}
        )
        db.commit()
        db.refresh(schedule)
    except Exception:
        db.rollback()
        raise
    return schedule


def deactivate_schedule(db: Session) -> PayrollSchedule:
    schedule = _require_active(db)
    try:
        schedule.is_active = False
        AuditService.log(db, "payroll_schedule_deactivated", "payroll_schedule", schedule.id, {})
        db.commit()
        db.refresh(schedule)
    except Exception:
        db.rollback()
        raise
    logger.info(f"Payroll schedule {schedule.id} deactivated")
    return schedule


def due_schedule(db: Session, now: Optional[datetime] = None) -> Optional[PayrollSchedule]:
    """The active schedule if its date has arrived, else None."""
    now = now or now_local()
    schedule = get_active_schedule(db)
    if schedule is not None and schedule.scheduled_date <= now:
        return schedule
    return None


def release_due_schedule(db: Session, now: Optional[datetime] = None) -> ScheduledReleaseResult:
    """
    Scheduled release job body.

    Once the active schedule's date has arrived, release the current period
    for every active employee with a salary basis and deactivate the
    schedule. A period that is already released only consumes the schedule,
    so re-running is a no-op.
    """
    now = now or now_local()
    schedule = due_schedule(db, now)
    if schedule is None:
        logger.info("Scheduled payroll release skipped: no schedule is due")
        return ScheduledReleaseResult(ran=False, reason="no schedule is due")

    period = current_period(db, now.date())
    result = ScheduledReleaseResult(
        ran=False,
        schedule_id=schedule.id,
        period_start=period.start,
        period_end=period.end,
    )

    if released_overlapping(db, period):
        deactivate_schedule(db)
        result.reason = "payroll already released for this period"
        logger.info(f"Scheduled release {schedule.id} consumed; {period.start} - {period.end} already released")
        return result

    employee_ids = [e.id for e in active_employees(db) if e.basic_salary is not None]
    if not employee_ids:
        result.reason = "no active employees with a salary basis"
        logger.warning(f"Scheduled release {schedule.id} has nobody to release")
        return result

    released = release_orchestrator.release(db, period.start, period.end, employee_ids, now)
    deactivate_schedule(db)

    result.ran = True
    result.released_count = released.released_count
    result.employee_ids = employee_ids
    logger.info(f"Scheduled release {schedule.id} released {released.released_count} employees")
    return result
