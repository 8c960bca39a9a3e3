"""
Attendance Service Layer

Punch recording, the absence-marking job and attendance settings.
"""
from datetime import date, datetime
from typing import Optional
import logging

from sqlalchemy.orm import Session

from hr_payroll.core.clock import now_local
from hr_payroll.core.exceptions import PayrollValidationError
from hr_payroll.models.attendance import AttendanceRecord, AttendanceSettings, AttendanceStatus
from hr_payroll.models.deduction import CalculationType, Deduction, DeductionType
from hr_payroll.models.employee import Employee
from hr_payroll.schemas.attendance import (
    AbsenceJobResult,
    AttendanceConfig,
    AttendanceSettingsUpdate,
    PunchResponse,
)
from hr_payroll.services import attendance_classifier as classifier
from hr_payroll.services.audit import AuditService
from hr_payroll.services.deduction_calculator import absence_deduction
from hr_payroll.services.payroll_service import (
    active_employees,
    current_period,
    employed_from,
    get_attendance_config,
)
from hr_payroll.services.period_resolver import working_days_basis

logger = logging.getLogger(__name__)

ABSENCE_DEDUCTION_NAME = "Absence Deduction"


def _get_record(db: Session, employee_id: int, day: date) -> Optional[AttendanceRecord]:
    return db.query(AttendanceRecord).filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.date == day,
    ).first()


def record_punch(db: Session, employee_id: int, now: Optional[datetime] = None) -> PunchResponse:
    """
    Record a time-in or time-out for today.

    The first punch of the day sets time-in (PRESENT or LATE); the second
    sets time-out and may reclassify the day as PARTIAL. Further punches and
    punches after the daily cutoff are rejected.
    """
    now = now or now_local()
    today = now.date()

    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee or not employee.is_active:
        raise PayrollValidationError(f"Employee {employee_id} not found or inactive")

    config = get_attendance_config(db)
    if classifier.is_past_cutoff(now, config):
        logger.warning(f"Punch rejected for employee {employee_id}: cutoff {config.time_out_end} has passed")
        raise PayrollValidationError(
            f"Attendance for {today.isoformat()} is closed; the cutoff was {config.time_out_end}"
        )

    record = _get_record(db, employee_id, today)
    if record is not None and record.time_in is not None and record.time_out is not None:
        raise PayrollValidationError(f"Employee {employee_id} has already timed out for {today.isoformat()}")

    try:
        if record is None or record.time_in is None:
            if record is None:
                record = AttendanceRecord(employee_id=employee_id, date=today)
                db.add(record)
            record.time_in = now
            record.status = classifier.classify_time_in(now, config)
            action = "time_in"
        else:
            record.time_out = now
            record.status = classifier.classify_punches(record.time_in, now, config)
            action = "time_out"
        db.commit()
        db.refresh(record)
    except Exception:
        db.rollback()
        raise

    late = classifier.late_seconds(record.time_in, config)
    logger.info(f"Employee {employee_id} {action} at {now.isoformat()} -> {record.status}")
    return PunchResponse(
        employee_id=employee_id,
        day=today,
        action=action,
        status=record.status,
        time_in=record.time_in,
        time_out=record.time_out,
        seconds_late=late,
    )


def _absence_type(db: Session) -> DeductionType:
    deduction_type = db.query(DeductionType).filter(DeductionType.name == ABSENCE_DEDUCTION_NAME).first()
    if deduction_type is None:
        deduction_type = DeductionType(
            name=ABSENCE_DEDUCTION_NAME,
            description="Full-day deduction for an unrecorded working day",
            calculation_type=CalculationType.FIXED.value,
            amount=0.0,
            is_mandatory=False,
            is_active=True,
        )
        db.add(deduction_type)
        db.flush()
    return deduction_type


def _has_absence_deduction(db: Session, employee_id: int, type_id: int, day: date) -> bool:
    start = datetime.combine(day, datetime.min.time())
    end = datetime.combine(day, datetime.max.time())
    return db.query(Deduction.id).filter(
        Deduction.employee_id == employee_id,
        Deduction.deduction_type_id == type_id,
        Deduction.applied_at.between(start, end),
        Deduction.archived_at.is_(None),
    ).first() is not None


def mark_absent(db: Session, day: Optional[date] = None, now: Optional[datetime] = None) -> AbsenceJobResult:
    """
    Mark every active employee without a time-in as ABSENT for ``day``.

    Runs only when auto-mark-absent is enabled, ``day`` is a working day,
    and its cutoff has passed. Employees created after ``day`` are skipped.
    Each employee gets at most one Absence Deduction per day, so re-running
    is a no-op.
    """
    now = now or now_local()
    day = day or now.date()
    config = get_attendance_config(db)

    def skipped(reason: str) -> AbsenceJobResult:
        logger.info(f"Absence marking for {day} skipped: {reason}")
        return AbsenceJobResult(day=day, ran=False, reason=reason)

    if not config.auto_mark_absent:
        return skipped("auto-mark-absent is disabled")
    if day > now.date():
        return skipped("day has not happened yet")
    if day == now.date() and not classifier.is_past_cutoff(now, config):
        return skipped(f"cutoff {config.time_out_end} has not passed")
    if day.weekday() not in config.weekdays:
        return skipped("not a working day")

    period = current_period(db, day)
    working_day_count = working_days_basis(period, config.weekdays)
    applied_at = datetime.combine(day, classifier.expected_time_out(day, config).time())

    result = AbsenceJobResult(day=day, ran=True)
    try:
        deduction_type = _absence_type(db)
        for employee in active_employees(db):
            start = employed_from(employee)
            if start is not None and day < start:
                continue
            record = _get_record(db, employee.id, day)
            if record is not None and record.time_in is not None:
                continue

            if record is None:
                db.add(AttendanceRecord(employee_id=employee.id, date=day, status=AttendanceStatus.ABSENT.value))
                result.records_created += 1
            elif record.status == AttendanceStatus.ABSENT.value:
                result.already_absent += 1
            else:
                record.status = AttendanceStatus.ABSENT.value
                result.records_updated += 1

            if employee.basic_salary is None:
                logger.warning(f"Employee {employee.id} marked absent without a salary basis; no deduction recorded")
                continue
            if _has_absence_deduction(db, employee.id, deduction_type.id, day):
                continue
            db.add(Deduction(
                employee_id=employee.id,
                deduction_type_id=deduction_type.id,
                amount=absence_deduction(employee.basic_salary, working_day_count),
                applied_at=applied_at,
                notes=f"Absent on {day.isoformat()}",
            ))
            result.deductions_created += 1

        if result.records_created or result.records_updated or result.deductions_created:
            AuditService.log(
                db, "attendance_marked_absent", "attendance", None,
                result.model_dump(mode="json")
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Absence marking for {day}: {result.records_created} created, {result.records_updated} updated, "
        f"{result.deductions_created} deductions"
    )
    return result


def get_settings(db: Session) -> AttendanceSettings:
    """The single settings row, created with defaults on first access."""
    row = db.query(AttendanceSettings).order_by(AttendanceSettings.id).first()
    if row is None:
        row = AttendanceSettings()
        db.add(row)
        try:
            db.commit()
            db.refresh(row)
        except Exception:
            db.rollback()
            raise
    return row


def update_settings(db: Session, payload: AttendanceSettingsUpdate) -> AttendanceSettings:
    row = get_settings(db)
    changes = payload.model_dump(exclude_unset=True)
    before = AttendanceConfig.model_validate(row).model_dump(mode="json")

    period_start = changes.get("period_start", row.period_start)
    period_end = changes.get("period_end", row.period_end)
    if (period_start is None) != (period_end is None):
        raise PayrollValidationError("period_start and period_end must be set together")
    if period_start and period_end and period_start > period_end:
        raise PayrollValidationError("period_start must be on or before period_end")

    try:
        for key, value in changes.items():
            setattr(row, key, value)
        AuditService.log(
            db, "attendance_settings_updated", "attendance_settings", row.id,
            {"fields": sorted(changes)},
            before_state=before,
            after_state=AttendanceConfig.model_validate(row).model_dump(mode="json")
        )
        db.commit()
        db.refresh(row)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Attendance settings updated: {sorted(changes)}")
    return row
