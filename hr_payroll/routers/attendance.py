"""
Attendance Router

Punches, the absence-marking job trigger and attendance settings.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hr_payroll.database import get_db
from hr_payroll.schemas.attendance import (
    AbsenceJobRequest,
    AbsenceJobResult,
    AttendanceConfig,
    AttendanceSettingsUpdate,
    PunchRequest,
    PunchResponse,
)
from hr_payroll.services import attendance_service

router = APIRouter(
    prefix="/attendance",
    tags=["attendance"],
)


@router.post("/punch", response_model=PunchResponse)
def punch(request: PunchRequest, db: Session = Depends(get_db)):
    """First punch of the day is the time-in, the second is the time-out."""
    return attendance_service.record_punch(db, request.employee_id)


@router.post("/mark-absent", response_model=AbsenceJobResult)
def mark_absent(request: AbsenceJobRequest, db: Session = Depends(get_db)):
    """Absence-marking job body. Safe to call repeatedly."""
    return attendance_service.mark_absent(db, request.day)


@router.get("/settings", response_model=AttendanceConfig)
def get_settings(db: Session = Depends(get_db)):
    return attendance_service.get_settings(db)


@router.put("/settings", response_model=AttendanceConfig)
def update_settings(payload: AttendanceSettingsUpdate, db: Session = Depends(get_db)):
    return attendance_service.update_settings(db, payload)
