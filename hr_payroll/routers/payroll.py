"""
Payroll Router

Handles HTTP endpoints for payroll operations.
All business logic is delegated to the payroll service layer.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hr_payroll.database import get_db
from hr_payroll.core.exceptions import NotFoundError
from hr_payroll.schemas.payroll import (
    ArchiveRequest,
    ArchiveResult,
    GenerateRequest,
    PayrollBreakdown,
    PayrollEntryResponse,
    PayrollSummary,
    ReleaseRequest,
    ReleaseResult,
    ScheduleCreate,
    ScheduleResponse,
    ScheduledReleaseResult,
)
from hr_payroll.services import payroll_service, release_orchestrator, schedule_service


router = APIRouter(
    prefix="/payroll",
    tags=["payroll"],
)


@router.get("/preview/{employee_id}", response_model=PayrollBreakdown)
def preview_payroll(
    employee_id: int,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    db: Session = Depends(get_db)
):
    """
    Live payroll for one employee. Nothing is persisted; days after today
    never contribute deductions.
    """
    return payroll_service.compute_live_preview(db, employee_id, period_start, period_end)


@router.get("/summary", response_model=PayrollSummary)
def get_payroll_summary(
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    db: Session = Depends(get_db)
):
    return payroll_service.get_payroll_summary(db, period_start, period_end)


@router.post("/generate", response_model=List[PayrollEntryResponse])
def generate_payroll(request: GenerateRequest, db: Session = Depends(get_db)):
    """Create or refresh PENDING entries for the period."""
    return payroll_service.generate_pending(db, request.period_start, request.period_end)


@router.post("/release", response_model=ReleaseResult)
def release_payroll(request: ReleaseRequest, db: Session = Depends(get_db)):
    """
    Release payroll for a batch of employees.

    Refused with 409 when a released entry overlaps the period and with 400
    when any employee lacks a salary basis; nothing is written in either case.
    """
    return release_orchestrator.release(db, request.period_start, request.period_end, request.employee_ids)


@router.get("/entries/{entry_id}/breakdown")
def get_entry_breakdown(entry_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """The frozen breakdown stored at release, returned as stored."""
    return payroll_service.get_archived_breakdown(db, entry_id)


@router.post("/entries/{entry_id}/archive", response_model=PayrollEntryResponse)
def archive_entry(entry_id: int, db: Session = Depends(get_db)):
    return release_orchestrator.archive_entry(db, entry_id)


@router.post("/archive", response_model=ArchiveResult)
def archive_released(request: ArchiveRequest, db: Session = Depends(get_db)):
    """Archive every released entry whose period ended before ``before``."""
    count = release_orchestrator.archive_released_before(db, request.before)
    return ArchiveResult(before=request.before, archived_count=count)


# --- Release schedule ---

@router.get("/schedule", response_model=ScheduleResponse)
def get_schedule(db: Session = Depends(get_db)):
    schedule = schedule_service.get_active_schedule(db)
    if schedule is None:
        raise NotFoundError("No active payroll schedule")
    return schedule


@router.post("/schedule", response_model=ScheduleResponse, status_code=201)
def create_schedule(payload: ScheduleCreate, db: Session = Depends(get_db)):
    return schedule_service.create_schedule(db, payload)


@router.put("/schedule", response_model=ScheduleResponse)
def update_schedule(payload: ScheduleCreate, db: Session = Depends(get_db)):
    return schedule_service.update_schedule(db, payload)


@router.delete("/schedule", response_model=ScheduleResponse)
def deactivate_schedule(db: Session = Depends(get_db)):
    return schedule_service.deactivate_schedule(db)


@router.post("/schedule/run", response_model=ScheduledReleaseResult)
def run_scheduled_release(db: Session = Depends(get_db)):
    """Scheduled release job body. Safe to call repeatedly."""
    return schedule_service.release_due_schedule(db)
