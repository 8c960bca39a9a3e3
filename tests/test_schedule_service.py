import pytest
from datetime import date, datetime

from hr_payroll.core.exceptions import NotFoundError
from hr_payroll.models.payroll import PayrollEntry, PayrollSchedule
from hr_payroll.schemas.payroll import ScheduleCreate
from hr_payroll.services import release_orchestrator, schedule_service


def test_create_deactivates_previous(db_session):
    first = schedule_service.create_schedule(db_session, ScheduleCreate(scheduled_date=datetime(2026, 6, 15, 17, 0)))
    second = schedule_service.create_schedule(db_session, ScheduleCreate(scheduled_date=datetime(2026, 6, 30, 17, 0)))

    db_session.refresh(first)
    assert not first.is_active
    assert schedule_service.get_active_schedule(db_session).id == second.id
    assert db_session.query(PayrollSchedule).filter_by(is_active=True).count() == 1


def test_update_and_deactivate(db_session):
    schedule_service.create_schedule(db_session, ScheduleCreate(scheduled_date=datetime(2026, 6, 15, 17, 0)))

    updated = schedule_service.update_schedule(
        db_session, ScheduleCreate(scheduled_date=datetime(2026, 6, 16, 9, 0), notes="moved")
    )
    assert updated.scheduled_date == datetime(2026, 6, 16, 9, 0)
    assert updated.notes == "moved"

    schedule_service.deactivate_schedule(db_session)
    assert schedule_service.get_active_schedule(db_session) is None
    with pytest.raises(NotFoundError):
        schedule_service.deactivate_schedule(db_session)


def test_due_schedule(db_session):
    schedule_service.create_schedule(db_session, ScheduleCreate(scheduled_date=datetime(2026, 6, 15, 17, 0)))
    assert schedule_service.due_schedule(db_session, now=datetime(2026, 6, 15, 16, 59)) is None
    assert schedule_service.due_schedule(db_session, now=datetime(2026, 6, 15, 17, 0)) is not None


def test_release_due_schedule_without_schedule(db_session, employee):
    result = schedule_service.release_due_schedule(db_session, now=datetime(2026, 6, 15, 20, 0))
    assert not result.ran
    assert result.reason == "no schedule is due"
    assert db_session.query(PayrollEntry).count() == 0


def test_release_due_schedule_waits_for_date(db_session, employee):
    schedule_service.create_schedule(db_session, ScheduleCreate(scheduled_date=datetime(2026, 6, 15, 17, 0)))

    result = schedule_service.release_due_schedule(db_session, now=datetime(2026, 6, 15, 16, 0))

    assert not result.ran
    assert schedule_service.get_active_schedule(db_session) is not None
    assert db_session.query(PayrollEntry).count() == 0


def test_release_due_schedule_releases_current_period(db_session, employee, make_employee):
    make_employee(salary=None)
    schedule = schedule_service.create_schedule(
        db_session, ScheduleCreate(scheduled_date=datetime(2026, 6, 15, 17, 0))
    )

    result = schedule_service.release_due_schedule(db_session, now=datetime(2026, 6, 15, 20, 0))

    assert result.ran
    assert result.schedule_id == schedule.id
    assert (result.period_start, result.period_end) == (date(2026, 6, 1), date(2026, 6, 15))
    assert result.released_count == 1
    assert result.employee_ids == [employee.id]
    entry = db_session.query(PayrollEntry).one()
    assert entry.employee_id == employee.id
    assert entry.status == "RELEASED"
    assert schedule_service.get_active_schedule(db_session) is None

    again = schedule_service.release_due_schedule(db_session, now=datetime(2026, 6, 15, 21, 0))
    assert not again.ran
    assert db_session.query(PayrollEntry).count() == 1


def test_release_due_schedule_consumed_by_manual_release(db_session, employee):
    release_orchestrator.release(
        db_session, date(2026, 6, 1), date(2026, 6, 15), [employee.id], now=datetime(2026, 6, 15, 18, 0)
    )
    schedule_service.create_schedule(db_session, ScheduleCreate(scheduled_date=datetime(2026, 6, 15, 17, 0)))

    result = schedule_service.release_due_schedule(db_session, now=datetime(2026, 6, 15, 20, 0))

    assert not result.ran
    assert result.reason == "payroll already released for this period"
    assert schedule_service.get_active_schedule(db_session) is None
    assert db_session.query(PayrollEntry).count() == 1
