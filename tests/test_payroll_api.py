from datetime import date, timedelta

from fastapi import status

START = "2026-06-01"
END = "2026-06-15"


def _work_full_period(employee_id, add_attendance):
    day = date(2026, 6, 1)
    while day <= date(2026, 6, 15):
        if day.weekday() < 5:
            add_attendance(employee_id, day, "08:30", "17:30")
        day += timedelta(days=1)


def test_preview(client, employee, add_attendance):
    _work_full_period(employee.id, add_attendance)
    response = client.get(f"/api/payroll/preview/{employee.id}", params={"period_start": START, "period_end": END})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["gross_pay"] == 10000.0
    assert data["net_pay"] == 10000.0
    assert data["attendance_deduction_items"] == []


def test_preview_unknown_employee(client):
    response = client.get("/api/payroll/preview/31337", params={"period_start": START, "period_end": END})
    assert response.status_code == status.HTTP_404_NOT_FOUND
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "NOT_FOUND"


def test_preview_malformed_period(client, employee):
    response = client.get(f"/api/payroll/preview/{employee.id}", params={"period_start": END, "period_end": START})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["code"] == "VALIDATION_ERROR"


def test_release_then_conflict(client, employee, add_attendance):
    _work_full_period(employee.id, add_attendance)
    payload = {"period_start": START, "period_end": END, "employee_ids": [employee.id]}

    response = client.post("/api/payroll/release", json=payload)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["released_count"] == 1

    again = client.post("/api/payroll/release", json=payload)
    assert again.status_code == status.HTTP_409_CONFLICT
    error = again.json()["errors"][0]
    assert error["code"] == "RELEASE_CONFLICT"
    assert len(error["details"]["conflicting_entry_ids"]) == 1


def test_release_requires_employees(client):
    response = client.post("/api/payroll/release", json={"period_start": START, "period_end": END, "employee_ids": []})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["success"] is False


def test_release_missing_salary(client, make_employee):
    unpaid = make_employee(salary=None)
    response = client.post(
        "/api/payroll/release", json={"period_start": START, "period_end": END, "employee_ids": [unpaid.id]}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["details"]["missing_salary"] == [unpaid.id]


def test_breakdown_and_archive(client, employee, add_attendance):
    _work_full_period(employee.id, add_attendance)
    client.post("/api/payroll/release", json={"period_start": START, "period_end": END, "employee_ids": [employee.id]})
    summary = client.get("/api/payroll/summary", params={"period_start": START, "period_end": END}).json()
    entry_id = summary["entries"][0]["entry_id"]

    breakdown = client.get(f"/api/payroll/entries/{entry_id}/breakdown")
    assert breakdown.status_code == status.HTTP_200_OK
    assert breakdown.json()["net_pay"] == 10000.0

    archived = client.post(f"/api/payroll/entries/{entry_id}/archive")
    assert archived.status_code == status.HTTP_200_OK
    assert archived.json()["status"] == "ARCHIVED"

    again = client.post(f"/api/payroll/entries/{entry_id}/archive")
    assert again.status_code == status.HTTP_409_CONFLICT


def test_generate_pending(client, employee):
    response = client.post("/api/payroll/generate", json={"period_start": START, "period_end": END})
    assert response.status_code == status.HTTP_200_OK
    entries = response.json()
    assert len(entries) == 1
    assert entries[0]["status"] == "PENDING"


def test_schedule_lifecycle(client):
    assert client.get("/api/payroll/schedule").status_code == status.HTTP_404_NOT_FOUND

    created = client.post("/api/payroll/schedule", json={"scheduled_date": "2026-06-15T17:00:00"})
    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["is_active"] is True

    updated = client.put("/api/payroll/schedule", json={"scheduled_date": "2026-06-16T09:00:00", "notes": "moved"})
    assert updated.json()["notes"] == "moved"

    removed = client.delete("/api/payroll/schedule")
    assert removed.json()["is_active"] is False


def test_release_reversed_period_is_a_validation_error(client, employee):
    response = client.post(
        "/api/payroll/release", json={"period_start": END, "period_end": START, "employee_ids": [employee.id]}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["code"] == "VALIDATION_ERROR"


def test_archive_released_before(client, employee, add_attendance):
    _work_full_period(employee.id, add_attendance)
    client.post("/api/payroll/release", json={"period_start": START, "period_end": END, "employee_ids": [employee.id]})

    untouched = client.post("/api/payroll/archive", json={"before": END})
    assert untouched.json()["archived_count"] == 0

    response = client.post("/api/payroll/archive", json={"before": "2026-06-16"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"before": "2026-06-16", "archived_count": 1}


def test_run_scheduled_release_without_schedule(client, employee):
    response = client.post("/api/payroll/schedule/run")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["ran"] is False
    assert response.json()["released_count"] == 0
