from fastapi import status


def test_settings_roundtrip(client):
    response = client.get("/api/attendance/settings")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["time_in_end"] == "09:30"

    response = client.put("/api/attendance/settings", json={"time_out_end": "20:00"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["time_out_end"] == "20:00"


def test_settings_reject_bad_time(client):
    response = client.put("/api/attendance/settings", json={"time_in_start": "25:00"})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_punch_unknown_employee(client):
    response = client.post("/api/attendance/punch", json={"employee_id": 5555})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_mark_absent_for_past_day(client, employee):
    # Tuesday, after the hire date and long past
    response = client.post("/api/attendance/mark-absent", json={"day": "2026-01-06"})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["ran"] is True
    assert data["records_created"] == 1
    assert data["deductions_created"] == 1

    again = client.post("/api/attendance/mark-absent", json={"day": "2026-01-06"}).json()
    assert again["deductions_created"] == 0


def test_sync_mandatory(client, employee):
    response = client.post("/api/deductions/sync-mandatory")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["created"] == 0
