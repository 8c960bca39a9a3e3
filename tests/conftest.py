import pytest
import os
from datetime import date, datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from hr_payroll.database import Base, get_db
from hr_payroll.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    # Use sessionmaker with the active connection
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def make_employee(db_session):
    """Factory for employees; ``salary=None`` gives an employee without a salary basis."""
    from hr_payroll.models.employee import Employee, PersonnelType

    counter = {"n": 0}

    def _make(salary=20000.0, name=None, is_active=True, created_at=datetime(2026, 1, 1)):
        counter["n"] += 1
        n = counter["n"]
        personnel_type = None
        if salary is not None:
            personnel_type = PersonnelType(name=f"Grade {n}", basic_salary=salary)
            db_session.add(personnel_type)
        employee = Employee(
            name=name or f"Employee {n}",
            email=f"employee{n}@example.com",
            personnel_type=personnel_type,
            is_active=is_active,
            created_at=created_at,
        )
        db_session.add(employee)
        db_session.commit()
        return employee

    return _make


@pytest.fixture(scope="function")
def employee(make_employee):
    return make_employee()


@pytest.fixture(scope="function")
def add_attendance(db_session):
    """Store one attendance record; times are HH:MM on ``day``."""
    from hr_payroll.models.attendance import AttendanceRecord

    def _add(employee_id, day, time_in=None, time_out=None, status="PRESENT"):
        def at(hhmm):
            if hhmm is None:
                return None
            h, m = hhmm.split(":")
            return datetime(day.year, day.month, day.day, int(h), int(m))

        record = AttendanceRecord(
            employee_id=employee_id, date=day, time_in=at(time_in), time_out=at(time_out), status=status
        )
        db_session.add(record)
        db_session.commit()
        return record

    return _add


@pytest.fixture(scope="function")
def add_loan(db_session):
    from hr_payroll.models.loan import Loan

    def _add(employee_id, amount=5000.0, percent=10.0, balance=None,
             start=date(2026, 1, 1), end=date(2026, 12, 31)):
        loan = Loan(
            employee_id=employee_id,
            purpose="Salary loan",
            amount=amount,
            monthly_payment_percent=percent,
            term_months=12,
            balance=amount if balance is None else balance,
            start_date=start,
            end_date=end,
        )
        db_session.add(loan)
        db_session.commit()
        return loan

    return _add


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
