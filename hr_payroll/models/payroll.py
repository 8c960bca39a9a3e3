from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey, JSON, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hr_payroll.database import Base
import enum


class PayrollStatus(str, enum.Enum):
    PENDING = "PENDING"
    RELEASED = "RELEASED"
    ARCHIVED = "ARCHIVED"


class PayrollEntry(Base):
    __tablename__ = "payroll_entries"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    basic_salary = Column(Float, default=0.0)  # period base salary
    overtime = Column(Float, default=0.0)  # overload pay total
    deductions = Column(Float, default=0.0)
    net_pay = Column(Float, default=0.0)
    status = Column(String(20), default=PayrollStatus.PENDING.value, nullable=False)
    # Frozen PayrollBreakdown; sole source of truth once RELEASED
    breakdown = Column(JSON, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    released_at = Column(DateTime, nullable=True)
    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee")

    __table_args__ = (
        Index("idx_payroll_period", "period_start", "period_end"),
    )


class PayrollSchedule(Base):
    """Next scheduled release; at most one row is active."""
    __tablename__ = "payroll_schedules"

    id = Column(Integer, primary_key=True, index=True)
    scheduled_date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
