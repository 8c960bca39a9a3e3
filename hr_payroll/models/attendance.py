from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from hr_payroll.database import Base
import enum


class AttendanceStatus(str, enum.Enum):
    PENDING = "PENDING"
    PRESENT = "PRESENT"
    LATE = "LATE"
    ABSENT = "ABSENT"
    PARTIAL = "PARTIAL"


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    time_in = Column(DateTime, nullable=True)
    time_out = Column(DateTime, nullable=True)
    status = Column(String(20), default=AttendanceStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("idx_attendance_date", "date"),
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
    )


class AttendanceSettings(Base):
    """Single-row table holding the daily time windows."""
    __tablename__ = "attendance_settings"

    id = Column(Integer, primary_key=True, index=True)
    time_in_start = Column(String(5), default="08:00")
    time_in_end = Column(String(5), default="09:30")
    time_out_start = Column(String(5), default="17:00")
    time_out_end = Column(String(5), default="19:00")
    auto_mark_absent = Column(Boolean, default=True, nullable=False)
    working_days = Column(String, default="MON,TUE,WED,THU,FRI", nullable=False)
    # Explicit payroll period; overrides the configured period policy when both are set
    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
