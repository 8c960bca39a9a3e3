from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Text
from sqlalchemy.sql import func
from hr_payroll.database import Base
import enum


class OverloadType(str, enum.Enum):
    BONUS = "BONUS"
    POSITION_PAY = "POSITION_PAY"
    THIRTEENTH_MONTH = "THIRTEENTH_MONTH"
    OVERTIME = "OVERTIME"
    OTHER = "OTHER"


class OverloadPay(Base):
    """Additional pay added on top of the period base salary."""
    __tablename__ = "overload_pay"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    type = Column(String(30), default=OverloadType.OTHER.value, nullable=False)
    amount = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)
    applied_at = Column(DateTime, nullable=False)
    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
