from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hr_payroll.database import Base
import enum


class CalculationType(str, enum.Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class DeductionType(Base):
    __tablename__ = "deduction_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, unique=True, nullable=False)
    description = Column(String, nullable=True)
    calculation_type = Column(String, default=CalculationType.FIXED.value)  # Store enum as string
    amount = Column(Float, default=0.0)  # Fixed amount
    percentage_value = Column(Float, nullable=True)  # Percent of monthly salary
    is_mandatory = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    deductions = relationship("Deduction", back_populates="deduction_type")


class Deduction(Base):
    """Applied deduction. Immutable once created except for archival."""
    __tablename__ = "deductions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    deduction_type_id = Column(Integer, ForeignKey("deduction_types.id"), nullable=False)
    amount = Column(Float, nullable=False)
    applied_at = Column(DateTime, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    deduction_type = relationship("DeductionType", back_populates="deductions")
