from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hr_payroll.database import Base


class PersonnelType(Base):
    """Salary basis shared by a group of employees."""
    __tablename__ = "personnel_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    department = Column(String, nullable=True)
    basic_salary = Column(Float, nullable=True)  # monthly
    is_active = Column(Boolean, default=True, nullable=False)

    employees = relationship("Employee", back_populates="personnel_type")


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    personnel_type_id = Column(Integer, ForeignKey("personnel_types.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    personnel_type = relationship("PersonnelType", back_populates="employees")
    notifications = relationship("Notification", back_populates="employee", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Employee {self.id} {self.email}>"

    @property
    def basic_salary(self):
        """Monthly salary basis, or None when no personnel type carries one."""
        if self.personnel_type is None or self.personnel_type.basic_salary is None:
            return None
        return self.personnel_type.basic_salary
