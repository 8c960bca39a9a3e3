# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    employee, attendance, deduction, loan, overload_pay,
    payroll, audit_log, notification
)

# Explicit class exports for cleaner imports
from .employee import Employee, PersonnelType
from .attendance import AttendanceRecord, AttendanceSettings, AttendanceStatus
from .deduction import Deduction, DeductionType, CalculationType
from .loan import Loan, LoanPayment, LoanStatus
from .overload_pay import OverloadPay, OverloadType
from .payroll import PayrollEntry, PayrollSchedule, PayrollStatus
from .audit_log import AuditLog
from .notification import Notification

__all__ = [
    "Employee",
    "PersonnelType",
    "AttendanceRecord",
    "AttendanceSettings",
    "AttendanceStatus",
    "Deduction",
    "DeductionType",
    "CalculationType",
    "Loan",
    "LoanPayment",
    "LoanStatus",
    "OverloadPay",
    "OverloadType",
    "PayrollEntry",
    "PayrollSchedule",
    "PayrollStatus",
    "AuditLog",
    "Notification",
]
