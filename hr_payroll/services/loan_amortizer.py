"""
Loan amortization.

Two payment strategies exist because historical payroll paths disagreed.
``PERIOD_FACTOR`` (the default) charges half the monthly payment on a
half-month period; ``FULL_MONTHLY`` charges the whole monthly payment on
every release. The active one comes from ``settings.payroll.loan_payment_strategy``.
"""
import enum
from datetime import date
from typing import Optional, Tuple

from hr_payroll.core.config import settings
from hr_payroll.models.loan import LoanStatus
from hr_payroll.services.period_resolver import period_factor


class LoanPaymentStrategy(str, enum.Enum):
    PERIOD_FACTOR = "period_factor"
    FULL_MONTHLY = "full_monthly"


def active_strategy() -> LoanPaymentStrategy:
    return LoanPaymentStrategy(settings.payroll.loan_payment_strategy)


def monthly_payment(loan_amount: float, monthly_payment_percent: float) -> float:
    return max(0.0, loan_amount) * max(0.0, monthly_payment_percent) / 100


def strategy_factor(period_days: int, strategy: Optional[LoanPaymentStrategy] = None) -> float:
    strategy = strategy or active_strategy()
    if strategy == LoanPaymentStrategy.FULL_MONTHLY:
        return 1.0
    return period_factor(period_days)


def per_period_payment(
    loan_amount: float,
    monthly_payment_percent: float,
    period_days: int,
    strategy: Optional[LoanPaymentStrategy] = None,
) -> float:
    return monthly_payment(loan_amount, monthly_payment_percent) * strategy_factor(period_days, strategy)


def scheduled_payment(balance: float, per_period: float) -> float:
    """
    The payment previewed and the payment applied at release are this same
    number: the per-period amount, never more than what is still owed.
    """
    return max(0.0, min(balance, per_period))


def apply_payment(balance: float, payment: float) -> Tuple[float, str]:
    new_balance = max(0.0, balance - max(0.0, payment))
    if new_balance == 0:
        return 0.0, LoanStatus.COMPLETED.value
    return new_balance, LoanStatus.ACTIVE.value


def loan_overlaps(start_date: date, end_date: date, period_start: date, period_end: date) -> bool:
    return start_date <= period_end and period_start <= end_date
