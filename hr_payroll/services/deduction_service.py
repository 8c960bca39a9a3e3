from datetime import datetime
from typing import Dict, Optional
import logging

from sqlalchemy.orm import Session

from hr_payroll.core.clock import now_local
from hr_payroll.models.deduction import CalculationType, Deduction, DeductionType
from hr_payroll.services.audit import AuditService
from hr_payroll.services.payroll_service import active_employees

logger = logging.getLogger(__name__)


def mandatory_amount(deduction_type: DeductionType, monthly_salary: Optional[float]) -> Optional[float]:
    """Fixed amount, or a percentage of the monthly salary; None when it cannot be computed."""
    if deduction_type.calculation_type == CalculationType.PERCENTAGE.value:
        if monthly_salary is None:
            return None
        return round(monthly_salary * (deduction_type.percentage_value or 0.0) / 100, 2)
    return deduction_type.amount or 0.0


def sync_mandatory_deductions(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Ensure every active employee holds exactly one live record per active
    mandatory deduction type.

    A record whose amount no longer matches is archived and replaced, since
    applied deductions are never edited in place. Re-running with unchanged
    data changes nothing.
    """
    now = now or now_local()
    types = db.query(DeductionType).filter(
        DeductionType.is_mandatory.is_(True),
        DeductionType.is_active.is_(True),
    ).order_by(DeductionType.id).all()

    counts = {"created": 0, "replaced": 0, "unchanged": 0, "skipped": 0}
    try:
        for employee in active_employees(db):
            for deduction_type in types:
                amount = mandatory_amount(deduction_type, employee.basic_salary)
                if amount is None:
                    counts["skipped"] += 1
                    continue

                existing = db.query(Deduction).filter(
                    Deduction.employee_id == employee.id,
                    Deduction.deduction_type_id == deduction_type.id,
                    Deduction.archived_at.is_(None),
                ).order_by(Deduction.id).all()

                if len(existing) == 1 and abs(existing[0].amount - amount) < 0.005:
                    counts["unchanged"] += 1
                    continue
                for stale in existing:
                    stale.archived_at = now
                db.add(Deduction(
                    employee_id=employee.id,
                    deduction_type_id=deduction_type.id,
                    amount=amount,
                    applied_at=now,
                    notes=f"Mandatory: {deduction_type.name}",
                ))
                counts["replaced" if existing else "created"] += 1

        if counts["created"] or counts["replaced"]:
            AuditService.log(db, "mandatory_deductions_synced", "deduction", None, dict(counts))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Mandatory deductions synced: {counts}")
    return counts
