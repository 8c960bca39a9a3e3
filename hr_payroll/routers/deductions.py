from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hr_payroll.database import get_db
from hr_payroll.services import deduction_service

router = APIRouter(
    prefix="/deductions",
    tags=["deductions"],
)


@router.post("/sync-mandatory")
def sync_mandatory(db: Session = Depends(get_db)) -> Dict[str, int]:
    """Give every active employee one live record per mandatory deduction type."""
    return deduction_service.sync_mandatory_deductions(db)
