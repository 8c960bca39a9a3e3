from datetime import datetime
from zoneinfo import ZoneInfo

from hr_payroll.core.config import settings


def now_local() -> datetime:
    """Wall-clock time in the payroll timezone, naive (as stored in the DB)."""
    return datetime.now(ZoneInfo(settings.payroll.timezone)).replace(tzinfo=None)
