import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()

PERIOD_POLICIES = ("semimonthly", "biweekly")
LOAN_STRATEGIES = ("period_factor", "full_monthly")
DAILY_RATE_BASES = ("month", "period")


class PayrollSettings(BaseModel):
    # Exactly one period policy is active system-wide
    period_policy: str = Field(default=os.getenv("PAYROLL_PERIOD_POLICY", "semimonthly"))
    loan_payment_strategy: str = Field(default=os.getenv("PAYROLL_LOAN_STRATEGY", "period_factor"))
    daily_rate_basis: str = Field(default=os.getenv("PAYROLL_DAILY_RATE_BASIS", "month"))

    standard_shift_hours: float = 8.0
    default_working_days: int = int(os.getenv("PAYROLL_DEFAULT_WORKING_DAYS", "22"))
    grace_minutes: int = int(os.getenv("PAYROLL_GRACE_MINUTES", "1"))
    late_cap_ratio: float = 0.5
    early_timeout_deduction: bool = os.getenv("PAYROLL_EARLY_TIMEOUT", "false").lower() == "true"

    timezone: str = os.getenv("PAYROLL_TIMEZONE", "Asia/Manila")


class Config(BaseModel):
    app_name: str = "HR Payroll Engine"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./payroll.db")

    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    payroll: PayrollSettings = PayrollSettings()


settings = Config()

# --- Startup Validation ---
_logger = logging.getLogger(__name__)
_invalid = []
if settings.payroll.period_policy not in PERIOD_POLICIES:
    _invalid.append(f"PAYROLL_PERIOD_POLICY={settings.payroll.period_policy!r}")
if settings.payroll.loan_payment_strategy not in LOAN_STRATEGIES:
    _invalid.append(f"PAYROLL_LOAN_STRATEGY={settings.payroll.loan_payment_strategy!r}")
if settings.payroll.daily_rate_basis not in DAILY_RATE_BASES:
    _invalid.append(f"PAYROLL_DAILY_RATE_BASIS={settings.payroll.daily_rate_basis!r}")
if _invalid:
    raise RuntimeError(
        f"FATAL: Unsupported payroll configuration: {', '.join(_invalid)}."
    )

if settings.environment != "development" and settings.database_url.startswith("sqlite:///./"):
    _logger.warning("⚠ Using a local SQLite database outside development.")
