"""
Runtime settings read from the environment (and .env when present).
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from sendflow.errors import ConfigurationError

load_dotenv(find_dotenv(usecwd=True), override=False)

BACKEND_SUPABASE = "supabase"
BACKEND_SQL = "sql"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return Decimal(default)
    try:
        return Decimal(raw.strip())
    except InvalidOperation:
        raise ConfigurationError(f"Invalid decimal value for {name}: {raw!r}")


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


@dataclass(frozen=True)
class Settings:
    backend: str
    supabase_url: Optional[str]
    supabase_service_role_key: Optional[str]
    database_url: str
    db_create_all: bool
    request_timeout: float
    currency: str
    monthly_limit: Decimal
    fee_domestic_rate: Decimal
    fee_international_rate: Decimal
    fee_international_reduced_rate: Decimal
    fee_international_threshold: Decimal
    fee_agent_share: Decimal
    bill_payment_fee_rate: Decimal
    platform_account_id: Optional[str]
    api_host: str
    api_port: int

    def require_supabase(self) -> None:
        if not self.supabase_url or not self.supabase_service_role_key:
            raise ConfigurationError(
                "Server configuration missing: SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required"
            )


def get_settings() -> Settings:
    """
    Read settings fresh from the environment.
    """
    backend = (os.getenv("SENDFLOW_BACKEND") or BACKEND_SUPABASE).strip().lower()
    if backend not in (BACKEND_SUPABASE, BACKEND_SQL):
        raise ConfigurationError(f"Unknown SENDFLOW_BACKEND: {backend!r}")

    try:
        timeout = float(os.getenv("SENDFLOW_REQUEST_TIMEOUT", "10"))
        port = int(os.getenv("API_PORT", "8000"))
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}")

    supabase_url = _env_str("SUPABASE_URL")
    return Settings(
        backend=backend,
        supabase_url=supabase_url.rstrip("/") if supabase_url else None,
        supabase_service_role_key=_env_str("SUPABASE_SERVICE_ROLE_KEY"),
        database_url=_env_str("DATABASE_URL") or "sqlite+aiosqlite:///./sendflow.db",
        db_create_all=_env_flag("SENDFLOW_DB_CREATE_ALL", False),
        request_timeout=timeout,
        currency=_env_str("SENDFLOW_CURRENCY") or "XAF",
        monthly_limit=_env_decimal("SENDFLOW_MONTHLY_LIMIT", "2000000"),
        fee_domestic_rate=_env_decimal("FEE_DOMESTIC_RATE", "0.015"),
        fee_international_rate=_env_decimal("FEE_INTERNATIONAL_RATE", "0.065"),
        fee_international_reduced_rate=_env_decimal("FEE_INTERNATIONAL_REDUCED_RATE", "0.05"),
        fee_international_threshold=_env_decimal("FEE_INTERNATIONAL_THRESHOLD", "800000"),
        fee_agent_share=_env_decimal("FEE_AGENT_SHARE", "0.10"),
        bill_payment_fee_rate=_env_decimal("BILL_PAYMENT_FEE_RATE", "0.015"),
        platform_account_id=_env_str("PLATFORM_ACCOUNT_ID"),
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=port,
    )
