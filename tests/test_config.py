"""Tests for settings and store selection."""

from __future__ import annotations

from decimal import Decimal

import pytest

from sendflow.config import get_settings
from sendflow.core.fees import schedule_from_settings
from sendflow.errors import ConfigurationError
from sendflow.store import SqlStore, SupabaseStore, build_store


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "SENDFLOW_BACKEND",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY",
        "DATABASE_URL",
        "FEE_DOMESTIC_RATE",
        "SENDFLOW_MONTHLY_LIMIT",
        "PLATFORM_ACCOUNT_ID",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = get_settings()
    assert settings.backend == "supabase"
    assert settings.currency == "XAF"
    assert settings.monthly_limit == Decimal("2000000")
    assert settings.request_timeout == 10.0
    schedule = schedule_from_settings(settings)
    assert schedule.domestic_rate == Decimal("0.015")
    assert schedule.bill_payment_rate == Decimal("0.015")


def test_overrides(monkeypatch) -> None:
    monkeypatch.setenv("FEE_DOMESTIC_RATE", "0.01")
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co/")
    monkeypatch.setenv("PLATFORM_ACCOUNT_ID", "  ")
    settings = get_settings()
    assert settings.fee_domestic_rate == Decimal("0.01")
    assert settings.supabase_url == "https://x.supabase.co"
    assert settings.platform_account_id is None


def test_invalid_values(monkeypatch) -> None:
    monkeypatch.setenv("SENDFLOW_MONTHLY_LIMIT", "lots")
    with pytest.raises(ConfigurationError):
        get_settings()
    monkeypatch.delenv("SENDFLOW_MONTHLY_LIMIT")
    monkeypatch.setenv("SENDFLOW_BACKEND", "mongo")
    with pytest.raises(ConfigurationError):
        get_settings()


async def test_build_store(monkeypatch) -> None:
    with pytest.raises(ConfigurationError):
        build_store(get_settings())

    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "key")
    store = build_store(get_settings())
    assert isinstance(store, SupabaseStore)
    assert store.base_url == "https://x.supabase.co/rest/v1"
    await store.close()

    monkeypatch.setenv("SENDFLOW_BACKEND", "sql")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    store = build_store(get_settings())
    assert isinstance(store, SqlStore)
    await store.close()
