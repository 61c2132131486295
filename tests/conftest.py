"""Fixtures shared by all test modules."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from erp_core import store as store_module
from erp_core.config import ERPConfig, SweepBounds
from erp_core.raw.cookie import ERPCookieManager
from erp_core.store import MemoryStore
from tests.test_utils import Clock


@pytest.fixture(autouse=True)
def fresh_default_store(monkeypatch: pytest.MonkeyPatch) -> MemoryStore:
    """Give every test its own process-wide default store."""
    default = MemoryStore()
    monkeypatch.setattr(store_module, "_DEFAULT_STORE", default)
    return default


@pytest.fixture
def sweep_bounds() -> SweepBounds:
    return SweepBounds(
        years=("2026", "2025"),
        company_ids=("1", "2", "3"),
        closing_locations=("2", "0"),
        challan_company_ids=("1", "2", "3"),
        sewing_years=("2027", "2026"),
        sewing_wo_company_ids=("2",),
    )


@pytest.fixture
def erp_config(sweep_bounds: SweepBounds) -> ERPConfig:
    return ERPConfig(
        base_url="http://erp.test/erp",
        username="report.user",
        password="secret",
        sweep=sweep_bounds,
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def logged_in_store(erp_config: ERPConfig, store: MemoryStore) -> MemoryStore:
    """Store holding a fresh ERP cookie, so report calls never log in."""
    ERPCookieManager(erp_config, store).store_cookie("PHPSESSID=stored")
    return store


@pytest.fixture
def clock() -> Clock:
    return Clock(datetime(2026, 1, 28, 9, 0, tzinfo=timezone.utc))
