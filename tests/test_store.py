"""Tests for the document store backends."""

from __future__ import annotations

from pathlib import Path

from erp_core.config import ERPConfig
from erp_core.store import JsonFileStore, MemoryStore, open_store


def test_memory_store_returns_copies() -> None:
    """Test mutating a fetched document does not change the stored one."""
    store = MemoryStore()
    store.upsert("k", {"items": [1]})
    doc = store.get("k")
    doc["items"].append(2)
    assert store.get("k") == {"items": [1]}
    assert store.get("missing") is None


def test_json_store_round_trip(tmp_path: Path) -> None:
    """Test documents persist across store instances."""
    JsonFileStore(tmp_path).upsert("hourly_snapshot:28-Jan-2026:slot1", {"grand_total": 5})
    again = JsonFileStore(tmp_path)
    assert again.get("hourly_snapshot:28-Jan-2026:slot1") == {"grand_total": 5}
    assert all(":" not in p.name for p in tmp_path.iterdir())


def test_json_store_ignores_corrupt_document(tmp_path: Path) -> None:
    """Test a corrupted document reads as missing."""
    store = JsonFileStore(tmp_path)
    store.path_for("stats_data").write_text("{not json", encoding="utf-8")
    assert store.get("stats_data") is None


def test_open_store_selection(tmp_path: Path) -> None:
    """Test the store path selects the JSON backend, nothing selects memory."""
    assert isinstance(open_store(ERPConfig(store_path=tmp_path)), JsonFileStore)
    assert isinstance(open_store(ERPConfig()), MemoryStore)


def test_open_store_shares_default_memory_store() -> None:
    """Test unconfigured callers see each other's documents."""
    open_store(ERPConfig()).upsert("erp_session", {"cookie": "PHPSESSID=a"})
    assert open_store(ERPConfig()).get("erp_session") == {"cookie": "PHPSESSID=a"}


def test_delete_reports_whether_key_existed(tmp_path: Path) -> None:
    """Test both local backends delete a key once."""
    for store in (MemoryStore(), JsonFileStore(tmp_path)):
        store.upsert("hourly_snapshot:28-Jan-2026:slot1", {"grand_total": 5})
        assert store.delete("hourly_snapshot:28-Jan-2026:slot1") is True
        assert store.get("hourly_snapshot:28-Jan-2026:slot1") is None
        assert store.delete("hourly_snapshot:28-Jan-2026:slot1") is False
