"""Hourly report snapshots.

Three times a day a scheduler captures the hourly report so the day's
progress can be compared slot by slot. Snapshots are store documents keyed
``hourly_snapshot:<date>:<slot>``; capturing a slot again replaces it.
The capture time of each date is kept in an index document so that old
snapshots can be pruned.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, time, timedelta
from typing import Any

import pytz

from erp_core.clock import local_now
from erp_core.reports.hourly import HourlyReportResult
from erp_core.store import DocumentStore

logger = logging.getLogger(__name__)

SLOTS = ("slot1", "slot2", "slot3")
CONFIG_KEY = "snapshot_config"
INDEX_KEY = "hourly_snapshot_index"


def snapshot_key(date: str, slot: str) -> str:
    return f"hourly_snapshot:{date}:{slot}"


@dataclass
class SnapshotConfig:
    """Capture times (24h ``HH:MM``) per slot, their time zone and retention."""

    slot1_time: str = "12:45"
    slot2_time: str = "17:00"
    slot3_time: str = "21:00"
    timezone: str = "Asia/Dhaka"
    days_to_keep: int = 30

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnapshotConfig:
        known: dict[str, Any] = {}
        for key, value in data.items():
            if key == "days_to_keep":
                known[key] = int(value)
            elif key in cls.__dataclass_fields__:
                known[key] = str(value)
        return cls(**known)

    def slot_times(self) -> dict[str, time]:
        """Parsed capture time per slot.

        Raises:
            ValueError: If a time is not ``HH:MM``.
        """
        return {
            slot: datetime.strptime(getattr(self, f"{slot}_time"), "%H:%M").time()
            for slot in SLOTS
        }

    def validate(self) -> None:
        """Raise ValueError for bad times, an unknown time zone or a negative retention."""
        self.slot_times()
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"Unknown time zone {self.timezone!r}") from e
        if self.days_to_keep < 0:
            raise ValueError("days_to_keep must not be negative")


def get_snapshot_config(store: DocumentStore) -> SnapshotConfig:
    doc = store.get(CONFIG_KEY)
    return SnapshotConfig.from_dict(doc) if doc else SnapshotConfig()


def update_snapshot_config(store: DocumentStore, **changes: Any) -> SnapshotConfig:
    """Merge changes into the stored snapshot config and return the result.

    Raises:
        ValueError: If a change names an unknown setting or has a bad value.
    """
    current = get_snapshot_config(store).to_dict()
    unknown = set(changes) - set(current)
    if unknown:
        raise ValueError(f"Unknown snapshot settings: {', '.join(sorted(unknown))}")
    current.update(changes)
    config = SnapshotConfig.from_dict(current)
    config.validate()
    store.upsert(CONFIG_KEY, config.to_dict())
    return config


def due_slot(config: SnapshotConfig, now: datetime | None = None) -> str | None:
    """The latest slot whose capture time has passed today, in the config's time zone.

    Examples:
        >>> due_slot(SnapshotConfig(), datetime(2026, 1, 28, 12, 0, tzinfo=pytz.utc))
        'slot2'
    """
    tz = pytz.timezone(config.timezone)
    local = now.astimezone(tz) if now is not None else datetime.now(tz)
    times = config.slot_times()
    passed = [slot for slot, at in times.items() if at <= local.time()]
    return max(passed, key=times.__getitem__) if passed else None


def _remember_capture(store: DocumentStore, date: str, captured_at: str) -> None:
    index = store.get(INDEX_KEY) or {"captured": {}}
    index["captured"][date] = captured_at
    store.upsert(INDEX_KEY, index)


def delete_old_snapshots(
    store: DocumentStore, days_to_keep: int = 30, now: datetime | None = None
) -> int:
    """Delete snapshots of dates last captured more than ``days_to_keep`` days ago.

    Returns:
        Number of snapshot documents deleted.
    """
    cutoff = (now or local_now()) - timedelta(days=days_to_keep)
    captured = (store.get(INDEX_KEY) or {"captured": {}})["captured"]
    kept: dict[str, str] = {}
    deleted = 0
    for day, captured_at in captured.items():
        if datetime.fromisoformat(captured_at) >= cutoff:
            kept[day] = captured_at
            continue
        deleted += sum(store.delete(snapshot_key(day, slot)) for slot in SLOTS)
    if len(kept) != len(captured):
        store.upsert(INDEX_KEY, {"captured": kept})
        logger.info("Deleted %d snapshots captured before %s", deleted, cutoff.isoformat())
    return deleted


def _check_slot(slot: str) -> None:
    if slot not in SLOTS:
        raise ValueError(f"Invalid slot {slot!r}. Must be one of {', '.join(SLOTS)}")


def capture_snapshot(
    store: DocumentStore,
    date: str,
    slot: str,
    report: HourlyReportResult,
) -> dict[str, Any]:
    """Store an hourly report result as the snapshot for ``(date, slot)``.

    Args:
        store: Document store.
        date: Report date (``DD-Mon-YYYY``).
        slot: One of ``slot1``, ``slot2``, ``slot3``.
        report: Fetched hourly report; failures are not stored.

    Returns:
        ``{"success", "message", "grand_total"}``.

    Raises:
        ValueError: If ``slot`` is not a known slot.
    """
    _check_slot(slot)
    if not report.success:
        return {
            "success": False,
            "message": report.message or "Failed to fetch data from ERP",
            "grand_total": None,
        }

    snapshot = {
        "date": date,
        "slot": slot,
        "captured_at": local_now().isoformat(),
        "floors": [floor.to_dict() for floor in report.floors],
        "grand_total": report.grand_total,
    }
    store.upsert(snapshot_key(date, slot), snapshot)
    _remember_capture(store, date, snapshot["captured_at"])
    logger.info("Snapshot saved: %s %s (%d total input)", date, slot, report.grand_total)
    return {
        "success": True,
        "message": f"Snapshot captured for {date} {slot} with {report.grand_total} total input",
        "grand_total": report.grand_total,
    }


def get_snapshot(store: DocumentStore, date: str, slot: str) -> dict[str, Any] | None:
    _check_slot(slot)
    return store.get(snapshot_key(date, slot))


def get_snapshots_for_date(store: DocumentStore, date: str) -> dict[str, dict[str, Any] | None]:
    """All three slots for a date; missing slots are None."""
    return {slot: store.get(snapshot_key(date, slot)) for slot in SLOTS}
