"""Key-value document store used for the ERP cookie and business documents.

The core only needs get, upsert and delete by key. Three backends are
provided:

- ``MemoryStore``: process-local dict. ``open_store`` hands out one shared
  instance when nothing else is configured.
- ``JsonFileStore``: one JSON file per key under a directory.
- ``MongoDocumentStore``: documents shaped ``{"_id": key, "data": doc}`` in
  a single MongoDB collection (requires the ``mongo`` extra).

Writes are last-write-wins. Concurrent cookie refreshes may overwrite each
other; that only costs an extra login.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Protocol

from erp_core.config import ERPConfig
from erp_core.exceptions import StoreError

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"[^A-Za-z0-9_.-]+")


class DocumentStore(Protocol):
    """Minimal store interface: JSON documents keyed by a fixed string id."""

    def get(self, key: str) -> dict[str, Any] | None: ...

    def upsert(self, key: str, doc: dict[str, Any]) -> None: ...

    def delete(self, key: str) -> bool: ...


class MemoryStore:
    """In-memory store. Documents are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self._docs.get(key)
            return deepcopy(doc) if doc is not None else None

    def upsert(self, key: str, doc: dict[str, Any]) -> None:
        with self._lock:
            self._docs[key] = deepcopy(doc)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._docs.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._docs)


class JsonFileStore:
    """Store each document as ``<root>/<key>.json``.

    Args:
        root: Directory holding the documents. Created on first write.

    Examples:
        >>> store = JsonFileStore(Path("data/store"))
        >>> store.upsert("stats_data", {"downloads": []})
        >>> store.get("stats_data")
        {'downloads': []}
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._lock = threading.Lock()

    def path_for(self, key: str) -> Path:
        """Compute the file path for a key (unsafe characters become ``_``)."""
        return self.root / f"{_KEY_RE.sub('_', key)}.json"

    def get(self, key: str) -> dict[str, Any] | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            # If the document is corrupted, treat as missing
            logger.warning("Corrupted store document %s, ignoring", path)
            return None
        except OSError as e:
            raise StoreError(f"Cannot read {path}: {e}") from e
        return data if isinstance(data, dict) else None

    def upsert(self, key: str, doc: dict[str, Any]) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".json.tmp")
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp, "w", encoding="utf-8") as f:
                    json.dump(doc, f, indent=2, ensure_ascii=False)
                tmp.replace(path)
            except OSError as e:
                raise StoreError(f"Cannot write {path}: {e}") from e

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as e:
                raise StoreError(f"Cannot delete {path}: {e}") from e
        return True


_DEFAULT_STORE = MemoryStore()


class MongoDocumentStore:
    """MongoDB-backed store using ``replace_one(..., upsert=True)``.

    Args:
        uri: MongoDB connection string.
        db_name: Database name.
        collection: Collection holding all documents.
    """

    def __init__(self, uri: str, db_name: str, collection: str = "documents") -> None:
        from pymongo import MongoClient

        self._client = MongoClient(uri, maxPoolSize=10, serverSelectionTimeoutMS=5000)
        self._col = self._client[db_name][collection]

    def get(self, key: str) -> dict[str, Any] | None:
        record = self._col.find_one({"_id": key})
        if not record:
            return None
        return record.get("data")

    def upsert(self, key: str, doc: dict[str, Any]) -> None:
        self._col.replace_one({"_id": key}, {"_id": key, "data": doc}, upsert=True)

    def delete(self, key: str) -> bool:
        return self._col.delete_one({"_id": key}).deleted_count > 0


def open_store(config: ERPConfig) -> DocumentStore:
    """Pick a store backend from configuration.

    MongoDB wins when ``mongodb_uri`` is set, then ``store_path``; otherwise
    the process-wide in-memory store is returned, so a cookie stored by one
    call is seen by the next.
    """
    if config.mongodb_uri:
        logger.info("Using MongoDB document store (db=%s)", config.mongodb_db_name)
        return MongoDocumentStore(config.mongodb_uri, config.mongodb_db_name)
    if config.store_path:
        logger.info("Using JSON file store at %s", config.store_path)
        return JsonFileStore(config.store_path)
    logger.debug("No store configured, using the process-wide in-memory store")
    return _DEFAULT_STORE
