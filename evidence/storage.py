"""Namespaced key/value persistence for identity and result history."""

from __future__ import annotations

import json
import logging
import os
import string
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"
DEFAULT_PREFIX = "evidence_"
DEFAULT_HISTORY_LIMIT = 50

# Pyodide builds run under emscripten and persist through browser localStorage.
IS_WEB = sys.platform == "emscripten"


class StorageError(Exception):
    """Raised when a key/value backend cannot read or write an item."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStorage:
    """Dict-backed backend with the browser storage call shape."""

    def __init__(self, items: Optional[Dict[str, str]] = None) -> None:
        self.items: Dict[str, str] = dict(items or {})

    def getItem(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def setItem(self, key: str, value: str) -> None:
        self.items[key] = str(value)

    def removeItem(self, key: str) -> None:
        self.items.pop(key, None)


class FileStorage:
    """Store each key as a small file under ``base_path``."""

    _VALID_KEY_CHARS = set(string.ascii_letters + string.digits + "-_.")

    def __init__(self, base_path: Path | str = "data") -> None:
        self.base_path = Path(base_path)

    def getItem(self, key: str) -> Optional[str]:
        path = self._key_path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Failed to read '{key}': {exc}") from exc

    def setItem(self, key: str, value: str) -> None:
        path = self._key_path(key)
        tmp_path: Path | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", delete=False, dir=path.parent, prefix=path.name, suffix=".tmp", encoding="utf-8"
            ) as tmp_file:
                tmp_file.write(value)
                tmp_path = Path(tmp_file.name)
            os.replace(str(tmp_path), str(path))
        except OSError as exc:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
            raise StorageError(f"Failed to write '{key}': {exc}") from exc

    def removeItem(self, key: str) -> None:
        path = self._key_path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"Failed to remove '{key}': {exc}") from exc

    def _key_path(self, key: str) -> Path:
        cleaned = "".join(ch for ch in (key or "") if ch in self._VALID_KEY_CHARS)
        if not cleaned or cleaned.strip(".") == "":
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.base_path / f"{cleaned}.json"


class LocalStorage:
    """Wrap browser ``localStorage`` so quota and proxy errors become StorageError."""

    def __init__(self, local_storage: Any) -> None:
        self._local_storage = local_storage

    def getItem(self, key: str) -> Optional[str]:
        try:
            value = self._local_storage.getItem(key)
        except Exception as exc:
            raise StorageError(f"localStorage read failed for '{key}': {exc}") from exc
        return None if value is None else str(value)

    def setItem(self, key: str, value: str) -> None:
        try:
            self._local_storage.setItem(key, value)
        except Exception as exc:
            raise StorageError(f"localStorage write failed for '{key}': {exc}") from exc

    def removeItem(self, key: str) -> None:
        try:
            self._local_storage.removeItem(key)
        except Exception as exc:
            raise StorageError(f"localStorage remove failed for '{key}': {exc}") from exc


def _browser_local_storage() -> Optional[Any]:
    try:
        from js import localStorage  # type: ignore
    except ImportError:
        return None
    return localStorage


def open_storage(base_path: Path | str = "data", *, web: bool = IS_WEB):
    """Return the browser backend on web builds, else a file backend."""
    if not web:
        return FileStorage(base_path)
    local_storage = _browser_local_storage()
    if local_storage is None:
        logger.warning(
            "localStorage unavailable in web build; falling back to filesystem storage."
        )
        return FileStorage(base_path)
    return LocalStorage(local_storage)


class ResultStore:
    """Persist the current user's identity and a capped, newest-first result history.

    All values live under ``prefix + key`` as JSON. Failures are logged and
    degrade to a no-op so callers never see storage exceptions.
    """

    USER_KEY = "user"
    HISTORY_KEY = "history"

    def __init__(
        self,
        backend,
        *,
        prefix: str = DEFAULT_PREFIX,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.backend = backend
        self.prefix = prefix
        self.history_limit = max(int(history_limit), 1)
        self.clock = clock

    # ---------- Public API ----------
    def save_identity(self, record: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        data = dict(record)
        data["registered_at"] = self._timestamp()
        if not self._set(self.USER_KEY, data):
            return None
        return data

    def get_identity(self) -> Optional[Dict[str, Any]]:
        data = self._get(self.USER_KEY)
        return data if isinstance(data, dict) else None

    def is_registered(self) -> bool:
        return self.get_identity() is not None

    def append_result(self, record: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        entry = dict(record)
        entry["completed_at"] = self._timestamp()
        history = self.get_history()
        history.insert(0, entry)
        del history[self.history_limit :]
        if not self._set(self.HISTORY_KEY, history):
            return None
        return entry

    def get_history(self) -> List[Dict[str, Any]]:
        data = self._get(self.HISTORY_KEY)
        if not isinstance(data, list):
            return []
        return [entry for entry in data if isinstance(entry, dict)]

    def clear(self) -> bool:
        try:
            self.backend.removeItem(self.prefix + self.USER_KEY)
            self.backend.removeItem(self.prefix + self.HISTORY_KEY)
        except StorageError as exc:
            logger.error("Storage error while clearing data: %s", exc)
            return False
        return True

    def export_data(self) -> Dict[str, Any]:
        return {
            "version": EXPORT_VERSION,
            "exported_at": self._timestamp(),
            "identity": self.get_identity(),
            "history": self.get_history(),
        }

    def import_data(self, doc: Any) -> bool:
        if not isinstance(doc, Mapping):
            logger.error("Import rejected: document was not an object.")
            return False
        ok = True
        identity = doc.get("identity")
        if identity is None:
            identity = doc.get("user")
        if identity is not None:
            if isinstance(identity, Mapping):
                ok = self.save_identity(identity) is not None and ok
            else:
                logger.error("Import skipped identity: expected an object.")
                ok = False
        history = doc.get("history")
        if history is not None:
            if isinstance(history, list):
                ok = self._set(self.HISTORY_KEY, history) and ok
            else:
                logger.error("Import skipped history: expected a list.")
                ok = False
        return ok

    # ---------- Internal helpers ----------
    def _timestamp(self) -> str:
        return self.clock().isoformat()

    def _set(self, key: str, value: Any) -> bool:
        try:
            encoded = json.dumps(value)
            self.backend.setItem(self.prefix + key, encoded)
        except (StorageError, TypeError, ValueError) as exc:
            logger.error("Storage error while saving '%s': %s", key, exc)
            return False
        return True

    def _get(self, key: str) -> Any:
        try:
            raw = self.backend.getItem(self.prefix + key)
            return json.loads(raw) if raw else None
        except (StorageError, ValueError) as exc:
            logger.error("Storage error while reading '%s': %s", key, exc)
            return None
