"""
State stores for encrypted item records.

A store only keeps records by name. It never seals or fingerprints; the
resource layer rebuilds Items from records and checks them on the way out.
Records hold the plaintext and ciphertext, so a store's location must be
protected like any other secret state.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from sodium_item.errors import StateError

logger = logging.getLogger(__name__)


class StateStore(ABC):
    """Abstract base class for item record storage."""

    @abstractmethod
    def get(self, name: str) -> dict | None:
        """Return the record stored under name, or None."""

    @abstractmethod
    def put(self, name: str, record: dict) -> None:
        """Store a record under name, replacing any previous one."""

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Remove the record under name. Returns False if there was none."""

    @abstractmethod
    def names(self) -> list[str]:
        """List stored item names."""


class MemoryStateStore(StateStore):
    """Keeps records in a dict. Useful for tests and one-shot runs."""

    def __init__(self):
        self._records: dict[str, dict] = {}

    def get(self, name: str) -> dict | None:
        record = self._records.get(name)
        return dict(record) if record is not None else None

    def put(self, name: str, record: dict) -> None:
        self._records[name] = dict(record)

    def delete(self, name: str) -> bool:
        return self._records.pop(name, None) is not None

    def names(self) -> list[str]:
        return sorted(self._records)


class FileStateStore(StateStore):
    """
    One JSON file per item in a local directory.

    Args:
        state_dir: Directory holding <name>.item.json files.
    """

    SUFFIX = ".item.json"

    def __init__(self, state_dir: str | Path):
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name.startswith("."):
            raise ValueError(f"Invalid item name: {name!r}")
        return self.state_dir / f"{name}{self.SUFFIX}"

    def get(self, name: str) -> dict | None:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            record = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StateError(f"Stored item {name!r} is not valid JSON: {e.msg}") from e
        except UnicodeDecodeError as e:
            raise StateError(f"Stored item {name!r} is not valid UTF-8: {e.reason}") from e
        if not isinstance(record, dict):
            raise StateError(f"Stored item {name!r} is not a JSON object")
        return record

    def put(self, name: str, record: dict) -> None:
        path = self._path(name)
        # Write then rename, so a crash never leaves half a record
        fd, tmp = tempfile.mkstemp(dir=self.state_dir, prefix=".tmp-", suffix=self.SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2, sort_keys=True)
            os.chmod(tmp, 0o600)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.debug("wrote %s", path)

    def delete(self, name: str) -> bool:
        path = self._path(name)
        if not path.exists():
            return False
        path.unlink()
        logger.debug("removed %s", path)
        return True

    def names(self) -> list[str]:
        return sorted(
            f.name[:-len(self.SUFFIX)]
            for f in self.state_dir.glob(f"*{self.SUFFIX}")
            if not f.name.startswith(".")
        )
