"""JSON state file with file locking."""

from __future__ import annotations

import fcntl
import json
import logging
from pathlib import Path
from typing import Any

from tasktimer.core.errors import StoreCorruptError

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".config" / "tasktimer"
STATE_FILE = "tracker.json"


class Store:
    """Reads and writes ``<data_dir>/tracker.json``."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self.data_dir: Path = data_dir if data_dir is not None else DEFAULT_DATA_DIR

    @property
    def path(self) -> Path:
        return self.data_dir / STATE_FILE

    def load(self) -> dict[str, Any]:
        """Return the stored state, or an empty dict when no file exists."""
        if not self.path.exists():
            return {}

        with open(self.path) as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise StoreCorruptError(f"cannot read {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreCorruptError(f"cannot read {self.path}: expected a JSON object")
        return data

    def save(self, state: dict[str, Any]) -> None:
        """Write *state*, creating the data directory if needed."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            json.dump(state, f, indent=2)
        logger.debug("saved state to %s", self.path)
