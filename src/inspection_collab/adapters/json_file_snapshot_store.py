"""JSON file storage for local report snapshots."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from inspection_collab.services.local_store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class JsonFileSnapshotStore(SnapshotStore):
    """Keeps one snapshot envelope in a JSON file."""

    path: Path

    def read(self) -> dict[str, object] | None:
        """Return the stored envelope, or None when missing or unreadable."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt snapshot file", extra={"path": str(self.path)})
            return None
        return envelope if isinstance(envelope, dict) else None

    def write(self, envelope: dict[str, object]) -> None:
        """Atomically replace the snapshot file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(envelope), encoding="utf-8")
        os.replace(tmp_path, self.path)
