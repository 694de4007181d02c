"""Versioned local persistence for report snapshots."""

import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from inspection_collab.domain.report import (
    CATEGORY_SCHEMA_VERSION,
    FLAT_SCHEMA_VERSION,
    VALID_CATEGORY_IDS,
    CategorizedReport,
    FlatReport,
)
from inspection_collab.services.editor import CategorizedReportEditor, FlatReportEditor

logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    """Storage interface for a single persisted snapshot envelope."""

    def read(self) -> dict[str, object] | None:
        """Return the stored envelope, if present."""

    def write(self, envelope: dict[str, object]) -> None:
        """Replace the stored envelope."""


def migrate_categorized_state(state: dict[str, object]) -> dict[str, object]:
    """Drop categories that are not part of the current category set."""
    categories = state.get("categories")
    if not isinstance(categories, list):
        return state
    kept = [
        category
        for category in categories
        if isinstance(category, dict) and category.get("id") in VALID_CATEGORY_IDS
    ]
    if len(kept) != len(categories):
        logger.info(
            "Dropped unknown report categories",
            extra={"dropped": len(categories) - len(kept)},
        )
    return {**state, "categories": kept}


@dataclass
class CategorizedReportPersistence:
    """Persists categorized report snapshots on every accepted transition."""

    store: SnapshotStore
    version: int = CATEGORY_SCHEMA_VERSION

    def restore(self) -> CategorizedReport | None:
        """Load the stored report, dropping categories no longer valid."""
        state = _read_state(self.store)
        if state is None:
            return None
        try:
            return CategorizedReport.model_validate(migrate_categorized_state(state))
        except ValidationError:
            logger.warning("Stored report is unreadable, starting fresh")
            return None

    def save(self, report: CategorizedReport) -> None:
        """Write the report snapshot."""
        self.store.write({"version": self.version, "state": report.to_wire()})

    def attach(self, editor: CategorizedReportEditor) -> None:
        """Restore into ``editor`` and persist every later transition."""
        restored = self.restore()
        if restored is not None:
            editor.state = restored
        editor.subscribe(self.save)


@dataclass
class FlatReportPersistence:
    """Persists flat report snapshots on every accepted transition."""

    store: SnapshotStore
    version: int = FLAT_SCHEMA_VERSION

    def restore(self) -> FlatReport | None:
        """Load the stored report."""
        state = _read_state(self.store)
        if state is None:
            return None
        try:
            return FlatReport.model_validate(state)
        except ValidationError:
            logger.warning("Stored report is unreadable, starting fresh")
            return None

    def save(self, report: FlatReport) -> None:
        """Write the report snapshot."""
        self.store.write({"version": self.version, "state": report.to_wire()})

    def attach(self, editor: FlatReportEditor) -> None:
        """Restore into ``editor`` and persist every later transition."""
        restored = self.restore()
        if restored is not None:
            editor.state = restored
        editor.subscribe(self.save)


def _read_state(store: SnapshotStore) -> dict[str, object] | None:
    envelope = store.read()
    if not envelope:
        return None
    state = envelope.get("state")
    if not isinstance(state, dict):
        logger.warning("Stored report envelope has no state, starting fresh")
        return None
    return state
