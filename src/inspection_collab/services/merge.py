"""Reconciliation of local report state with incoming server payloads.

Every merge is driven by the explicit field tables below. A field that is
not listed is never merged, so new fields need an entry here.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from inspection_collab.domain.report import (
    CategorizedReport,
    FlatReport,
    InspectionFields,
    PhotoCategory,
    PhotoEntry,
    ReportPayload,
)
from inspection_collab.timeutils import now_ms

logger = logging.getLogger(__name__)

INSPECTION_FIELDS: tuple[str, ...] = (
    "tag",
    "model",
    "serial_number",
    "delivery_date",
    "customer",
    "description",
    "machine_down",
    "start_date",
    "end_date",
    "work_order",
    "inspector",
    "hour_meter",
    "machine_photo",
    "hour_meter_photo",
    "serial_photo",
)

# Incoming wins whenever truthy.
PHOTO_PRIORITY_FIELDS: tuple[str, ...] = (
    "id",
    "description",
    "pn",
    "serial_number",
    "part_name",
    "quantity",
    "criticality",
    "image_data",
    "edited_image_data",
)

ReportT = TypeVar("ReportT", FlatReport, CategorizedReport)


class MergeOutcome(StrEnum):
    """How a merge affected the local report."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    LOCAL_NEWER = "local_newer"


@dataclass(frozen=True)
class MergeResult(Generic[ReportT]):
    """Merged report and the outcome of the merge."""

    report: ReportT
    outcome: MergeOutcome

    @property
    def changed(self) -> bool:
        """Return true when any merged value differs from the local one."""
        return self.outcome is MergeOutcome.APPLIED


def merge_photo(local: PhotoEntry, incoming: PhotoEntry) -> PhotoEntry:
    """Merge two photo entries occupying the same position."""
    values: dict[str, object] = {
        name: getattr(incoming, name) or getattr(local, name)
        for name in PHOTO_PRIORITY_FIELDS
    }
    values["embedded_photos"] = incoming.embedded_photos or local.embedded_photos
    values["has_additional_parts"] = (
        incoming.has_additional_parts or local.has_additional_parts
    )
    return local.model_copy(update=values)


def merge_photos(
    local: list[PhotoEntry], incoming: list[PhotoEntry]
) -> list[PhotoEntry]:
    """Pair photos by position and merge each pair field by field.

    Both sides must enumerate photos in the same stable order; reordering
    either side before merging pairs unrelated entries.
    """
    if not incoming:
        return list(local)
    if not local:
        return list(incoming)
    merged: list[PhotoEntry] = []
    for index in range(max(len(local), len(incoming))):
        local_photo = local[index] if index < len(local) else None
        incoming_photo = incoming[index] if index < len(incoming) else None
        if local_photo is None:
            merged.append(incoming_photo)
        elif incoming_photo is None:
            merged.append(local_photo)
        else:
            merged.append(merge_photo(local_photo, incoming_photo))
    return merged


def merge_categories(
    local: list[PhotoCategory], incoming: list[PhotoCategory]
) -> list[PhotoCategory]:
    """Merge categories following the incoming list.

    Categories missing from ``incoming`` are dropped, so every push must carry
    all live categories.
    """
    if not incoming:
        return list(local)
    if not local:
        return list(incoming)
    local_by_id = {category.id: category for category in local}
    merged: list[PhotoCategory] = []
    for server_category in incoming:
        local_category = local_by_id.get(server_category.id)
        if local_category is None:
            merged.append(server_category)
            continue
        merged.append(
            server_category.model_copy(
                update={
                    "photos": merge_photos(
                        local_category.photos, server_category.photos
                    ),
                    "additional_parts": server_category.additional_parts
                    or local_category.additional_parts,
                }
            )
        )
    return merged


def merge_field_priority(local: ReportT, payload: ReportPayload) -> MergeResult[ReportT]:
    """Merge where any non-empty incoming value wins.

    Used when the server is trusted to carry the latest truth because local
    changes were already pushed.
    """
    return _merge(
        local,
        payload,
        _adopt_when_filled,
        conclusion_wins=True,
        accept_conclusion=str.strip,
    )


def merge_timestamped(
    local: ReportT,
    payload: ReportPayload,
    server_timestamp: int | None = None,
    clock: Callable[[], int] = now_ms,
) -> MergeResult[ReportT]:
    """Merge honouring whichever side was written last.

    A local edit newer than ``server_timestamp`` makes the merge a no-op:
    local state is expected to be pushed next.
    """
    server_time = clock() if server_timestamp is None else server_timestamp
    local_time = local.last_local_edit
    if local_time > server_time and local_time > 0:
        logger.debug(
            "Local edit is newer than server data, skipping merge",
            extra={"local_time": local_time, "server_time": server_time},
        )
        return MergeResult(report=local, outcome=MergeOutcome.LOCAL_NEWER)
    server_newer = server_time > local_time

    def adopt(current: object, incoming: object) -> bool:
        return _is_filled(incoming) and (not _is_filled(current) or server_newer)

    return _merge(
        local, payload, adopt, conclusion_wins=server_newer, accept_conclusion=bool
    )


def _merge(
    local: ReportT,
    payload: ReportPayload,
    adopt: Callable[[object, object], bool],
    conclusion_wins: bool,
    accept_conclusion: Callable[[str], object],
) -> MergeResult[ReportT]:
    update: dict[str, object] = {}
    if payload.inspection is not None:
        update["inspection"] = _merge_inspection(
            local.inspection, payload.inspection, adopt
        )

    if isinstance(local, FlatReport):
        if payload.photos is not None:
            update["photos"] = merge_photos(local.photos, payload.photos)
            update["photo_count"] = len(update["photos"])
        if payload.additional_parts:
            update["additional_parts"] = payload.additional_parts
    elif payload.categories is not None:
        update["categories"] = merge_categories(local.categories, payload.categories)

    incoming_conclusion = payload.conclusion or ""
    if accept_conclusion(incoming_conclusion) and (
        not local.conclusion or conclusion_wins
    ):
        update["conclusion"] = incoming_conclusion

    merged = local.model_copy(update=update)
    if merged == local:
        return MergeResult(report=local, outcome=MergeOutcome.UNCHANGED)
    logger.debug("Applied server changes to local report")
    return MergeResult(report=merged, outcome=MergeOutcome.APPLIED)


def _merge_inspection(
    local: InspectionFields,
    incoming: InspectionFields,
    adopt: Callable[[object, object], bool],
) -> InspectionFields:
    changes = {
        name: getattr(incoming, name)
        for name in INSPECTION_FIELDS
        if adopt(getattr(local, name), getattr(incoming, name))
    }
    if not changes:
        return local
    return local.model_copy(update=changes)


def _adopt_when_filled(current: object, incoming: object) -> bool:
    return _is_filled(incoming)


def _is_filled(value: object) -> bool:
    return value is not None and value != ""
