"""Local report controllers that track when the report was last edited."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pydantic import BaseModel

from inspection_collab.domain.report import (
    AdditionalPart,
    CategorizedReport,
    FlatReport,
    InspectionFields,
    PhotoCategory,
    PhotoEntry,
    ReportPayload,
    blank_photo,
    initial_categories,
    initial_photos,
)
from inspection_collab.services.merge import (
    MergeResult,
    ReportT,
    merge_field_priority,
    merge_timestamped,
)
from inspection_collab.timeutils import now_ms

logger = logging.getLogger(__name__)

Listener = Callable[[ReportT], None]
ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class _ReportEditor(ABC, Generic[ReportT]):
    """Owns one immutable report snapshot.

    Local mutations stamp ``last_local_edit``; loading or merging server data
    never does, which is what lets the timestamped merge tell local edits
    apart from accepted remote state.
    """

    state: ReportT
    clock: Callable[[], int] = now_ms
    _listeners: list[Listener] = field(default_factory=list, init=False, repr=False)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot; return an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update_inspection(self, **changes: object) -> ReportT:
        """Update inspection fields by attribute name or wire alias."""
        inspection = _validated_update(self.state.inspection, changes)
        return self._edit(inspection=inspection)

    def set_conclusion(self, text: str) -> ReportT:
        """Replace the conclusion narrative."""
        return self._edit(conclusion=text)

    def set_last_local_edit(self, timestamp: int) -> ReportT:
        """Override the local edit timestamp without stamping."""
        return self._commit(self.state.model_copy(update={"last_local_edit": timestamp}))

    def merge(
        self, payload: ReportPayload, server_timestamp: int | None = None
    ) -> MergeResult[ReportT]:
        """Merge incoming data into the local report."""
        result = self._merge(payload, server_timestamp)
        if result.changed:
            self._commit(result.report)
        return result

    def export(self) -> ReportPayload:
        """Return the shareable payload of the current report."""
        return self.state.export()

    @abstractmethod
    def _merge(
        self, payload: ReportPayload, server_timestamp: int | None
    ) -> MergeResult[ReportT]:
        """Reconcile ``payload`` with the current snapshot."""

    def _edit(self, **update: object) -> ReportT:
        update["last_local_edit"] = self.clock()
        return self._commit(self.state.model_copy(update=update))

    def _commit(self, state: ReportT) -> ReportT:
        self.state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Report listener failed")
        return state


@dataclass
class FlatReportEditor(_ReportEditor[FlatReport]):
    """Controller for reports with a single photo sequence."""

    state: FlatReport = field(default_factory=FlatReport)

    def replace(self, report: FlatReport) -> FlatReport:
        """Bulk replace the report as a local edit."""
        return self._edit(**_shared_fields(report))

    def set_photos(self, photos: Iterable[PhotoEntry]) -> FlatReport:
        """Replace the photo sequence."""
        photos = list(photos)
        return self._edit(photos=photos, photo_count=len(photos))

    def add_photo(self) -> FlatReport:
        """Append a blank photo slot."""
        photos = [*self.state.photos, blank_photo(f"photo-{self.clock()}")]
        return self._edit(photos=photos, photo_count=len(photos))

    def remove_photo(self, photo_id: str) -> FlatReport:
        """Remove a photo by id."""
        photos = [photo for photo in self.state.photos if photo.id != photo_id]
        return self._edit(photos=photos, photo_count=len(photos))

    def update_photo(self, photo_id: str, **changes: object) -> FlatReport:
        """Update fields of one photo."""
        photos = [
            _validated_update(photo, changes) if photo.id == photo_id else photo
            for photo in self.state.photos
        ]
        return self._edit(photos=photos)

    def set_photo_count(self, count: int) -> FlatReport:
        """Resize the photo sequence, keeping existing slots."""
        photos = initial_photos(count)
        photos[: min(count, len(self.state.photos))] = self.state.photos[:count]
        return self._edit(photos=photos, photo_count=count)

    def add_additional_part(self, part: AdditionalPart) -> FlatReport:
        """Append an additional part."""
        return self._edit(additional_parts=[*self.state.additional_parts, part])

    def remove_additional_part(self, part_id: str) -> FlatReport:
        """Remove an additional part by id."""
        parts = [part for part in self.state.additional_parts if part.id != part_id]
        return self._edit(additional_parts=parts)

    def update_additional_part(self, part_id: str, **changes: object) -> FlatReport:
        """Update fields of one additional part."""
        parts = [
            _validated_update(part, changes) if part.id == part_id else part
            for part in self.state.additional_parts
        ]
        return self._edit(additional_parts=parts)

    def set_additional_parts(self, parts: Iterable[AdditionalPart]) -> FlatReport:
        """Replace the additional parts."""
        return self._edit(additional_parts=list(parts))

    def load(self, payload: ReportPayload) -> FlatReport:
        """Replace the report with server data without stamping."""
        photos = payload.photos or initial_photos()
        return self._commit(
            self.state.model_copy(
                update={
                    "inspection": payload.inspection or InspectionFields(),
                    "photos": photos,
                    "photo_count": len(photos),
                    "additional_parts": payload.additional_parts or [],
                    "conclusion": payload.conclusion or "",
                }
            )
        )

    def clear_all(self) -> FlatReport:
        """Reset to a blank report that was never edited locally."""
        return self._commit(FlatReport())

    def _merge(
        self, payload: ReportPayload, server_timestamp: int | None
    ) -> MergeResult[FlatReport]:
        # Non-empty server values always win here.
        return merge_field_priority(self.state, payload)


@dataclass
class CategorizedReportEditor(_ReportEditor[CategorizedReport]):
    """Controller for reports with photos grouped by category."""

    state: CategorizedReport = field(default_factory=CategorizedReport)

    def replace(self, report: CategorizedReport) -> CategorizedReport:
        """Bulk replace the report as a local edit."""
        return self._edit(**_shared_fields(report))

    def set_categories(self, categories: Iterable[PhotoCategory]) -> CategorizedReport:
        """Replace every category."""
        return self._edit(categories=list(categories))

    def add_photo_to_category(self, category_id: str) -> CategorizedReport:
        """Append a blank photo slot to a category."""
        photo = blank_photo(f"photo-{category_id}-{self.clock()}")
        return self._edit_category(
            category_id, lambda category: {"photos": [*category.photos, photo]}
        )

    def remove_photo_from_category(
        self, category_id: str, photo_id: str
    ) -> CategorizedReport:
        """Remove a photo from a category."""
        return self._edit_category(
            category_id,
            lambda category: {
                "photos": [photo for photo in category.photos if photo.id != photo_id]
            },
        )

    def update_photo_in_category(
        self, category_id: str, photo_id: str, **changes: object
    ) -> CategorizedReport:
        """Update fields of one photo in a category."""
        return self._edit_category(
            category_id,
            lambda category: {
                "photos": [
                    _validated_update(photo, changes) if photo.id == photo_id else photo
                    for photo in category.photos
                ]
            },
        )

    def add_additional_part_to_category(
        self, category_id: str, part: AdditionalPart
    ) -> CategorizedReport:
        """Append an additional part to a category."""
        return self._edit_category(
            category_id,
            lambda category: {"additional_parts": [*category.additional_parts, part]},
        )

    def remove_additional_part_from_category(
        self, category_id: str, part_id: str
    ) -> CategorizedReport:
        """Remove an additional part from a category."""
        return self._edit_category(
            category_id,
            lambda category: {
                "additional_parts": [
                    part for part in category.additional_parts if part.id != part_id
                ]
            },
        )

    def update_additional_part_in_category(
        self, category_id: str, part_id: str, **changes: object
    ) -> CategorizedReport:
        """Update fields of one additional part in a category."""
        return self._edit_category(
            category_id,
            lambda category: {
                "additional_parts": [
                    _validated_update(part, changes) if part.id == part_id else part
                    for part in category.additional_parts
                ]
            },
        )

    def load(self, payload: ReportPayload) -> CategorizedReport:
        """Replace the report with server data without stamping."""
        return self._commit(
            self.state.model_copy(
                update={
                    "inspection": payload.inspection or InspectionFields(),
                    "categories": payload.categories or initial_categories(),
                    "conclusion": payload.conclusion or "",
                }
            )
        )

    def clear_all(self) -> CategorizedReport:
        """Reset to a blank report that was never edited locally."""
        return self._commit(CategorizedReport())

    def _merge(
        self, payload: ReportPayload, server_timestamp: int | None
    ) -> MergeResult[CategorizedReport]:
        return merge_timestamped(self.state, payload, server_timestamp, self.clock)

    def _edit_category(
        self,
        category_id: str,
        change: Callable[[PhotoCategory], dict[str, object]],
    ) -> CategorizedReport:
        categories = [
            category.model_copy(update=change(category))
            if category.id == category_id
            else category
            for category in self.state.categories
        ]
        return self._edit(categories=categories)


def _validated_update(model: ModelT, changes: Mapping[str, object]) -> ModelT:
    """Return a copy of ``model`` with ``changes`` applied and validated."""
    fields = type(model).model_fields
    names = {info.alias: name for name, info in fields.items() if info.alias}
    values = model.model_dump(by_alias=False)
    for key, value in changes.items():
        values[names.get(key, key)] = value
    return type(model).model_validate(values)


def _shared_fields(report: FlatReport | CategorizedReport) -> dict[str, object]:
    return {
        name: getattr(report, name)
        for name in type(report).model_fields
        if name != "last_local_edit"
    }
