"""Report aggregate models shared by clients and the collaboration server."""

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

CATEGORY_SCHEMA_VERSION = 3
FLAT_SCHEMA_VERSION = 2
INITIAL_PHOTO_COUNT = 4
INITIAL_CATEGORY_PHOTO_COUNT = 2

DEFAULT_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("engine", "Engine"),
    ("transmission", "Transmission"),
    ("hydraulics", "Hydraulic system"),
    ("electrical", "Electrical system"),
    ("undercarriage", "Undercarriage"),
    ("cab", "Cab and controls"),
    ("structure", "Frame and structure"),
)
VALID_CATEGORY_IDS = frozenset(category_id for category_id, _ in DEFAULT_CATEGORIES)

Text = Annotated[str, BeforeValidator(lambda value: "" if value is None else value)]
Flag = Annotated[
    bool, BeforeValidator(lambda value: False if value is None else value)
]


def _none_as_empty(value: object) -> object:
    return [] if value is None else value


class _WireModel(BaseModel):
    """Immutable model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        coerce_numbers_to_str=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)


class InspectionFields(_WireModel):
    """Identification fields of the inspected equipment."""

    tag: Text = ""
    model: Text = Field(default="", alias="modelo")
    serial_number: Text = Field(default="", alias="sn")
    delivery_date: Text = Field(default="", alias="entrega")
    customer: Text = Field(default="", alias="cliente")
    description: Text = Field(default="", alias="descricao")
    machine_down: Text = ""
    start_date: Text = Field(default="", alias="data")
    end_date: Text = Field(default="", alias="dataFinal")
    work_order: Text = Field(default="", alias="osExecucao")
    inspector: Text = Field(default="", alias="inspetor")
    hour_meter: Text = Field(default="", alias="horimetro")
    machine_photo: str | None = None
    hour_meter_photo: str | None = Field(default=None, alias="horimetroPhoto")
    serial_photo: str | None = None

    @classmethod
    def resolve_name(cls, key: str) -> str | None:
        """Map a wire alias or attribute name to the attribute name."""
        for name, info in cls.model_fields.items():
            if key in {name, info.alias}:
                return name
        return None


class EmbeddedPhoto(_WireModel):
    """Sub-photo placed inside a photo entry; extra keys pass through."""

    model_config = ConfigDict(extra="allow")

    id: Text = ""
    image_data: str | None = None


class PhotoEntry(_WireModel):
    """Photographic evidence entry with part details."""

    id: Text = ""
    description: Text = ""
    pn: Text = ""
    serial_number: Text = ""
    part_name: Text = ""
    quantity: Text = ""
    criticality: Text = ""
    image_data: str | None = None
    edited_image_data: str | None = None
    embedded_photos: Annotated[
        list[EmbeddedPhoto], BeforeValidator(_none_as_empty)
    ] = Field(default_factory=list)
    has_additional_parts: Flag = False


class AdditionalPart(_WireModel):
    """Part listed alongside the photo evidence."""

    id: Text = ""
    description: Text = ""
    pn: Text = ""
    serial_number: Text = ""
    part_name: Text = ""
    quantity: Text = ""


class PhotoCategory(_WireModel):
    """Category owning its own photos and additional parts."""

    id: Text = ""
    name: Text = ""
    photos: Annotated[list[PhotoEntry], BeforeValidator(_none_as_empty)] = Field(
        default_factory=list
    )
    additional_parts: Annotated[
        list[AdditionalPart], BeforeValidator(_none_as_empty)
    ] = Field(default_factory=list)


def blank_photo(photo_id: str) -> PhotoEntry:
    """Return an empty photo slot."""
    return PhotoEntry(id=photo_id)


def initial_photos(count: int = INITIAL_PHOTO_COUNT) -> list[PhotoEntry]:
    """Return the blank photo slots of a new flat report."""
    return [blank_photo(f"photo-init-{index}") for index in range(count)]


def initial_categories() -> list[PhotoCategory]:
    """Return every default category with its blank photo slots."""
    return [
        PhotoCategory(
            id=category_id,
            name=name,
            photos=[
                blank_photo(f"photo-{category_id}-init-{index}")
                for index in range(INITIAL_CATEGORY_PHOTO_COUNT)
            ],
        )
        for category_id, name in DEFAULT_CATEGORIES
    ]


class ReportPayload(_WireModel):
    """Partial report data received from another participant or the server.

    Sections left as ``None`` were not present in the payload and are never
    merged.
    """

    inspection: InspectionFields | None = None
    photos: list[PhotoEntry] | None = None
    categories: list[PhotoCategory] | None = None
    additional_parts: list[AdditionalPart] | None = None
    conclusion: str | None = None

    @classmethod
    def from_wire(cls, raw: object) -> "ReportPayload | None":
        """Parse a wire payload, returning None when it cannot be read."""
        if not isinstance(raw, dict):
            return None
        try:
            return cls.model_validate(raw)
        except ValidationError:
            return None

    @classmethod
    def from_field(cls, path: str, value: object) -> "ReportPayload | None":
        """Build a single-field payload from a field event path.

        Supported paths are ``conclusion`` and ``inspection.<field>``.
        """
        if path == "conclusion":
            return cls(conclusion="" if value is None else str(value))
        section, _, key = path.partition(".")
        if section != "inspection" or not key:
            return None
        name = InspectionFields.resolve_name(key)
        if name is None:
            return None
        try:
            inspection = InspectionFields.model_validate({name: value})
        except ValidationError:
            return None
        return cls(inspection=inspection)

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase representation without absent sections."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FlatReport(_WireModel):
    """Report whose photos form a single ordered sequence."""

    inspection: InspectionFields = Field(default_factory=InspectionFields)
    photos: list[PhotoEntry] = Field(default_factory=initial_photos)
    photo_count: int = INITIAL_PHOTO_COUNT
    additional_parts: Annotated[
        list[AdditionalPart], BeforeValidator(_none_as_empty)
    ] = Field(default_factory=list)
    conclusion: str = ""
    last_local_edit: int = 0

    def export(self) -> ReportPayload:
        """Return the shareable part of the report."""
        return ReportPayload(
            inspection=self.inspection,
            photos=self.photos,
            additional_parts=self.additional_parts,
            conclusion=self.conclusion,
        )


class CategorizedReport(_WireModel):
    """Report whose photos are grouped into fixed categories."""

    inspection: InspectionFields = Field(default_factory=InspectionFields)
    categories: list[PhotoCategory] = Field(default_factory=initial_categories)
    conclusion: str = ""
    last_local_edit: int = 0

    def export(self) -> ReportPayload:
        """Return the shareable part of the report."""
        return ReportPayload(
            inspection=self.inspection,
            categories=self.categories,
            conclusion=self.conclusion,
        )
