"""
SpecGen Domain Entities.

- Category: top-level grouping of generation parameters
- Parameter: one user-selectable input belonging to a category
- GeneratedContent: immutable record of one generation attempt
- Setting: typed key/value configuration row
- MigrationRecord: applied schema migration

Parameter values are a tagged variant (ListValues | ToggleValues) resolved
once, when a row is read or a request is accepted.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from specgen.errors import ParameterValidationError

TITLE_MAX_LENGTH = 200
FICTION_MAX_LENGTH = 50000
IMAGE_PROMPT_MAX_LENGTH = 1000


class CategoryVisibility(str, Enum):
    SHOW = "Show"
    HIDE = "Hide"


class ParameterType(str, Enum):
    SELECT = "select"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    RANGE = "range"


class ParameterVisibility(str, Enum):
    BASIC = "Basic"
    ADVANCED = "Advanced"
    HIDE = "Hide"


class ContentType(str, Enum):
    """What a generation request produced."""

    FICTION = "fiction"
    IMAGE = "image"
    COMBINED = "combined"


class ContentStatus(str, Enum):
    """
    Generated content status.

    Records are written once with their final status; a failed record is
    never turned into a completed one in place.
    """

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class SettingDataType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Get current UTC time as a fixed-width ISO string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def generate_id(name: str) -> str:
    """
    Build a URL-safe slug from a display name.

    "Science Fiction!" -> "science-fiction"
    """
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


# =============================================================================
# Parameter value variants
# =============================================================================

@dataclass
class ValueOption:
    """One choice of a select-style parameter."""

    label: str
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"label": self.label}
        if self.id is not None:
            data["id"] = self.id
        return data


@dataclass
class ListValues:
    """Ordered list of choices."""

    items: List[ValueOption] = field(default_factory=list)

    kind = "list"

    def to_json(self) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in self.items]


@dataclass
class ToggleValues:
    """Labels for the on/off states of a boolean toggle."""

    on: str
    off: str

    kind = "toggle"

    def to_json(self) -> Dict[str, str]:
        return {"on": self.on, "off": self.off}


ParameterValues = Union[ListValues, ToggleValues]


def parse_parameter_values(raw: Any) -> Optional[ParameterValues]:
    """
    Resolve a raw JSON value into ListValues or ToggleValues.

    Accepts a list of {label, id?} objects (plain strings are taken as
    labels) or an {on, off} object. None stays None.

    Raises:
        ParameterValidationError: If the shape matches neither variant
    """
    if raw is None:
        return None
    if isinstance(raw, (ListValues, ToggleValues)):
        return raw

    if isinstance(raw, list):
        items = []
        for entry in raw:
            if isinstance(entry, str):
                items.append(ValueOption(label=entry))
            elif isinstance(entry, dict) and isinstance(entry.get("label"), str):
                option_id = entry.get("id")
                items.append(ValueOption(
                    label=entry["label"],
                    id=str(option_id) if option_id is not None else None,
                ))
            else:
                raise ParameterValidationError(f"Invalid parameter value entry: {entry!r}")
        return ListValues(items=items)

    if isinstance(raw, dict) and "on" in raw and "off" in raw:
        return ToggleValues(on=str(raw["on"]), off=str(raw["off"]))

    raise ParameterValidationError(f"Unrecognized parameter_values shape: {raw!r}")


@dataclass
class ParameterConfig:
    """Numeric bounds for number/range parameters."""

    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ParameterConfig"]:
        if data is None:
            return None
        if isinstance(data, ParameterConfig):
            return data
        if not isinstance(data, dict):
            raise ParameterValidationError(f"parameter_config must be an object: {data!r}")
        try:
            return cls(
                min=float(data["min"]) if data.get("min") is not None else None,
                max=float(data["max"]) if data.get("max") is not None else None,
                step=float(data["step"]) if data.get("step") is not None else None,
            )
        except (TypeError, ValueError) as e:
            raise ParameterValidationError(f"parameter_config bounds must be numeric: {e}")

    def to_dict(self) -> Dict[str, float]:
        return {
            key: value
            for key, value in (("min", self.min), ("max", self.max), ("step", self.step))
            if value is not None
        }

    def is_empty(self) -> bool:
        return self.min is None and self.max is None and self.step is None


# =============================================================================
# Entities
# =============================================================================

@dataclass
class Category:
    """Grouping of parameters shown together in the generator form."""

    id: str
    name: str
    description: str = ""
    visibility: CategoryVisibility = CategoryVisibility.SHOW
    year: Optional[int] = None
    sort_order: int = 0
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    @classmethod
    def create(
        cls,
        name: str,
        description: str = "",
        visibility: Union[str, CategoryVisibility] = CategoryVisibility.SHOW,
        year: Optional[int] = None,
        sort_order: int = 0,
        category_id: Optional[str] = None,
    ) -> "Category":
        """Create a new Category, deriving the id from the name if not given."""
        return cls(
            id=category_id or generate_id(name),
            name=name,
            description=description,
            visibility=CategoryVisibility(visibility),
            year=year,
            sort_order=sort_order,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "visibility": self.visibility.value,
            "year": self.year,
            "sort_order": self.sort_order,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class Parameter:
    """
    A single generation input.

    Shape rules (checked by validate()):
    - select requires a non-empty ListValues
    - boolean accepts only ToggleValues (or nothing)
    - range requires config with min and max
    - ToggleValues is only valid for boolean
    """

    id: str
    name: str
    type: ParameterType
    category_id: str
    description: str = ""
    visibility: ParameterVisibility = ParameterVisibility.BASIC
    required: bool = False
    sort_order: int = 0
    parameter_values: Optional[ParameterValues] = None
    parameter_config: Optional[ParameterConfig] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    @classmethod
    def create(
        cls,
        name: str,
        type: Union[str, ParameterType],
        category_id: str,
        description: str = "",
        visibility: Union[str, ParameterVisibility] = ParameterVisibility.BASIC,
        required: bool = False,
        sort_order: int = 0,
        parameter_values: Any = None,
        parameter_config: Any = None,
        parameter_id: Optional[str] = None,
    ) -> "Parameter":
        """Create a new Parameter, deriving the id from category and name if not given."""
        try:
            param_type = ParameterType(type)
            param_visibility = ParameterVisibility(visibility)
        except ValueError as e:
            raise ParameterValidationError(str(e))

        parameter = cls(
            id=parameter_id or generate_id(f"{category_id} {name}"),
            name=name,
            type=param_type,
            category_id=category_id,
            description=description,
            visibility=param_visibility,
            required=required,
            sort_order=sort_order,
            parameter_values=parse_parameter_values(parameter_values),
            parameter_config=ParameterConfig.from_dict(parameter_config),
        )
        parameter.validate()
        return parameter

    def validate(self) -> None:
        """
        Check that values/config match the parameter type.

        Raises:
            ParameterValidationError: On any shape mismatch
        """
        values = self.parameter_values
        config = self.parameter_config

        if isinstance(values, ToggleValues) and self.type != ParameterType.BOOLEAN:
            raise ParameterValidationError(
                f"Parameter '{self.id}': on/off values are only valid for boolean parameters"
            )

        if self.type == ParameterType.SELECT:
            if not isinstance(values, ListValues) or not values.items:
                raise ParameterValidationError(
                    f"Parameter '{self.id}': select requires a non-empty value list"
                )
        elif self.type == ParameterType.BOOLEAN:
            if values is not None and not isinstance(values, ToggleValues):
                raise ParameterValidationError(
                    f"Parameter '{self.id}': boolean values must be an on/off pair"
                )
        elif self.type == ParameterType.RANGE:
            if config is None or config.min is None or config.max is None:
                raise ParameterValidationError(
                    f"Parameter '{self.id}': range requires min and max bounds"
                )

        if config is not None and config.min is not None and config.max is not None:
            if config.min > config.max:
                raise ParameterValidationError(
                    f"Parameter '{self.id}': min ({config.min}) exceeds max ({config.max})"
                )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "visibility": self.visibility.value,
            "category_id": self.category_id,
            "required": self.required,
            "sort_order": self.sort_order,
            "parameter_values": self.parameter_values.to_json() if self.parameter_values else None,
            "parameter_config": self.parameter_config.to_dict() if self.parameter_config else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class GeneratedContent:
    """
    Immutable record of a generation attempt.

    Blob mode: image_blob/image_thumbnail populated, sizes > 0.
    URL mode: blobs empty, the provider URL is kept in metadata.
    """

    id: str
    title: str
    fiction_content: str = ""
    type: Optional[ContentType] = None
    year: Optional[int] = None
    image_blob: Optional[bytes] = None
    image_thumbnail: Optional[bytes] = None
    image_format: str = "png"
    image_size_bytes: int = 0
    thumbnail_size_bytes: int = 0
    image_prompt: Optional[str] = None
    prompt_data: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    generation_time: int = 0
    word_count: int = 0
    status: ContentStatus = ContentStatus.COMPLETED
    error_message: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    @classmethod
    def create(cls, title: str, **kwargs: Any) -> "GeneratedContent":
        """Create a new GeneratedContent with generated ID."""
        return cls(id=generate_uuid(), title=title, **kwargs)

    @property
    def has_image(self) -> bool:
        return self.image_size_bytes > 0

    def image_urls(self) -> Dict[str, Optional[str]]:
        """Derived image endpoints; present only when a blob is stored."""
        if not self.has_image:
            return {"image_url": None, "thumbnail_url": None}
        return {
            "image_url": f"/api/images/{self.id}/original",
            "thumbnail_url": f"/api/images/{self.id}/thumbnail",
        }


@dataclass
class Setting:
    """Typed setting row. value is the encoded string as stored."""

    key: str
    value: str
    data_type: SettingDataType = SettingDataType.STRING
    description: str = ""
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass
class MigrationRecord:
    """Applied migration, as stored in the migrations table."""

    version: str
    filename: str
    applied_at: str
