"""Data models for the video table and the generation workflows."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Field types whose values the table API serializes as decimal strings.
NUMERIC_FIELD_TYPES = {"number", "count", "rating", "autonumber", "duration"}
FILE_FIELD_TYPES = {"file"}


class TableField(BaseModel):
    """Column descriptor returned by the table API."""

    id: int
    name: str
    type: str
    primary: bool = False


class ThumbnailSize(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: Optional[str] = None


class ThumbnailVariants(BaseModel):
    model_config = ConfigDict(extra="allow")

    small: Optional[ThumbnailSize] = None


class Thumbnail(BaseModel):
    """Attached media reference with optional size variants."""

    model_config = ConfigDict(extra="allow")

    url: Optional[str] = None
    visible_name: Optional[str] = None
    thumbnails: Optional[ThumbnailVariants] = None

    def display_url(self) -> Optional[str]:
        """Full-size URL first, then the small variant."""
        if self.url:
            return self.url
        if self.thumbnails and self.thumbnails.small:
            return self.thumbnails.small.url
        return None


class CellKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    THUMBNAILS = "thumbnails"
    LIST = "list"
    EMPTY = "empty"


class Cell(BaseModel):
    """A row value tagged with how it should be interpreted."""

    kind: CellKind
    value: Any = None

    @property
    def is_list(self) -> bool:
        return self.kind in (CellKind.THUMBNAILS, CellKind.LIST)


def _parse_number(raw: str) -> Optional[float | int]:
    try:
        number = float(raw)
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


def _looks_like_file(item: Any) -> bool:
    return isinstance(item, dict) and ("url" in item or "thumbnails" in item)


def tag_value(value: Any, field_type: Optional[str] = None) -> Cell:
    """
    Classify a raw JSON value using the field's declared type, then its shape.

    Numeric field types arrive as decimal strings and are parsed; file fields
    and lists of file-like objects become thumbnail lists. Select options
    (``{"id": .., "value": ..}``) collapse to their visible value.
    """
    if value is None or value == "":
        return Cell(kind=CellKind.EMPTY, value=value)
    if isinstance(value, bool):
        return Cell(kind=CellKind.BOOLEAN, value=value)
    if isinstance(value, list):
        if field_type in FILE_FIELD_TYPES or (value and all(_looks_like_file(i) for i in value)):
            thumbs = [Thumbnail.model_validate(item) for item in value if isinstance(item, dict)]
            return Cell(kind=CellKind.THUMBNAILS, value=thumbs)
        return Cell(kind=CellKind.LIST, value=value)
    if isinstance(value, (int, float)):
        return Cell(kind=CellKind.NUMBER, value=value)
    if isinstance(value, str) and field_type in NUMERIC_FIELD_TYPES:
        parsed = _parse_number(value)
        if parsed is not None:
            return Cell(kind=CellKind.NUMBER, value=parsed)
    if isinstance(value, dict) and "value" in value:
        return tag_value(value["value"], None)
    return Cell(kind=CellKind.TEXT, value=value)


class Row(BaseModel):
    """One record of the video table, keyed by field name."""

    id: int
    order: Optional[str] = None
    cells: Dict[str, Cell] = Field(default_factory=dict)
    values: Dict[str, Any] = Field(
        default_factory=dict, description="Raw JSON values as returned by the API."
    )

    @classmethod
    def from_api(cls, payload: Mapping[str, Any], fields: Sequence[TableField] = ()) -> "Row":
        types = {field.name: field.type for field in fields}
        values = {k: v for k, v in payload.items() if k not in ("id", "order")}
        cells = {name: tag_value(raw, types.get(name)) for name, raw in values.items()}
        order = payload.get("order")
        return cls(
            id=payload.get("id"),
            order=None if order is None else str(order),
            cells=cells,
            values=values,
        )

    def cell(self, name: str) -> Cell:
        if name == "order":
            return tag_value(self.order)
        return self.cells.get(name) or Cell(kind=CellKind.EMPTY)

    def raw(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def number(self, name: str) -> float | int:
        """Numeric value of a column, 0 when missing or not a number."""
        cell = self.cell(name)
        if cell.kind is CellKind.NUMBER:
            return cell.value
        if cell.kind is CellKind.TEXT and isinstance(cell.value, str):
            return _parse_number(cell.value) or 0
        return 0


class RowPage(BaseModel):
    """One page of the rows listing."""

    count: int
    next: Optional[str] = None
    previous: Optional[str] = None
    results: List[Row]


class GeneratedTitle(BaseModel):
    """A title candidate; ``id`` is its 1-based position in the response."""

    id: str
    title: str
    score: Optional[int] = Field(
        None, description="Cosmetic confidence shown next to the title; not a ranking."
    )


class ThumbnailResult(BaseModel):
    image_url: str


VideoDuration = Literal["any", "short", "medium", "long"]
SearchOrder = Literal["relevance", "date", "viewCount", "rating", "title", "videoCount"]
MaxResults = Literal[5, 10, 25, 50]

# Attribute name -> payload key expected by the search workflow.
_SEARCH_KEYS = {
    "region_code": "regionCode",
    "relevance_language": "relevanceLanguage",
    "video_duration": "videoDuration",
    "published_after": "publishedAfter",
    "published_before": "publishedBefore",
    "order": "order",
    "max_results": "maxResults",
}


def _isoformat_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SearchOptions(BaseModel):
    """Advanced search filters; defaults mean "let the provider decide"."""

    region_code: str = ""
    relevance_language: str = ""
    video_duration: VideoDuration = "any"
    published_after: Optional[datetime] = None
    published_before: Optional[datetime] = None
    order: SearchOrder = "relevance"
    max_results: MaxResults = 25

    @field_validator("region_code", "relevance_language", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("published_after", "published_before", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_window(self) -> "SearchOptions":
        after, before = self.published_after, self.published_before
        if after and before and _isoformat_utc(after) >= _isoformat_utc(before):
            raise ValueError("published_after must be earlier than published_before.")
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Only the options that differ from their defaults."""
        payload: Dict[str, Any] = {}
        for name, key in _SEARCH_KEYS.items():
            value = getattr(self, name)
            if value == type(self).model_fields[name].default:
                continue
            if isinstance(value, datetime):
                value = _isoformat_utc(value)
            payload[key] = value
        return payload
