"""Turn table cells into display specs for the dashboard template."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from .models import Cell, CellKind, TableField, Thumbnail

COUNT_FIELDS = {"Views", "Likes", "Comments"}
TITLE_MAX_CHARS = 60
EMPTY_TEXT = "-"
LINK_SCHEMES = {"http", "https"}
REGENERATE_THUMBNAIL = "regenerate_thumbnail"


@dataclass(frozen=True)
class RenderSpec:
    kind: str
    text: str
    tooltip: Optional[str] = None
    url: Optional[str] = None
    action: Optional[str] = None


def format_number(value: float | int) -> str:
    """Human-readable count: 1500 -> "1.5K", 2300000 -> "2.3M", 55 -> "55"."""
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    if isinstance(value, float) and not value.is_integer():
        return str(value)
    return str(int(value))


def resolve_thumbnail_url(thumbnail: Thumbnail) -> Optional[str]:
    return thumbnail.display_url()


def _plain_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_number(cell: Cell) -> Optional[float | int]:
    if cell.kind is CellKind.NUMBER:
        return cell.value
    if cell.kind is CellKind.TEXT and isinstance(cell.value, str):
        try:
            return float(cell.value)
        except ValueError:
            return None
    return None


def _is_web_url(value) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme.lower() in LINK_SCHEMES and bool(parsed.netloc)


def _truncate(text: str, limit: int = TITLE_MAX_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def format_cell(
    field: TableField, cell: Cell, *, thumbnail_regeneration: bool = False
) -> RenderSpec:
    name = field.name
    value = cell.value
    present = cell.kind is not CellKind.EMPTY and bool(value)

    if name == "thumbnail" and cell.kind is CellKind.THUMBNAILS and value:
        first: Thumbnail = value[0]
        return RenderSpec(
            kind="image",
            text=first.visible_name or "",
            tooltip="Click to generate new thumbnail" if thumbnail_regeneration else None,
            url=resolve_thumbnail_url(first),
            action=REGENERATE_THUMBNAIL if thumbnail_regeneration else None,
        )
    if name == "URL" and cell.kind is CellKind.TEXT and _is_web_url(value):
        return RenderSpec(kind="link", text="View Video", url=value)
    if name == "order" and present:
        return RenderSpec(kind="badge", text=f"#{_plain_text(value)}")
    if name == "Title" and present:
        full = _plain_text(value)
        return RenderSpec(kind="text", text=_truncate(full), tooltip=full)
    if name in COUNT_FIELDS and present:
        number = _as_number(cell)
        if number is not None:
            return RenderSpec(kind="count", text=format_number(number))
    if cell.is_list:
        text = f"[{len(value)} items]" if value else EMPTY_TEXT
        return RenderSpec(kind="items", text=text)
    if cell.kind is CellKind.EMPTY:
        return RenderSpec(kind="text", text=EMPTY_TEXT)
    return RenderSpec(kind="text", text=_plain_text(value))
