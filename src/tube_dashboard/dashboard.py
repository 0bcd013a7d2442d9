"""Dashboard view: load the table, show stats, delete rows and clear results.

State machine:
- load: LOADING -> READY | LOAD_ERROR (fields first, then rows; any failure halts)
- per row: idle -> deleting -> removed | idle (with an error toast)
- bulk clear: idle -> clearing -> navigate to search | idle (with an error toast)

Every user action catches its own DashboardError and reports it through the
Notifier; only a failed load replaces the whole view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

import httpx

from .config import Settings
from .errors import BulkDeleteError, ConfigError, DashboardError, ValidationError
from .formatter import RenderSpec, format_cell, format_number
from .models import Row, TableField
from .notifications import Notifier
from .table_client import TableClient
from .webhooks import GenerationClient

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]

DELETE_ROW_PROMPT = "Are you sure you want to delete this row?"
CLEAR_ALL_PROMPT = (
    "Are you sure you want to delete all results? This action cannot be undone."
)


class LoadState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    LOAD_ERROR = "load_error"


@dataclass(frozen=True)
class DashboardStats:
    videos: int
    views: float
    likes: float
    comments: float

    @classmethod
    def from_rows(cls, rows: List[Row]) -> "DashboardStats":
        return cls(
            videos=len(rows),
            views=sum(row.number("Views") for row in rows),
            likes=sum(row.number("Likes") for row in rows),
            comments=sum(row.number("Comments") for row in rows),
        )

    def formatted(self) -> dict[str, str]:
        return {
            "videos": str(self.videos),
            "views": format_number(self.views),
            "likes": format_number(self.likes),
            "comments": format_number(self.comments),
        }


@dataclass(frozen=True)
class RenderedRow:
    row: Row
    cells: List[RenderSpec]
    deleting: bool


class DashboardView:
    """Owns the loaded fields/rows and the set of row ids with a delete in flight."""

    def __init__(
        self,
        table: Optional[TableClient],
        notifier: Optional[Notifier] = None,
        *,
        generation: Optional[GenerationClient] = None,
        thumbnail_regeneration: bool = True,
        setup_error: Optional[str] = None,
    ) -> None:
        self.table = table
        self.notifier = notifier or Notifier()
        self.generation = generation
        self.thumbnail_regeneration = thumbnail_regeneration
        self.setup_error = setup_error
        self.state = LoadState.LOADING
        self.load_error: Optional[str] = None
        self.fields: List[TableField] = []
        self.rows: List[Row] = []
        self.deleting: Set[int] = set()
        self.clearing = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        notifier: Optional[Notifier] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        thumbnail_regeneration: bool = True,
    ) -> "DashboardView":
        """Build the view; missing table configuration becomes a setup error."""
        table: Optional[TableClient] = None
        setup_error: Optional[str] = None
        try:
            table = TableClient.from_settings(settings, transport=transport)
        except ConfigError as exc:
            setup_error = str(exc)
        return cls(
            table,
            notifier,
            generation=GenerationClient(settings, transport=transport),
            thumbnail_regeneration=thumbnail_regeneration,
            setup_error=setup_error,
        )

    # --- Loading ------------------------------------------------------------

    async def load(self) -> LoadState:
        self.state = LoadState.LOADING
        self.load_error = None
        if self.table is None:
            self.state = LoadState.LOAD_ERROR
            self.load_error = self.setup_error or "Table API not configured."
            return self.state
        try:
            fields = await self.table.list_fields()
            rows = await self.table.list_all_rows(fields)
        except DashboardError as exc:
            logger.warning("Dashboard load failed: %s", exc)
            self.state = LoadState.LOAD_ERROR
            self.load_error = str(exc)
            return self.state
        self.fields = fields
        self.rows = rows
        self.state = LoadState.READY
        logger.info("Loaded %d fields and %d rows", len(fields), len(rows))
        return self.state

    async def ensure_loaded(self) -> LoadState:
        if self.state is not LoadState.READY:
            return await self.load()
        return self.state

    # --- Derived data -------------------------------------------------------

    @property
    def stats(self) -> DashboardStats:
        return DashboardStats.from_rows(self.rows)

    def find_row(self, row_id: int) -> Optional[Row]:
        return next((row for row in self.rows if row.id == row_id), None)

    def is_deleting(self, row_id: int) -> bool:
        return row_id in self.deleting

    def rendered_rows(self) -> List[RenderedRow]:
        return [
            RenderedRow(
                row=row,
                cells=[
                    format_cell(
                        field,
                        row.cell(field.name),
                        thumbnail_regeneration=self.thumbnail_regeneration,
                    )
                    for field in self.fields
                ],
                deleting=self.is_deleting(row.id),
            )
            for row in self.rows
        ]

    def header(self) -> List[Tuple[str, str]]:
        return [(field.name, field.type) for field in self.fields]

    # --- Actions ------------------------------------------------------------

    async def delete_row(self, row_id: int, confirm: ConfirmFn) -> bool:
        """Delete one row after confirmation; True when it was removed."""
        if row_id in self.deleting or self.clearing:
            logger.debug("Delete of row %s already in flight; ignoring", row_id)
            return False
        if self.find_row(row_id) is None:
            self.notifier.error(f"Row {row_id} is not on the dashboard.")
            return False
        if not confirm(DELETE_ROW_PROMPT):
            return False

        # Marked before the await so a second click sees it in flight.
        self.deleting.add(row_id)
        try:
            await self.table.delete_row(row_id)
        except DashboardError as exc:
            self.notifier.error(f"Failed to delete row. {exc}")
            return False
        finally:
            self.deleting.discard(row_id)

        self.rows = [row for row in self.rows if row.id != row_id]
        self.notifier.success("Row deleted successfully!")
        return True

    async def clear_all(self, confirm: ConfirmFn) -> bool:
        """
        Delete every row; True means the caller should navigate to search.

        With no rows this is a no-op that succeeds without asking or calling
        the API, so clearing twice in a row never fails.
        """
        if self.clearing:
            return False
        if not self.rows:
            self.notifier.info("No results to clear.")
            return True
        if not confirm(CLEAR_ALL_PROMPT):
            return False

        ids = [row.id for row in self.rows]
        self.clearing = True
        self.deleting.update(ids)
        try:
            await self.table.delete_all(ids)
        except BulkDeleteError as exc:
            removed = set(exc.deleted)
            self.rows = [row for row in self.rows if row.id not in removed]
            self.notifier.error(f"Failed to clear results. {exc}")
            return False
        except DashboardError as exc:
            self.notifier.error(f"Failed to clear results. {exc}")
            return False
        finally:
            self.clearing = False
            self.deleting.difference_update(ids)

        self.rows = []
        self.notifier.success("All results cleared successfully!")
        return True

    async def request_thumbnail_assets(self) -> bool:
        if self.generation is None:
            self.notifier.error("Generate Images webhook URL not configured.")
            return False
        try:
            await self.generation.request_thumbnail_assets(self.rows)
        except (ConfigError, ValidationError) as exc:
            self.notifier.error(str(exc))
            return False
        except DashboardError as exc:
            self.notifier.error(f"Failed to generate thumbnail assets. {exc}")
            return False
        self.notifier.success("Thumbnail asset generation request sent successfully!")
        return True
