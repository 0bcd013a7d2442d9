"""Generation panels: AI title candidates and AI thumbnail for a row."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Protocol, Sequence, Set

from .errors import ConfigError, DashboardError, ValidationError
from .models import GeneratedTitle, Row
from .notifications import Notifier
from .webhooks import DEFAULT_TITLE_MODEL, TITLE_MODELS, GenerationClient


class Clipboard(Protocol):
    def write_text(self, text: str) -> None: ...


class PageClipboard:
    """Holds copied text until the next page render hands it to the browser."""

    def __init__(self) -> None:
        self.pending: Optional[str] = None

    def write_text(self, text: str) -> None:
        self.pending = text

    def take(self) -> Optional[str]:
        text, self.pending = self.pending, None
        return text


class TitleStep(str, Enum):
    FORM = "form"
    SUBMITTING = "submitting"
    RESULTS = "results"
    CLOSED = "closed"


class TitleModal:
    """Form -> Submitting -> Results -> Form (back) | Closed."""

    models = TITLE_MODELS

    def __init__(
        self,
        client: GenerationClient,
        notifier: Notifier,
        clipboard: Clipboard,
        context: Sequence[Row] = (),
    ) -> None:
        self.client = client
        self.notifier = notifier
        self.clipboard = clipboard
        self.context = list(context)
        self._reset()
        self.step = TitleStep.FORM

    def open(self, context: Sequence[Row]) -> None:
        """Start over on the form with fresh table context."""
        self._reset()
        self.context = list(context)
        self.step = TitleStep.FORM

    def _reset(self) -> None:
        self.description = ""
        self.special_instructions = ""
        self.model = DEFAULT_TITLE_MODEL
        self.titles: List[GeneratedTitle] = []
        self.selected: Set[str] = set()
        self.copied: Set[str] = set()

    async def submit(
        self,
        description: str,
        special_instructions: str = "",
        model: str = DEFAULT_TITLE_MODEL,
    ) -> bool:
        if self.step is TitleStep.SUBMITTING:
            return False
        self.description = description
        self.special_instructions = special_instructions
        self.model = model
        self.step = TitleStep.SUBMITTING
        try:
            titles = await self.client.generate_titles(
                description, special_instructions, model, self.context
            )
        except (ConfigError, ValidationError) as exc:
            self.step = TitleStep.FORM
            self.notifier.error(str(exc))
            return False
        except DashboardError as exc:
            self.step = TitleStep.FORM
            self.notifier.error(f"Failed to generate titles. {exc}")
            return False
        self.titles = titles
        self.selected = set()
        self.copied = set()
        self.step = TitleStep.RESULTS
        self.notifier.success("Titles generated successfully!")
        return True

    def toggle(self, title_id: str) -> None:
        if title_id in self.selected:
            self.selected.discard(title_id)
        elif any(title.id == title_id for title in self.titles):
            self.selected.add(title_id)

    def selected_titles(self) -> List[GeneratedTitle]:
        """Selected titles in response order."""
        return [title for title in self.titles if title.id in self.selected]

    def copy_title(self, title_id: str) -> bool:
        title = next((t for t in self.titles if t.id == title_id), None)
        if title is None:
            self.notifier.error("Failed to copy title")
            return False
        self.clipboard.write_text(title.title)
        self.copied.add(title_id)
        self.notifier.success("Title copied to clipboard!")
        return True

    def copy_selected(self) -> bool:
        if not self.selected:
            self.notifier.error("Please select at least one title to copy.")
            return False
        chosen = self.selected_titles()
        self.clipboard.write_text("\n".join(title.title for title in chosen))
        self.notifier.success(f"Copied {len(chosen)} title(s) to clipboard!")
        return True

    def accept(self) -> Optional[List[GeneratedTitle]]:
        """Return the selected titles and close, or None on an empty selection."""
        if not self.selected:
            self.notifier.error("Please select at least one title.")
            return None
        chosen = self.selected_titles()
        self.notifier.success(f"Accepted {len(chosen)} title(s)")
        self.close()
        return chosen

    def back(self) -> None:
        if self.step is TitleStep.RESULTS:
            self.step = TitleStep.FORM

    def close(self) -> None:
        self._reset()
        self.step = TitleStep.CLOSED


class ThumbnailStep(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    GENERATED = "generated"


class ThumbnailModal:
    """Idle -> Generating -> Generated, and Generated -> Generating on regenerate."""

    def __init__(
        self,
        client: GenerationClient,
        notifier: Notifier,
        clipboard: Clipboard,
        row: Row,
    ) -> None:
        self.client = client
        self.notifier = notifier
        self.clipboard = clipboard
        self.row = row
        self.prompt = ""
        self.image_url: Optional[str] = None
        self.step = ThumbnailStep.IDLE

    @property
    def has_generated(self) -> bool:
        return self.step is ThumbnailStep.GENERATED

    async def generate(self, prompt: Optional[str] = None) -> bool:
        """Generate from ``prompt`` (or the last prompt when regenerating)."""
        if prompt is not None:
            self.prompt = prompt
        if self.step is ThumbnailStep.GENERATING:
            return False
        if not self.prompt.strip():
            self.notifier.error("Please enter a prompt")
            return False

        regenerating = self.has_generated
        previous_step, previous_url = self.step, self.image_url
        self.step = ThumbnailStep.GENERATING
        self.image_url = None
        try:
            result = await self.client.generate_thumbnail(self.prompt, self.row)
        except DashboardError as exc:
            self.step = previous_step
            self.image_url = previous_url
            if isinstance(exc, (ConfigError, ValidationError)):
                self.notifier.error(str(exc))
            else:
                self.notifier.error(f"Failed to generate thumbnail. {exc}")
            return False
        self.image_url = result.image_url
        self.step = ThumbnailStep.GENERATED
        if regenerating:
            self.notifier.success("New thumbnail generated successfully!")
        else:
            self.notifier.success("Thumbnail generated successfully!")
        return True

    def reset(self) -> None:
        self.image_url = None
        self.step = ThumbnailStep.IDLE

    def copy_image_url(self) -> bool:
        if not self.image_url:
            self.notifier.error("No image to copy")
            return False
        self.clipboard.write_text(self.image_url)
        self.notifier.success("Image URL copied to clipboard!")
        return True

    def close(self) -> None:
        self.prompt = ""
        self.reset()
