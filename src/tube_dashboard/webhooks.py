"""Outbound calls to the search, title and thumbnail generation workflows.

Each workflow is an opaque webhook that takes one JSON POST. The endpoint is
checked before anything goes on the wire: an unset URL or one still holding
its placeholder raises ConfigError and no request is made.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, Iterable, List, Optional

import httpx

from .config import Settings, require_configured
from .errors import FetchError, GenerationError, NetworkError, ValidationError
from .models import GeneratedTitle, Row, SearchOptions, ThumbnailResult
from .schema import THUMBNAIL_RESPONSE, TITLES_RESPONSE, validate_response

logger = logging.getLogger(__name__)

TITLE_MODELS = ("gpt-4", "gpt-3.5-turbo", "claude-3", "gemini-pro")
DEFAULT_TITLE_MODEL = "gpt-4"


def video_summary(row: Row) -> Dict[str, Any]:
    """Fields of a row that the title workflow uses as context."""
    return {
        "id": row.id,
        "title": row.raw("Title") or "",
        "url": row.raw("URL") or "",
        "views": row.number("Views"),
        "likes": row.number("Likes"),
        "comments": row.number("Comments"),
    }


def video_data(row: Row) -> Dict[str, Any]:
    """Fields of a row sent along with a thumbnail request."""
    return {
        "id": row.id,
        "title": row.raw("Title"),
        "url": row.raw("URL"),
        "current_thumbnail": row.raw("thumbnail"),
        "views": row.raw("Views"),
        "likes": row.raw("Likes"),
    }


def thumbnail_asset(row: Row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "title": row.raw("Title") or "",
        "url": row.raw("URL") or "",
        "thumbnail": row.raw("thumbnail") or None,
        "views": row.number("Views"),
        "likes": row.number("Likes"),
    }


class GenerationClient:
    """POST JSON envelopes to the configured workflow webhooks."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._rng = rng or random.Random()

    async def _post(self, url: str, payload: Dict[str, Any], *, action: str) -> httpx.Response:
        logger.debug("POST %s (%s)", url, action)
        async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
            try:
                response = await client.post(url, json=payload)
            except httpx.TransportError as exc:
                logger.warning("Network error during %s: %s", action, exc)
                raise NetworkError(f"{action} failed: {exc}") from exc
        if not response.is_success:
            logger.warning("%s webhook returned %s", action, response.status_code)
            raise FetchError(
                f"{action} failed with status: {response.status_code}",
                status=response.status_code,
                reason=response.reason_phrase,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise GenerationError(f"{action} returned a non-JSON body.") from exc

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> None:
        """Start a search; on return the caller may navigate to the results."""
        query = (query or "").strip()
        if not query:
            raise ValidationError("Please enter a search query")
        url = require_configured(self.settings.search_webhook, "Search webhook URL")
        payload: Dict[str, Any] = {"q": query}
        if options is not None:
            payload.update(options.to_payload())
        await self._post(url, payload, action="Search")
        logger.info("Search submitted: %s", payload)

    async def generate_titles(
        self,
        description: str,
        special_instructions: str = "",
        model: str = DEFAULT_TITLE_MODEL,
        context: Iterable[Row] = (),
    ) -> List[GeneratedTitle]:
        """
        Ask the titles workflow for candidates based on a description/transcript.

        The workflow answers with an array of strings (``{"titles": [...]}`` is
        also accepted). Each title gets its 1-based position as id. The score
        is a random number in [80, 99] used only for display.
        """
        description = (description or "").strip()
        if not description:
            raise ValidationError("Please provide video description/transcript.")
        if model not in TITLE_MODELS:
            raise ValidationError(f"Unknown model: {model}")
        url = require_configured(
            self.settings.generate_titles_webhook, "Generate Titles webhook URL"
        )
        payload = {
            "action": "generate_titles",
            "model": model,
            "special_instructions": (special_instructions or "").strip(),
            "video_description": description,
            "table_data": [video_summary(row) for row in context],
        }
        response = await self._post(url, payload, action="Title generation")
        body = validate_response(self._json(response, "Title generation"), TITLES_RESPONSE)
        titles = body["titles"] if isinstance(body, dict) else body
        return [
            GeneratedTitle(id=str(index), title=title, score=self._rng.randint(80, 99))
            for index, title in enumerate(titles, start=1)
        ]

    async def generate_thumbnail(self, prompt: str, video: Row) -> ThumbnailResult:
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValidationError("Please enter a prompt")
        url = require_configured(
            self.settings.generate_images_webhook, "Generate Images webhook URL"
        )
        payload = {
            "action": "generate_thumbnail",
            "prompt": prompt,
            "video_data": video_data(video),
        }
        response = await self._post(url, payload, action="Thumbnail generation")
        body = self._json(response, "Thumbnail generation")
        try:
            validate_response(body, THUMBNAIL_RESPONSE)
        except GenerationError as exc:
            raise GenerationError("No image URL in response") from exc
        return ThumbnailResult(image_url=body["image"])

    async def request_thumbnail_assets(self, rows: Iterable[Row]) -> None:
        """Queue thumbnail asset generation for every given row."""
        rows = list(rows)
        if not rows:
            raise ValidationError("No data available to generate thumbnail assets for.")
        url = require_configured(
            self.settings.generate_images_webhook, "Generate Images webhook URL"
        )
        payload = {
            "action": "generate_thumbnail_assets",
            "data": [thumbnail_asset(row) for row in rows],
        }
        await self._post(url, payload, action="Thumbnail asset generation")
