"""FastAPI app serving the search page, the video dashboard and the generation panels."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends, FastAPI, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from .config import Settings, get_settings
from .dashboard import DashboardView, LoadState
from .errors import DashboardError
from .modals import PageClipboard, ThumbnailModal, TitleModal, TitleStep
from .models import SearchOptions
from .notifications import Notifier
from .webhooks import DEFAULT_TITLE_MODEL, GenerationClient

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

VIDEO_DURATIONS = ("any", "short", "medium", "long")
SEARCH_ORDERS = ("relevance", "date", "viewCount", "rating", "title", "videoCount")
MAX_RESULTS_CHOICES = (5, 10, 25, 50)

app = FastAPI(title="Video Dashboard")


@dataclass
class DashboardSession:
    """Everything one browser session of the dashboard works with."""

    settings: Settings
    notifier: Notifier
    clipboard: PageClipboard
    dashboard: DashboardView
    generation: GenerationClient
    title_modal: Optional[TitleModal] = None
    thumbnail_modal: Optional[ThumbnailModal] = None


def build_session(
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    thumbnail_regeneration: bool = True,
) -> DashboardSession:
    notifier = Notifier()
    dashboard = DashboardView.from_settings(
        settings,
        notifier,
        transport=transport,
        thumbnail_regeneration=thumbnail_regeneration,
    )
    return DashboardSession(
        settings=settings,
        notifier=notifier,
        clipboard=PageClipboard(),
        dashboard=dashboard,
        generation=dashboard.generation,
    )


def get_session(request: Request) -> DashboardSession:
    """Single-user dashboard: one session per app, built on first use."""
    session = getattr(request.app.state, "session", None)
    if session is None:
        session = build_session(get_settings())
        request.app.state.session = session
    return session


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _render(
    request: Request,
    session: DashboardSession,
    template_name: str,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = status.HTTP_200_OK,
) -> HTMLResponse:
    template_context: Dict[str, Any] = {
        "toasts": session.notifier.drain(),
        "clipboard_text": session.clipboard.take(),
    }
    if context:
        template_context.update(context)
    return templates.TemplateResponse(
        request, template_name, template_context, status_code=status_code
    )


def _optional_int(raw: Optional[str], default: int) -> int:
    if raw is None or not str(raw).strip():
        return default
    return int(raw)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


# --- Search -----------------------------------------------------------------


@app.get("/", response_class=HTMLResponse, name="search_page")
def search_page(
    request: Request, session: DashboardSession = Depends(get_session)
) -> HTMLResponse:
    return _render(
        request,
        session,
        "search.html",
        {
            "durations": VIDEO_DURATIONS,
            "orders": SEARCH_ORDERS,
            "max_results_choices": MAX_RESULTS_CHOICES,
            "defaults": SearchOptions(),
        },
    )


@app.post("/search", name="run_search")
async def run_search(
    q: str = Form(""),
    region_code: str = Form(""),
    relevance_language: str = Form(""),
    video_duration: str = Form("any"),
    published_after: str = Form(""),
    published_before: str = Form(""),
    order: str = Form("relevance"),
    max_results: str = Form(""),
    session: DashboardSession = Depends(get_session),
) -> Response:
    try:
        options = SearchOptions(
            region_code=region_code,
            relevance_language=relevance_language,
            video_duration=video_duration,
            published_after=published_after,
            published_before=published_before,
            order=order,
            max_results=_optional_int(max_results, 25),
        )
    except ValueError as exc:
        session.notifier.error(f"Invalid search options: {exc}")
        return _redirect("/")

    try:
        await session.generation.search(q, options)
    except DashboardError as exc:
        session.notifier.error(str(exc))
        return _redirect("/")
    session.notifier.success("Search completed successfully!")
    return _redirect("/videos")


# --- Dashboard --------------------------------------------------------------


@app.get("/videos", response_class=HTMLResponse, name="videos_page")
async def videos_page(
    request: Request, session: DashboardSession = Depends(get_session)
) -> HTMLResponse:
    dashboard = session.dashboard
    state = await dashboard.load()
    if state is LoadState.LOAD_ERROR:
        settings = session.settings
        return _render(
            request,
            session,
            "load_error.html",
            {
                "error": dashboard.load_error,
                "api_url": settings.baserow_api_url or "(not set)",
                "table_id": settings.baserow_table_id or "(not set)",
                "token_set": bool(settings.baserow_api_token),
            },
            status_code=status.HTTP_502_BAD_GATEWAY,
        )
    return _render(
        request,
        session,
        "videos.html",
        {
            "header": dashboard.header(),
            "rows": dashboard.rendered_rows(),
            "stats": dashboard.stats.formatted(),
            "field_count": len(dashboard.fields),
            "row_count": len(dashboard.rows),
            "clearing": dashboard.clearing,
        },
    )


@app.post("/videos/{row_id}/delete", name="delete_row")
async def delete_row(
    row_id: int,
    confirmed: bool = Form(False),
    session: DashboardSession = Depends(get_session),
) -> Response:
    dashboard = session.dashboard
    await dashboard.ensure_loaded()
    await dashboard.delete_row(row_id, confirm=lambda _prompt: confirmed)
    return _redirect("/videos")


@app.post("/videos/clear", name="clear_rows")
async def clear_rows(
    confirmed: bool = Form(False),
    session: DashboardSession = Depends(get_session),
) -> Response:
    dashboard = session.dashboard
    await dashboard.ensure_loaded()
    if await dashboard.clear_all(confirm=lambda _prompt: confirmed):
        return _redirect("/")
    return _redirect("/videos")


@app.post("/videos/thumbnail-assets", name="request_thumbnail_assets")
async def request_thumbnail_assets(
    session: DashboardSession = Depends(get_session),
) -> Response:
    dashboard = session.dashboard
    await dashboard.ensure_loaded()
    await dashboard.request_thumbnail_assets()
    return _redirect("/videos")


# --- Title generation ---------------------------------------------------------


def _title_modal(session: DashboardSession) -> Optional[TitleModal]:
    modal = session.title_modal
    if modal is None or modal.step is TitleStep.CLOSED:
        return None
    return modal


@app.get("/titles", response_class=HTMLResponse, name="titles_page")
async def titles_page(
    request: Request, session: DashboardSession = Depends(get_session)
) -> Response:
    modal = _title_modal(session)
    if modal is None:
        dashboard = session.dashboard
        await dashboard.ensure_loaded()
        if not dashboard.rows:
            session.notifier.error("No data available to generate titles for.")
            return _redirect("/videos")
        modal = session.title_modal or TitleModal(
            session.generation, session.notifier, session.clipboard
        )
        modal.open(dashboard.rows)
        session.title_modal = modal
    return _render(request, session, "titles.html", {"modal": modal})


def _require_title_modal(session: DashboardSession) -> TitleModal:
    modal = _title_modal(session)
    if modal is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Title panel is not open.")
    return modal


@app.post("/titles/generate", name="generate_titles")
async def generate_titles(
    description: str = Form(""),
    special_instructions: str = Form(""),
    model: str = Form(DEFAULT_TITLE_MODEL),
    session: DashboardSession = Depends(get_session),
) -> Response:
    modal = _require_title_modal(session)
    await modal.submit(description, special_instructions, model)
    return _redirect("/titles")


@app.post("/titles/toggle", name="toggle_title")
def toggle_title(
    title_id: str = Form(...), session: DashboardSession = Depends(get_session)
) -> Response:
    _require_title_modal(session).toggle(title_id)
    return _redirect("/titles")


@app.post("/titles/copy", name="copy_titles")
def copy_titles(
    title_id: Optional[str] = Form(None),
    session: DashboardSession = Depends(get_session),
) -> Response:
    modal = _require_title_modal(session)
    if title_id:
        modal.copy_title(title_id)
    else:
        modal.copy_selected()
    return _redirect("/titles")


@app.post("/titles/accept", name="accept_titles")
def accept_titles(session: DashboardSession = Depends(get_session)) -> Response:
    accepted = _require_title_modal(session).accept()
    if accepted is None:
        return _redirect("/titles")
    logger.info("Accepted titles: %s", [title.title for title in accepted])
    return _redirect("/videos")


@app.post("/titles/back", name="titles_back")
def titles_back(session: DashboardSession = Depends(get_session)) -> Response:
    _require_title_modal(session).back()
    return _redirect("/titles")


@app.post("/titles/close", name="close_titles")
def close_titles(session: DashboardSession = Depends(get_session)) -> Response:
    if session.title_modal is not None:
        session.title_modal.close()
    return _redirect("/videos")


# --- Thumbnail generation -----------------------------------------------------


async def _thumbnail_modal(session: DashboardSession, row_id: int) -> ThumbnailModal:
    dashboard = session.dashboard
    if not dashboard.thumbnail_regeneration:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not available.")
    modal = session.thumbnail_modal
    if modal is not None and modal.row.id == row_id:
        return modal
    await dashboard.ensure_loaded()
    row = dashboard.find_row(row_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Row {row_id} not found.")
    modal = ThumbnailModal(session.generation, session.notifier, session.clipboard, row)
    session.thumbnail_modal = modal
    return modal


@app.get("/videos/{row_id}/thumbnail", response_class=HTMLResponse, name="thumbnail_page")
async def thumbnail_page(
    request: Request, row_id: int, session: DashboardSession = Depends(get_session)
) -> HTMLResponse:
    modal = await _thumbnail_modal(session, row_id)
    current = modal.row.cell("thumbnail")
    current_url = current.value[0].display_url() if current.is_list and current.value else None
    return _render(
        request,
        session,
        "thumbnail.html",
        {"modal": modal, "current_url": current_url},
    )


@app.post("/videos/{row_id}/thumbnail/generate", name="generate_thumbnail")
async def generate_thumbnail(
    row_id: int,
    prompt: Optional[str] = Form(None),
    session: DashboardSession = Depends(get_session),
) -> Response:
    modal = await _thumbnail_modal(session, row_id)
    await modal.generate(prompt)
    return _redirect(f"/videos/{row_id}/thumbnail")


@app.post("/videos/{row_id}/thumbnail/reset", name="reset_thumbnail")
async def reset_thumbnail(
    row_id: int, session: DashboardSession = Depends(get_session)
) -> Response:
    (await _thumbnail_modal(session, row_id)).reset()
    return _redirect(f"/videos/{row_id}/thumbnail")


@app.post("/videos/{row_id}/thumbnail/copy", name="copy_thumbnail")
async def copy_thumbnail(
    row_id: int, session: DashboardSession = Depends(get_session)
) -> Response:
    (await _thumbnail_modal(session, row_id)).copy_image_url()
    return _redirect(f"/videos/{row_id}/thumbnail")


@app.post("/videos/{row_id}/thumbnail/close", name="close_thumbnail")
def close_thumbnail(
    row_id: int, session: DashboardSession = Depends(get_session)
) -> Response:
    modal = session.thumbnail_modal
    if modal is not None and modal.row.id == row_id:
        modal.close()
        session.thumbnail_modal = None
    return _redirect("/videos")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tube_dashboard.server:app",
        host=os.getenv("DASHBOARD_HOST", "127.0.0.1"),
        port=int(os.getenv("DASHBOARD_PORT", "8000")),
        reload=os.getenv("DASHBOARD_RELOAD", "false").lower() == "true",
    )
