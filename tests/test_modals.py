import asyncio
import random

import httpx

from conftest import IMAGES_URL, TITLES_URL, FakeWebhooks, make_row, make_settings
from tube_dashboard.modals import (
    PageClipboard,
    ThumbnailModal,
    ThumbnailStep,
    TitleModal,
    TitleStep,
)
from tube_dashboard.models import Row
from tube_dashboard.notifications import Notifier
from tube_dashboard.webhooks import GenerationClient


def make_client(hooks: FakeWebhooks, **overrides) -> GenerationClient:
    return GenerationClient(
        make_settings(**overrides), transport=hooks.transport, rng=random.Random(1)
    )


def title_modal(hooks=None, **overrides):
    hooks = hooks or FakeWebhooks()
    notifier = Notifier()
    clipboard = PageClipboard()
    rows = [Row.from_api(make_row(1, "Bread", "10", "1", "0"))]
    modal = TitleModal(make_client(hooks, **overrides), notifier, clipboard, rows)
    return modal, notifier, clipboard


def thumbnail_modal(hooks=None, **overrides):
    hooks = hooks or FakeWebhooks()
    notifier = Notifier()
    clipboard = PageClipboard()
    row = Row.from_api(make_row(1, "Bread", "10", "1", "0"))
    modal = ThumbnailModal(make_client(hooks, **overrides), notifier, clipboard, row)
    return modal, notifier, clipboard


def last_message(notifier: Notifier):
    toasts = notifier.drain()
    return (toasts[-1].level, toasts[-1].message) if toasts else None


def test_title_submit_moves_to_results():
    modal, notifier, _ = title_modal()

    assert asyncio.run(modal.submit("A bread video", "", "gpt-4")) is True

    assert modal.step is TitleStep.RESULTS
    assert [t.title for t in modal.titles] == ["Title one", "Title two", "Title three"]
    assert last_message(notifier) == ("success", "Titles generated successfully!")


def test_title_submit_requires_description():
    hooks = FakeWebhooks()
    modal, notifier, _ = title_modal(hooks)

    assert asyncio.run(modal.submit("   ")) is False

    assert modal.step is TitleStep.FORM
    assert hooks.requests == []
    assert last_message(notifier) == ("error", "Please provide video description/transcript.")


def test_title_submit_failure_returns_to_form_and_keeps_input():
    hooks = FakeWebhooks()
    hooks.responses[TITLES_URL] = httpx.Response(500)
    modal, notifier, _ = title_modal(hooks)

    assert asyncio.run(modal.submit("A bread video", "funny", "gemini-pro")) is False

    assert modal.step is TitleStep.FORM
    assert modal.description == "A bread video"
    assert modal.model == "gemini-pro"
    level, message = last_message(notifier)
    assert level == "error"
    assert message == "Failed to generate titles. Title generation failed with status: 500"


def test_title_submit_unconfigured_endpoint():
    modal, notifier, _ = title_modal(GENERATE_TITLES_WEBHOOK="your_generate_titles_webhook_url_here")

    assert asyncio.run(modal.submit("A bread video")) is False
    assert last_message(notifier) == ("error", "Generate Titles webhook URL not configured.")


def test_title_selection_copy_and_accept():
    modal, notifier, clipboard = title_modal()
    asyncio.run(modal.submit("A bread video"))
    notifier.drain()

    modal.toggle("3")
    modal.toggle("1")
    modal.toggle("2")
    modal.toggle("2")
    modal.toggle("unknown")
    assert modal.selected == {"1", "3"}

    assert modal.copy_selected() is True
    assert clipboard.take() == "Title one\nTitle three"
    assert last_message(notifier) == ("success", "Copied 2 title(s) to clipboard!")

    accepted = modal.accept()
    assert [t.title for t in accepted] == ["Title one", "Title three"]
    assert modal.step is TitleStep.CLOSED
    assert modal.titles == []


def test_copy_single_title_marks_it_copied():
    modal, notifier, clipboard = title_modal()
    asyncio.run(modal.submit("A bread video"))

    assert modal.copy_title("2") is True
    assert clipboard.take() == "Title two"
    assert modal.copied == {"2"}


def test_empty_selection_is_rejected():
    modal, notifier, clipboard = title_modal()
    asyncio.run(modal.submit("A bread video"))
    notifier.drain()

    assert modal.copy_selected() is False
    assert clipboard.take() is None
    assert last_message(notifier) == ("error", "Please select at least one title to copy.")

    assert modal.accept() is None
    assert modal.step is TitleStep.RESULTS
    assert last_message(notifier) == ("error", "Please select at least one title.")


def test_back_returns_to_form_with_previous_input():
    modal, _, _ = title_modal()
    asyncio.run(modal.submit("A bread video", "short", "claude-3"))

    modal.back()

    assert modal.step is TitleStep.FORM
    assert modal.description == "A bread video"
    assert modal.special_instructions == "short"


def test_open_resets_form():
    modal, _, _ = title_modal()
    asyncio.run(modal.submit("A bread video"))

    modal.open([])

    assert modal.step is TitleStep.FORM
    assert modal.description == ""
    assert modal.titles == []
    assert modal.context == []


def test_thumbnail_generate_then_regenerate():
    hooks = FakeWebhooks()
    modal, notifier, _ = thumbnail_modal(hooks)

    assert asyncio.run(modal.generate("warm bread")) is True
    assert modal.step is ThumbnailStep.GENERATED
    assert modal.image_url == "https://img.example.com/new.png"
    assert last_message(notifier) == ("success", "Thumbnail generated successfully!")

    hooks.responses[IMAGES_URL] = httpx.Response(200, json={"image": "https://img.example.com/v2.png"})
    assert asyncio.run(modal.generate()) is True
    assert modal.image_url == "https://img.example.com/v2.png"
    assert last_message(notifier) == ("success", "New thumbnail generated successfully!")
    assert [body["prompt"] for body in hooks.bodies(IMAGES_URL)] == ["warm bread", "warm bread"]


def test_thumbnail_requires_prompt():
    hooks = FakeWebhooks()
    modal, notifier, _ = thumbnail_modal(hooks)

    assert asyncio.run(modal.generate("  ")) is False

    assert modal.step is ThumbnailStep.IDLE
    assert hooks.requests == []
    assert last_message(notifier) == ("error", "Please enter a prompt")


def test_thumbnail_failure_restores_previous_image():
    hooks = FakeWebhooks()
    modal, notifier, _ = thumbnail_modal(hooks)
    asyncio.run(modal.generate("warm bread"))
    notifier.drain()

    hooks.responses[IMAGES_URL] = httpx.Response(200, json={"nothing": True})
    assert asyncio.run(modal.generate()) is False

    assert modal.step is ThumbnailStep.GENERATED
    assert modal.image_url == "https://img.example.com/new.png"
    assert last_message(notifier) == (
        "error",
        "Failed to generate thumbnail. No image URL in response",
    )


def test_thumbnail_copy_reset_and_close():
    modal, notifier, clipboard = thumbnail_modal()

    assert modal.copy_image_url() is False
    assert last_message(notifier) == ("error", "No image to copy")

    asyncio.run(modal.generate("warm bread"))
    assert modal.copy_image_url() is True
    assert clipboard.take() == "https://img.example.com/new.png"

    modal.reset()
    assert modal.step is ThumbnailStep.IDLE
    assert modal.image_url is None
    assert modal.prompt == "warm bread"

    modal.close()
    assert modal.prompt == ""


def test_title_submit_with_undecodable_body_shows_error():
    hooks = FakeWebhooks()
    hooks.responses[TITLES_URL] = httpx.Response(200, content=b"\xff\xfe\xfa garbage")
    modal, notifier, _ = title_modal(hooks)

    assert asyncio.run(modal.submit("A bread video")) is False

    assert modal.step is TitleStep.FORM
    assert last_message(notifier) == (
        "error",
        "Failed to generate titles. Title generation returned a non-JSON body.",
    )
