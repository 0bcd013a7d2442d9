import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from tube_dashboard.config import Settings

BASE_URL = "https://tables.example.com"
TABLE_ID = "584"
SEARCH_URL = "https://hooks.example.com/search"
TITLES_URL = "https://hooks.example.com/titles"
IMAGES_URL = "https://hooks.example.com/images"

FIELDS = [
    {"id": 1, "name": "Title", "type": "text", "primary": True},
    {"id": 2, "name": "URL", "type": "url"},
    {"id": 3, "name": "Views", "type": "number"},
    {"id": 4, "name": "Likes", "type": "number"},
    {"id": 5, "name": "Comments", "type": "number"},
    {"id": 6, "name": "thumbnail", "type": "file"},
]


def make_row(row_id: int, title: str, views: str, likes: str, comments: str, **extra) -> Dict[str, Any]:
    row = {
        "id": row_id,
        "order": f"{row_id}.00000000000000000000",
        "Title": title,
        "URL": f"https://www.youtube.com/watch?v=vid{row_id}",
        "Views": views,
        "Likes": likes,
        "Comments": comments,
        "thumbnail": [
            {
                "url": f"https://files.example.com/thumb{row_id}.jpg",
                "visible_name": f"thumb{row_id}.jpg",
                "thumbnails": {"small": {"url": f"https://files.example.com/small{row_id}.jpg"}},
            }
        ],
    }
    row.update(extra)
    return row


def sample_rows() -> List[Dict[str, Any]]:
    return [
        make_row(1, "How to bake bread", "1500", "120", "8"),
        make_row(2, "Sourdough in 10 minutes", "2300000", "45000", "1200"),
        make_row(3, "Kneading basics", "55", "3", "0"),
    ]


class FakeTableApi:
    """In-memory stand-in for the table API behind an httpx.MockTransport."""

    def __init__(self, fields=None, rows=None) -> None:
        self.fields = list(FIELDS if fields is None else fields)
        rows = sample_rows() if rows is None else rows
        self.rows = {row["id"]: row for row in rows}
        self.calls: List[tuple] = []
        self.fields_status = 200
        self.rows_status = 200
        self.delete_status: Dict[int, int] = {}
        self.page_size: Optional[int] = None
        # Path -> canned response served instead of the in-memory data.
        self.overrides: Dict[str, httpx.Response] = {}

    @property
    def rows_path(self) -> str:
        return f"/api/database/rows/table/{TABLE_ID}/"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path, dict(request.url.params)))
        if request.headers.get("Authorization") != "Token secret-token":
            return httpx.Response(401)
        if path in self.overrides:
            canned = self.overrides[path]
            return httpx.Response(canned.status_code, content=canned.content, headers=canned.headers)
        if request.method == "GET" and path == f"/api/database/fields/table/{TABLE_ID}/":
            if self.fields_status != 200:
                return httpx.Response(self.fields_status)
            return httpx.Response(200, json=self.fields)
        if request.method == "GET" and path == self.rows_path:
            if self.rows_status != 200:
                return httpx.Response(self.rows_status)
            return httpx.Response(200, json=self._page(request))
        if request.method == "DELETE" and path.startswith(self.rows_path):
            row_id = int(path.rstrip("/").rsplit("/", 1)[-1])
            if row_id in self.delete_status:
                return httpx.Response(self.delete_status[row_id])
            if row_id not in self.rows:
                return httpx.Response(404)
            del self.rows[row_id]
            return httpx.Response(204)
        return httpx.Response(404)

    def _page(self, request: httpx.Request) -> Dict[str, Any]:
        results = list(self.rows.values())
        if not self.page_size:
            return {"count": len(results), "next": None, "previous": None, "results": results}
        page = int(request.url.params.get("page", "1"))
        start = (page - 1) * self.page_size
        chunk = results[start : start + self.page_size]
        has_next = start + self.page_size < len(results)
        next_url = (
            f"{BASE_URL}{self.rows_path}?user_field_names=true&page={page + 1}"
            if has_next
            else None
        )
        return {"count": len(results), "next": next_url, "previous": None, "results": chunk}

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class FakeWebhooks:
    """Records webhook POSTs and answers with canned responses per URL."""

    def __init__(self) -> None:
        self.requests: List[tuple] = []
        self.responses: Dict[str, httpx.Response] = {
            SEARCH_URL: httpx.Response(200, json={"ok": True}),
            TITLES_URL: httpx.Response(200, json=["Title one", "Title two", "Title three"]),
            IMAGES_URL: httpx.Response(200, json={"image": "https://img.example.com/new.png"}),
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content.decode("utf-8")) if request.content else None
        self.requests.append((str(request.url), body))
        response = self.responses.get(str(request.url))
        if response is None:
            return httpx.Response(404)
        return httpx.Response(
            response.status_code, content=response.content, headers=response.headers
        )

    def bodies(self, url: str) -> List[Any]:
        return [body for sent_url, body in self.requests if sent_url == url]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class CombinedTransport(httpx.MockTransport):
    """Routes table API traffic and webhook traffic to their fakes."""

    def __init__(self, table: FakeTableApi, hooks: FakeWebhooks) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "tables.example.com":
                return table(request)
            return hooks(request)

        super().__init__(handler)


def make_settings(**overrides) -> Settings:
    values = {
        "SEARCH_WEBHOOK": SEARCH_URL,
        "GENERATE_TITLES_WEBHOOK": TITLES_URL,
        "GENERATE_IMAGES_WEBHOOK": IMAGES_URL,
        "BASEROW_API_URL": BASE_URL,
        "BASEROW_TABLE_ID": TABLE_ID,
        "BASEROW_API_TOKEN": "secret-token",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def table_api() -> FakeTableApi:
    return FakeTableApi()


@pytest.fixture
def hooks() -> FakeWebhooks:
    return FakeWebhooks()

