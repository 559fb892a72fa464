"""Shared fixtures: an in-memory Airtable and a scripted Gemini.

Gemini is reached through ``httpx.MockTransport``; Airtable through a requests
adapter mounted on the ``pyairtable`` session. Both record every call.
"""

import json
import re
from collections import defaultdict
from contextlib import ExitStack
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, unquote, urlsplit

import httpx
import pytest
from fastapi.testclient import TestClient
from pyairtable import Api
from requests import Response
from requests.adapters import BaseAdapter

from app.config.settings import Settings
from app.main import create_app

GEMINI_HOST = "generativelanguage.googleapis.com"
BASE_ID = "appTEST"

GEMINI_OK = {
    "candidates": [
        {
            "content": {"role": "model", "parts": [{"text": "A fast widget."}]},
            "finishReason": "STOP",
        }
    ],
    "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 4},
    "modelVersion": "gemini-2.0-flash",
}

# {Field}='value' or {Field} = "value", optionally wrapped in AND(...)
FORMULA_RE = re.compile(r"""^(?:AND\()?\{(?P<field>[^}]+)\}\s*=\s*(?P<q>['"])(?P<value>(?:\\.|(?!(?P=q)).)*)(?P=q)\)?$""")


class FakeUpstream:
    """Records every upstream call and answers like Airtable / Gemini would."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.calls: List[Dict[str, Any]] = []
        self.gemini_calls: List[Dict[str, Any]] = []
        self.overrides: Dict[Tuple[str, str], Tuple[int, Any]] = {}
        self.gemini_response: Tuple[int, Any] = (200, GEMINI_OK)
        self.gemini_exception: Optional[Exception] = None
        self.airtable_exception: Optional[Exception] = None
        self._counter = 0

    def add(self, table: str, fields: Dict[str, Any], record_id: Optional[str] = None,
            created_time: Optional[str] = None) -> Dict[str, Any]:
        self._counter += 1
        created = created_time or f"2025-01-01T00:00:{self._counter:02d}.000Z"
        record = {"id": record_id or f"rec{self._counter:03d}", "createdTime": created, "fields": dict(fields)}
        self.tables[table].append(record)
        return record

    def fail(self, method: str, table: str, status_code: int, body: Any) -> None:
        self.overrides[(method, table)] = (status_code, body)

    def creates(self, table: str) -> List[Dict[str, Any]]:
        return [c["fields"] for c in self.calls if c["method"] == "POST" and c["table"] == table]

    def lookups(self, table: str) -> List[str]:
        return [c["formula"] for c in self.calls if c["method"] == "GET" and c["table"] == table]

    def gemini(self, request: httpx.Request) -> httpx.Response:
        assert request.url.host == GEMINI_HOST
        self.gemini_calls.append({
            "path": request.url.path,
            "params": dict(request.url.params),
            "payload": json.loads(request.content),
            "user_agent": request.headers.get("user-agent"),
        })
        if self.gemini_exception is not None:
            raise self.gemini_exception
        status_code, body = self.gemini_response
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)

    def airtable(self, method: str, path: str, params: Dict[str, str], body: Any) -> Tuple[int, Any]:
        _, _, base_id, table = path.split("/", 3)
        assert base_id == BASE_ID

        call: Dict[str, Any] = {"method": method, "table": table}
        if method == "POST":
            call["fields"] = body["fields"]
        else:
            call["formula"] = params.get("filterByFormula")
        self.calls.append(call)

        override = self.overrides.get((method, table))
        if override:
            return override

        if method == "POST":
            return 200, self.add(table, call["fields"])

        records = list(self.tables[table])
        formula = call["formula"]
        if formula:
            match = FORMULA_RE.match(formula)
            assert match, f"unexpected formula {formula!r}"
            field = match.group("field")
            value = re.sub(r"\\(.)", r"\1", match.group("value"))
            # Airtable's "=" compares strings loosely; mimic it so exactness is the client's job
            records = [
                r for r in records
                if str(r["fields"].get(field, "")).strip().lower() == value.strip().lower()
            ]
        max_records = params.get("maxRecords")
        if max_records:
            records = records[: int(max_records)]
        return 200, {"records": records}


class FakeAirtableAdapter(BaseAdapter):
    """Answers the pyairtable session's requests from a ``FakeUpstream``."""

    def __init__(self, upstream: FakeUpstream):
        super().__init__()
        self.upstream = upstream

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        assert request.headers["Authorization"] == "Bearer test-token"
        if self.upstream.airtable_exception is not None:
            raise self.upstream.airtable_exception

        url = urlsplit(request.url)
        body = json.loads(request.body) if request.body else None
        status_code, payload = self.upstream.airtable(
            request.method, unquote(url.path), dict(parse_qsl(url.query)), body
        )

        response = Response()
        response.status_code = status_code
        response.reason = HTTPStatus(status_code).phrase
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        if isinstance(payload, str):
            response.headers["Content-Type"] = "text/html"
            response._content = payload.encode("utf-8")
        else:
            response.headers["Content-Type"] = "application/json"
            response._content = json.dumps(payload).encode("utf-8")
        return response

    def close(self):
        pass


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "GEMINI_API_KEY": "test-key",
        "AIRTABLE_API_TOKEN": "test-token",
        "AIRTABLE_BASE_ID": BASE_ID,
        "LOG_DIR": str(tmp_path / "logs"),
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def transport(upstream) -> httpx.MockTransport:
    return httpx.MockTransport(upstream.gemini)


@pytest.fixture
def airtable_api(upstream) -> Api:
    api = Api("test-token", retry_strategy=None)
    api.session.mount("https://", FakeAirtableAdapter(upstream))
    return api


@pytest.fixture
def client(settings, transport, airtable_api, upstream):
    app = create_app(settings, transport=transport, airtable_api=airtable_api)
    with TestClient(app) as test_client:
        # drop the startup health check so tests see only their own calls
        upstream.calls.clear()
        yield test_client


@pytest.fixture
def make_client(tmp_path, transport, airtable_api, upstream):
    """Build a client with settings overrides and/or a different Gemini transport."""
    with ExitStack() as stack:
        def _make(gemini_transport: Optional[httpx.AsyncBaseTransport] = None, **overrides) -> TestClient:
            app = create_app(
                make_settings(tmp_path, **overrides),
                transport=gemini_transport or transport,
                airtable_api=airtable_api,
            )
            test_client = stack.enter_context(TestClient(app))
            upstream.calls.clear()
            return test_client

        yield _make
