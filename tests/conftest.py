"""
Shared pytest fixtures for team registration tests.

Sets required environment variables BEFORE any teamreg module is imported so
that pydantic-settings picks up safe test values.
"""
from __future__ import annotations

import os
from typing import Any, Dict, List

# ── Set env vars before any teamreg import ────────────────────────────────────
os.environ.setdefault("BOT_TOKEN", "")
os.environ.setdefault("SHEETS_WEBHOOK_URL", "http://sheets.invalid/exec")
os.environ.setdefault("TEAM_ID_PREFIX", "nutpam-2025")
os.environ.setdefault("PROBLEM_TRACKS", "AI,Smart Cities,FinTech")

# ── Third-party ───────────────────────────────────────────────────────────────
import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

# ── teamreg imports (safe after env vars are set) ─────────────────────────────
from teamreg.models import RegistrationResponse, SheetsRow
from teamreg.services.sheets_service import RelayError


# ── Payload fixtures ──────────────────────────────────────────────────────────

def _alpha_payload() -> Dict[str, Any]:
    return {
        "teamName": "Alpha",
        "teamLeaderName": "A",
        "teamLeaderEmail": "a@b.com",
        "teamLeaderPhone": "9876543210",
        "teamSize": 2,
        "members": [{"name": "B", "email": "b@c.com"}],
        "problemTrack": "AI",
    }


@pytest.fixture
def valid_payload() -> Dict[str, Any]:
    """A fresh, fully valid two-person registration."""
    return _alpha_payload()


# ── Fakes ─────────────────────────────────────────────────────────────────────

class FakeRelay:
    """Records rows instead of calling the spreadsheet webhook."""

    def __init__(self, fail: bool = False, crash: bool = False) -> None:
        self.rows: List[SheetsRow] = []
        self.fail  = fail
        self.crash = crash

    async def submit(self, row: SheetsRow) -> None:
        if self.crash:
            raise RuntimeError("boom")
        if self.fail:
            raise RelayError("webhook down")
        self.rows.append(row)


class FakeApiClient:
    """Stands in for RegistrationApiClient in wizard tests."""

    def __init__(self, response: RegistrationResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or RegistrationResponse(
            success=True, message="Registration completed successfully", team_id="nutpam-2025-1-abc123"
        )
        self.error = error
        self.payloads: List[Dict[str, Any]] = []

    async def submit(self, payload: Dict[str, Any]) -> RegistrationResponse:
        self.payloads.append(dict(payload))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_relay() -> FakeRelay:
    return FakeRelay()


@pytest.fixture
def make_relay():
    """Factory fixture: returns the FakeRelay class."""
    return FakeRelay


@pytest.fixture
def make_api_client():
    """Factory fixture: returns the FakeApiClient class."""
    return FakeApiClient


# ── Fake spreadsheet webhook ──────────────────────────────────────────────────
#
# An in-process stand-in for the Apps Script web app:
#
#   POST /exec             direct 200
#   POST /redirect         302 "Moved Temporarily" page with HREF → /echo
#   POST /moved-200        200 whose body still says "Moved Temporarily"
#   POST /redirect-nohref  302 page without an HREF
#   POST /redirect-bad     302 page whose HREF answers 500
#   POST /error            500
#   POST /garbled          200 with a body that is not valid UTF-8
#   POST /redirect-garbled 302 → GET /garbled-echo, same undecodable body
#   GET  /echo             records the query string, answers 200

MOVED_PAGE = (
    "<HTML><HEAD><TITLE>Moved Temporarily</TITLE></HEAD>"
    '<BODY><H1>Moved Temporarily</H1>The document has moved <A HREF="{href}">here</A>.'
    "</BODY></HTML>"
)
UNDECODABLE = b"\xff\xfe\xfa ok"

received_key = web.AppKey("received", list)


def _fake_webhook() -> web.Application:
    app = web.Application()
    app[received_key] = []

    def moved(request: web.Request, path: str, status: int = 302) -> web.Response:
        href = f"{request.url.origin()}{path}?user_content_key=k1&amp;lib=L2"
        return web.Response(status=status, text=MOVED_PAGE.format(href=href), content_type="text/html")

    def undecodable() -> web.Response:
        return web.Response(body=UNDECODABLE, content_type="text/plain", charset="utf-8")

    async def direct(request: web.Request) -> web.Response:
        request.app[received_key].append(("POST", await request.json()))
        return web.json_response({"result": "success"})

    async def redirect(request: web.Request) -> web.Response:
        return moved(request, "/echo")

    async def moved_200(request: web.Request) -> web.Response:
        return moved(request, "/echo", status=200)

    async def redirect_nohref(request: web.Request) -> web.Response:
        return web.Response(status=302, text="<HTML>Moved Temporarily</HTML>", content_type="text/html")

    async def redirect_bad(request: web.Request) -> web.Response:
        return moved(request, "/broken")

    async def error(request: web.Request) -> web.Response:
        return web.Response(status=500, text="Script error")

    async def garbled(request: web.Request) -> web.Response:
        request.app[received_key].append(("POST", await request.json()))
        return undecodable()

    async def redirect_garbled(request: web.Request) -> web.Response:
        return moved(request, "/garbled-echo")

    async def echo(request: web.Request) -> web.Response:
        request.app[received_key].append(("GET", dict(request.query)))
        return web.Response(text='{"result":"success"}')

    async def garbled_echo(request: web.Request) -> web.Response:
        request.app[received_key].append(("GET", dict(request.query)))
        return undecodable()

    async def broken(request: web.Request) -> web.Response:
        return web.Response(status=500, text="nope")

    app.router.add_post("/exec", direct)
    app.router.add_post("/redirect", redirect)
    app.router.add_post("/moved-200", moved_200)
    app.router.add_post("/redirect-nohref", redirect_nohref)
    app.router.add_post("/redirect-bad", redirect_bad)
    app.router.add_post("/error", error)
    app.router.add_post("/garbled", garbled)
    app.router.add_post("/redirect-garbled", redirect_garbled)
    app.router.add_get("/echo", echo)
    app.router.add_get("/garbled-echo", garbled_echo)
    app.router.add_get("/broken", broken)
    return app


@pytest.fixture
async def webhook():
    server = TestServer(_fake_webhook())
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


@pytest.fixture
def received(webhook) -> List[tuple]:
    """Requests the fake webhook recorded, in arrival order."""
    return webhook.app[received_key]


@pytest.fixture
async def http_session():
    async with aiohttp.ClientSession() as session:
        yield session
