"""
Submission endpoint: aiohttp web application.

Routes
------
POST /api/register   validate + relay one team registration

The application owns one ClientSession for the spreadsheet relay, created on
startup and closed on cleanup.  Tests (or callers) may inject their own relay.
"""
from __future__ import annotations

import logging
from typing import AsyncIterator, Optional

import aiohttp
from aiohttp import web

from teamreg.config import settings
from teamreg.models import RegistrationResponse
from teamreg.services.registration_service import INTERNAL_ERROR, RowRelay, register_team
from teamreg.services.sheets_service import SheetsWebhookRelay

logger = logging.getLogger(__name__)

relay_key     = web.AppKey("relay", RowRelay)
id_prefix_key = web.AppKey("team_id_prefix", str)


async def handle_register(request: web.Request) -> web.Response:
    try:
        payload = await request.json()
        status, response = await register_team(
            payload,
            relay=request.app[relay_key],
            team_id_prefix=request.app[id_prefix_key],
        )
    except Exception:
        logger.exception("Registration error")
        status, response = 500, RegistrationResponse(
            success=False, errors={"general": INTERNAL_ERROR}
        )
    return web.json_response(response.to_json(), status=status)


async def _relay_ctx(app: web.Application) -> AsyncIterator[None]:
    """Own the relay's ClientSession for the lifetime of the app."""
    async with aiohttp.ClientSession() as session:
        app[relay_key] = SheetsWebhookRelay(
            settings.SHEETS_WEBHOOK_URL,
            session,
            timeout=settings.RELAY_TIMEOUT_SECONDS,
        )
        if not settings.SHEETS_WEBHOOK_URL:
            logger.warning("SHEETS_WEBHOOK_URL is not set; every registration will fail to relay.")
        yield


def create_app(
    relay: Optional[RowRelay] = None,
    team_id_prefix: Optional[str] = None,
) -> web.Application:
    app = web.Application()
    app[id_prefix_key] = team_id_prefix or settings.TEAM_ID_PREFIX
    if relay is not None:
        app[relay_key] = relay
    else:
        app.cleanup_ctx.append(_relay_ctx)

    app.router.add_post("/api/register", handle_register)
    return app
