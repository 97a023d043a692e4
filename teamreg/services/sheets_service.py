"""
Google Sheets relay service.

Delivers one registration row to a Google Apps Script web app that appends
it to the event spreadsheet.  The web app is treated as an opaque HTTP sink
with one known quirk: instead of answering the POST directly it may reply
with a "302 Moved Temporarily" HTML page.

Delivery flow
-------------
1. POST the row as JSON (redirects are NOT followed automatically).
2. 2xx without a redirect marker → delivered.
3. Status 302, or a body containing "Moved Temporarily" →
       extract HREF="…" from the HTML, decode &amp;,
       append every row field as a query parameter,
       GET the resulting URL (redirect fallback).
4. Anything else → RelayError.

The fallback response body is logged but not interpreted: a 2xx means
"request accepted", not "row durably stored".
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Mapping, Optional
from urllib.parse import urlencode

import aiohttp

from teamreg.models import SheetsRow

logger = logging.getLogger(__name__)

REDIRECT_MARKER = "Moved Temporarily"

_HREF_RE = re.compile(r'HREF="([^"]+)"')


class RelayError(Exception):
    """Row could not be delivered to the spreadsheet webhook."""


def extract_redirect_url(body: str) -> Optional[str]:
    """Pull the redirect target out of a 302 HTML page, or None."""
    match = _HREF_RE.search(body)
    if not match:
        return None
    return match.group(1).replace("&amp;", "&")


def build_fallback_url(redirect_url: str, params: Mapping[str, str]) -> str:
    """Append ``params`` to ``redirect_url`` as query parameters."""
    if not params:
        return redirect_url
    sep = "&" if "?" in redirect_url else "?"
    return f"{redirect_url}{sep}{urlencode(list(params.items()))}"


class SheetsWebhookRelay:
    """
    Best-effort adapter around the spreadsheet webhook.

    Parameters
    ----------
    url     : Apps Script web-app URL
    session : shared aiohttp ClientSession (owned by the caller)
    timeout : total seconds allowed per outbound request
    """

    def __init__(
        self,
        url: str,
        session: aiohttp.ClientSession,
        timeout: float = 30.0,
    ) -> None:
        self._url     = url
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def submit(self, row: SheetsRow) -> None:
        """Deliver ``row``; raises RelayError on any failure."""
        if not self._url:
            raise RelayError("Spreadsheet webhook URL is not configured")

        payload = row.model_dump(by_alias=True)
        logger.info("Sending row to spreadsheet webhook: %s", payload)

        try:
            async with self._session.post(
                self._url,
                json=payload,
                allow_redirects=False,
                timeout=self._timeout,
            ) as resp:
                status = resp.status
                body   = await resp.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RelayError(f"Spreadsheet webhook unreachable: {exc}") from exc

        logger.info("Spreadsheet webhook responded %s", status)
        logger.debug("Spreadsheet webhook body: %s", body)

        if status == 302 or REDIRECT_MARKER in body:
            await self._follow_redirect(body, row)
        elif not 200 <= status < 300:
            logger.error("Spreadsheet webhook error %s: %s", status, body)
            raise RelayError(f"Spreadsheet webhook request failed: {status}")

    async def _follow_redirect(self, body: str, row: SheetsRow) -> None:
        redirect_url = extract_redirect_url(body)
        if not redirect_url:
            raise RelayError("Could not extract redirect URL from 302 response")

        url = build_fallback_url(redirect_url, row.as_query_params())
        logger.info("Following spreadsheet redirect to %s", redirect_url)

        try:
            async with self._session.get(url, timeout=self._timeout) as resp:
                status = resp.status
                result = await resp.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Redirect request failed: %s", exc)
            raise RelayError("All spreadsheet connection attempts failed") from exc

        logger.info("Redirect response %s: %s", status, result)
        if not 200 <= status < 300:
            raise RelayError(f"Redirect failed: {status}")
