"""
HTTP client used by the wizard to reach the submission endpoint.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping

import aiohttp
from pydantic import ValidationError

from teamreg.models import RegistrationResponse

logger = logging.getLogger(__name__)

# Order in which error keys are surfaced to the user
ERROR_PRIORITY = ("general", "members", "teamLeaderEmail", "teamLeaderPhone")


class ApiClientError(Exception):
    """The endpoint could not be reached or answered with garbage."""


def pick_error_message(response: RegistrationResponse) -> str:
    """Single most relevant message from a failed response."""
    errors = response.errors or {}
    for key in ERROR_PRIORITY:
        if errors.get(key):
            return errors[key]
    return response.message or "Unknown error"


class RegistrationApiClient:
    def __init__(
        self,
        url: str,
        session: aiohttp.ClientSession,
        timeout: float = 30.0,
    ) -> None:
        self._url     = url
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def submit(self, payload: Mapping[str, Any]) -> RegistrationResponse:
        logger.info("Submitting registration data: %s", payload)
        try:
            async with self._session.post(self._url, json=dict(payload), timeout=self._timeout) as resp:
                status = resp.status
                text   = await resp.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Registration network error: %s", exc)
            raise ApiClientError(str(exc) or "Network error") from exc

        logger.info("API response %s: %s", status, text)

        if 200 <= status < 300:
            try:
                return RegistrationResponse.model_validate_json(text)
            except ValidationError as exc:
                raise ApiClientError("Invalid response from registration service") from exc

        try:
            data = json.loads(text)
            response = RegistrationResponse.model_validate({"success": False, **data})
        except (ValueError, TypeError, ValidationError):
            response = RegistrationResponse(
                success=False, errors={"general": text or "Unknown error"}
            )
        if response.success:
            # Non-2xx can never count as success, whatever the body says
            response = response.model_copy(update={"success": False})
        logger.warning("Registration failed: %s", response.to_json())
        return response
