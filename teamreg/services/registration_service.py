"""
Team registration service: the logic behind ``POST /api/register``.

The handler never trusts the wizard: the payload is validated again with the
shared rule set, normalized, relayed to the spreadsheet webhook and answered
with a JSON envelope plus HTTP status:

    200  {success: true,  teamId, message}
    400  {success: false, errors: {field: message}}        validation
    500  {success: false, errors: {general: message}}      relay / internal
"""
from __future__ import annotations

import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, Tuple

from teamreg.models import Registration, RegistrationResponse, SheetsRow
from teamreg.services.sheets_service import RelayError
from teamreg.validators import Invalid, validate_registration

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Registration completed successfully"
RELAY_FAILED    = "Failed to connect to registration system"
INTERNAL_ERROR  = "Internal server error"

_BASE36 = string.digits + string.ascii_lowercase


class RowRelay(Protocol):
    async def submit(self, row: SheetsRow) -> None: ...


def make_team_id(prefix: str, now_ms: Optional[int] = None) -> str:
    """``<prefix>-<epoch millis>-<6 base36 chars>``; not checked for uniqueness."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{prefix}-{now_ms}-{suffix}"


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with milliseconds, e.g. ``2025-03-01T09:30:00.123Z``."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_sheets_row(registration: Registration, timestamp: Optional[str] = None) -> SheetsRow:
    return SheetsRow(
        timestamp=timestamp or utc_timestamp(),
        team_name=registration.team_name,
        team_leader_name=registration.team_leader_name,
        team_leader_email=registration.team_leader_email,
        team_leader_phone=registration.team_leader_phone,
        team_size=registration.team_size,
        member_names=registration.member_names,
        problem_track=registration.problem_track,
    )


async def register_team(
    payload: Any,
    relay: RowRelay,
    team_id_prefix: str,
) -> Tuple[int, RegistrationResponse]:
    """
    Validate and relay one registration.

    Returns (HTTP status, response envelope).  Never raises for bad input or
    relay failures; unexpected errors are left to the HTTP layer.
    """
    logger.info("Received registration data: %s", payload)

    result = validate_registration(payload)
    if isinstance(result, Invalid):
        logger.info("Registration rejected: %s", result.errors)
        return 400, RegistrationResponse(success=False, errors=result.errors)

    registration: Registration = result.value
    team_id = make_team_id(team_id_prefix)
    row     = build_sheets_row(registration)

    try:
        await relay.submit(row)
    except RelayError as exc:
        logger.error("Spreadsheet relay failed for %r: %s", registration.team_name, exc)
        return 500, RegistrationResponse(success=False, errors={"general": RELAY_FAILED})

    logger.info(
        "Registration successful: team_id=%s team=%r size=%s track=%r",
        team_id, registration.team_name, registration.team_size, registration.problem_track,
    )
    return 200, RegistrationResponse(success=True, message=SUCCESS_MESSAGE, team_id=team_id)
