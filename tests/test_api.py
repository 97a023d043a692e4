"""
Integration tests: submission endpoint (api/server.py + registration_service.py).

The aiohttp app runs in-process via aiohttp's TestClient with a FakeRelay
injected in place of the spreadsheet webhook, so every test exercises the
real HTTP layer: JSON parsing, status codes and the response envelope.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest
from aiohttp.test_utils import TestClient, TestServer

from teamreg.api import create_app
from teamreg.services.registration_service import (
    build_sheets_row,
    make_team_id,
    register_team,
    utc_timestamp,
)
from teamreg.services.sheets_service import SheetsWebhookRelay
from teamreg.validators import validate_registration

TEAM_ID_RE = re.compile(r"^nutpam-2025-\d{13}-[0-9a-z]{6}$")


@pytest.fixture
async def make_client():
    """Factory fixture: starts the endpoint around a given relay."""
    clients = []

    async def _make(relay) -> TestClient:
        client = TestClient(TestServer(create_app(relay=relay, team_id_prefix="nutpam-2025")))
        await client.start_server()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.close()


# ─────────────────────────── Helpers ──────────────────────────────────────────

class TestTeamId:
    def test_format(self) -> None:
        assert TEAM_ID_RE.match(make_team_id("nutpam-2025"))

    def test_fixed_clock(self) -> None:
        team_id = make_team_id("evt", now_ms=1700000000000)
        assert team_id.startswith("evt-1700000000000-")
        assert len(team_id.rsplit("-", 1)[1]) == 6


class TestSheetsRowBuilder:
    def test_timestamp_is_iso_utc_millis(self) -> None:
        ts = utc_timestamp(datetime(2025, 3, 1, 9, 30, 0, 123456, tzinfo=timezone.utc))
        assert ts == "2025-03-01T09:30:00.123Z"

    def test_flattens_members(self, valid_payload) -> None:
        valid_payload.update(
            teamSize="3",
            members=[{"name": " B ", "email": "b@c.com"}, {"name": "C", "email": "c@d.com"}],
        )
        row = build_sheets_row(validate_registration(valid_payload).value, timestamp="t")
        assert row.team_size == 3
        assert row.member_names == "B, C"
        assert row.timestamp == "t"


class TestRegisterTeamService:
    async def test_success(self, valid_payload, fake_relay) -> None:
        status, response = await register_team(valid_payload, fake_relay, "nutpam-2025")
        assert status == 200
        assert response.success is True
        assert TEAM_ID_RE.match(response.team_id)
        assert len(fake_relay.rows) == 1

    async def test_validation_failure_never_relays(self, valid_payload, fake_relay) -> None:
        valid_payload["teamLeaderEmail"] = "not-an-email"
        status, _ = await register_team(valid_payload, fake_relay, "nutpam-2025")
        assert status == 400
        assert fake_relay.rows == []


# ─────────────────────────── HTTP endpoint ────────────────────────────────────

class TestRegisterEndpointSuccess:
    async def test_alpha_team_registered(self, make_client, valid_payload, fake_relay) -> None:
        client = await make_client(fake_relay)
        resp = await client.post("/api/register", json=valid_payload)
        body = await resp.json()

        assert resp.status == 200
        assert body["success"] is True
        assert body["message"] == "Registration completed successfully"
        assert TEAM_ID_RE.match(body["teamId"])
        assert "errors" not in body

    async def test_relayed_row(self, make_client, valid_payload, fake_relay) -> None:
        client = await make_client(fake_relay)
        await client.post("/api/register", json=valid_payload)

        [row] = fake_relay.rows
        assert row.team_name == "Alpha"
        assert row.team_size == 2
        assert row.member_names == "B"
        assert row.problem_track == "AI"
        assert row.timestamp.endswith("Z")


class TestRegisterEndpointValidation:
    async def test_member_count_mismatch(self, make_client, valid_payload, fake_relay) -> None:
        client = await make_client(fake_relay)
        valid_payload["teamSize"] = 3
        resp = await client.post("/api/register", json=valid_payload)

        assert resp.status == 400
        assert await resp.json() == {
            "success": False,
            "errors": {"members": "Expected 2 members, got 1"},
        }

    async def test_invalid_leader_email(self, make_client, valid_payload, fake_relay) -> None:
        client = await make_client(fake_relay)
        valid_payload["teamLeaderEmail"] = "not-an-email"
        resp = await client.post("/api/register", json=valid_payload)

        assert resp.status == 400
        assert (await resp.json())["errors"] == {"teamLeaderEmail": "Invalid email format"}

    async def test_missing_fields_all_listed(self, make_client, fake_relay) -> None:
        client = await make_client(fake_relay)
        resp = await client.post("/api/register", json={"teamName": "Alpha"})

        assert resp.status == 400
        general = (await resp.json())["errors"]["general"]
        for field in ("teamLeaderName", "teamLeaderEmail", "teamLeaderPhone", "teamSize", "problemTrack"):
            assert field in general
        assert "teamName" not in general.replace("Missing required fields:", "")

    @pytest.mark.parametrize("size", [1, 4, "many", pytest.param("9" * 5000, id="huge-digit-run")])
    async def test_bad_team_size(self, make_client, valid_payload, fake_relay, size) -> None:
        client = await make_client(fake_relay)
        valid_payload["teamSize"] = size
        resp = await client.post("/api/register", json=valid_payload)

        assert resp.status == 400
        assert "teamSize" in (await resp.json())["errors"]
        assert fake_relay.rows == []


class TestRegisterEndpointFailures:
    async def test_relay_failure_is_500_without_team_id(self, make_client, make_relay, valid_payload) -> None:
        client = await make_client(make_relay(fail=True))
        resp = await client.post("/api/register", json=valid_payload)
        body = await resp.json()

        assert resp.status == 500
        assert body == {
            "success": False,
            "errors": {"general": "Failed to connect to registration system"},
        }

    async def test_unexpected_error_is_masked(self, make_client, make_relay, valid_payload) -> None:
        client = await make_client(make_relay(crash=True))
        resp = await client.post("/api/register", json=valid_payload)

        assert resp.status == 500
        assert (await resp.json())["errors"] == {"general": "Internal server error"}

    async def test_malformed_json_is_masked(self, make_client, fake_relay) -> None:
        client = await make_client(fake_relay)
        resp = await client.post(
            "/api/register", data="{not json", headers={"Content-Type": "application/json"}
        )

        assert resp.status == 500
        assert (await resp.json())["errors"] == {"general": "Internal server error"}

    async def test_only_post_is_routed(self, make_client, fake_relay) -> None:
        client = await make_client(fake_relay)
        resp = await client.get("/api/register")
        assert resp.status == 405


class TestRegisterEndpointWithWebhook:
    """Endpoint wired to the real relay, talking to the fake webhook."""

    async def test_302_redirect_completes_registration(
        self, make_client, webhook, http_session, received, valid_payload
    ) -> None:
        relay = SheetsWebhookRelay(str(webhook.make_url("/redirect")), http_session)
        client = await make_client(relay)
        resp = await client.post("/api/register", json=valid_payload)
        body = await resp.json()

        assert resp.status == 200
        assert body["success"] is True
        assert TEAM_ID_RE.match(body["teamId"])
        [(method, query)] = received
        assert method == "GET"
        assert query["teamName"] == "Alpha"
        assert query["memberNames"] == "B"

    async def test_undecodable_webhook_body_still_succeeds(
        self, make_client, webhook, http_session, valid_payload
    ) -> None:
        relay = SheetsWebhookRelay(str(webhook.make_url("/garbled")), http_session)
        client = await make_client(relay)
        resp = await client.post("/api/register", json=valid_payload)

        assert resp.status == 200
        assert (await resp.json())["success"] is True

    async def test_webhook_error_is_relay_failure(
        self, make_client, webhook, http_session, valid_payload
    ) -> None:
        relay = SheetsWebhookRelay(str(webhook.make_url("/error")), http_session)
        client = await make_client(relay)
        resp = await client.post("/api/register", json=valid_payload)

        assert resp.status == 500
        assert (await resp.json())["errors"] == {"general": "Failed to connect to registration system"}
