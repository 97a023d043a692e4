"""
Central configuration via pydantic-settings.
All secrets are read from environment variables / .env file.
"""
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Telegram ──────────────────────────────────────────────────────────────
    # Blank token → only the HTTP endpoint is started
    BOT_TOKEN: str = ""

    # ── Submission endpoint ───────────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080

    # Where the wizard sends the finished registration
    REGISTRATION_API_URL: str = "http://127.0.0.1:8080/api/register"
    API_TIMEOUT_SECONDS: float = 30.0

    # ── Spreadsheet webhook (Google Apps Script web app) ──────────────────────
    SHEETS_WEBHOOK_URL: str = ""
    RELAY_TIMEOUT_SECONDS: float = 30.0

    # ── Event ─────────────────────────────────────────────────────────────────
    TEAM_ID_PREFIX: str = "nutpam-2025"

    # Raw comma-separated challenge names, e.g. "AI for Health,Smart Cities"
    PROBLEM_TRACKS: str = ""

    LOG_LEVEL: str = "INFO"

    # ─────────────────────────────────────────────────────────────────────────

    @property
    def problem_tracks_list(self) -> list[str]:
        """Parse PROBLEM_TRACKS env var to an ordered list of track names."""
        if not self.PROBLEM_TRACKS:
            return []
        return [x.strip() for x in self.PROBLEM_TRACKS.split(",") if x.strip()]

    @property
    def bot_enabled(self) -> bool:
        return bool(self.BOT_TOKEN.strip())


settings = Settings()
