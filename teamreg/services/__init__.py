from teamreg.services.sheets_service import (
    RelayError, SheetsWebhookRelay, extract_redirect_url, build_fallback_url,
)
from teamreg.services.registration_service import (
    register_team, make_team_id, build_sheets_row, utc_timestamp,
)
from teamreg.services.api_client import (
    ApiClientError, RegistrationApiClient, pick_error_message,
)
from teamreg.services.wizard_service import (
    WizardController, FormData, SubmitOutcome,
    TEAM_INFO, PROBLEM_TRACK, MEMBERS, REVIEW, STEP_TITLES,
)

__all__ = [
    # spreadsheet relay
    "RelayError", "SheetsWebhookRelay", "extract_redirect_url", "build_fallback_url",
    # submission endpoint
    "register_team", "make_team_id", "build_sheets_row", "utc_timestamp",
    # endpoint client
    "ApiClientError", "RegistrationApiClient", "pick_error_message",
    # wizard
    "WizardController", "FormData", "SubmitOutcome",
    "TEAM_INFO", "PROBLEM_TRACK", "MEMBERS", "REVIEW", "STEP_TITLES",
]
