"""
Registration wizard controller.

A four-step finite-state machine over an in-memory registration draft:

    0 TEAM_INFO  → 1 PROBLEM_TRACK → 2 MEMBERS → 3 REVIEW

Moving forward is gated by the current step's validation; moving back is
never validated.  The controller has no UI of its own; the chat handlers
render it and persist it between updates via ``to_dict`` / ``from_dict``.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

from teamreg.models import RegistrationResponse
from teamreg.services.api_client import ApiClientError, pick_error_message
from teamreg.validators import (
    Invalid,
    ValidationResult,
    Valid,
    validate_members,
    validate_problem_track,
    validate_team_info,
)

logger = logging.getLogger(__name__)

TEAM_INFO, PROBLEM_TRACK, MEMBERS, REVIEW = range(4)
LAST_STEP = REVIEW

STEP_TITLES = {
    TEAM_INFO:     ("Team Info", "Basic team information"),
    PROBLEM_TRACK: ("Problem Statement", "Choose your challenge"),
    MEMBERS:       ("Team Members", "Add your team members"),
    REVIEW:        ("Review", "Confirm your registration"),
}

MIN_MEMBERS = 1
MAX_MEMBERS = 2

# Text fields a user can type into (wire name → FormData attribute)
TEXT_FIELDS = {
    "teamName":        "team_name",
    "teamLeaderName":  "team_leader_name",
    "teamLeaderEmail": "team_leader_email",
    "teamLeaderPhone": "team_leader_phone",
    "problemTrack":    "problem_track",
}
MEMBER_FIELDS = ("name", "email")


class RegistrationSubmitter(Protocol):
    async def submit(self, payload: Mapping[str, Any]) -> RegistrationResponse: ...


def _empty_member() -> Dict[str, str]:
    return {"name": "", "email": ""}


@dataclass
class FormData:
    team_name:         str = ""
    team_leader_name:  str = ""
    team_leader_email: str = ""
    team_leader_phone: str = ""
    team_size:         int = 2
    problem_track:     str = ""
    members: List[Dict[str, str]] = field(
        default_factory=lambda: [_empty_member(), _empty_member()]
    )


@dataclass
class SubmitOutcome:
    success: bool
    team_id: Optional[str] = None
    message: str = ""


@dataclass
class WizardController:
    current_step:  int = TEAM_INFO
    form:          FormData = field(default_factory=FormData)
    errors:        Dict[str, str] = field(default_factory=dict)
    is_submitting: bool = False
    show_success:  bool = False
    team_id:       Optional[str] = None

    # ── Persistence ───────────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "WizardController":
        if not data:
            return cls()
        form = dict(data.get("form") or {})
        form["members"] = [
            {"name": m.get("name", ""), "email": m.get("email", "")}
            for m in form.get("members", [])
        ] or [_empty_member()]
        return cls(
            current_step=data.get("current_step", TEAM_INFO),
            form=FormData(**form),
            errors=dict(data.get("errors") or {}),
            is_submitting=data.get("is_submitting", False),
            show_success=data.get("show_success", False),
            team_id=data.get("team_id"),
        )

    def reset(self) -> None:
        """Back to the initial defaults (wizard closed)."""
        fresh = WizardController()
        self.__dict__.update(fresh.__dict__)

    # ── Input ─────────────────────────────────────────────────────────────────

    def set_field(self, name: str, value: str) -> None:
        if name not in TEXT_FIELDS:
            raise KeyError(f"Unknown field: {name}")
        setattr(self.form, TEXT_FIELDS[name], value)

    def set_member_field(self, index: int, name: str, value: str) -> None:
        if name not in MEMBER_FIELDS:
            raise KeyError(f"Unknown member field: {name}")
        self.form.members[index][name] = value

    def add_member(self) -> bool:
        if len(self.form.members) >= MAX_MEMBERS:
            return False
        self.form.members.append(_empty_member())
        self.form.team_size = len(self.form.members) + 1
        return True

    def remove_member(self, index: int) -> bool:
        if len(self.form.members) <= MIN_MEMBERS or not 0 <= index < len(self.form.members):
            return False
        del self.form.members[index]
        self.form.team_size = len(self.form.members) + 1
        return True

    # ── Navigation ────────────────────────────────────────────────────────────

    def check_step(self, step: int) -> ValidationResult:
        f = self.form
        if step == TEAM_INFO:
            return validate_team_info(
                f.team_name, f.team_leader_name, f.team_leader_email, f.team_leader_phone
            )
        if step == PROBLEM_TRACK:
            return validate_problem_track(f.problem_track)
        if step == MEMBERS:
            return validate_members(f.members)
        return Valid()

    def validate_step(self, step: int) -> bool:
        result = self.check_step(step)
        self.errors = dict(result.errors) if isinstance(result, Invalid) else {}
        return not self.errors

    def advance(self) -> bool:
        if not self.validate_step(self.current_step):
            return False
        self.current_step = min(self.current_step + 1, LAST_STEP)
        return True

    def retreat(self) -> None:
        self.current_step = max(self.current_step - 1, TEAM_INFO)

    # ── Submission ────────────────────────────────────────────────────────────

    def valid_members(self) -> List[Dict[str, str]]:
        return [
            {"name": m["name"].strip(), "email": m["email"].strip()}
            for m in self.form.members
            if m["name"].strip() and m["email"].strip()
        ]

    def build_payload(self) -> Dict[str, Any]:
        valid = self.valid_members()
        actual_team_size = len(valid) + 1  # +1 for the team leader

        members = []
        for i in range(actual_team_size - 1):
            members.append(valid[i] if i < len(valid) else _empty_member())

        return {
            "teamName":        self.form.team_name,
            "teamLeaderName":  self.form.team_leader_name,
            "teamLeaderEmail": self.form.team_leader_email,
            "teamLeaderPhone": self.form.team_leader_phone,
            "teamSize":        actual_team_size,
            "problemTrack":    self.form.problem_track,
            "members":         members,
        }

    async def submit(self, client: RegistrationSubmitter) -> SubmitOutcome:
        """Send the registration once; never retries."""
        if not self.validate_step(self.current_step):
            return SubmitOutcome(success=False, message=next(iter(self.errors.values())))

        self.is_submitting = True
        try:
            response = await client.submit(self.build_payload())
        except ApiClientError as exc:
            return SubmitOutcome(success=False, message=str(exc))
        finally:
            self.is_submitting = False

        if response.success:
            self.show_success = True
            self.team_id = response.team_id
            logger.info("Registration successful: %s", response.team_id)
            return SubmitOutcome(success=True, team_id=response.team_id, message=response.message or "")

        return SubmitOutcome(success=False, message=pick_error_message(response))
