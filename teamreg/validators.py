"""
Shared validation rules for team registration.

One rule set, two consumers: the step-by-step wizard (``validate_team_info``,
``validate_problem_track``, ``validate_members``) and the submission endpoint
(``validate_registration``).  Every check returns a tagged result:

    Valid(value)       passed; ``value`` carries the normalized data, if any
    Invalid(errors)    failed; ``errors`` maps field name → message

Keeps validation logic out of handler code and makes it trivially testable.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from teamreg.models import Member, Registration

# local@domain.tld: no whitespace, exactly one "@" between parts
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Optional leading "+", then 10–15 of digits / spaces / hyphens / parentheses
PHONE_RE = re.compile(r"^[+]?[0-9\s\-()]{10,15}$")

_WHITESPACE_RE = re.compile(r"\s")
_LEADING_INT_RE = re.compile(r"\s*([+-]?[0-9]+)")

MIN_TEAM_SIZE = 2
MAX_TEAM_SIZE = 3

# Fields the endpoint requires, in reporting order
REQUIRED_FIELDS = (
    "teamName",
    "teamLeaderName",
    "teamLeaderEmail",
    "teamLeaderPhone",
    "teamSize",
    "problemTrack",
)

MSG_REQUIRED      = "This field is required"
MSG_EMAIL         = "Please enter a valid email address"
MSG_INVALID_EMAIL = "Invalid email format"
MSG_INVALID_PHONE = "Invalid phone format"
MSG_TEAM_SIZE     = "Team must have 2-3 members"
MSG_MEMBERS_SHAPE = "Invalid members data format"
MSG_MIN_MEMBERS   = "At least 1 additional member required"
MSG_MAX_MEMBERS   = "Maximum 2 additional members allowed"


# ─────────────────────────── Result type ──────────────────────────────────────

@dataclass(frozen=True)
class Valid:
    value: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False


ValidationResult = Union[Valid, Invalid]


# ─────────────────────────── Primitive rules ──────────────────────────────────

def _text(value: Any) -> str:
    """Stripped text, or "" for anything that is not a string."""
    return value.strip() if isinstance(value, str) else ""


def is_blank(value: Any) -> bool:
    return not _text(value)


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.fullmatch(value))


def is_valid_phone(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return bool(PHONE_RE.fullmatch(_WHITESPACE_RE.sub("", value)))


def parse_team_size(value: Any) -> Optional[int]:
    """
    Lenient integer parse: ``3`` → 3, ``2.9`` → 2, ``"3 people"`` → 3.
    Returns None for anything without a leading integer, or one too long
    to convert.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        m = _LEADING_INT_RE.match(value)
        if not m:
            return None
        try:
            return int(m.group(1))
        except ValueError:
            # digit run longer than the interpreter will convert
            return None
    return None


def _team_size_missing(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (int, float)):
        return value == 0
    return False


# ─────────────────────────── Field models ─────────────────────────────────────
#
# Per-field rules live in pydantic models; every rule raises ValueError with
# the user-facing message, which ``_messages`` maps back to wire field names.
# Models validate raw input (``mode="before"``) so non-string values reach the
# rules instead of failing pydantic's own type check.

class _FieldModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TeamInfoData(_FieldModel):
    """
    Wizard step 0 draft.

    Attributes
    ----------
    team_name         : non-blank
    team_leader_name  : non-blank
    team_leader_email : non-blank, local@domain.tld
    team_leader_phone : non-blank, 10–15 digits / spaces / ``-()``, optional ``+``
    """

    team_name:         str
    team_leader_name:  str
    team_leader_email: str
    team_leader_phone: str

    @field_validator("team_name", "team_leader_name", mode="before")
    @classmethod
    def require_text(cls, v: Any) -> str:
        if is_blank(v):
            raise ValueError(MSG_REQUIRED)
        return _text(v)

    @field_validator("team_leader_email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> str:
        if is_blank(v):
            raise ValueError(MSG_REQUIRED)
        if not is_valid_email(v):
            raise ValueError(MSG_EMAIL)
        return _text(v)

    @field_validator("team_leader_phone", mode="before")
    @classmethod
    def validate_phone(cls, v: Any) -> str:
        if is_blank(v):
            raise ValueError(MSG_REQUIRED)
        if not is_valid_phone(v):
            raise ValueError(MSG_INVALID_PHONE)
        return _text(v)


class LeaderContactData(_FieldModel):
    """Leader contact as checked by the endpoint (presence already verified)."""

    team_leader_email: str
    team_leader_phone: str

    @field_validator("team_leader_email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> str:
        if not is_valid_email(v):
            raise ValueError(MSG_INVALID_EMAIL)
        return _text(v)

    @field_validator("team_leader_phone", mode="before")
    @classmethod
    def validate_phone(cls, v: Any) -> str:
        if not is_valid_phone(v):
            raise ValueError(MSG_INVALID_PHONE)
        return _text(v)


class TeamSizeData(_FieldModel):
    team_size: int

    @field_validator("team_size", mode="before")
    @classmethod
    def validate_team_size(cls, v: Any) -> int:
        size = parse_team_size(v)
        if size is None or not MIN_TEAM_SIZE <= size <= MAX_TEAM_SIZE:
            raise ValueError(MSG_TEAM_SIZE)
        return size


class WizardMemberData(_FieldModel):
    """
    One named member row from the wizard.

    Messages carry the member's 1-based position in the team, passed in as
    ``context={"label": n}`` (the leader is member 1).
    """

    name:  str
    email: str

    @field_validator("name", mode="before")
    @classmethod
    def require_name(cls, v: Any, info: ValidationInfo) -> str:
        if is_blank(v):
            raise ValueError(f"Member {info.context['label']} name is required")
        return _text(v)

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any, info: ValidationInfo) -> str:
        label = info.context["label"]
        if is_blank(v):
            raise ValueError(f"Member {label} email is required")
        if not is_valid_email(v):
            raise ValueError(f"Member {label} needs a valid email")
        return _text(v)


class MemberEntryData(_FieldModel):
    """One ``members`` entry as submitted to the endpoint; same ``label`` context."""

    name:  str
    email: str

    @model_validator(mode="before")
    @classmethod
    def require_both_parts(cls, data: Any, info: ValidationInfo) -> Any:
        label = info.context["label"]
        if not isinstance(data, Mapping):
            raise ValueError(f"Member {label} data is invalid")
        has_name  = not is_blank(data.get("name"))
        has_email = not is_blank(data.get("email"))
        if not has_name or not has_email:
            raise ValueError(
                f"Member {label} details incomplete "
                f"(name: {str(has_name).lower()}, email: {str(has_email).lower()})"
            )
        return data

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> str:
        return _text(v)

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any, info: ValidationInfo) -> str:
        if not is_valid_email(v):
            raise ValueError(f"Member {info.context['label']} has invalid email format")
        return _text(v)


def _message(error: Mapping[str, Any]) -> str:
    """The ValueError text a rule raised, without pydantic's prefix."""
    cause = (error.get("ctx") or {}).get("error")
    return str(cause) if cause is not None else error["msg"]


def _messages(exc: ValidationError, default_field: str = "general") -> Dict[str, str]:
    """Field name → message, first error per field, in validation order."""
    errors: Dict[str, str] = {}
    for error in exc.errors():
        loc = error["loc"]
        errors.setdefault(str(loc[0]) if loc else default_field, _message(error))
    return errors


def _first(errors: Dict[str, str]) -> Dict[str, str]:
    key = next(iter(errors))
    return {key: errors[key]}


# ─────────────────────────── Wizard steps ─────────────────────────────────────

def validate_team_info(
    team_name: str,
    leader_name: str,
    leader_email: str,
    leader_phone: str,
) -> ValidationResult:
    """Step 0: team identity and leader contact; reports every failing field."""
    try:
        TeamInfoData.model_validate({
            "teamName":        team_name,
            "teamLeaderName":  leader_name,
            "teamLeaderEmail": leader_email,
            "teamLeaderPhone": leader_phone,
        })
    except ValidationError as exc:
        return Invalid(_messages(exc))
    return Valid()


def validate_problem_track(track: str) -> ValidationResult:
    """Step 1: a challenge must be selected."""
    if is_blank(track):
        return Invalid({"problemTrack": MSG_REQUIRED})
    return Valid()


def validate_members(members: Sequence[Mapping[str, Any]]) -> ValidationResult:
    """
    Step 2: additional members.

    Only rows with a non-blank name count, so empty placeholder rows left in
    the form are tolerated.  First failing member wins.
    """
    valid_members = [m for m in members if not is_blank(m.get("name"))]

    if len(valid_members) < MIN_TEAM_SIZE - 1:
        return Invalid({"members": MSG_MIN_MEMBERS})
    if len(valid_members) > MAX_TEAM_SIZE - 1:
        return Invalid({"members": MSG_MAX_MEMBERS})

    for i, member in enumerate(valid_members):
        try:
            WizardMemberData.model_validate(dict(member), context={"label": i + 2})
        except ValidationError as exc:
            return Invalid({"members": next(iter(_messages(exc).values()))})

    return Valid()


# ─────────────────────────── Endpoint ─────────────────────────────────────────

def _missing_fields(payload: Mapping[str, Any]) -> List[str]:
    missing = []
    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if name == "teamSize":
            if _team_size_missing(value):
                missing.append(name)
        elif is_blank(value):
            missing.append(name)
    return missing


def validate_registration(payload: Any) -> ValidationResult:
    """
    Full server-side check, in fixed priority order:

        presence → format → members shape → member count → each member

    The first failing stage short-circuits.  On success the result carries a
    normalized ``Registration``.
    """
    if not isinstance(payload, Mapping):
        return Invalid({"general": "Missing required fields: " + ", ".join(REQUIRED_FIELDS)})

    missing = _missing_fields(payload)
    if missing:
        return Invalid({"general": f"Missing required fields: {', '.join(missing)}"})

    try:
        contact = LeaderContactData.model_validate(
            {k: payload[k] for k in ("teamLeaderEmail", "teamLeaderPhone")}
        )
        team_size = TeamSizeData.model_validate({"teamSize": payload["teamSize"]}).team_size
    except ValidationError as exc:
        # email before phone, then team size
        return Invalid(_first(_messages(exc)))

    members = payload.get("members")
    if not isinstance(members, list):
        return Invalid({"members": MSG_MEMBERS_SHAPE})

    expected = team_size - 1
    if len(members) != expected:
        return Invalid({"members": f"Expected {expected} members, got {len(members)}"})

    entries = []
    for i, member in enumerate(members):
        try:
            entries.append(MemberEntryData.model_validate(member, context={"label": i + 2}))
        except ValidationError as exc:
            return Invalid({"members": next(iter(_messages(exc).values()))})

    return Valid(
        Registration(
            team_name=_text(payload["teamName"]),
            team_leader_name=_text(payload["teamLeaderName"]),
            team_leader_email=contact.team_leader_email,
            team_leader_phone=contact.team_leader_phone,
            team_size=team_size,
            problem_track=_text(payload["problemTrack"]),
            members=[Member(name=e.name, email=e.email) for e in entries],
        )
    )
