"""
Wire models for team registration.

Domain overview
---------------
Registration  : one team submission (leader contact + problem track)
  └─ Member    : an additional team member (name + email, never a phone)
SheetsRow     : flattened row relayed to the spreadsheet webhook
RegistrationResponse : JSON envelope returned by the submission endpoint

All models serialize with camelCase keys (``model_dump(by_alias=True)``)
and accept either snake_case or camelCase on input.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Member(_CamelModel):
    name:  str
    email: str


class Registration(_CamelModel):
    """Normalized registration, produced only by a successful validation."""

    team_name:         str
    team_leader_name:  str
    team_leader_email: str
    team_leader_phone: str
    team_size:         int
    problem_track:     str
    members:           List[Member]

    @property
    def member_names(self) -> str:
        """Member names as a single comma-separated string."""
        return ", ".join(m.name for m in self.members if m.name)


class SheetsRow(_CamelModel):
    """One spreadsheet row as accepted by the external webhook."""

    timestamp:         str
    team_name:         str
    team_leader_name:  str
    team_leader_email: str
    team_leader_phone: str
    team_size:         int
    member_names:      str
    problem_track:     str

    def as_query_params(self) -> Dict[str, str]:
        """Field → string value, in declaration order, for the GET fallback."""
        return {k: str(v) for k, v in self.model_dump(by_alias=True).items()}


class RegistrationResponse(_CamelModel):
    success: bool
    message: Optional[str] = None
    team_id: Optional[str] = None
    errors:  Optional[Dict[str, str]] = None

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
