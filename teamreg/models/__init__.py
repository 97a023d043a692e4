from teamreg.models.registration import (
    Member,
    Registration,
    RegistrationResponse,
    SheetsRow,
)

__all__ = [
    "Member",
    "Registration",
    "RegistrationResponse",
    "SheetsRow",
]
