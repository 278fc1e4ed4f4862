"""
Schémas Pydantic pour les pages publiques d'invitation.
"""

from datetime import datetime
from typing import Optional

from pydantic import model_validator, field_validator

from parcinfo.schemas.common import CamelModel
from parcinfo.schemas.user import check_password_length


class InviteUserInfo(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str  # masqué : m***@domaine
    expires_at: datetime


class InviteInfoResponse(CamelModel):
    valid: bool = True
    user_info: InviteUserInfo


class SetPasswordRequest(CamelModel):
    password: str
    confirm_password: Optional[str] = None  # facultatif ; vérifié s'il est fourni

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return check_password_length(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "SetPasswordRequest":
        if self.confirm_password is not None and self.password != self.confirm_password:
            raise ValueError("Les mots de passe ne correspondent pas.")
        return self


def mask_email(email: str) -> str:
    """m.rossi@parcinfo.it → m******@parcinfo.it"""
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}{'*' * max(len(local) - 1, 1)}@{domain}"
