"""
Schémas Pydantic pour les utilisateurs et leur administration.
"""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, field_validator

from parcinfo.config import settings
from parcinfo.domain import VALID_ROLES, User
from parcinfo.schemas.common import CamelModel
from parcinfo.services.password_service import PASSWORD_MAX_BYTES


def check_password_length(v: str) -> str:
    if len(v) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(f"Le mot de passe doit contenir au moins {settings.PASSWORD_MIN_LENGTH} caractères.")
    if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Le mot de passe ne doit pas dépasser {PASSWORD_MAX_BYTES} octets.")
    return v


class UserPublic(CamelModel):
    """Profil sans données sensibles (ni hash, ni secret 2FA, ni codes de secours)."""
    id: str
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    is_active: bool
    two_factor_enabled: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            is_active=user.is_active,
            two_factor_enabled=user.two_factor_enabled,
            last_login=user.last_login,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserCreate(CamelModel):
    """
    Création par un administrateur (POST /api/users).
    Sans mot de passe, le compte est créé inactif et une invitation est émise.
    """
    email: EmailStr
    first_name: str
    last_name: str
    role: str = "user"
    username: Optional[str] = None  # par défaut : l'email
    password: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip()

    @field_validator("role")
    @classmethod
    def valid_role(cls, v: str) -> str:
        if v not in VALID_ROLES:
            raise ValueError(f"Rôle invalide. Valeurs acceptées : {sorted(VALID_ROLES)}")
        return v

    @field_validator("username")
    @classmethod
    def username_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Le nom d'utilisateur ne peut pas être vide.")
        return v.strip() if v else v

    @field_validator("password")
    @classmethod
    def password_length(cls, v: Optional[str]) -> Optional[str]:
        return check_password_length(v) if v is not None else v


class UserStatusUpdate(CamelModel):
    is_active: bool


class AdminSetPassword(CamelModel):
    password: str

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return check_password_length(v)


class ProfileUpdate(CamelModel):
    first_name: str
    last_name: str
    email: EmailStr

    @field_validator("first_name", "last_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip()


class InviteDeliveryResponse(CamelModel):
    """Lien d'invitation renvoyé à l'administrateur ; le jeton brut seulement si aucun email n'est parti."""
    invite_link: str
    invite_message: str
    invite_token: Optional[str] = None
    email_sent: bool = False


class UserCreatedResponse(CamelModel):
    message: str
    user: UserPublic
    invite: Optional[InviteDeliveryResponse] = None


class UserUpdatedResponse(CamelModel):
    message: str
    user: UserPublic
