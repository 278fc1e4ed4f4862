"""
Schémas Pydantic pour la connexion, la session et la double authentification.
"""

from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator

from parcinfo.schemas.common import CamelModel
from parcinfo.schemas.user import UserPublic


class LoginRequest(CamelModel):
    # "email" accepté comme synonyme : le formulaire historique envoyait l'email
    username: str = Field(validation_alias=AliasChoices("username", "email"))
    password: str
    two_factor_code: Optional[str] = None

    @field_validator("username")
    @classmethod
    def username_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("L'identifiant est obligatoire.")
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Le mot de passe est obligatoire.")
        return v

    @field_validator("two_factor_code")
    @classmethod
    def blank_code_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class LoginResponse(CamelModel):
    message: str
    session_id: str
    user: UserPublic


class TwoFactorRequiredResponse(CamelModel):
    requires_2fa: bool = Field(default=True, alias="requires2FA")
    message: str = "Code de vérification requis."


class CurrentUserResponse(CamelModel):
    id: str
    username: str
    email: str
    role: str


def _code_format(v: str) -> str:
    v = v.strip()
    # 6 chiffres TOTP ou code de secours (8 caractères, tirets tolérés)
    if not 6 <= len(v) <= 12:
        raise ValueError("Le code doit contenir entre 6 et 12 caractères.")
    return v


class TwoFactorSetupResponse(CamelModel):
    secret: str
    provisioning_uri: str
    qr_code: str
    backup_codes: List[str]


class TwoFactorEnableRequest(CamelModel):
    secret: str
    code: str

    @field_validator("secret")
    @classmethod
    def secret_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le secret est obligatoire.")
        return v.strip()

    @field_validator("code")
    @classmethod
    def code_format(cls, v: str) -> str:
        return _code_format(v)


class TwoFactorDisableRequest(CamelModel):
    password: str
    code: str

    @field_validator("password")
    @classmethod
    def password_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Le mot de passe est obligatoire.")
        return v

    @field_validator("code")
    @classmethod
    def code_format(cls, v: str) -> str:
        return _code_format(v)


class TwoFactorCodeRequest(CamelModel):
    code: str

    @field_validator("code")
    @classmethod
    def code_format(cls, v: str) -> str:
        return _code_format(v)


class TwoFactorVerifyResponse(CamelModel):
    valid: bool


class BackupCodesResponse(CamelModel):
    backup_codes: List[str]
