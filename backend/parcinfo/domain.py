"""
Types métier de l'authentification, indépendants du stockage.
Les adaptateurs (fichier JSON, SQL) convertissent leurs lignes vers ces types.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import List, Optional

ROLE_ADMIN = "admin"
ROLE_USER = "user"
VALID_ROLES = {ROLE_ADMIN, ROLE_USER}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Les drivers SQL peuvent rendre des datetimes naïfs : on les considère en UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class User:
    id: str
    username: str
    email: str
    password_hash: str
    role: str = ROLE_USER
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None
    two_factor_enabled: bool = False
    two_factor_secret: Optional[str] = None
    backup_codes: Optional[List[str]] = None  # hashes bcrypt, usage unique
    # Mise en place 2FA en attente de confirmation (setup → enable)
    pending_two_factor_secret: Optional[str] = None
    pending_backup_codes: Optional[List[str]] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def copy(self, **changes) -> "User":
        return replace(self, **changes)


@dataclass
class Session:
    id: str
    user_id: str
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        # Valide tant que now < expires_at
        return (now or utcnow()) >= self.expires_at


@dataclass
class InviteToken:
    token: str
    user_id: str
    expires_at: datetime
    used: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        return not self.used and (now or utcnow()) < self.expires_at
