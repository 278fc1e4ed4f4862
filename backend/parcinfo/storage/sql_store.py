"""
Stockage SQL via SQLAlchemy (activé par DATABASE_URL).

Seul module à manipuler les lignes ORM : chaque méthode ouvre sa propre
session et convertit les lignes en types métier avant de les rendre.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select, update

import parcinfo.models  # noqa: F401  (enregistre les tables avant create_all)
from parcinfo.database import Base, make_engine, make_session_factory
from parcinfo.domain import InviteToken, Session, User, as_utc
from parcinfo.models.session import InviteTokenRow, SessionRow
from parcinfo.models.user import UserRow
from parcinfo.storage.base import Store

logger = logging.getLogger(__name__)

_USER_FIELDS = (
    "id", "username", "email", "first_name", "last_name", "password_hash", "role",
    "is_active", "last_login", "two_factor_enabled", "two_factor_secret", "backup_codes",
    "pending_two_factor_secret", "pending_backup_codes", "created_at", "updated_at",
)


def _user_from_row(row: UserRow) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        password_hash=row.password_hash,
        role=row.role,
        is_active=bool(row.is_active),
        last_login=as_utc(row.last_login),
        two_factor_enabled=bool(row.two_factor_enabled),
        two_factor_secret=row.two_factor_secret,
        backup_codes=list(row.backup_codes) if row.backup_codes is not None else None,
        pending_two_factor_secret=row.pending_two_factor_secret,
        pending_backup_codes=list(row.pending_backup_codes) if row.pending_backup_codes is not None else None,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def _apply_user(row: UserRow, user: User) -> None:
    for name in _USER_FIELDS:
        setattr(row, name, getattr(user, name))


def _session_from_row(row: SessionRow) -> Session:
    return Session(id=row.id, user_id=row.user_id, expires_at=as_utc(row.expires_at))


def _invite_from_row(row: InviteTokenRow) -> InviteToken:
    return InviteToken(
        token=row.token,
        user_id=row.user_id,
        expires_at=as_utc(row.expires_at),
        used=bool(row.used),
        created_at=as_utc(row.created_at),
    )


class SqlStore(Store):
    backend = "sql"

    def __init__(self, database_url: str):
        self.engine = make_engine(database_url)
        self.SessionLocal = make_session_factory(self.engine)
        Base.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        self.engine.dispose()

    # --- Utilisateurs ---

    def get_user(self, user_id: str) -> Optional[User]:
        with self.SessionLocal() as db:
            row = db.get(UserRow, user_id)
            return _user_from_row(row) if row is not None else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self.SessionLocal() as db:
            row = db.execute(select(UserRow).where(UserRow.username == username)).scalar()
            return _user_from_row(row) if row is not None else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self.SessionLocal() as db:
            row = db.execute(
                select(UserRow).where(func.lower(UserRow.email) == email.lower())
            ).scalar()
            return _user_from_row(row) if row is not None else None

    def list_users(self) -> List[User]:
        with self.SessionLocal() as db:
            rows = db.execute(select(UserRow).order_by(UserRow.created_at)).scalars().all()
            return [_user_from_row(row) for row in rows]

    def add_user(self, user: User) -> User:
        with self.SessionLocal() as db:
            row = UserRow()
            _apply_user(row, user)
            db.add(row)
            db.commit()
        return user

    def save_user(self, user: User) -> Optional[User]:
        with self.SessionLocal() as db:
            row = db.get(UserRow, user.id)
            if row is None:
                return None
            _apply_user(row, user)
            db.commit()
        return user

    def delete_user(self, user_id: str) -> bool:
        with self.SessionLocal() as db:
            row = db.get(UserRow, user_id)
            if row is None:
                return False
            # Cascade explicite : SQLite n'applique ON DELETE CASCADE qu'avec PRAGMA foreign_keys
            db.execute(delete(SessionRow).where(SessionRow.user_id == user_id))
            db.execute(delete(InviteTokenRow).where(InviteTokenRow.user_id == user_id))
            db.delete(row)
            db.commit()
        return True

    # --- Sessions ---

    def add_session(self, session: Session) -> None:
        with self.SessionLocal() as db:
            db.add(SessionRow(id=session.id, user_id=session.user_id, expires_at=session.expires_at))
            db.commit()

    def get_session(self, session_id: str) -> Optional[Session]:
        with self.SessionLocal() as db:
            row = db.get(SessionRow, session_id)
            return _session_from_row(row) if row is not None else None

    def delete_session(self, session_id: str) -> bool:
        with self.SessionLocal() as db:
            result = db.execute(delete(SessionRow).where(SessionRow.id == session_id))
            db.commit()
            return result.rowcount > 0

    def delete_user_sessions(self, user_id: str) -> int:
        with self.SessionLocal() as db:
            result = db.execute(delete(SessionRow).where(SessionRow.user_id == user_id))
            db.commit()
            return result.rowcount

    def delete_expired_sessions(self, now: datetime) -> int:
        with self.SessionLocal() as db:
            result = db.execute(delete(SessionRow).where(SessionRow.expires_at <= now))
            db.commit()
            return result.rowcount

    # --- Invitations ---

    def add_invite_token(self, invite: InviteToken) -> None:
        with self.SessionLocal() as db:
            db.add(InviteTokenRow(
                token=invite.token,
                user_id=invite.user_id,
                expires_at=invite.expires_at,
                used=invite.used,
                created_at=invite.created_at,
            ))
            db.commit()

    def get_invite_token(self, token: str) -> Optional[InviteToken]:
        with self.SessionLocal() as db:
            row = db.get(InviteTokenRow, token)
            return _invite_from_row(row) if row is not None else None

    def mark_invite_token_used(self, token: str) -> bool:
        # UPDATE conditionnel : deux consommations concurrentes ne peuvent pas réussir toutes les deux
        with self.SessionLocal() as db:
            result = db.execute(
                update(InviteTokenRow)
                .where(InviteTokenRow.token == token, InviteTokenRow.used.is_(False))
                .values(used=True)
            )
            db.commit()
            return result.rowcount > 0

    def delete_user_invite_tokens(self, user_id: str) -> int:
        with self.SessionLocal() as db:
            result = db.execute(delete(InviteTokenRow).where(InviteTokenRow.user_id == user_id))
            db.commit()
            return result.rowcount

    def delete_expired_invite_tokens(self, now: datetime) -> int:
        with self.SessionLocal() as db:
            result = db.execute(delete(InviteTokenRow).where(InviteTokenRow.expires_at <= now))
            db.commit()
            return result.rowcount
