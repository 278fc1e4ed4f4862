"""
Stockage fichier JSON (mode développement, sans DATABASE_URL).

Tout le contenu est gardé en mémoire et le fichier est réécrit en entier
à chaque modification. Aucune isolation transactionnelle entre écrivains :
acceptable pour une poignée d'administrateurs internes.
"""

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from parcinfo.domain import InviteToken, Session, User, as_utc
from parcinfo.storage.base import Store

logger = logging.getLogger(__name__)


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Optional[str]) -> Optional[datetime]:
    return as_utc(datetime.fromisoformat(value)) if value else None


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "password_hash": user.password_hash,
        "role": user.role,
        "is_active": user.is_active,
        "last_login": _dt_to_str(user.last_login),
        "two_factor_enabled": user.two_factor_enabled,
        "two_factor_secret": user.two_factor_secret,
        "backup_codes": user.backup_codes,
        "pending_two_factor_secret": user.pending_two_factor_secret,
        "pending_backup_codes": user.pending_backup_codes,
        "created_at": _dt_to_str(user.created_at),
        "updated_at": _dt_to_str(user.updated_at),
    }


def _user_from_dict(data: dict) -> User:
    return User(
        id=data["id"],
        username=data["username"],
        email=data["email"],
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        password_hash=data["password_hash"],
        role=data.get("role", "user"),
        is_active=bool(data.get("is_active", True)),
        last_login=_dt_from_str(data.get("last_login")),
        two_factor_enabled=bool(data.get("two_factor_enabled", False)),
        two_factor_secret=data.get("two_factor_secret"),
        backup_codes=data.get("backup_codes"),
        pending_two_factor_secret=data.get("pending_two_factor_secret"),
        pending_backup_codes=data.get("pending_backup_codes"),
        created_at=_dt_from_str(data.get("created_at")),
        updated_at=_dt_from_str(data.get("updated_at")),
    )


def _session_to_dict(session: Session) -> dict:
    return {"id": session.id, "user_id": session.user_id, "expires_at": _dt_to_str(session.expires_at)}


def _session_from_dict(data: dict) -> Session:
    return Session(id=data["id"], user_id=data["user_id"], expires_at=_dt_from_str(data["expires_at"]))


def _invite_to_dict(invite: InviteToken) -> dict:
    return {
        "token": invite.token,
        "user_id": invite.user_id,
        "expires_at": _dt_to_str(invite.expires_at),
        "used": invite.used,
        "created_at": _dt_to_str(invite.created_at),
    }


def _invite_from_dict(data: dict) -> InviteToken:
    return InviteToken(
        token=data["token"],
        user_id=data["user_id"],
        expires_at=_dt_from_str(data["expires_at"]),
        used=bool(data.get("used", False)),
        created_at=_dt_from_str(data.get("created_at")),
    )


class FileStore(Store):
    backend = "file"

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.RLock()
        self._data = {"users": [], "sessions": [], "invite_tokens": []}
        self._load()

    # --- Persistance ---

    def _load(self) -> None:
        if not self.path.exists():
            logger.info("Aucun fichier de données %s, démarrage à vide", self.path)
            return
        try:
            content = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            # Fichier illisible : on repart à vide sans l'écraser tant qu'aucune écriture n'a lieu
            logger.warning("Fichier de données %s illisible (%s), démarrage à vide", self.path, exc)
            return
        if not isinstance(content, dict):
            logger.warning("Fichier de données %s mal formé (objet JSON attendu), démarrage à vide", self.path)
            return
        for key in self._data:
            value = content.get(key)
            self._data[key] = value if isinstance(value, list) else []

    def _write(self, **changes: list) -> None:
        """
        Écrit le document avec les collections remplacées, puis l'adopte en mémoire.
        Si l'écriture échoue, self._data n'a pas bougé.
        """
        data = {**self._data, **changes}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self.path)
        self._data = data

    # --- Utilisateurs ---

    def _find_user(self, predicate) -> Optional[User]:
        with self._lock:
            for row in self._data["users"]:
                if predicate(row):
                    return _user_from_dict(row)
        return None

    def get_user(self, user_id: str) -> Optional[User]:
        return self._find_user(lambda row: row["id"] == user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._find_user(lambda row: row["username"] == username)

    def get_user_by_email(self, email: str) -> Optional[User]:
        lowered = email.lower()
        return self._find_user(lambda row: row["email"].lower() == lowered)

    def list_users(self) -> List[User]:
        with self._lock:
            return [_user_from_dict(row) for row in self._data["users"]]

    def add_user(self, user: User) -> User:
        with self._lock:
            self._write(users=self._data["users"] + [_user_to_dict(user)])
        return user

    def save_user(self, user: User) -> Optional[User]:
        with self._lock:
            users = self._data["users"]
            if not any(row["id"] == user.id for row in users):
                return None
            self._write(users=[_user_to_dict(user) if row["id"] == user.id else row for row in users])
        return user

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            users = [row for row in self._data["users"] if row["id"] != user_id]
            if len(users) == len(self._data["users"]):
                return False
            self._write(
                users=users,
                sessions=[s for s in self._data["sessions"] if s["user_id"] != user_id],
                invite_tokens=[t for t in self._data["invite_tokens"] if t["user_id"] != user_id],
            )
        return True

    # --- Sessions ---

    def _remove_sessions(self, predicate) -> int:
        with self._lock:
            kept = [s for s in self._data["sessions"] if not predicate(s)]
            removed = len(self._data["sessions"]) - len(kept)
            if removed:
                self._write(sessions=kept)
        return removed

    def add_session(self, session: Session) -> None:
        with self._lock:
            self._write(sessions=self._data["sessions"] + [_session_to_dict(session)])

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            for row in self._data["sessions"]:
                if row["id"] == session_id:
                    return _session_from_dict(row)
        return None

    def delete_session(self, session_id: str) -> bool:
        return self._remove_sessions(lambda s: s["id"] == session_id) > 0

    def delete_user_sessions(self, user_id: str) -> int:
        return self._remove_sessions(lambda s: s["user_id"] == user_id)

    def delete_expired_sessions(self, now: datetime) -> int:
        return self._remove_sessions(lambda s: _session_from_dict(s).is_expired(now))

    # --- Invitations ---

    def _remove_invite_tokens(self, predicate) -> int:
        with self._lock:
            kept = [t for t in self._data["invite_tokens"] if not predicate(t)]
            removed = len(self._data["invite_tokens"]) - len(kept)
            if removed:
                self._write(invite_tokens=kept)
        return removed

    def add_invite_token(self, invite: InviteToken) -> None:
        with self._lock:
            self._write(invite_tokens=self._data["invite_tokens"] + [_invite_to_dict(invite)])

    def get_invite_token(self, token: str) -> Optional[InviteToken]:
        with self._lock:
            for row in self._data["invite_tokens"]:
                if row["token"] == token:
                    return _invite_from_dict(row)
        return None

    def mark_invite_token_used(self, token: str) -> bool:
        with self._lock:
            tokens = self._data["invite_tokens"]
            if not any(t["token"] == token and not t.get("used") for t in tokens):
                return False
            self._write(invite_tokens=[{**t, "used": True} if t["token"] == token else t for t in tokens])
        return True

    def delete_user_invite_tokens(self, user_id: str) -> int:
        return self._remove_invite_tokens(lambda t: t["user_id"] == user_id)

    def delete_expired_invite_tokens(self, now: datetime) -> int:
        return self._remove_invite_tokens(lambda t: _dt_from_str(t["expires_at"]) <= now)
