"""
Interfaces de stockage par entité.

Le reste de l'application ne dépend que de ces classes abstraites ;
FileStore et SqlStore en sont les deux implémentations.
Toutes les écritures remplacent l'enregistrement complet.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from parcinfo.domain import InviteToken, Session, User


class UserStore(ABC):

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    def list_users(self) -> List[User]:
        ...

    @abstractmethod
    def add_user(self, user: User) -> User:
        ...

    @abstractmethod
    def save_user(self, user: User) -> Optional[User]:
        """Remplace l'enregistrement existant. Retourne None si l'utilisateur n'existe pas."""

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """Supprime l'utilisateur ainsi que ses sessions et ses invitations."""


class SessionStore(ABC):

    @abstractmethod
    def add_session(self, session: Session) -> None:
        ...

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[Session]:
        ...

    @abstractmethod
    def delete_session(self, session_id: str) -> bool:
        ...

    @abstractmethod
    def delete_user_sessions(self, user_id: str) -> int:
        ...

    @abstractmethod
    def delete_expired_sessions(self, now: datetime) -> int:
        ...


class InviteTokenStore(ABC):

    @abstractmethod
    def add_invite_token(self, invite: InviteToken) -> None:
        ...

    @abstractmethod
    def get_invite_token(self, token: str) -> Optional[InviteToken]:
        ...

    @abstractmethod
    def mark_invite_token_used(self, token: str) -> bool:
        """Passe used=True. Retourne False si le jeton est absent ou déjà utilisé."""

    @abstractmethod
    def delete_user_invite_tokens(self, user_id: str) -> int:
        ...

    @abstractmethod
    def delete_expired_invite_tokens(self, now: datetime) -> int:
        ...


class Store(UserStore, SessionStore, InviteTokenStore):
    """Façade unique construite au démarrage et partagée par les handlers."""

    backend: str = "unknown"

    def close(self) -> None:
        pass
