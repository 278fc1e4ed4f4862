"""
Dépendances FastAPI : stockage, limiteurs et authentification par session.

Toute route protégée déclare Depends(get_current_user) : le jeton
"Authorization: Bearer <sessionId>" est validé à chaque appel.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from parcinfo import errors
from parcinfo.domain import ROLE_ADMIN
from parcinfo.rate_limit import RateLimiters, client_key
from parcinfo.services import session_service
from parcinfo.storage import Store

security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Utilisateur authentifié attaché à la requête."""
    id: str
    username: str
    email: str
    role: str
    session_id: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_rate_limiters(request: Request) -> RateLimiters:
    return request.app.state.rate_limiters


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: Store = Depends(get_store),
) -> CurrentUser:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise errors.SessionExpiredOrInvalid("Authentification requise.")

    token = credentials.credentials
    user = session_service.validate_session(store, token)
    if user is None:
        raise errors.SessionExpiredOrInvalid()
    return CurrentUser(id=user.id, username=user.username, email=user.email, role=user.role, session_id=token)


def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise errors.Forbidden("Accès refusé. Réservé aux administrateurs.")
    return current_user


def limit_invite_requests(request: Request, limiters: RateLimiters = Depends(get_rate_limiters)) -> None:
    limiters.invite.check(client_key(request))
