"""
Gestion des sessions opaques.

L'expiration est fixée à la création (SESSION_TTL_DAYS) et n'est jamais
prolongée par l'activité.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from parcinfo.config import settings
from parcinfo.domain import Session, User, utcnow

logger = logging.getLogger(__name__)


def create_session(store, user_id: str) -> str:
    """Crée une session et retourne son jeton."""
    session = Session(
        id=secrets.token_urlsafe(32),
        user_id=user_id,
        expires_at=utcnow() + timedelta(days=settings.SESSION_TTL_DAYS),
    )
    store.add_session(session)
    return session.id


def validate_session(store, token: str) -> Optional[User]:
    """
    Retourne l'utilisateur propriétaire de la session, ou None.
    Une session expirée (ou orpheline) est supprimée au passage ; l'appelant
    ne peut pas la distinguer d'un jeton inexistant.
    """
    if not token:
        return None
    session = store.get_session(token)
    if session is None:
        return None

    if session.is_expired():
        store.delete_session(token)
        return None

    user = store.get_user(session.user_id)
    if user is None:
        store.delete_session(token)
        return None
    return user


def delete_session(store, token: str) -> bool:
    """Déconnexion. Idempotent : un jeton inconnu retourne False sans erreur."""
    return store.delete_session(token)


def revoke_user_sessions(store, user_id: str) -> int:
    count = store.delete_user_sessions(user_id)
    if count:
        logger.info("%d session(s) révoquée(s) pour l'utilisateur %s", count, user_id)
    return count


def cleanup_expired_sessions(store) -> int:
    count = store.delete_expired_sessions(utcnow())
    if count:
        logger.info("%d session(s) expirée(s) supprimée(s)", count)
    return count
