"""
Jetons d'invitation : un compte créé par un administrateur (inactif) choisit
son mot de passe via un lien à usage unique valable INVITE_TTL_HOURS.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from parcinfo.config import settings
from parcinfo.domain import InviteToken, utcnow
from parcinfo.services.password_service import hash_password

logger = logging.getLogger(__name__)


def create_invite_token(store, user_id: str) -> str:
    """Crée un jeton pour l'utilisateur ; ses jetons précédents sont supprimés."""
    store.delete_user_invite_tokens(user_id)
    invite = InviteToken(
        token=secrets.token_urlsafe(32),
        user_id=user_id,
        expires_at=utcnow() + timedelta(hours=settings.INVITE_TTL_HOURS),
    )
    store.add_invite_token(invite)
    logger.info("Invitation créée pour l'utilisateur %s (expire le %s)", user_id, invite.expires_at.isoformat())
    return invite.token


def get_invite_token(store, token: str) -> Optional[InviteToken]:
    """Lecture seule : None si le jeton est inconnu, expiré ou déjà utilisé."""
    if not token:
        return None
    invite = store.get_invite_token(token)
    if invite is None or not invite.is_usable():
        return None
    return invite


def use_invite_token(store, token: str, new_password: str) -> bool:
    """
    Consomme le jeton et remplace le mot de passe de son propriétaire.
    Échoue si le jeton est absent, expiré ou déjà utilisé.
    L'activation du compte reste à la charge de l'appelant.
    """
    invite = get_invite_token(store, token)
    if invite is None:
        return False

    user = store.get_user(invite.user_id)
    if user is None:
        return False

    # Hash calculé avant le marquage : un mot de passe refusé ne consomme pas le jeton
    password_hash = hash_password(new_password)

    # Le marquage conditionnel fait office de verrou : un seul appel peut le gagner
    if not store.mark_invite_token_used(token):
        return False

    store.save_user(user.copy(password_hash=password_hash, updated_at=utcnow()))
    logger.info("Mot de passe défini via invitation (utilisateur %s)", user.id)
    return True


def cleanup_expired_invite_tokens(store) -> int:
    count = store.delete_expired_invite_tokens(utcnow())
    if count:
        logger.info("%d invitation(s) expirée(s) supprimée(s)", count)
    return count
