"""
Service d'administration des comptes utilisateurs.

Création d'un compte :
  - avec mot de passe : compte actif immédiatement
  - sans mot de passe : compte inactif avec mot de passe temporaire aléatoire,
    puis invitation (email si SendGrid est configuré, sinon lien rendu à l'admin)
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from typing import List, Optional

from parcinfo import errors
from parcinfo.config import settings
from parcinfo.domain import ROLE_ADMIN, User, utcnow
from parcinfo.schemas.user import ProfileUpdate, UserCreate
from parcinfo.services import email_service, invite_service, session_service
from parcinfo.services.password_service import hash_password

logger = logging.getLogger(__name__)


@dataclass
class InviteDelivery:
    invite_link: str
    invite_message: str
    invite_token: Optional[str]
    email_sent: bool


def list_users(store) -> List[User]:
    return store.list_users()


def get_user(store, user_id: str) -> User:
    user = store.get_user(user_id)
    if user is None:
        raise errors.NotFound("Utilisateur introuvable.")
    return user


def _ensure_unique(store, username: str, email: str, exclude_id: Optional[str] = None) -> None:
    existing = store.get_user_by_email(email)
    if existing is not None and existing.id != exclude_id:
        raise errors.Conflict("Cet email est déjà utilisé.")
    existing = store.get_user_by_username(username)
    if existing is not None and existing.id != exclude_id:
        raise errors.Conflict("Ce nom d'utilisateur est déjà utilisé.")


def create_user(store, data: UserCreate) -> tuple[User, Optional[InviteDelivery]]:
    email = str(data.email).lower()
    username = data.username or email
    _ensure_unique(store, username, email)

    invited = data.password is None
    password = data.password if not invited else secrets.token_urlsafe(24)
    user = User(
        id=str(uuid.uuid4()),
        username=username,
        email=email,
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
        password_hash=hash_password(password),
        is_active=not invited,
    )
    store.add_user(user)
    logger.info("Utilisateur créé : %s (%s, actif=%s)", user.id, user.role, user.is_active)

    delivery = send_invite(store, user) if invited else None
    return user, delivery


def send_invite(store, user: User) -> InviteDelivery:
    """
    Émet une nouvelle invitation. Si l'email part, le jeton brut n'est pas
    renvoyé à l'administrateur ; sinon il l'est pour transmission manuelle.
    """
    token = invite_service.create_invite_token(store, user.id)
    email_sent = False
    if email_service.is_email_enabled():
        try:
            email_service.send_invite_email(user.email, user.first_name, user.last_name, token)
            email_sent = True
        except Exception as exc:
            logger.error("Échec d'envoi de l'invitation à %s : %s", user.email, exc)

    return InviteDelivery(
        invite_link=email_service.build_invite_link(token),
        invite_message=email_service.build_invite_message(user.first_name, user.last_name, token),
        invite_token=None if email_sent else token,
        email_sent=email_sent,
    )


def regenerate_invite(store, user_id: str) -> InviteDelivery:
    return send_invite(store, get_user(store, user_id))


def set_active(store, user_id: str, is_active: bool, acting_user_id: str) -> User:
    if user_id == acting_user_id and not is_active:
        raise errors.ValidationError(detail="Vous ne pouvez pas désactiver votre propre compte.")
    user = get_user(store, user_id)
    user = user.copy(is_active=is_active, updated_at=utcnow())
    store.save_user(user)
    if not is_active:
        session_service.revoke_user_sessions(store, user_id)
    logger.info("Utilisateur %s : actif=%s", user_id, is_active)
    return user


def activate_user(store, user_id: str) -> Optional[User]:
    """Active le compte après définition du mot de passe par invitation."""
    user = store.get_user(user_id)
    if user is None:
        return None
    user = user.copy(is_active=True, updated_at=utcnow())
    store.save_user(user)
    logger.info("Compte activé via invitation : %s", user_id)
    return user


def delete_user(store, user_id: str, acting_user_id: str) -> None:
    if user_id == acting_user_id:
        raise errors.ValidationError(detail="Vous ne pouvez pas supprimer votre propre compte.")
    if not store.delete_user(user_id):
        raise errors.NotFound("Utilisateur introuvable.")
    logger.info("Utilisateur supprimé : %s", user_id)


def set_password(store, user_id: str, password: str) -> User:
    """Réinitialisation par un administrateur : les sessions existantes sont révoquées."""
    user = get_user(store, user_id)
    user = user.copy(password_hash=hash_password(password), updated_at=utcnow())
    store.save_user(user)
    session_service.revoke_user_sessions(store, user_id)
    return user


def update_profile(store, user_id: str, data: ProfileUpdate) -> User:
    user = get_user(store, user_id)
    email = str(data.email).lower()
    existing = store.get_user_by_email(email)
    if existing is not None and existing.id != user_id:
        raise errors.Conflict("Cet email est déjà utilisé.")

    user = user.copy(first_name=data.first_name, last_name=data.last_name, email=email, updated_at=utcnow())
    store.save_user(user)
    return user


def bootstrap_admin(store) -> Optional[User]:
    """Crée le compte admin de développement si le stockage ne contient aucun utilisateur."""
    if settings.ENV != "development" or not settings.BOOTSTRAP_ADMIN_PASSWORD:
        return None
    if store.list_users():
        return None

    user = User(
        id=str(uuid.uuid4()),
        username=settings.BOOTSTRAP_ADMIN_USERNAME,
        email=settings.BOOTSTRAP_ADMIN_EMAIL.lower(),
        first_name="Admin",
        last_name="ParcInfo",
        role=ROLE_ADMIN,
        password_hash=hash_password(settings.BOOTSTRAP_ADMIN_PASSWORD),
        is_active=True,
    )
    store.add_user(user)
    logger.info("Compte admin de développement créé : %s", user.username)
    return user
