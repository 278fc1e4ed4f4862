"""
Vérification des identifiants et flux de connexion.

Flux de connexion :
  1. validate_password : utilisateur absent, inactif ou mot de passe faux → None
  2. Si la 2FA est activée : code absent → TwoFactorRequired, code faux → InvalidTwoFactorCode
  3. Création de la session (7 jours, non glissante)
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from parcinfo import errors
from parcinfo.config import settings
from parcinfo.domain import User, utcnow
from parcinfo.services import session_service, two_factor_service
from parcinfo.services.password_service import burn_password_check, verify_password
from parcinfo.storage import UserStore

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    session_id: str
    user: User


def find_user(store: UserStore, identifier: str) -> Optional[User]:
    """Recherche par nom d'utilisateur puis par email."""
    identifier = identifier.strip()
    if not identifier:
        return None
    return store.get_user_by_username(identifier) or store.get_user_by_email(identifier)


def _check_credentials(store: UserStore, identifier: str, plaintext: str) -> Optional[User]:
    """None si le compte est absent ou le mot de passe faux ; AccountInactive si le compte est désactivé."""
    user = find_user(store, identifier)
    if user is None:
        burn_password_check(plaintext)
        return None

    if not verify_password(plaintext, user.password_hash):
        return None
    if not user.is_active:
        raise errors.AccountInactive()
    return user


def validate_password(store: UserStore, identifier: str, plaintext: str) -> Optional[User]:
    """
    Retourne l'utilisateur si les identifiants sont valides et le compte actif, sinon None.

    Chaque appel dure au moins LOGIN_MIN_DURATION_MS, qu'il échoue ou non,
    pour qu'un compte inexistant ne réponde pas plus vite qu'un mauvais mot de passe.
    En cas de succès, last_login est mis à jour.
    """
    started = time.monotonic()
    try:
        user = _check_credentials(store, identifier, plaintext)
    except errors.AccountInactive:
        # Même réponse qu'un mauvais mot de passe pour l'appelant
        logger.info("Connexion refusée : compte inactif (%s)", identifier)
        user = None

    if user is not None:
        user = user.copy(last_login=utcnow())
        store.save_user(user)

    floor = settings.LOGIN_MIN_DURATION_MS / 1000
    elapsed = time.monotonic() - started
    if elapsed < floor:
        time.sleep(floor - elapsed)
    return user


def login(store, identifier: str, password: str, two_factor_code: Optional[str] = None) -> LoginResult:
    """
    Connexion complète. Rien n'est conservé côté serveur entre l'appel sans code
    et l'appel avec code : le client renvoie identifiant, mot de passe et code ensemble.
    """
    user = validate_password(store, identifier, password)
    if user is None:
        raise errors.InvalidCredentials()

    if user.two_factor_enabled:
        if not two_factor_code:
            raise errors.TwoFactorRequired()
        if not two_factor_service.verify(store, user.id, two_factor_code):
            logger.info("Connexion refusée : code 2FA invalide (utilisateur %s)", user.id)
            raise errors.InvalidTwoFactorCode()

    session_id = session_service.create_session(store, user.id)
    logger.info("Connexion réussie (utilisateur %s)", user.id)
    return LoginResult(session_id=session_id, user=user)
