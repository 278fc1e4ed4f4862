"""
Authentification à deux facteurs (TOTP RFC 6238) et codes de secours.

Cycle de vie par utilisateur :
  désactivée → setup (secret et codes en attente) → enable (confirmation par un code) → activée
  activée → disable (mot de passe + code) → désactivée

Le setup seul ne change rien à la sécurité du compte : tant que enable n'a pas
validé un code généré avec le secret en attente, la 2FA reste désactivée.
"""

import base64
import hmac
import io
import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional

import pyotp
import qrcode

from parcinfo import errors
from parcinfo.config import settings
from parcinfo.domain import User, utcnow
from parcinfo.services.password_service import hash_password, verify_password

logger = logging.getLogger(__name__)

BACKUP_CODE_LENGTH = 8


@dataclass
class TwoFactorSetup:
    secret: str
    provisioning_uri: str
    qr_code: str  # data URL PNG du provisioning_uri
    backup_codes: List[str]


def generate_backup_codes(count: Optional[int] = None) -> List[str]:
    """Codes de secours en clair (8 caractères hexadécimaux majuscules)."""
    count = count or settings.BACKUP_CODE_COUNT
    return [secrets.token_hex(BACKUP_CODE_LENGTH // 2).upper() for _ in range(count)]


def generate_qr_data_url(data: str) -> str:
    """Génère le QR code PNG (data URL) à scanner par l'application d'authentification."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def normalize_code(code: str) -> str:
    return code.strip().replace(" ", "").replace("-", "").upper()


def verify_totp(secret: str, code: str) -> bool:
    if not secret or not code:
        return False
    return pyotp.TOTP(secret).verify(normalize_code(code), valid_window=settings.TOTP_VALID_WINDOW)


def _get_user(store, user_id: str) -> User:
    user = store.get_user(user_id)
    if user is None:
        raise errors.NotFound("Utilisateur introuvable.")
    return user


def setup(store, user_id: str) -> TwoFactorSetup:
    """
    Génère un secret et des codes de secours, mis en attente sur le compte.
    Un nouveau setup remplace le précédent tant que la 2FA n'est pas activée.
    """
    user = _get_user(store, user_id)
    if user.two_factor_enabled:
        raise errors.Conflict("La double authentification est déjà activée.")

    secret = pyotp.random_base32()
    backup_codes = generate_backup_codes()
    uri = pyotp.TOTP(secret).provisioning_uri(name=user.email or user.username, issuer_name=settings.TOTP_ISSUER)

    store.save_user(user.copy(
        pending_two_factor_secret=secret,
        pending_backup_codes=[hash_password(c) for c in backup_codes],
        updated_at=utcnow(),
    ))
    logger.info("Mise en place 2FA démarrée (utilisateur %s)", user_id)
    return TwoFactorSetup(
        secret=secret,
        provisioning_uri=uri,
        qr_code=generate_qr_data_url(uri),
        backup_codes=backup_codes,
    )


def enable(store, user_id: str, secret: str, code: str) -> bool:
    """Confirme le secret en attente avec un code TOTP valide et active la 2FA."""
    user = _get_user(store, user_id)
    if user.two_factor_enabled:
        raise errors.Conflict("La double authentification est déjà activée.")

    pending = user.pending_two_factor_secret
    if not pending or not hmac.compare_digest(pending, secret.strip()):
        return False
    if not verify_totp(pending, code):
        return False

    store.save_user(user.copy(
        two_factor_enabled=True,
        two_factor_secret=pending,
        backup_codes=user.pending_backup_codes or [],
        pending_two_factor_secret=None,
        pending_backup_codes=None,
        updated_at=utcnow(),
    ))
    logger.info("2FA activée (utilisateur %s)", user_id)
    return True


def _match_backup_code(user: User, code: str) -> Optional[int]:
    candidate = normalize_code(code)
    if len(candidate) != BACKUP_CODE_LENGTH:
        return None
    for index, code_hash in enumerate(user.backup_codes or []):
        if verify_password(candidate, code_hash):
            return index
    return None


def verify(store, user_id: str, code: str) -> bool:
    """
    Accepte un code TOTP courant ou un code de secours non utilisé.
    Un code de secours accepté est retiré : il ne peut servir qu'une fois.
    """
    user = store.get_user(user_id)
    if user is None or not user.two_factor_enabled or not code:
        return False

    if verify_totp(user.two_factor_secret, code):
        return True

    index = _match_backup_code(user, code)
    if index is None:
        return False

    remaining = list(user.backup_codes)
    del remaining[index]
    store.save_user(user.copy(backup_codes=remaining, updated_at=utcnow()))
    logger.info("Code de secours consommé (utilisateur %s, %d restant(s))", user_id, len(remaining))
    return True


def disable(store, user_id: str, password: str, code: str) -> bool:
    """
    Désactive la 2FA. Le mot de passe et le code doivent être valides tous les deux ;
    sinon rien n'est modifié.
    """
    # Import local pour éviter l'import circulaire auth_service ↔ two_factor_service
    from parcinfo.services.auth_service import validate_password

    user = _get_user(store, user_id)
    if not user.two_factor_enabled:
        return False

    verified = validate_password(store, user.username, password)
    if verified is None or verified.id != user.id:
        return False
    if not verify(store, user_id, code):
        return False

    # Relire : validate_password et verify ont pu réécrire le compte
    user = _get_user(store, user_id)
    store.save_user(user.copy(
        two_factor_enabled=False,
        two_factor_secret=None,
        backup_codes=None,
        pending_two_factor_secret=None,
        pending_backup_codes=None,
        updated_at=utcnow(),
    ))
    logger.info("2FA désactivée (utilisateur %s)", user_id)
    return True


def regenerate_backup_codes(store, user_id: str, code: str) -> Optional[List[str]]:
    """Remplace tous les codes de secours après vérification d'un code. None si le code est refusé."""
    if not verify(store, user_id, code):
        return None
    user = _get_user(store, user_id)
    backup_codes = generate_backup_codes()
    store.save_user(user.copy(backup_codes=[hash_password(c) for c in backup_codes], updated_at=utcnow()))
    logger.info("Codes de secours régénérés (utilisateur %s)", user_id)
    return backup_codes
