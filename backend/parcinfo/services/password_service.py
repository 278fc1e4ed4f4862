"""
Hachage des mots de passe et des codes de secours (bcrypt).
"""

import functools

import bcrypt

from parcinfo import errors
from parcinfo.config import settings

# bcrypt n'utilise que les 72 premiers octets ; bcrypt >= 5 refuse au-delà
PASSWORD_MAX_BYTES = 72


def hash_password(plaintext: str) -> str:
    encoded = plaintext.encode("utf-8")
    if len(encoded) > PASSWORD_MAX_BYTES:
        raise errors.ValidationError(
            [{"field": "password", "message": f"Le mot de passe ne doit pas dépasser {PASSWORD_MAX_BYTES} octets."}]
        )
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(plaintext: str, password_hash: str) -> bool:
    """Compare en temps constant ; un hash vide ou corrompu ne valide jamais."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


@functools.lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return bcrypt.hashpw(b"parcinfo-dummy-password", bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def burn_password_check(plaintext: str) -> None:
    """Effectue une comparaison bcrypt factice pour un compte inexistant (même coût CPU)."""
    verify_password(plaintext, _dummy_hash(settings.BCRYPT_ROUNDS))
