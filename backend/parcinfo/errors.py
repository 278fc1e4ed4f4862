"""
Erreurs métier de l'authentification.

Chaque erreur porte son code HTTP et un message court destiné au client.
Les échecs d'identification partagent volontairement le même message
pour ne pas révéler si le compte existe.
"""

from typing import Dict, List, Optional


class AuthError(Exception):
    status_code: int = 400
    detail: str = "Requête invalide."

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        if detail is not None:
            self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers
        super().__init__(self.detail)

    def to_body(self) -> dict:
        return {"detail": self.detail}


class InvalidCredentials(AuthError):
    status_code = 401
    detail = "Identifiants invalides."


class AccountInactive(InvalidCredentials):
    """Compte désactivé : même réponse que des identifiants invalides."""


class TwoFactorRequired(AuthError):
    """Mot de passe correct mais code 2FA manquant (réponse 200 requires2FA)."""
    status_code = 200
    detail = "Code de vérification requis."


class InvalidTwoFactorCode(AuthError):
    status_code = 401
    detail = "Code de vérification invalide."


class SessionExpiredOrInvalid(AuthError):
    status_code = 401
    detail = "Session invalide ou expirée."


class TokenExpiredOrUsed(AuthError):
    status_code = 400
    detail = "Lien d'invitation invalide, expiré ou déjà utilisé."


class RateLimited(AuthError):
    status_code = 429
    detail = "Trop de requêtes. Réessayez plus tard."

    def __init__(self, detail: Optional[str] = None, retry_after: Optional[int] = None):
        headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
        super().__init__(detail, headers=headers)
        self.retry_after = retry_after


class ValidationError(AuthError):
    """Corps de requête mal formé : le détail par champ est renvoyé."""
    status_code = 400
    detail = "Données invalides."

    def __init__(self, details: Optional[List[dict]] = None, detail: Optional[str] = None):
        super().__init__(detail)
        self.details = details or []

    def to_body(self) -> dict:
        return {"detail": self.detail, "errors": self.details}


class Forbidden(AuthError):
    status_code = 403
    detail = "Accès refusé."


class NotFound(AuthError):
    status_code = 404
    detail = "Ressource introuvable."


class Conflict(AuthError):
    status_code = 409
    detail = "Conflit avec une ressource existante."
