"""
Router d'authentification : connexion, déconnexion, profil courant.
"""

from typing import Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from parcinfo import errors
from parcinfo.dependencies import CurrentUser, get_current_user, get_rate_limiters, get_store
from parcinfo.rate_limit import RateLimiters, client_key
from parcinfo.schemas.auth import CurrentUserResponse, LoginRequest, LoginResponse, TwoFactorRequiredResponse
from parcinfo.schemas.common import MessageResponse
from parcinfo.schemas.user import ProfileUpdate, UserPublic, UserUpdatedResponse
from parcinfo.services import auth_service, session_service, user_service
from parcinfo.storage import Store

router = APIRouter(prefix="/api/auth", tags=["Authentification"])


@router.post(
    "/login",
    response_model=Union[LoginResponse, TwoFactorRequiredResponse],
    summary="Se connecter",
)
def login(
    data: LoginRequest,
    request: Request,
    store: Store = Depends(get_store),
    limiters: RateLimiters = Depends(get_rate_limiters),
):
    """
    Vérifie les identifiants et ouvre une session de 7 jours.

    - 2FA activée et code absent → 200 `{requires2FA: true}`, aucune session
    - identifiants ou code invalides → 401 (message identique quel que soit le motif)
    - plus de 5 échecs en 15 minutes depuis la même IP → 429
    """
    key = client_key(request)
    limiters.login.ensure_not_blocked(key)

    try:
        result = auth_service.login(store, data.username, data.password, data.two_factor_code)
    except errors.TwoFactorRequired:
        return TwoFactorRequiredResponse()
    except (errors.InvalidCredentials, errors.InvalidTwoFactorCode):
        limiters.login.hit(key)
        raise

    return LoginResponse(
        message="Connexion réussie.",
        session_id=result.session_id,
        user=UserPublic.from_user(result.user),
    )


@router.post("/logout", response_model=MessageResponse, summary="Se déconnecter")
def logout(current_user: CurrentUser = Depends(get_current_user), store: Store = Depends(get_store)):
    """Supprime la session courante."""
    session_service.delete_session(store, current_user.session_id)
    return MessageResponse(message="Déconnexion réussie.")


@router.get("/me", response_model=CurrentUserResponse, summary="Utilisateur courant")
def me(current_user: CurrentUser = Depends(get_current_user)):
    return CurrentUserResponse(
        id=current_user.id,
        username=current_user.username,
        email=current_user.email,
        role=current_user.role,
    )


@router.put("/profile", response_model=UserUpdatedResponse, summary="Modifier son profil")
def update_profile(
    data: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    user = user_service.update_profile(store, current_user.id, data)
    return UserUpdatedResponse(message="Profil mis à jour.", user=UserPublic.from_user(user))


@router.post("/register", status_code=403, summary="Inscription (désactivée)")
def register():
    """Les comptes sont créés uniquement par les administrateurs."""
    return JSONResponse(
        status_code=403,
        content={
            "detail": "Inscription non autorisée : les comptes sont créés par les administrateurs.",
            "code": "REGISTRATION_DISABLED",
        },
    )
