"""
Router de la double authentification (TOTP + codes de secours).
"""

from fastapi import APIRouter, Depends

from parcinfo import errors
from parcinfo.dependencies import CurrentUser, get_current_user, get_store
from parcinfo.schemas.auth import (
    BackupCodesResponse,
    TwoFactorCodeRequest,
    TwoFactorDisableRequest,
    TwoFactorEnableRequest,
    TwoFactorSetupResponse,
    TwoFactorVerifyResponse,
)
from parcinfo.schemas.common import MessageResponse
from parcinfo.services import two_factor_service
from parcinfo.storage import Store

router = APIRouter(prefix="/api/auth/2fa", tags=["Double authentification"])


@router.post("/setup", response_model=TwoFactorSetupResponse, summary="Préparer la 2FA")
def setup(current_user: CurrentUser = Depends(get_current_user), store: Store = Depends(get_store)):
    """
    Génère un secret TOTP et des codes de secours. La 2FA n'est pas encore active :
    le secret doit être renvoyé à /enable avec un code de l'application d'authentification.
    Les codes de secours ne sont affichés qu'ici.
    """
    result = two_factor_service.setup(store, current_user.id)
    return TwoFactorSetupResponse(
        secret=result.secret,
        provisioning_uri=result.provisioning_uri,
        qr_code=result.qr_code,
        backup_codes=result.backup_codes,
    )


@router.post("/enable", response_model=MessageResponse, summary="Activer la 2FA")
def enable(
    data: TwoFactorEnableRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    if not two_factor_service.enable(store, current_user.id, data.secret, data.code):
        raise errors.InvalidTwoFactorCode()
    return MessageResponse(message="Double authentification activée.")


@router.post("/disable", response_model=MessageResponse, summary="Désactiver la 2FA")
def disable(
    data: TwoFactorDisableRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Exige le mot de passe et un code valide ; l'échec de l'un ou l'autre ne modifie rien."""
    if not two_factor_service.disable(store, current_user.id, data.password, data.code):
        raise errors.InvalidCredentials("Mot de passe ou code de vérification invalide.")
    return MessageResponse(message="Double authentification désactivée.")


@router.post("/verify", response_model=TwoFactorVerifyResponse, summary="Vérifier un code")
def verify(
    data: TwoFactorCodeRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """Un code de secours accepté ici est consommé."""
    if not two_factor_service.verify(store, current_user.id, data.code):
        raise errors.InvalidTwoFactorCode()
    return TwoFactorVerifyResponse(valid=True)


@router.post("/backup-codes", response_model=BackupCodesResponse, summary="Régénérer les codes de secours")
def regenerate_backup_codes(
    data: TwoFactorCodeRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    codes = two_factor_service.regenerate_backup_codes(store, current_user.id, data.code)
    if codes is None:
        raise errors.InvalidTwoFactorCode()
    return BackupCodesResponse(backup_codes=codes)
