"""
Router public des invitations : consultation du lien et choix du mot de passe.
"""

from fastapi import APIRouter, Depends

from parcinfo import errors
from parcinfo.dependencies import get_store, limit_invite_requests
from parcinfo.schemas.common import MessageResponse
from parcinfo.schemas.invite import InviteInfoResponse, InviteUserInfo, SetPasswordRequest, mask_email
from parcinfo.services import invite_service, user_service
from parcinfo.storage import Store

router = APIRouter(
    prefix="/api/invite",
    tags=["Invitations"],
    dependencies=[Depends(limit_invite_requests)],
)


@router.get("/{token}", response_model=InviteInfoResponse, summary="Vérifier un lien d'invitation")
def get_invite(token: str, store: Store = Depends(get_store)):
    """Ne consomme pas le jeton. Retourne des informations d'affichage avec l'email masqué."""
    invite = invite_service.get_invite_token(store, token)
    if invite is None:
        raise errors.TokenExpiredOrUsed(status_code=404)

    user = store.get_user(invite.user_id)
    if user is None:
        raise errors.TokenExpiredOrUsed(status_code=404)

    return InviteInfoResponse(
        valid=True,
        user_info=InviteUserInfo(
            first_name=user.first_name,
            last_name=user.last_name,
            email=mask_email(user.email),
            expires_at=invite.expires_at,
        ),
    )


@router.post("/{token}/set-password", response_model=MessageResponse, summary="Définir son mot de passe")
def set_password(token: str, data: SetPasswordRequest, store: Store = Depends(get_store)):
    """
    Consomme le jeton (usage unique), enregistre le mot de passe puis active le compte.
    Un second appel avec le même jeton échoue.
    """
    # Lecture avant consommation : un jeton utilisé n'est plus lisible ensuite
    invite = invite_service.get_invite_token(store, token)
    if invite is None or not invite_service.use_invite_token(store, token, data.password):
        raise errors.TokenExpiredOrUsed()

    user_service.activate_user(store, invite.user_id)
    return MessageResponse(message="Mot de passe enregistré. Vous pouvez maintenant vous connecter.")
