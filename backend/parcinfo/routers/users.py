"""
Router d'administration des utilisateurs (rôle admin requis).
"""

from typing import List

from fastapi import APIRouter, Depends

from parcinfo.dependencies import CurrentUser, get_store, require_admin
from parcinfo.schemas.common import MessageResponse
from parcinfo.schemas.user import (
    AdminSetPassword,
    InviteDeliveryResponse,
    UserCreate,
    UserCreatedResponse,
    UserPublic,
    UserStatusUpdate,
    UserUpdatedResponse,
)
from parcinfo.services import user_service
from parcinfo.services.user_service import InviteDelivery
from parcinfo.storage import Store

router = APIRouter(prefix="/api/users", tags=["Utilisateurs"])


def _delivery_response(delivery: InviteDelivery) -> InviteDeliveryResponse:
    return InviteDeliveryResponse(
        invite_link=delivery.invite_link,
        invite_message=delivery.invite_message,
        invite_token=delivery.invite_token,
        email_sent=delivery.email_sent,
    )


@router.get("", response_model=List[UserPublic], summary="Lister les utilisateurs")
def list_users(_: CurrentUser = Depends(require_admin), store: Store = Depends(get_store)):
    return [UserPublic.from_user(u) for u in user_service.list_users(store)]


@router.post("", response_model=UserCreatedResponse, status_code=201, summary="Créer un utilisateur")
def create_user(data: UserCreate, _: CurrentUser = Depends(require_admin), store: Store = Depends(get_store)):
    """
    Sans mot de passe, le compte est créé inactif et une invitation de 24 h est émise.
    Le lien est envoyé par email si SendGrid est configuré, sinon il est renvoyé ici.
    """
    user, delivery = user_service.create_user(store, data)
    return UserCreatedResponse(
        message="Utilisateur créé." if delivery is None else "Utilisateur créé, invitation émise.",
        user=UserPublic.from_user(user),
        invite=_delivery_response(delivery) if delivery else None,
    )


@router.patch("/{user_id}", response_model=UserUpdatedResponse, summary="Activer / désactiver un compte")
def update_status(
    user_id: str,
    data: UserStatusUpdate,
    current_user: CurrentUser = Depends(require_admin),
    store: Store = Depends(get_store),
):
    """Désactiver un compte révoque aussi ses sessions ouvertes."""
    user = user_service.set_active(store, user_id, data.is_active, current_user.id)
    return UserUpdatedResponse(message="Statut mis à jour.", user=UserPublic.from_user(user))


@router.delete("/{user_id}", response_model=MessageResponse, summary="Supprimer un utilisateur")
def delete_user(user_id: str, current_user: CurrentUser = Depends(require_admin), store: Store = Depends(get_store)):
    """Suppression définitive ; sessions et invitations sont supprimées en cascade."""
    user_service.delete_user(store, user_id, current_user.id)
    return MessageResponse(message="Utilisateur supprimé.")


@router.post("/{user_id}/set-password", response_model=MessageResponse, summary="Définir le mot de passe")
def set_password(
    user_id: str,
    data: AdminSetPassword,
    _: CurrentUser = Depends(require_admin),
    store: Store = Depends(get_store),
):
    user_service.set_password(store, user_id, data.password)
    return MessageResponse(message="Mot de passe défini.")


@router.post(
    "/{user_id}/invite/regenerate",
    response_model=InviteDeliveryResponse,
    status_code=201,
    summary="Régénérer l'invitation",
)
def regenerate_invite(user_id: str, _: CurrentUser = Depends(require_admin), store: Store = Depends(get_store)):
    """L'invitation précédente de l'utilisateur devient invalide."""
    return _delivery_response(user_service.regenerate_invite(store, user_id))
