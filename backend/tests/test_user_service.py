"""
Tests unitaires du service d'administration des utilisateurs.
"""

from unittest.mock import patch

import pytest

from conftest import USER_PASSWORD, make_user
from parcinfo import errors
from parcinfo.schemas.user import ProfileUpdate, UserCreate
from parcinfo.services import auth_service, invite_service, session_service, user_service


# ============================================================
# create_user
# ============================================================

def test_create_user_avec_mot_de_passe_actif(store):
    data = UserCreate(email="Luca.Verdi@parcinfo.it", first_name="Luca", last_name="Verdi", password="secret12")
    user, delivery = user_service.create_user(store, data)

    assert delivery is None
    assert user.is_active is True
    assert user.email == "luca.verdi@parcinfo.it"
    assert user.username == "luca.verdi@parcinfo.it"
    assert auth_service.validate_password(store, user.email, "secret12").id == user.id


def test_create_user_sans_mot_de_passe_invite(store):
    data = UserCreate(email="m.rossi@parcinfo.it", first_name="Mario", last_name="Rossi", username="mrossi")
    user, delivery = user_service.create_user(store, data)

    assert user.is_active is False
    assert delivery.email_sent is False
    assert delivery.invite_token
    assert delivery.invite_link == f"https://parc.test-interne.it/invite/{delivery.invite_token}"
    assert "Mario Rossi" in delivery.invite_message
    assert invite_service.get_invite_token(store, delivery.invite_token).user_id == user.id


def test_create_user_email_envoye(store, test_settings, monkeypatch):
    """Email envoyé : le jeton brut n'est pas rendu à l'administrateur."""
    monkeypatch.setattr(test_settings, "SENDGRID_API_KEY", "SG.test")
    data = UserCreate(email="m.rossi@parcinfo.it", first_name="Mario", last_name="Rossi")

    with patch("parcinfo.services.user_service.email_service.send_invite_email") as mock_send:
        _, delivery = user_service.create_user(store, data)

    mock_send.assert_called_once()
    assert delivery.email_sent is True
    assert delivery.invite_token is None


def test_create_user_echec_email_rend_le_lien(store, test_settings, monkeypatch):
    monkeypatch.setattr(test_settings, "SENDGRID_API_KEY", "SG.test")
    data = UserCreate(email="m.rossi@parcinfo.it", first_name="Mario", last_name="Rossi")

    with patch("parcinfo.services.user_service.email_service.send_invite_email", side_effect=OSError("SMTP down")):
        _, delivery = user_service.create_user(store, data)

    assert delivery.email_sent is False
    assert delivery.invite_token


def test_create_user_email_deja_utilise(store):
    make_user(store, email="m.rossi@parcinfo.it")
    data = UserCreate(email="M.Rossi@parcinfo.it", first_name="Mario", last_name="Rossi", username="autre")
    with pytest.raises(errors.Conflict):
        user_service.create_user(store, data)


def test_create_user_nom_deja_utilise(store):
    make_user(store)
    data = UserCreate(email="autre@parcinfo.it", first_name="Mario", last_name="Rossi", username="mrossi")
    with pytest.raises(errors.Conflict):
        user_service.create_user(store, data)


# ============================================================
# set_active / delete_user / set_password
# ============================================================

def test_set_active_desactivation_revoque_les_sessions(store):
    admin = make_user(store, username="admin", role="admin")
    user = make_user(store)
    token = session_service.create_session(store, user.id)

    updated = user_service.set_active(store, user.id, False, admin.id)
    assert updated.is_active is False
    assert session_service.validate_session(store, token) is None


def test_set_active_soi_meme_refuse(store):
    admin = make_user(store, username="admin", role="admin")
    with pytest.raises(errors.ValidationError):
        user_service.set_active(store, admin.id, False, admin.id)


def test_set_active_absent(store):
    with pytest.raises(errors.NotFound):
        user_service.set_active(store, "absent", True, "admin-id")


def test_delete_user(store):
    admin = make_user(store, username="admin", role="admin")
    user = make_user(store)
    user_service.delete_user(store, user.id, admin.id)
    assert store.get_user(user.id) is None


def test_delete_user_soi_meme_refuse(store):
    admin = make_user(store, username="admin", role="admin")
    with pytest.raises(errors.ValidationError):
        user_service.delete_user(store, admin.id, admin.id)


def test_delete_user_absent(store):
    with pytest.raises(errors.NotFound):
        user_service.delete_user(store, "absent", "admin-id")


def test_set_password_revoque_les_sessions(store):
    user = make_user(store)
    token = session_service.create_session(store, user.id)

    user_service.set_password(store, user.id, "nouveau-mdp")
    assert session_service.validate_session(store, token) is None
    assert auth_service.validate_password(store, "mrossi", USER_PASSWORD) is None
    assert auth_service.validate_password(store, "mrossi", "nouveau-mdp") is not None


# ============================================================
# update_profile / bootstrap_admin
# ============================================================

def test_update_profile(store):
    user = make_user(store)
    data = ProfileUpdate(first_name="Marco", last_name="Rossi", email="Marco.Rossi@parcinfo.it")
    updated = user_service.update_profile(store, user.id, data)

    assert updated.first_name == "Marco"
    assert store.get_user(user.id).email == "marco.rossi@parcinfo.it"


def test_update_profile_email_pris(store):
    make_user(store, username="autre", email="pris@parcinfo.it")
    user = make_user(store)
    data = ProfileUpdate(first_name="Mario", last_name="Rossi", email="pris@parcinfo.it")
    with pytest.raises(errors.Conflict):
        user_service.update_profile(store, user.id, data)


def test_bootstrap_admin_cree_le_compte(store, test_settings, monkeypatch):
    monkeypatch.setattr(test_settings, "BOOTSTRAP_ADMIN_PASSWORD", "admin-dev")
    admin = user_service.bootstrap_admin(store)

    assert admin.role == "admin"
    assert auth_service.validate_password(store, "admin", "admin-dev").id == admin.id


def test_bootstrap_admin_ignore_si_utilisateurs(store, test_settings, monkeypatch):
    monkeypatch.setattr(test_settings, "BOOTSTRAP_ADMIN_PASSWORD", "admin-dev")
    make_user(store)
    assert user_service.bootstrap_admin(store) is None


def test_bootstrap_admin_ignore_en_production(store, test_settings, monkeypatch):
    monkeypatch.setattr(test_settings, "BOOTSTRAP_ADMIN_PASSWORD", "admin-dev")
    monkeypatch.setattr(test_settings, "ENV", "production")
    assert user_service.bootstrap_admin(store) is None
