"""
Tests unitaires de la double authentification : setup, activation,
vérification (TOTP et codes de secours), désactivation.
"""

import pyotp
import pytest

from conftest import USER_PASSWORD, make_user, wrong_code
from parcinfo import errors
from parcinfo.services import two_factor_service


# --- Helper ---

def enable_2fa(store, user):
    """Setup + enable ; retourne le résultat du setup (secret et codes en clair)."""
    setup = two_factor_service.setup(store, user.id)
    assert two_factor_service.enable(store, user.id, setup.secret, pyotp.TOTP(setup.secret).now())
    return setup


# ============================================================
# setup / enable
# ============================================================

def test_setup_ne_change_pas_la_securite_du_compte(store):
    user = make_user(store)
    result = two_factor_service.setup(store, user.id)

    assert len(result.backup_codes) == 10
    assert all(len(c) == 8 for c in result.backup_codes)
    assert result.provisioning_uri.startswith("otpauth://totp/")
    assert "issuer=ParcInfo" in result.provisioning_uri
    assert result.qr_code.startswith("data:image/png;base64,")

    loaded = store.get_user(user.id)
    assert loaded.two_factor_enabled is False
    assert loaded.two_factor_secret is None
    assert loaded.pending_two_factor_secret == result.secret
    # Codes stockés hachés uniquement
    assert result.backup_codes[0] not in loaded.pending_backup_codes


def test_setup_deja_active(store):
    user = make_user(store)
    enable_2fa(store, user)
    with pytest.raises(errors.Conflict):
        two_factor_service.setup(store, user.id)


def test_setup_utilisateur_absent(store):
    with pytest.raises(errors.NotFound):
        two_factor_service.setup(store, "absent")


def test_enable_succes(store):
    user = make_user(store)
    setup = enable_2fa(store, user)

    loaded = store.get_user(user.id)
    assert loaded.two_factor_enabled is True
    assert loaded.two_factor_secret == setup.secret
    assert len(loaded.backup_codes) == 10
    assert loaded.pending_two_factor_secret is None


def test_enable_code_faux(store):
    user = make_user(store)
    setup = two_factor_service.setup(store, user.id)

    assert two_factor_service.enable(store, user.id, setup.secret, wrong_code(setup.secret)) is False
    assert store.get_user(user.id).two_factor_enabled is False


def test_enable_secret_different_du_setup(store):
    """Un secret choisi par le client (non issu du setup) est refusé."""
    user = make_user(store)
    two_factor_service.setup(store, user.id)
    other = pyotp.random_base32()

    assert two_factor_service.enable(store, user.id, other, pyotp.TOTP(other).now()) is False


def test_enable_sans_setup(store):
    user = make_user(store)
    secret = pyotp.random_base32()
    assert two_factor_service.enable(store, user.id, secret, pyotp.TOTP(secret).now()) is False


# ============================================================
# verify
# ============================================================

def test_verify_totp(store):
    user = make_user(store)
    setup = enable_2fa(store, user)
    assert two_factor_service.verify(store, user.id, pyotp.TOTP(setup.secret).now()) is True


def test_verify_code_de_secours_usage_unique(store):
    user = make_user(store)
    setup = enable_2fa(store, user)
    code = setup.backup_codes[0]

    assert two_factor_service.verify(store, user.id, code) is True
    assert len(store.get_user(user.id).backup_codes) == 9
    assert two_factor_service.verify(store, user.id, code) is False


def test_verify_code_de_secours_minuscules_et_tirets(store):
    user = make_user(store)
    setup = enable_2fa(store, user)
    code = setup.backup_codes[1]

    assert two_factor_service.verify(store, user.id, f"{code[:4].lower()}-{code[4:].lower()}") is True


def test_verify_2fa_desactivee(store):
    user = make_user(store)
    assert two_factor_service.verify(store, user.id, "123456") is False


def test_verify_code_faux(store):
    user = make_user(store)
    setup = enable_2fa(store, user)
    assert two_factor_service.verify(store, user.id, wrong_code(setup.secret)) is False


# ============================================================
# disable / regenerate_backup_codes
# ============================================================

def test_disable_succes(store):
    user = make_user(store)
    setup = enable_2fa(store, user)

    assert two_factor_service.disable(store, user.id, USER_PASSWORD, pyotp.TOTP(setup.secret).now()) is True
    loaded = store.get_user(user.id)
    assert loaded.two_factor_enabled is False
    assert loaded.two_factor_secret is None
    assert loaded.backup_codes is None


@pytest.mark.parametrize("bad", ["password", "code"])
def test_disable_exige_les_deux_facteurs(store, bad):
    user = make_user(store)
    setup = enable_2fa(store, user)
    password = "mauvais" if bad == "password" else USER_PASSWORD
    code = wrong_code(setup.secret) if bad == "code" else pyotp.TOTP(setup.secret).now()

    assert two_factor_service.disable(store, user.id, password, code) is False
    assert store.get_user(user.id).two_factor_enabled is True


def test_regenerate_backup_codes(store):
    user = make_user(store)
    setup = enable_2fa(store, user)

    codes = two_factor_service.regenerate_backup_codes(store, user.id, pyotp.TOTP(setup.secret).now())
    assert len(codes) == 10
    # Les anciens codes ne sont plus acceptés
    assert two_factor_service.verify(store, user.id, setup.backup_codes[0]) is False
    assert two_factor_service.verify(store, user.id, codes[0]) is True


def test_regenerate_backup_codes_code_faux(store):
    user = make_user(store)
    setup = enable_2fa(store, user)
    assert two_factor_service.regenerate_backup_codes(store, user.id, wrong_code(setup.secret)) is None
