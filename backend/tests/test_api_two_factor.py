"""
Tests d'intégration API de la double authentification.
"""

import pyotp

from conftest import USER_PASSWORD, wrong_code


# --- Helper ---

def setup_and_enable(client, headers) -> dict:
    setup = client.post("/api/auth/2fa/setup", headers=headers).json()
    response = client.post(
        "/api/auth/2fa/enable",
        json={"secret": setup["secret"], "code": pyotp.TOTP(setup["secret"]).now()},
        headers=headers,
    )
    assert response.status_code == 200
    return setup


def test_setup_retourne_secret_qr_et_codes(client, user_headers):
    response = client.post("/api/auth/2fa/setup", headers=user_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["secret"]
    assert data["provisioningUri"].startswith("otpauth://totp/")
    assert data["qrCode"].startswith("data:image/png;base64,")
    assert len(data["backupCodes"]) == 10

    # La 2FA n'est pas encore active : connexion sans code toujours possible
    login = client.post("/api/auth/login", json={"username": "mrossi", "password": USER_PASSWORD})
    assert "sessionId" in login.json()


def test_setup_sans_session(client):
    assert client.post("/api/auth/2fa/setup").status_code == 401


def test_enable_code_faux(client, user_headers):
    setup = client.post("/api/auth/2fa/setup", headers=user_headers).json()
    response = client.post(
        "/api/auth/2fa/enable",
        json={"secret": setup["secret"], "code": wrong_code(setup["secret"])},
        headers=user_headers,
    )
    assert response.status_code == 401


def test_enable_puis_login_exige_le_code(client, user_headers):
    setup_and_enable(client, user_headers)

    response = client.post("/api/auth/login", json={"username": "mrossi", "password": USER_PASSWORD})
    assert response.json() == {"requires2FA": True, "message": "Code de vérification requis."}


def test_setup_deja_active_conflit(client, user_headers):
    setup_and_enable(client, user_headers)
    assert client.post("/api/auth/2fa/setup", headers=user_headers).status_code == 409


def test_login_avec_code_de_secours_usage_unique(client, user_headers):
    setup = setup_and_enable(client, user_headers)
    credentials = {"username": "mrossi", "password": USER_PASSWORD, "twoFactorCode": setup["backupCodes"][0]}

    assert client.post("/api/auth/login", json=credentials).status_code == 200
    assert client.post("/api/auth/login", json=credentials).status_code == 401


def test_verify(client, user_headers):
    setup = setup_and_enable(client, user_headers)

    ok = client.post("/api/auth/2fa/verify", json={"code": pyotp.TOTP(setup["secret"]).now()}, headers=user_headers)
    assert ok.status_code == 200
    assert ok.json() == {"valid": True}

    bad = client.post("/api/auth/2fa/verify", json={"code": wrong_code(setup["secret"])}, headers=user_headers)
    assert bad.status_code == 401


def test_verify_code_trop_court(client, user_headers):
    response = client.post("/api/auth/2fa/verify", json={"code": "123"}, headers=user_headers)
    assert response.status_code == 400


def test_disable_exige_mot_de_passe_et_code(client, user_headers):
    setup = setup_and_enable(client, user_headers)
    code = pyotp.TOTP(setup["secret"]).now()

    bad = client.post("/api/auth/2fa/disable", json={"password": "mauvais", "code": code}, headers=user_headers)
    assert bad.status_code == 401

    ok = client.post("/api/auth/2fa/disable", json={"password": USER_PASSWORD, "code": code}, headers=user_headers)
    assert ok.status_code == 200

    login = client.post("/api/auth/login", json={"username": "mrossi", "password": USER_PASSWORD})
    assert "sessionId" in login.json()


def test_regenerate_backup_codes(client, user_headers):
    setup = setup_and_enable(client, user_headers)
    response = client.post(
        "/api/auth/2fa/backup-codes",
        json={"code": pyotp.TOTP(setup["secret"]).now()},
        headers=user_headers,
    )
    assert response.status_code == 200
    assert len(response.json()["backupCodes"]) == 10
    assert set(response.json()["backupCodes"]).isdisjoint(setup["backupCodes"])
