"""
Configuration partagée pour tous les tests.
Chaque test travaille sur un stockage isolé dans tmp_path ; bcrypt est
réglé au coût minimal et le plancher de durée de connexion est coupé.
"""

import time
import uuid

import pyotp
import pytest
from fastapi.testclient import TestClient

from parcinfo.config import settings
from parcinfo.domain import User
from parcinfo.services.password_service import hash_password
from parcinfo.storage.file_store import FileStore
from parcinfo.storage.sql_store import SqlStore

ADMIN_PASSWORD = "Admin123!"
USER_PASSWORD = "User1234!"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)
    monkeypatch.setattr(settings, "LOGIN_MIN_DURATION_MS", 0)
    monkeypatch.setattr(settings, "SCHEDULER_ENABLED", False)
    monkeypatch.setattr(settings, "SENDGRID_API_KEY", "")
    monkeypatch.setattr(settings, "DATABASE_URL", "")
    monkeypatch.setattr(settings, "DATA_FILE", str(tmp_path / "parcinfo.json"))
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_PASSWORD", "")
    monkeypatch.setattr(settings, "APP_URL", "https://parc.test-interne.it")
    return settings


@pytest.fixture(params=["file", "sql"])
def store(request, tmp_path):
    """Les deux adaptateurs de stockage doivent se comporter à l'identique."""
    if request.param == "file":
        s = FileStore(str(tmp_path / "store.json"))
    else:
        s = SqlStore(f"sqlite:///{tmp_path / 'store.db'}")
    yield s
    s.close()


def make_user(store, username="mrossi", password=USER_PASSWORD, role="user", is_active=True, **kwargs) -> User:
    user = User(
        id=str(uuid.uuid4()),
        username=username,
        email=kwargs.pop("email", f"{username}@parcinfo.it"),
        first_name=kwargs.pop("first_name", "Mario"),
        last_name=kwargs.pop("last_name", "Rossi"),
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
        **kwargs,
    )
    return store.add_user(user)


def wrong_code(secret) -> str:
    """Code à 6 chiffres refusé dans la fenêtre de tolérance courante."""
    totp = pyotp.TOTP(secret)
    now = time.time()
    accepted = {totp.at(now - 30), totp.at(now), totp.at(now + 30)}
    return next(c for c in ("000000", "111111", "222222", "333333") if c not in accepted)


@pytest.fixture
def app(test_settings):
    from parcinfo.main import create_app

    return create_app()


@pytest.fixture
def client(app):
    """Client HTTP de test avec un stockage fichier vide."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def app_store(app):
    return app.state.store


@pytest.fixture
def admin(app_store):
    return make_user(app_store, username="admin", password=ADMIN_PASSWORD, role="admin", first_name="Anna", last_name="Bianchi")


@pytest.fixture
def admin_headers(client, admin):
    response = client.post("/api/auth/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['sessionId']}"}


@pytest.fixture
def user(app_store):
    return make_user(app_store)


@pytest.fixture
def user_headers(client, user):
    response = client.post("/api/auth/login", json={"username": "mrossi", "password": USER_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['sessionId']}"}
