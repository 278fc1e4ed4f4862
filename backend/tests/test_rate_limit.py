"""
Tests unitaires du limiteur de débit à fenêtre fixe.
"""

from unittest.mock import MagicMock, patch

import pytest

from parcinfo import errors
from parcinfo.rate_limit import FixedWindowLimiter, build_rate_limiters, client_key


def test_hit_sous_la_limite():
    limiter = FixedWindowLimiter(3, 60, "trop")
    results = [limiter.hit("ip") for _ in range(3)]
    assert all(r.allowed for r in results)
    assert results[-1].remaining == 0


def test_check_leve_au_dela_de_la_limite():
    limiter = FixedWindowLimiter(2, 60, "Trop de requêtes")
    limiter.check("ip")
    limiter.check("ip")
    with pytest.raises(errors.RateLimited) as exc:
        limiter.check("ip")
    assert exc.value.detail == "Trop de requêtes"
    assert int(exc.value.headers["Retry-After"]) > 0


def test_cles_independantes():
    limiter = FixedWindowLimiter(1, 60, "trop")
    limiter.check("a")
    limiter.check("b")
    with pytest.raises(errors.RateLimited):
        limiter.check("a")


def test_ensure_not_blocked_ne_compte_pas():
    limiter = FixedWindowLimiter(2, 60, "trop")
    for _ in range(5):
        limiter.ensure_not_blocked("ip")
    limiter.hit("ip")
    limiter.hit("ip")
    with pytest.raises(errors.RateLimited):
        limiter.ensure_not_blocked("ip")


def test_fenetre_reinitialisee_apres_expiration():
    limiter = FixedWindowLimiter(1, 60, "trop")
    with patch("parcinfo.rate_limit.time.time", return_value=1000.0):
        limiter.check("ip")
        with pytest.raises(errors.RateLimited):
            limiter.check("ip")
    with patch("parcinfo.rate_limit.time.time", return_value=1061.0):
        assert limiter.check("ip").allowed is True


def test_limiteur_desactive():
    limiter = FixedWindowLimiter(1, 60, "trop", enabled=False)
    for _ in range(5):
        limiter.check("ip")
        limiter.ensure_not_blocked("ip")


def test_reset():
    limiter = FixedWindowLimiter(1, 60, "trop")
    limiter.check("ip")
    limiter.reset("ip")
    limiter.check("ip")


def test_build_rate_limiters_depuis_la_config(test_settings):
    limiters = build_rate_limiters()
    assert limiters.login.limit == 5
    assert limiters.invite.limit == 10
    assert limiters.api.limit == 100
    assert limiters.login.window == 900


def test_client_key():
    request = MagicMock()
    request.client.host = "10.0.0.7"
    assert client_key(request) == "10.0.0.7"
    request.client = None
    assert client_key(request) == "unknown"


def test_fenetres_echues_purgees():
    """Les clés vues une seule fois ne s'accumulent pas au-delà de leur fenêtre."""
    limiter = FixedWindowLimiter(5, 60, "trop")
    with patch("parcinfo.rate_limit.time.time", return_value=1000.0):
        for i in range(1000):
            limiter.hit(f"10.0.{i // 256}.{i % 256}")
    assert len(limiter._windows) == 1000

    with patch("parcinfo.rate_limit.time.time", return_value=1061.0):
        limiter.hit("10.9.9.9")
    assert list(limiter._windows) == ["10.9.9.9"]


def test_purge_conserve_les_fenetres_en_cours():
    limiter = FixedWindowLimiter(1, 60, "trop")
    with patch("parcinfo.rate_limit.time.time", return_value=1000.0):
        limiter.check("ancienne")
    with patch("parcinfo.rate_limit.time.time", return_value=1030.0):
        limiter.check("recente")
    with patch("parcinfo.rate_limit.time.time", return_value=1070.0):
        limiter.hit("autre")
        with pytest.raises(errors.RateLimited):
            limiter.check("recente")
    assert "ancienne" not in limiter._windows
