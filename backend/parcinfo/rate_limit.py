"""
Limitation de débit par IP, fenêtre fixe en mémoire (une instance de processus).

  - connexion : 5 échecs / 15 min (les connexions réussies ne comptent pas)
  - invitations : 10 requêtes / 15 min
  - API générale : 100 requêtes / 15 min, /api/health exclu
"""

import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import Request

from parcinfo import errors
from parcinfo.config import settings


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int
    reset: int  # timestamp Unix de fin de fenêtre
    retry_after: Optional[int] = None


@dataclass
class _Window:
    started: float
    count: int = 0


class FixedWindowLimiter:
    """Compteur par clé ; la fenêtre démarre à la première requête de la clé."""

    def __init__(self, limit: int, window: int, message: str, enabled: bool = True):
        self.limit = limit
        self.window = window
        self.message = message
        self.enabled = enabled
        self._windows: Dict[str, _Window] = {}
        self._last_prune = 0.0
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        """Retire les fenêtres échues, au plus une fois par durée de fenêtre."""
        if now - self._last_prune < self.window:
            return
        self._last_prune = now
        expired = [key for key, current in self._windows.items() if now - current.started >= self.window]
        for key in expired:
            del self._windows[key]

    def _current(self, key: str, now: float) -> _Window:
        self._prune(now)
        current = self._windows.get(key)
        if current is None or now - current.started >= self.window:
            current = _Window(started=now)
            self._windows[key] = current
        return current

    def _result(self, current: _Window, now: float) -> RateLimitResult:
        reset = current.started + self.window
        allowed = current.count <= self.limit
        return RateLimitResult(
            allowed=allowed,
            remaining=max(self.limit - current.count, 0),
            limit=self.limit,
            reset=int(reset),
            retry_after=None if allowed else int(reset - now) + 1,
        )

    def hit(self, key: str) -> RateLimitResult:
        """Compte une requête et indique si elle reste sous la limite."""
        with self._lock:
            now = time.time()
            current = self._current(key, now)
            current.count += 1
            return self._result(current, now)

    def peek(self, key: str) -> RateLimitResult:
        """Indique si une requête de plus serait acceptée, sans la compter."""
        with self._lock:
            now = time.time()
            current = self._current(key, now)
            reset = current.started + self.window
            allowed = current.count < self.limit
            return RateLimitResult(
                allowed=allowed,
                remaining=max(self.limit - current.count, 0),
                limit=self.limit,
                reset=int(reset),
                retry_after=None if allowed else int(reset - now) + 1,
            )

    def check(self, key: str) -> RateLimitResult:
        """hit() puis lève RateLimited au-delà de la limite."""
        if not self.enabled:
            return RateLimitResult(allowed=True, remaining=self.limit, limit=self.limit, reset=0)
        result = self.hit(key)
        if not result.allowed:
            raise errors.RateLimited(self.message, retry_after=result.retry_after)
        return result

    def ensure_not_blocked(self, key: str) -> None:
        """Refuse la requête si la limite est déjà atteinte (utilisé avant une tentative de connexion)."""
        if not self.enabled:
            return
        result = self.peek(key)
        if not result.allowed:
            raise errors.RateLimited(self.message, retry_after=result.retry_after)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)


@dataclass
class RateLimiters:
    login: FixedWindowLimiter
    invite: FixedWindowLimiter
    api: FixedWindowLimiter


def build_rate_limiters() -> RateLimiters:
    enabled = settings.RATE_LIMIT_ENABLED
    return RateLimiters(
        login=FixedWindowLimiter(
            settings.LOGIN_RATE_LIMIT_MAX,
            settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
            "Trop de tentatives de connexion. Réessayez dans 15 minutes.",
            enabled,
        ),
        invite=FixedWindowLimiter(
            settings.INVITE_RATE_LIMIT_MAX,
            settings.INVITE_RATE_LIMIT_WINDOW_SECONDS,
            "Trop de requêtes. Réessayez dans 15 minutes.",
            enabled,
        ),
        api=FixedWindowLimiter(
            settings.API_RATE_LIMIT_MAX,
            settings.API_RATE_LIMIT_WINDOW_SECONDS,
            "Trop de requêtes. Réessayez plus tard.",
            enabled,
        ),
    )


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"
