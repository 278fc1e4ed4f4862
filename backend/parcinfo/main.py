"""
Point d'entrée principal de l'API ParcInfo.
Démarrage : uvicorn parcinfo.main:app --reload
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from parcinfo import errors
from parcinfo.config import settings
from parcinfo.logging_config import configure_logging
from parcinfo.rate_limit import build_rate_limiters, client_key
from parcinfo.routers import auth, invites, two_factor, users
from parcinfo.scheduler import cleanup_expired, start_scheduler, stop_scheduler
from parcinfo.services import user_service
from parcinfo.storage import create_store

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
RATE_LIMIT_EXCLUDED_PATHS = {"/api/health"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie : nettoyage initial, admin de développement, scheduler de nettoyage."""
    store = app.state.store
    cleanup_expired(store)
    user_service.bootstrap_admin(store)

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = start_scheduler(store, settings.CLEANUP_INTERVAL_MINUTES)
    yield
    if scheduler is not None:
        stop_scheduler(scheduler)
    store.close()


def _validation_details(exc: RequestValidationError) -> list:
    details = []
    for err in exc.errors():
        # loc = ("body", "password") → "password"
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        details.append({"field": field, "message": err.get("msg", "")})
    return details


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="ParcInfo API",
        description="Authentification, sessions et double authentification du parc informatique",
        version=VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    # Construits une seule fois, partagés par les handlers via app.state
    app.state.store = create_store(settings.DATABASE_URL, settings.DATA_FILE)
    app.state.rate_limiters = build_rate_limiters()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[],
        allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    @app.middleware("http")
    async def api_rate_limit_and_log(request: Request, call_next):
        """Limite globale /api/ par IP et journal des appels API."""
        path = request.url.path
        if not path.startswith("/api/"):
            return await call_next(request)

        if path not in RATE_LIMIT_EXCLUDED_PATHS:
            try:
                app.state.rate_limiters.api.check(client_key(request))
            except errors.RateLimited as exc:
                logger.warning("Limite API atteinte pour %s sur %s", client_key(request), path)
                return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)

        started = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - started) * 1000
        logger.info("%s %s %d en %.0f ms", request.method, path, response.status_code, duration_ms)
        return response

    app.include_router(auth.router)
    app.include_router(two_factor.router)
    app.include_router(invites.router)
    app.include_router(users.router)

    @app.exception_handler(errors.AuthError)
    async def auth_error_handler(request: Request, exc: errors.AuthError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Corps mal formé → 400 avec le détail par champ."""
        error = errors.ValidationError(_validation_details(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Intercepte toutes les exceptions non gérées pour garantir que la réponse 500
        passe bien par CORSMiddleware et ne contient aucun détail interne.
        """
        logger.error("Exception non gérée : %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Une erreur interne est survenue."},
        )

    @app.get("/api/health", tags=["Santé"])
    def health_check():
        """Vérifie que l'API est opérationnelle."""
        return {
            "status": "ok",
            "service": "ParcInfo API",
            "version": VERSION,
            "storage": app.state.store.backend,
        }

    return app


app = create_app()
