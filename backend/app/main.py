from __future__ import annotations

import time
import uuid
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.router import api_router
from app.core.settings import settings
from app.core.logging import setup_logging
from app.core.errors import code_for_status, error_payload, AppHTTPException
from app.core.request_id import get_request_id, normalize_request_id, reset_request_id, set_request_id
from app.core.rate_limit import rate_limiter
from app.ml.model_registry import get_registry
from app.ml.remote_client import RemoteModelClient
from app.services.errors import AllBackendsUnavailableError, UnknownModelError

"""
Application FastAPI (entrypoint).

Rôle (fonctionnel) :
- Configure l’application (settings, CORS, middlewares, routers).
- Cycle de vie : construit le registry et le client HTTP des modèles au démarrage,
  ferme le client à l’arrêt.
- Centralise l’observabilité :
  - request_id propagé (X-Request-Id), y compris vers les services modèles
  - logs structurés JSON (timing, status, client_ip)
  - seuil de “slow request” (une cascade complète peut durer N x timeout)
- Applique un rate-limit simple (optionnel) sur les endpoints de prédiction.
- Uniformise les erreurs côté client (format error_payload), y compris les erreurs métier :
  - UnknownModelError -> 400 (liste des modèles valides)
  - AllBackendsUnavailableError -> 503 (suggestion de réessayer / changer de modèle)

Ce fichier ne contient pas de logique métier :
- L’orchestration des modèles est dans app.services
- Les routes sont dans app.api
- Les composants transverses sont dans app.core
"""


class UTF8JSONResponse(JSONResponse):
    """Réponse JSON avec charset UTF-8 explicite (cohérent sur tous les endpoints)."""
    media_type = "application/json; charset=utf-8"


setup_logging(settings.LOG_LEVEL)

log = logging.getLogger("nephroscope")
http_log = logging.getLogger("app.http")

SLOW_MS = int(settings.SLOW_REQUEST_MS)


def _split_origins(value: str) -> list[str]:
    """Parse une liste d’origines CORS depuis une string 'a,b,c'."""
    if not value:
        return []
    return [o.strip() for o in value.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    registry = get_registry()
    app.state.remote_client = RemoteModelClient(timeout=settings.MODEL_TIMEOUT_SECONDS)
    log.info(
        "service started (%d models, best=%s)",
        len(registry),
        registry.best_model.identifier,
    )
    try:
        yield
    finally:
        await app.state.remote_client.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    default_response_class=UTF8JSONResponse,
    lifespan=lifespan,
)

# --- CORS ---
# Pas d’origine configurée : l’app mobile et les outils de démo appellent depuis n’importe où
origins = _split_origins(settings.CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-API-Key",
        "X-Request-Id",
    ],
)

app.include_router(api_router)


def _rid(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid.uuid4())


def _error_response(request: Request, status: int, code: str, message: str, details=None) -> UTF8JSONResponse:
    return UTF8JSONResponse(
        status_code=status,
        content=error_payload(code=code, message=message, status=status, request_id=_rid(request), details=details),
    )


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """
    Rate-limit (optionnel) :
    - Ne bloque jamais les préflights CORS (OPTIONS).
    - Ne s’applique qu’aux endpoints de prédiction (voir core.rate_limit.route_family).
    """
    if request.method == "OPTIONS":
        return await call_next(request)

    try:
        rate_limiter.check(request)
    except AppHTTPException as exc:
        detail = exc.detail if isinstance(exc.detail, dict) else {}
        return _error_response(
            request,
            exc.status_code,
            str(detail.get("code", "RATE_LIMITED")),
            str(detail.get("message", "Trop de requêtes")),
            detail.get("details"),
        )

    return await call_next(request)


# Déclaré en dernier => middleware le plus externe : le request_id existe déjà pour le rate limit
@app.middleware("http")
async def request_observability(request: Request, call_next):
    rid = normalize_request_id(request.headers.get("X-Request-Id"))
    token = set_request_id(rid)
    request.state.request_id = rid

    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        response.headers["X-Request-Id"] = rid
        return response
    finally:
        duration_ms = int((time.perf_counter() - start) * 1000)

        level = logging.WARNING if duration_ms >= SLOW_MS else logging.INFO
        http_log.log(
            level,
            "request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": getattr(response, "status_code", None),
                "duration_ms": duration_ms,
                "client_ip": request.client.host if request.client else None,
            },
        )

        reset_request_id(token)


# --- Error handlers : format standard, pas de stacktrace côté client ---
@app.exception_handler(UnknownModelError)
async def unknown_model_handler(request: Request, exc: UnknownModelError):
    """Identifiant hors registry -> 400 avec la liste des modèles valides."""
    return _error_response(
        request,
        400,
        "UNKNOWN_MODEL",
        f"Modèle invalide. Choisir parmi : {', '.join(exc.valid_models)}",
        {"received": exc.received, "valid_models": list(exc.valid_models)},
    )


@app.exception_handler(AllBackendsUnavailableError)
async def all_backends_unavailable_handler(request: Request, exc: AllBackendsUnavailableError):
    """Plus aucun modèle (distant ou local) -> 503 + suggestion."""
    log.error("all prediction backends unavailable (attempted: %s)", ", ".join(exc.attempted) or "-")
    return _error_response(
        request,
        503,
        "ALL_BACKENDS_UNAVAILABLE",
        exc.message,
        {
            "attempted": list(exc.attempted),
            "suggestion": "Réessayer dans quelques instants ou choisir un autre modèle (POST /{model}/predict).",
        },
    )


@app.exception_handler(AppHTTPException)
async def app_http_exception_handler(request: Request, exc: AppHTTPException):
    detail = exc.detail if isinstance(exc.detail, dict) else {}
    return _error_response(
        request,
        exc.status_code,
        str(detail.get("code", "HTTP_ERROR")),
        str(detail.get("message", "Erreur HTTP")),
        detail.get("details"),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Erreurs HTTP natives (404, 405…) -> payload standard."""
    details = None
    if exc.status_code == 404:
        details = {"requested": request.url.path, "method": request.method, "see": "GET /"}
    return _error_response(request, exc.status_code, code_for_status(exc.status_code), str(exc.detail), details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Erreurs de validation Pydantic -> 422 + details=exc.errors()."""
    return _error_response(request, 422, "VALIDATION_ERROR", "Requête invalide", jsonable_encoder(exc.errors()))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Fallback : toute exception non gérée -> 500 + log serveur."""
    log.exception("Unhandled error: %s", exc)
    return _error_response(request, 500, "INTERNAL_ERROR", "Erreur interne du serveur")
