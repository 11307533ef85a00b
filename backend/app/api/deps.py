from __future__ import annotations

from fastapi import Depends, Request

from app.core.security import require_api_key
from app.core.settings import settings
from app.ml.model_registry import ModelRegistry, get_registry
from app.ml.remote_client import RemoteModelClient
from app.services.prediction_service import PredictionService
from app.services.record_store import RecordStore

"""
Dépendances API.

Rôle (fonctionnel) :
- Centralise les dépendances réutilisables sur les routes :
  - registry (process-wide, construit une fois),
  - client HTTP partagé (app.state.remote_client, créé au démarrage),
  - PredictionService composé pour la requête (aucun état mutable partagé),
  - RecordStore (persistance best-effort),
  - protection “démo” via clé API.
- Toutes surchargeables en tests via app.dependency_overrides.
"""


async def require_demo_auth(request: Request) -> None:
    await require_api_key(request)


DemoAuthDep = Depends(require_demo_auth)


def get_remote_client(request: Request) -> RemoteModelClient:
    client = getattr(request.app.state, "remote_client", None)
    if client is None:
        client = RemoteModelClient(timeout=settings.MODEL_TIMEOUT_SECONDS)
        request.app.state.remote_client = client
    return client


def get_prediction_service(
    registry: ModelRegistry = Depends(get_registry),
    client: RemoteModelClient = Depends(get_remote_client),
) -> PredictionService:
    return PredictionService.from_settings(settings, registry, client)


def get_record_store() -> RecordStore:
    return RecordStore()
