from fastapi import APIRouter, Depends

from app.core.settings import settings
from app.ml.model_registry import ModelRegistry, get_registry

"""
API Health.

Rôle (fonctionnel) :
- GET /        : description du service (endpoints disponibles, modèles enregistrés).
- GET /health  : liveness simple (ne touche ni la base ni les services modèles).
"""

router = APIRouter()


@router.get("/")
def root(registry: ModelRegistry = Depends(get_registry)):
    return {
        "message": f"{settings.APP_NAME} - CKD early detection",
        "version": settings.APP_VERSION,
        "endpoints": {
            "health": "GET /health",
            "status": "GET /system/status",
            "models": "GET /models",
            "per_model": {m: f"POST /{m}/predict" for m in registry.identifiers()},
            "single": "POST /predict/single",
            "compare": "POST /predict/compare",
        },
        "best_model": registry.best_model.identifier,
    }


@router.get("/health")
def health(registry: ModelRegistry = Depends(get_registry)):
    return {
        "status": "ok",
        "env": settings.ENV,
        "models": len(registry),
        "local_fallback": settings.LOCAL_FALLBACK_ENABLED,
    }
