from fastapi import APIRouter

from .health import router as health_router

from app.api.predict import router as predict_router
from app.api.status import router as status_router

"""
Router principal de l’API.

Rôle (fonctionnel) :
- Regroupe les routeurs (health, statut système, prédiction).
- Point d’entrée unique pour l’inclusion dans l’application FastAPI.
"""

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(status_router)
api_router.include_router(predict_router)
