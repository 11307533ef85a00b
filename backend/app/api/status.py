from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.settings import settings
from app.db.session import get_db
from app.ml.model_registry import ModelRegistry, get_registry

"""
API System Status.

Rôle (fonctionnel) :
- Vérifie la disponibilité de la base (requête simple).
- Expose l’état du registry : meilleur modèle, modèles avec / sans backend distant.
- Fournit la date de la dernière prédiction persistée (patient_records).

Note :
- Les services modèles ne sont PAS sondés ici (un appel peut prendre 10 s) ;
  “ok” ne dépend que de la base, les prédictions restant servies sans elle.
"""

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/status")
async def system_status(
    db: AsyncSession = Depends(get_db),
    registry: ModelRegistry = Depends(get_registry),
):
    db_ok = True
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        db_ok = False

    last_prediction = None
    if db_ok:
        try:
            r = await db.execute(text("SELECT MAX(created_at) AS last_prediction FROM patient_records"))
            row = r.mappings().first()
            last_prediction = row["last_prediction"].isoformat() if row and row["last_prediction"] else None
        except Exception:
            last_prediction = None

    models = registry.list_models()
    return {
        "ok": db_ok,
        "db": {"ok": db_ok},
        "models": {
            "count": len(models),
            "best": registry.best_model.identifier,
            "remote": [d.identifier for d in models if d.has_remote],
            "local_only": [d.identifier for d in models if not d.has_remote],
            "timeout_s": settings.MODEL_TIMEOUT_SECONDS,
            "local_fallback": settings.LOCAL_FALLBACK_ENABLED,
        },
        "last_prediction": last_prediction,
        "ts": datetime.now(timezone.utc).isoformat(),
    }
