from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import DemoAuthDep, get_prediction_service, get_record_store
from app.db.session import get_db
from app.ml.model_registry import ModelDescriptor, ModelRegistry, get_registry
from app.ml.types import PredictionOutcome, freeze_record
from app.schemas.predictions import (
    ComparisonEntryOut,
    ComparisonResponse,
    ModelOut,
    PatientFeatures,
    PredictionResponse,
)
from app.services.comparison import ComparisonEntry
from app.services.prediction_service import PredictionService
from app.services.record_store import RecordStore

"""
API Prédiction.

Rôle (fonctionnel) :
- POST /predict/single   : meilleur modèle + cascade + fallback local (dispatcher).
- POST /predict/compare  : tous les modèles en parallèle (comparaison, non persistée).
- POST /{model}/predict  : un modèle précis (xgboost, randomforest, neuralnetwork, svm, logistic).
- GET  /models           : classement du registry.

Chaque prédiction est persistée en best-effort : si la base est indisponible,
la réponse part quand même avec note="Prediction saved locally only".
"""

router = APIRouter(tags=["predict"])

HIGH_RISK_LABEL = "HIGH RISK: CKD Detected"
LOW_RISK_LABEL = "LOW RISK: No CKD"
HIGH_RISK_RECOMMENDATION = "High risk detected. Consult nephrologist immediately."
LOW_RISK_RECOMMENDATION = "Low risk. Continue annual checkups."
SAVED_LOCALLY_NOTE = "Prediction saved locally only"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def present_outcome(
    outcome: PredictionOutcome,
    descriptor: ModelDescriptor,
    record_id: Optional[uuid.UUID],
) -> PredictionResponse:
    """PredictionOutcome -> contrat HTTP (recommandation choisie sur le label prédit)."""
    risk_label = HIGH_RISK_LABEL if outcome.is_positive else LOW_RISK_LABEL

    return PredictionResponse(
        risk_score=outcome.risk_score,
        risk_label=risk_label,
        result=f"{risk_label}\nConfidence: {outcome.confidence:.1f}%",
        prediction=outcome.label,
        probability=outcome.probability,
        confidence=outcome.confidence,
        model=descriptor.identifier,
        model_display=descriptor.display_name,
        accuracy=descriptor.accuracy_pct,
        source=outcome.source,
        used_fallback=outcome.used_fallback,
        recommendation=HIGH_RISK_RECOMMENDATION if outcome.is_positive else LOW_RISK_RECOMMENDATION,
        patient_record_id=record_id,
        note=None if record_id else SAVED_LOCALLY_NOTE,
        timestamp=_now(),
    )


def present_entry(entry: ComparisonEntry) -> ComparisonEntryOut:
    d = entry.descriptor
    o = entry.outcome
    return ComparisonEntryOut(
        model=d.identifier,
        model_display=d.display_name,
        accuracy=d.accuracy_pct,
        status=entry.status,
        prediction=o.label if o else None,
        probability=o.probability if o else None,
        confidence=o.confidence if o else None,
        source=o.source if o else None,
        error=entry.error,
    )


async def _persist_and_present(
    db: AsyncSession,
    store: RecordStore,
    service: PredictionService,
    record,
    outcome: PredictionOutcome,
) -> PredictionResponse:
    descriptor = service.describe(outcome.model_identifier)
    record_id = await store.save(db, record, outcome, descriptor)
    return present_outcome(outcome, descriptor, record_id)


@router.get("/models", response_model=list[ModelOut])
def list_models(registry: ModelRegistry = Depends(get_registry)):
    best = registry.best_model
    return [
        ModelOut(
            model=d.identifier,
            model_display=d.display_name,
            accuracy=d.accuracy_pct,
            rank=rank,
            remote=d.has_remote,
            is_best=d.identifier == best.identifier,
        )
        for rank, d in enumerate(registry.list_models(), start=1)
    ]


@router.post("/predict/single", response_model=PredictionResponse, dependencies=[DemoAuthDep])
async def predict_single(
    payload: PatientFeatures,
    service: PredictionService = Depends(get_prediction_service),
    store: RecordStore = Depends(get_record_store),
    db: AsyncSession = Depends(get_db),
):
    record = freeze_record(payload.to_record())
    outcome = await service.dispatch(record)
    return await _persist_and_present(db, store, service, record, outcome)


@router.post("/predict/compare", response_model=ComparisonResponse, dependencies=[DemoAuthDep])
async def predict_compare(
    payload: PatientFeatures,
    service: PredictionService = Depends(get_prediction_service),
):
    record = freeze_record(payload.to_record())
    report = await service.compare_all(record)

    best = report.best
    return ComparisonResponse(
        comparison_table=[present_entry(e) for e in report],
        best_model=present_entry(best) if best else None,
        failed=report.failures,
        timestamp=_now(),
    )


@router.post("/{model}/predict", response_model=PredictionResponse, dependencies=[DemoAuthDep])
async def predict_with_model(
    model: str,
    payload: PatientFeatures,
    service: PredictionService = Depends(get_prediction_service),
    store: RecordStore = Depends(get_record_store),
    db: AsyncSession = Depends(get_db),
):
    # UnknownModelError (400) levée avant tout appel réseau
    service.describe(model)

    record = freeze_record(payload.to_record())
    outcome = await service.predict_with(model, record)
    return await _persist_and_present(db, store, service, record, outcome)
