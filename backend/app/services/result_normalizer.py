from __future__ import annotations

from dataclasses import replace

from app.ml.model_registry import ModelDescriptor
from app.ml.types import (
    LABEL_NEGATIVE,
    LABEL_POSITIVE,
    SOURCE_REMOTE,
    PredictionOutcome,
    RemoteResponse,
)

"""
Result Normalizer.

Rôle (fonctionnel) :
- Les services modèles ne répondent pas tous pareil ("CKD", "ckd", 1, "notckd", "No CKD"…,
  confidence parfois absente ou en texte). On produit ici un PredictionOutcome uniforme.

Règles :
- probabilité bornée à [0, 1]
- label reconnu => positif / négatif ; label inconnu => probabilité > 0.5
- confidence absente (0) => probabilité * 100, toujours bornée à [0, 100]
"""

POSITIVE_LABELS = frozenset({"ckd", "1", "yes", "positive", "true", "high", "high risk"})
NEGATIVE_LABELS = frozenset({"notckd", "no ckd", "not ckd", "no_ckd", "0", "no", "negative", "false", "low", "low risk"})


def label_from(raw_label: str, probability: float) -> str:
    key = " ".join(str(raw_label).lower().split())
    if key in POSITIVE_LABELS:
        return LABEL_POSITIVE
    if key in NEGATIVE_LABELS:
        return LABEL_NEGATIVE
    return LABEL_POSITIVE if probability > 0.5 else LABEL_NEGATIVE


def from_remote(
    descriptor: ModelDescriptor,
    response: RemoteResponse,
    *,
    used_fallback: bool = False,
) -> PredictionOutcome:
    probability = max(0.0, min(1.0, float(response.probability)))

    confidence = float(response.confidence or 0.0)
    if confidence <= 0:
        confidence = round(probability * 100, 1)
    confidence = max(0.0, min(100.0, confidence))

    return PredictionOutcome(
        model_identifier=descriptor.identifier,
        label=label_from(response.label, probability),
        probability=probability,
        confidence=confidence,
        source=SOURCE_REMOTE,
        used_fallback=used_fallback,
        raw_label=response.label,
    )


def from_estimate(outcome: PredictionOutcome, *, used_fallback: bool) -> PredictionOutcome:
    """Marque une estimation locale (déjà uniforme) avec le flag de fallback."""
    return replace(outcome, used_fallback=used_fallback)
