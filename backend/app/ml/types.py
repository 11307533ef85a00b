from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

"""
Types partagés de la couche prédiction.

- FeatureRecord : mapping en lecture seule des mesures cliniques du patient.
- RemoteResponse : réponse brute d’un service modèle, champs manquants déjà remplacés par défaut.
- PredictionOutcome : résultat uniforme (distant ou synthétisé), créé par requête, immuable.
"""

FeatureRecord = Mapping[str, Any]

LABEL_POSITIVE = "positive"
LABEL_NEGATIVE = "negative"

SOURCE_REMOTE = "remote"
SOURCE_SYNTHESIZED = "synthesized"


def freeze_record(data: Mapping[str, Any]) -> FeatureRecord:
    """Copie défensive + vue en lecture seule (le record ne change plus après réception)."""
    return MappingProxyType(dict(data))


@dataclass(frozen=True)
class RemoteResponse:
    label: str
    probability: float
    confidence: float
    defaulted_fields: Tuple[str, ...] = ()

    @property
    def is_partial(self) -> bool:
        return bool(self.defaulted_fields)


@dataclass(frozen=True)
class PredictionOutcome:
    model_identifier: str
    label: str                  # positive / negative
    probability: float          # 0..1
    confidence: float           # 0..100
    source: str                 # remote / synthesized
    used_fallback: bool = False
    raw_label: Optional[str] = None

    @property
    def is_positive(self) -> bool:
        return self.label == LABEL_POSITIVE

    @property
    def risk_score(self) -> float:
        """Score de risque 0..100 (probabilité en pourcentage)."""
        return round(self.probability * 100, 1)
