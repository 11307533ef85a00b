from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from app.ml.types import (
    LABEL_NEGATIVE,
    LABEL_POSITIVE,
    SOURCE_SYNTHESIZED,
    FeatureRecord,
    PredictionOutcome,
)

"""
Local Risk Estimator.

Rôle (fonctionnel) :
- Produit une prédiction CKD locale, par règles, quand aucun service distant ne répond
  (ou quand un modèle n’a pas de backend distant).
- Fonction pure : pas d’I/O, pas d’aléatoire, pas d’horloge. Mêmes entrées => même sortie.

Algorithme :
- Chaque règle franchie ajoute un poids fixe au score (plafonné à 95).
- Un champ absent, illisible ou à 0 prend sa valeur neutre (NEUTRAL_DEFAULTS).
- probabilité = score / 100 + décalage propre au modèle, bornée à [0.05, 0.95].
- label positif si probabilité > 0.5.

Les poids, seuils et décalages sont des constantes configurables (RiskRules) :
ils reproduisent les valeurs historiques du service, pas un modèle entraîné.
"""


@dataclass(frozen=True)
class Rule:
    """Règle de seuil : field <op> threshold => +weight."""
    field: str
    op: str          # ">" ou "<"
    threshold: float
    weight: int
    label: str

    def crossed(self, value: float) -> bool:
        if self.op == ">":
            return value > self.threshold
        return value < self.threshold


DEFAULT_RULES: Tuple[Rule, ...] = (
    Rule("age", ">", 60, 15, "Âge > 60 ans"),
    Rule("bp", ">", 140, 10, "Tension artérielle > 140"),
    Rule("sc", ">", 1.3, 25, "Créatinine sérique > 1.3"),
    Rule("bu", ">", 40, 15, "Urée sanguine > 40"),
    Rule("bgr", ">", 126, 10, "Glycémie > 126"),
    Rule("sg", "<", 1.010, 10, "Densité urinaire < 1.010"),
    Rule("al", ">", 2, 10, "Albumine > 2"),
    Rule("su", ">", 1, 5, "Sucre > 1"),
)

# Valeurs cliniquement neutres utilisées quand un champ est absent / illisible
NEUTRAL_DEFAULTS: Dict[str, float] = {
    "age": 50,
    "bp": 120,
    "sc": 1.0,
    "bu": 30,
    "bgr": 100,
    "sg": 1.020,
    "al": 0,
    "su": 0,
}

# Décalage par modèle (stand-in de la variance inter-modèles)
MODEL_OFFSETS: Dict[str, float] = {
    "xgboost": 0.02,
    "randomforest": 0.01,
    "neuralnetwork": 0.015,
    "svm": 0.0,
    "logistic": -0.01,
}


@dataclass(frozen=True)
class RiskRules:
    rules: Tuple[Rule, ...] = DEFAULT_RULES
    defaults: Mapping[str, float] = field(default_factory=lambda: dict(NEUTRAL_DEFAULTS))
    offsets: Mapping[str, float] = field(default_factory=lambda: dict(MODEL_OFFSETS))
    score_cap: int = 95
    min_probability: float = 0.05
    max_probability: float = 0.95
    positive_threshold: float = 0.5


@dataclass(frozen=True)
class RiskBreakdown:
    raw_score: int            # somme des poids, non plafonnée
    score: int                # plafonnée à score_cap
    factors: Tuple[str, ...]


def _as_number(value: Any, default: float) -> float:
    """None, texte non numérique, NaN => valeur par défaut."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


class LocalRiskEstimator:
    def __init__(self, rules: RiskRules | None = None) -> None:
        self.rules = rules or RiskRules()

    def value_of(self, record: FeatureRecord, name: str) -> float:
        """Valeur lue pour une règle ; 0 compte comme absent (même défaut que null)."""
        default = float(self.rules.defaults.get(name, 0.0))
        number = _as_number(record.get(name), default)
        return default if number == 0 else number

    def breakdown(self, record: FeatureRecord) -> RiskBreakdown:
        raw = 0
        factors: List[str] = []
        for rule in self.rules.rules:
            if rule.crossed(self.value_of(record, rule.field)):
                raw += rule.weight
                factors.append(rule.label)
        return RiskBreakdown(raw_score=raw, score=min(raw, self.rules.score_cap), factors=tuple(factors))

    def raw_score(self, record: FeatureRecord) -> int:
        return self.breakdown(record).raw_score

    def offset_for(self, model_identifier: str) -> float:
        return float(self.rules.offsets.get((model_identifier or "").lower(), 0.0))

    def probability(self, score: int, model_identifier: str) -> float:
        p = score / 100 + self.offset_for(model_identifier)
        return max(self.rules.min_probability, min(self.rules.max_probability, p))

    def estimate(self, record: FeatureRecord, model_identifier: str) -> PredictionOutcome:
        """Prédiction synthétisée pour un modèle donné (used_fallback fixé par l’appelant)."""
        b = self.breakdown(record)
        probability = self.probability(b.score, model_identifier)
        positive = probability > self.rules.positive_threshold

        return PredictionOutcome(
            model_identifier=model_identifier.lower(),
            label=LABEL_POSITIVE if positive else LABEL_NEGATIVE,
            probability=probability,
            confidence=round(probability * 100, 1),
            source=SOURCE_SYNTHESIZED,
            raw_label="CKD" if positive else "No CKD",
        )
