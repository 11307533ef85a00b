from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Optional, Tuple

from app.core.settings import Settings, settings
from app.services.errors import UnknownModelError

"""
ML Model Registry.

Rôle (fonctionnel) :
- Catalogue statique des modèles de prédiction CKD déployés comme services distants.
- Chaque entrée (ModelDescriptor) porte :
  - identifier (clé d’URL : /xgboost/predict…)
  - display_name (libellé UI)
  - endpoint (URL du service, None => pas de backend distant, estimation locale)
  - accuracy (0..1), seule clé de classement
- Expose :
  - list_models() : classement accuracy décroissante, égalités départagées par ordre d’enregistrement
  - get(identifier) : lookup insensible à la casse, UnknownModelError sinon
  - best_model : premier du classement

Conventions :
- Le registry est construit une seule fois (get_registry, caché) depuis les settings
  puis passé par référence aux services. Il n’est jamais modifié ensuite.
"""


@dataclass(frozen=True)
class ModelDescriptor:
    """Entrée du catalogue (immuable)."""
    identifier: str
    display_name: str
    endpoint: Optional[str]
    accuracy: float           # 0..1
    position: int = 0         # ordre d’enregistrement (départage des égalités)

    @property
    def has_remote(self) -> bool:
        return bool(self.endpoint)

    @property
    def accuracy_pct(self) -> str:
        """Accuracy en pourcentage, 1 décimale (ex: "98.7")."""
        return f"{self.accuracy * 100:.1f}"


class ModelRegistry:
    """Catalogue en lecture seule, classé par accuracy décroissante."""

    def __init__(self, descriptors: Iterable[ModelDescriptor]) -> None:
        items = list(descriptors)
        if not items:
            raise ValueError("Le registry doit contenir au moins un modèle")

        seen: set[str] = set()
        registered: list[ModelDescriptor] = []
        for position, d in enumerate(items):
            key = d.identifier.lower()
            if key in seen:
                raise ValueError(f"Modèle enregistré deux fois : {d.identifier}")
            if not 0.0 <= d.accuracy <= 1.0:
                raise ValueError(f"Accuracy hors [0, 1] pour {d.identifier}: {d.accuracy}")
            seen.add(key)
            registered.append(
                ModelDescriptor(
                    identifier=key,
                    display_name=d.display_name,
                    endpoint=d.endpoint or None,
                    accuracy=float(d.accuracy),
                    position=position,
                )
            )

        self._registered: Tuple[ModelDescriptor, ...] = tuple(registered)
        # sorted() est stable : à accuracy égale, l’ordre d’enregistrement est conservé
        self._ranked: Tuple[ModelDescriptor, ...] = tuple(
            sorted(registered, key=lambda d: -d.accuracy)
        )
        self._by_id = {d.identifier: d for d in registered}

    def __len__(self) -> int:
        return len(self._registered)

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and identifier.strip().lower() in self._by_id

    def list_models(self) -> Tuple[ModelDescriptor, ...]:
        return self._ranked

    def identifiers(self) -> Tuple[str, ...]:
        return tuple(d.identifier for d in self._registered)

    def get(self, identifier: str) -> ModelDescriptor:
        key = (identifier or "").strip().lower()
        try:
            return self._by_id[key]
        except KeyError:
            raise UnknownModelError(identifier, self.identifiers()) from None

    @property
    def best_model(self) -> ModelDescriptor:
        return self._ranked[0]

    def rank_of(self, identifier: str) -> int:
        """Rang (0 = meilleur) d’un modèle dans le classement."""
        target = self.get(identifier)
        return self._ranked.index(target)


def build_registry(cfg: Settings) -> ModelRegistry:
    """Construit le catalogue par défaut (5 modèles CKD) depuis la configuration."""
    return ModelRegistry(
        [
            ModelDescriptor("xgboost", "XGBoost", cfg.XGBOOST_URL, cfg.XGBOOST_ACCURACY),
            ModelDescriptor("randomforest", "Random Forest", cfg.RANDOMFOREST_URL, cfg.RANDOMFOREST_ACCURACY),
            ModelDescriptor("neuralnetwork", "Neural Network", cfg.NEURALNETWORK_URL, cfg.NEURALNETWORK_ACCURACY),
            ModelDescriptor("svm", "SVM", cfg.SVM_URL, cfg.SVM_ACCURACY),
            ModelDescriptor("logistic", "Logistic Regression", cfg.LOGISTIC_URL, cfg.LOGISTIC_ACCURACY),
        ]
    )


@lru_cache(maxsize=1)
def get_registry() -> ModelRegistry:
    """Registry process-wide, construit au premier appel puis réutilisé."""
    return build_registry(settings)
