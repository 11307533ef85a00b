from __future__ import annotations

import logging
from typing import Optional

from app.core.settings import Settings
from app.ml.model_registry import ModelDescriptor, ModelRegistry
from app.ml.remote_client import RemoteModelClient
from app.ml.risk_estimator import LocalRiskEstimator
from app.ml.types import FeatureRecord, PredictionOutcome
from app.services import result_normalizer
from app.services.comparison import ComparisonAggregator, ComparisonReport
from app.services.dispatcher import SingleBestDispatcher
from app.services.errors import AllBackendsUnavailableError, RemoteCallError

"""
Prediction Service.

Rôle (fonctionnel) :
- Point d’entrée unique des endpoints : compose registry + client distant + estimateur local.
- Trois use-cases :
  - dispatch(record)            -> meilleur modèle + cascade (SingleBestDispatcher)
  - compare_all(record)         -> tous les modèles en parallèle (ComparisonAggregator)
  - predict_with(model, record) -> un modèle précis, fallback local sur CE modèle
- Le registry est passé par référence, jamais modifié par requête.
"""

log = logging.getLogger("app.predict")


class PredictionService:
    def __init__(
        self,
        registry: ModelRegistry,
        client: RemoteModelClient,
        estimator: Optional[LocalRiskEstimator] = None,
        *,
        timeout: float = 10.0,
    ) -> None:
        self.registry = registry
        self.client = client
        self.estimator = estimator
        self.timeout = timeout
        self.dispatcher = SingleBestDispatcher(registry, client, estimator, timeout=timeout)
        self.aggregator = ComparisonAggregator(registry, client, estimator, timeout=timeout)

    @classmethod
    def from_settings(
        cls,
        cfg: Settings,
        registry: ModelRegistry,
        client: RemoteModelClient,
    ) -> "PredictionService":
        estimator = LocalRiskEstimator() if cfg.LOCAL_FALLBACK_ENABLED else None
        return cls(registry, client, estimator, timeout=cfg.MODEL_TIMEOUT_SECONDS)

    def describe(self, identifier: str) -> ModelDescriptor:
        """Lookup registry (UnknownModelError si identifiant invalide)."""
        return self.registry.get(identifier)

    async def dispatch(self, record: FeatureRecord) -> PredictionOutcome:
        return await self.dispatcher.dispatch(record)

    async def compare_all(self, record: FeatureRecord) -> ComparisonReport:
        return await self.aggregator.compare_all(record)

    async def predict_with(self, identifier: str, record: FeatureRecord) -> PredictionOutcome:
        """
        Prédiction par un modèle donné.

        - Identifiant inconnu : UnknownModelError, levée AVANT tout appel réseau.
        - Modèle distant en échec : estimation locale pour ce modèle (used_fallback=True).
        - Modèle sans endpoint : estimation locale (used_fallback=False).
        """
        descriptor = self.registry.get(identifier)

        if descriptor.has_remote:
            try:
                response = await self.client.predict(
                    descriptor.identifier,
                    descriptor.endpoint,
                    record,
                    timeout=self.timeout,
                    default_probability=0.5,
                )
                return result_normalizer.from_remote(descriptor, response)
            except RemoteCallError as exc:
                log.warning(
                    "model call failed, estimating locally: %s",
                    exc.message,
                    extra={"model": descriptor.identifier},
                )
                return self._estimate(descriptor, record, used_fallback=True)

        return self._estimate(descriptor, record, used_fallback=False)

    def _estimate(self, descriptor: ModelDescriptor, record: FeatureRecord, *, used_fallback: bool) -> PredictionOutcome:
        if self.estimator is None:
            raise AllBackendsUnavailableError([descriptor.identifier] if descriptor.has_remote else [])
        outcome = self.estimator.estimate(record, descriptor.identifier)
        return result_normalizer.from_estimate(outcome, used_fallback=used_fallback)
