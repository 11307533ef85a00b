from __future__ import annotations

import logging
from typing import List, Optional

from app.ml.model_registry import ModelDescriptor, ModelRegistry
from app.ml.remote_client import RemoteModelClient
from app.ml.risk_estimator import LocalRiskEstimator
from app.ml.types import FeatureRecord, PredictionOutcome
from app.services import result_normalizer
from app.services.errors import AllBackendsUnavailableError, RemoteCallError

"""
Single-Best Dispatcher.

Rôle (fonctionnel) :
- Interroge le meilleur modèle du registry (accuracy la plus haute).
- En cas d’échec, cascade séquentielle sur les autres modèles, accuracy décroissante.
- Le premier succès arrête la cascade : les modèles moins bien classés ne sont jamais appelés.
- Si tout le distant échoue : estimation locale (règles) pour le meilleur modèle.
- Si l’estimation locale est désactivée ou échoue : AllBackendsUnavailableError.

Cas particulier :
- Meilleur modèle sans endpoint => estimation locale immédiate, aucun appel réseau.
- Modèles sans endpoint => sautés pendant la phase distante.
"""

log = logging.getLogger("app.dispatch")


class SingleBestDispatcher:
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

    def _cascade_order(self) -> List[ModelDescriptor]:
        best = self.registry.best_model
        return [best] + [d for d in self.registry.list_models() if d.identifier != best.identifier]

    async def dispatch(self, record: FeatureRecord) -> PredictionOutcome:
        best = self.registry.best_model

        if not best.has_remote:
            log.info("best model has no remote endpoint, estimating locally", extra={"model": best.identifier})
            return self._synthesize(record, best, attempted=[])

        used_fallback = False
        attempted: List[str] = []

        for descriptor in self._cascade_order():
            if not descriptor.has_remote:
                continue

            attempted.append(descriptor.identifier)
            attempt = len(attempted)
            try:
                response = await self.client.predict(
                    descriptor.identifier,
                    descriptor.endpoint,
                    record,
                    timeout=self.timeout,
                )
            except RemoteCallError as exc:
                used_fallback = True
                log.warning(
                    "model call failed, cascading: %s",
                    exc.message,
                    extra={"model": descriptor.identifier, "attempt": attempt},
                )
                continue

            outcome = result_normalizer.from_remote(descriptor, response, used_fallback=used_fallback)
            log.info(
                "dispatch resolved",
                extra={
                    "model": descriptor.identifier,
                    "attempt": attempt,
                    "source": outcome.source,
                    "used_fallback": used_fallback,
                },
            )
            return outcome

        return self._synthesize(record, best, attempted=attempted)

    def _synthesize(self, record: FeatureRecord, best: ModelDescriptor, *, attempted: List[str]) -> PredictionOutcome:
        if self.estimator is None:
            raise AllBackendsUnavailableError(attempted)

        try:
            outcome = self.estimator.estimate(record, best.identifier)
        except Exception as exc:
            log.exception("local estimator failed", extra={"model": best.identifier})
            raise AllBackendsUnavailableError(attempted) from exc

        log.warning(
            "using local estimate (%d remote attempt(s) failed)",
            len(attempted),
            extra={"model": best.identifier, "source": outcome.source, "used_fallback": True},
        )
        return result_normalizer.from_estimate(outcome, used_fallback=True)
