from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from app.ml.model_registry import ModelDescriptor, ModelRegistry
from app.ml.remote_client import RemoteModelClient
from app.ml.risk_estimator import LocalRiskEstimator
from app.ml.types import FeatureRecord, PredictionOutcome
from app.services import result_normalizer

"""
Comparison Aggregator.

Rôle (fonctionnel) :
- Interroge TOUS les modèles du registry en parallèle (pas de cascade, pas de court-circuit).
- Sémantique “settle-all” : on attend la résolution de chaque appel, succès ou échec ;
  l’échec d’un modèle n’interrompt ni ne retarde les autres.
- Modèle sans endpoint : estimation locale (toujours présent dans le rapport).
- Modèle en échec : case d’erreur à son rang (jamais retiré du rapport).

Invariants :
- len(report) == len(registry)
- ordre du rapport = classement du registry (accuracy décroissante, égalités par ordre d’enregistrement)
"""

log = logging.getLogger("app.compare")

SERVICE_DOWN = "Service down"


@dataclass(frozen=True)
class ComparisonEntry:
    descriptor: ModelDescriptor
    outcome: Optional[PredictionOutcome] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not None

    @property
    def status(self) -> str:
        return "success" if self.ok else "failed"


@dataclass(frozen=True)
class ComparisonReport:
    entries: Tuple[ComparisonEntry, ...]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def best(self) -> Optional[ComparisonEntry]:
        """Premier modèle du classement ayant répondu."""
        return next((e for e in self.entries if e.ok), None)

    @property
    def failures(self) -> int:
        return sum(1 for e in self.entries if not e.ok)


class ComparisonAggregator:
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

    async def _resolve(self, descriptor: ModelDescriptor, record: FeatureRecord) -> ComparisonEntry:
        if not descriptor.has_remote:
            if self.estimator is None:
                return ComparisonEntry(descriptor, error="No remote backend")
            outcome = self.estimator.estimate(record, descriptor.identifier)
            return ComparisonEntry(descriptor, outcome=outcome)

        response = await self.client.predict(
            descriptor.identifier,
            descriptor.endpoint,
            record,
            timeout=self.timeout,
        )
        return ComparisonEntry(descriptor, outcome=result_normalizer.from_remote(descriptor, response))

    async def compare_all(self, record: FeatureRecord) -> ComparisonReport:
        models = self.registry.list_models()

        # settle-all : return_exceptions=True => chaque échec devient une valeur
        settled = await asyncio.gather(
            *(self._resolve(d, record) for d in models),
            return_exceptions=True,
        )

        entries = []
        for descriptor, result in zip(models, settled):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                log.warning(
                    "model failed during comparison: %s",
                    result,
                    extra={"model": descriptor.identifier},
                )
                entries.append(ComparisonEntry(descriptor, error=SERVICE_DOWN))
            else:
                entries.append(result)

        # gather préserve l’ordre, on re-trie quand même sur la clé de classement
        entries.sort(key=lambda e: (-e.descriptor.accuracy, e.descriptor.position))

        report = ComparisonReport(entries=tuple(entries))

        log.info(
            "comparison settled (%d/%d ok)",
            len(report) - report.failures,
            len(report),
            extra={"model": report.best.descriptor.identifier if report.best else None},
        )
        return report
