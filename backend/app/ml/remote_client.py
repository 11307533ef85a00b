from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Any, Dict, List, Optional

import httpx

from app.core.request_id import get_request_id
from app.ml.types import FeatureRecord, RemoteResponse
from app.services.errors import MalformedResponseError, RemoteUnreachableError

"""
Remote-call abstraction (services modèles distants).

Rôle (fonctionnel) :
- POST du FeatureRecord en JSON vers l’URL d’un modèle, réponse attendue :
  {"prediction": "...", "probability": 0.87, "confidence": 87.0}
- Un seul appel par invocation (pas de retry : la cascade passe au modèle suivant).
- L’appel complet est borné par un timeout global (10 s par défaut).

Classement des échecs :
- timeout, erreur transport, statut non-2xx  -> RemoteUnreachableError
- corps non JSON ou JSON qui n’est pas un objet -> MalformedResponseError
- champs manquants / illisibles -> PAS une erreur : valeurs neutres + defaulted_fields
"""

log = logging.getLogger("app.remote")

DEFAULT_LABEL = "unknown"


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_remote_payload(body: Dict[str, Any], default_probability: float = 0.0) -> RemoteResponse:
    """Lit un corps JSON objet ; les champs absents prennent une valeur neutre."""
    defaulted: List[str] = []

    raw_label = body.get("prediction")
    if raw_label is None or (isinstance(raw_label, str) and not raw_label.strip()):
        label = DEFAULT_LABEL
        defaulted.append("prediction")
    else:
        label = str(raw_label).strip()

    probability = _coerce_float(body.get("probability"))
    if probability is None:
        probability = default_probability
        defaulted.append("probability")

    # confidence est optionnelle : 0 = “à dériver de la probabilité”
    confidence = _coerce_float(body.get("confidence"))
    if confidence is None:
        confidence = 0.0

    return RemoteResponse(
        label=label,
        probability=probability,
        confidence=confidence,
        defaulted_fields=tuple(defaulted),
    )


class RemoteModelClient:
    """
    Client HTTP async partagé par tous les appels modèles.

    Le client httpx est créé à la demande et fermé au shutdown de l’app (close()).
    `transport` est injectable (httpx.MockTransport en tests).
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def predict(
        self,
        model: str,
        endpoint: str,
        record: FeatureRecord,
        *,
        timeout: float | None = None,
        default_probability: float = 0.0,
    ) -> RemoteResponse:
        limit = self._timeout if timeout is None else timeout
        headers = {}
        rid = get_request_id()
        if rid:
            headers["X-Request-Id"] = rid

        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.client.post(endpoint, json=dict(record), headers=headers),
                timeout=limit,
            )
        except asyncio.TimeoutError:
            raise RemoteUnreachableError(model, f"timeout après {limit:g}s") from None
        except httpx.HTTPError as exc:
            raise RemoteUnreachableError(model, f"erreur transport ({type(exc).__name__}): {exc}") from exc

        duration_ms = int((time.perf_counter() - start) * 1000)

        if not response.is_success:
            raise RemoteUnreachableError(
                model,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponseError(model, "corps de réponse non JSON") from exc

        if not isinstance(body, dict):
            raise MalformedResponseError(model, f"objet JSON attendu, reçu {type(body).__name__}")

        result = parse_remote_payload(body, default_probability=default_probability)

        if result.is_partial:
            log.warning(
                "remote response with missing fields",
                extra={"model": model, "endpoint": endpoint, "defaulted_fields": list(result.defaulted_fields)},
            )
        log.info(
            "remote prediction",
            extra={"model": model, "endpoint": endpoint, "duration_ms": duration_ms, "probability": result.probability},
        )
        return result
