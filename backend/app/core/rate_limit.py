from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Tuple

from fastapi import Request

from app.core.errors import AppHTTPException
from app.core.settings import settings

"""
Core Rate Limit.

Rôle (fonctionnel) :
- Protège les endpoints de prédiction : chaque requête peut déclencher jusqu’à
  N appels sortants (cascade / comparaison), une rafale coûte cher côté services modèles.
- Fenêtre fixe de 60 secondes, compteur en mémoire par (IP, famille de route).
- Les routes par modèle (/xgboost/predict, /svm/predict…) partagent le même compteur.

Activation via settings :
- RATE_LIMIT_ENABLED : active/désactive le rate limiting.
- RATE_LIMIT_RPM : limite de requêtes par minute (par IP + famille).
"""

WINDOW_SECONDS = 60.0


def route_family(path: str) -> str | None:
    """Famille de route soumise au rate limit, None si la route n’est pas limitée."""
    if path.startswith("/predict/"):
        return path
    if path.endswith("/predict"):
        return "/{model}/predict"
    return None


@dataclass
class _Bucket:
    window_start: float
    count: int


class InMemoryRateLimiter:
    """
    Rate limiter en mémoire (best-effort, mono-process).

    - Stocke un compteur par clé (IP, famille de route) sur une fenêtre de 60s.
    - Déclenche AppHTTPException(429) si la limite est dépassée.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._lock = Lock()
        self._clock = clock
        self._buckets: Dict[Tuple[str, str], _Bucket] = {}

    def _client_ip(self, request: Request) -> str:
        return request.client.host if request.client else "unknown"

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def check(self, request: Request) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return

        limit = int(settings.RATE_LIMIT_RPM or 0)
        if limit <= 0:
            return

        family = route_family(request.url.path)
        if family is None:
            return

        key = (self._client_ip(request), family)
        now = self._clock()

        with self._lock:
            bucket = self._buckets.get(key)

            if bucket is None or (now - bucket.window_start) >= WINDOW_SECONDS:
                self._buckets[key] = _Bucket(window_start=now, count=1)
                return

            bucket.count += 1

            if bucket.count > limit:
                raise AppHTTPException(
                    429,
                    "RATE_LIMITED",
                    f"Trop de requêtes (limite: {limit}/min).",
                    details={"limit_rpm": limit},
                )


rate_limiter = InMemoryRateLimiter()
