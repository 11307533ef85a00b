from __future__ import annotations

from typing import Sequence

"""
Erreurs métier de prédiction.

Taxonomie :
- RemoteCallError : échec d’un appel à UN modèle distant.
  - RemoteUnreachableError : transport, timeout, statut non-2xx.
  - MalformedResponseError : corps illisible (pas du JSON, pas un objet JSON).
  Jamais renvoyées telles quelles au client : récupérées par la cascade (dispatcher)
  ou enregistrées comme case d’erreur (comparaison).
- AllBackendsUnavailableError : terminal, plus aucun modèle (distant ou local) ne répond -> 503.
- UnknownModelError : identifiant hors registry -> 400, aucun appel réseau.

Note : un corps JSON valide mais incomplet n’est PAS une erreur (champs par défaut,
voir app.ml.remote_client).
"""


class PredictionError(Exception):
    """Base des erreurs métier de prédiction."""


class RemoteCallError(PredictionError):
    def __init__(self, model: str, message: str) -> None:
        super().__init__(f"{model}: {message}")
        self.model = model
        self.message = message


class RemoteUnreachableError(RemoteCallError):
    def __init__(self, model: str, message: str, status_code: int | None = None) -> None:
        super().__init__(model, message)
        self.status_code = status_code


class MalformedResponseError(RemoteCallError):
    pass


class AllBackendsUnavailableError(PredictionError):
    def __init__(self, attempted: Sequence[str], message: str = "Tous les services de prédiction sont indisponibles") -> None:
        super().__init__(message)
        self.attempted = tuple(attempted)
        self.message = message


class UnknownModelError(PredictionError):
    def __init__(self, received: str, valid_models: Sequence[str]) -> None:
        super().__init__(f"Modèle inconnu : {received}")
        self.received = received
        self.valid_models = tuple(valid_models)
