from __future__ import annotations

import uuid
from contextvars import ContextVar, Token

"""
Core Request ID.

Rôle (fonctionnel) :
- Stocke l’identifiant de la requête courante (request_id) dans un ContextVar.
- Source : header entrant X-Request-Id, sinon UUID généré.
- Consommateurs : logs (RequestIdFilter), payloads d’erreur, et les appels aux modèles
  distants (le header X-Request-Id est propagé pour recouper les logs des deux côtés).

Notes :
- Les tâches créées par asyncio.gather (comparaison des modèles) copient le contexte :
  chaque appel concurrent logue donc le même request_id.
"""

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# Longueur max acceptée pour un id fourni par le client
_MAX_LEN = 64


def set_request_id(rid: str | None) -> Token:
    return _request_id.set(rid)


def reset_request_id(token: Token) -> None:
    """Restaure la valeur précédente (fin de requête)."""
    _request_id.reset(token)


def get_request_id() -> str | None:
    return _request_id.get()


def normalize_request_id(incoming: str | None = None) -> str:
    """Nettoie un id entrant (tronqué à 64 caractères) ou en génère un nouveau."""
    rid = (incoming or "").strip()[:_MAX_LEN]
    return rid or str(uuid.uuid4())
