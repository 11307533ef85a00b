from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException

"""
Core Errors.

Rôle (fonctionnel) :
- Standardise le format des erreurs renvoyées par l’API (payload homogène).
- Fournit une exception applicative (AppHTTPException) pour les erreurs HTTP “transverses”
  (auth, rate limit, config serveur).
- Les erreurs métier de prédiction (modèle inconnu, backends indisponibles) vivent dans
  app.services.errors et sont converties ici, dans le même format, par les handlers de app.main.

Convention de réponse (exemple) :
{
  "error": {
    "code": "UNKNOWN_MODEL",
    "message": "Modèle inconnu : catboost",
    "status": 400,
    "request_id": "...",
    "timestamp": "...",
    "details": {"received": "catboost", "valid_models": [...]}
  }
}
"""

# Codes stables pour les erreurs HTTP natives (404, 405…)
_STATUS_CODES: Dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    429: "RATE_LIMITED",
    503: "SERVICE_UNAVAILABLE",
}


def now_iso() -> str:
    """Timestamp ISO-8601 en UTC (utilisé dans toutes les erreurs)."""
    return datetime.now(timezone.utc).isoformat()


def code_for_status(status: int) -> str:
    return _STATUS_CODES.get(status, "HTTP_ERROR")


def error_payload(
    *,
    code: str,
    message: str,
    status: int,
    request_id: str,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    """Construit un payload d’erreur homogène pour l’API."""
    payload: Dict[str, Any] = {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "status": status,
            "request_id": request_id,
            "timestamp": now_iso(),
        },
    }
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppHTTPException(HTTPException):
    """
    Exception applicative standardisée.

    Usage :
    - Lever une erreur HTTP avec un code stable et un message explicite.
    - Laisser la couche API/middlewares produire une réponse cohérente.

    Exemple :
        raise AppHTTPException(401, "UNAUTHORIZED", "Clé API invalide ou manquante")
    """

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail={"code": code, "message": message, "details": details})
