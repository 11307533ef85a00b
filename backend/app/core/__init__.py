"""
app.core

Package “cœur” de l’application : tout ce qui est transversal (cross-cutting concerns),
indépendant de la logique de prédiction elle-même.

- settings
  Configuration centralisée (env / .env) : URLs et accuracy des modèles, timeout des appels,
  activation du fallback local, DB, CORS, rate limit.

- errors
  Format d’erreur API uniforme (code, message, status, request_id, timestamp, details)
  et AppHTTPException.

- logging
  Logs JSON (1 event = 1 ligne) enrichis du request_id et des extras de prédiction
  (model, attempt, source, used_fallback…).

- request_id
  Identifiant de corrélation par requête (ContextVar), propagé aux services modèles.

- rate_limit
  Limitation de débit en mémoire sur les endpoints de prédiction.

- security
  API key optionnelle sur les endpoints de prédiction.

En résumé :
- app.core = infrastructure + conventions
- app.ml / app.services / app.api = registry, orchestration des modèles, endpoints
"""
