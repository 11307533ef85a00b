"""
app.services

Package “services” : logique applicative (use-cases) indépendante des endpoints HTTP.

Rôle (fonctionnel) :
- dispatcher : meilleur modèle puis cascade séquentielle (court-circuit au premier succès).
- comparison : tous les modèles en parallèle, attente de chaque résultat (settle-all).
- prediction_service : façade utilisée par les endpoints (dispatch / compare / par modèle).
- result_normalizer : réponses hétérogènes -> PredictionOutcome uniforme.
- record_store : persistance best-effort des prédictions.
- errors : taxonomie des erreurs de prédiction.

Principe :
- app.api = transport HTTP (routes, validation, présentation)
- app.services = orchestration (réutilisable, testable sans HTTP)
- app.ml = registry, appel distant, estimation locale
"""
