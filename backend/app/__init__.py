"""
app

Package racine de l’application backend NephroScope (détection précoce de la maladie rénale chronique).

Rôle (fonctionnel) :
- Contient tout le code applicatif (API, orchestration des modèles, accès DB, ML, schémas).
- Sert de point d’ancrage pour les imports : `from app...`

Organisation (haute-level) :
- app.api      : routes FastAPI (contrats HTTP, dépendances, sérialisation)
- app.core     : briques transverses (settings, errors, logs, sécurité, rate-limit…)
- app.db       : base SQLAlchemy + session async
- app.models   : modèles ORM (patient_records)
- app.schemas  : schémas Pydantic (entrées/sorties API)
- app.services : use-cases (dispatch meilleur modèle, comparaison, normalisation, persistance)
- app.ml       : registry des modèles, client des services distants, estimateur local par règles
"""
