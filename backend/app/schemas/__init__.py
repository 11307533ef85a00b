"""
app.schemas

Package des schémas API (Pydantic).

Rôle (fonctionnel) :
- Définit les modèles d’entrée/sortie des endpoints de prédiction.
- Sépare clairement :
  - le modèle ORM (app.models) = persistance DB
  - les schémas Pydantic (app.schemas) = contrat HTTP / validation
  - les types internes (app.ml.types) = résultat uniforme des modèles
"""
