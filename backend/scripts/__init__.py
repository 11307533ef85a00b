"""
scripts

Package utilitaire pour les scripts CLI liés au projet (debug, inspection).

- predict_one : prédiction ponctuelle depuis un fichier JSON, sans passer par l’API.

Note :
- Les scripts ne contiennent pas de logique métier : ils appellent les modules de `app/`.
"""
