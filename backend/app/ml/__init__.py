"""
app.ml

Package “Machine Learning” (couche modèle) côté application.

Les modèles CKD ne tournent pas dans ce process : chacun est un service distant
(XGBoost, Random Forest, Neural Network, SVM, Logistic Regression). Ce package contient :
- model_registry : catalogue des modèles (URL, accuracy) et leur classement,
- remote_client : appel HTTP d’un modèle distant (timeout, lecture tolérante de la réponse),
- risk_estimator : estimation locale par règles quand aucun modèle ne répond,
- types : FeatureRecord, RemoteResponse, PredictionOutcome.
"""
