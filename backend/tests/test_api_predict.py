"""
HTTP-level tests (FastAPI TestClient) for the prediction endpoints.
"""

from __future__ import annotations

import pytest

from app.api.deps import get_prediction_service
from app.main import app
from app.services.prediction_service import PredictionService

PATIENT = {
    "age": 48,
    "bp": 80,
    "sg": 1.020,
    "al": 1,
    "su": 0,
    "bgr": 121,
    "bu": 36,
    "sc": 1.2,
    "htn": "yes",
    "dm": 1,
}


def test_root_lists_endpoints(client):
    r = client.get("/")
    assert r.status_code == 200
    body = r.json()
    assert body["best_model"] == "xgboost"
    assert body["endpoints"]["per_model"]["svm"] == "POST /svm/predict"


def test_health(client, fake_server):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["models"] == 5
    assert fake_server.calls == []


def test_models_are_listed_by_rank(client):
    r = client.get("/models")
    assert r.status_code == 200
    models = r.json()
    assert [m["model"] for m in models] == ["xgboost", "randomforest", "neuralnetwork", "svm", "logistic"]
    assert models[0]["is_best"] is True
    assert models[0]["accuracy"] == "98.7"
    assert [m["rank"] for m in models] == [1, 2, 3, 4, 5]


def test_single_prediction_uses_best_model_and_is_persisted(client, fake_server, record_store):
    r = client.post("/predict/single", json=PATIENT)

    assert r.status_code == 200
    body = r.json()
    assert fake_server.calls == ["xgboost"]
    assert body["success"] is True
    assert body["model"] == "xgboost"
    assert body["prediction"] == "positive"
    assert body["risk_label"] == "HIGH RISK: CKD Detected"
    assert body["used_fallback"] is False
    assert body["note"] is None
    assert body["patient_record_id"] == str(record_store.saved[0]["id"])
    assert record_store.saved[0]["record"]["dm"] == "1"
    assert r.headers["X-Request-Id"]


def test_single_prediction_forwards_request_id(client, fake_server):
    client.post("/predict/single", json=PATIENT, headers={"X-Request-Id": "abc-123"})
    assert fake_server.requests[0].headers["X-Request-Id"] == "abc-123"


def test_single_prediction_cascades_on_failure(client, fake_server):
    fake_server.set("xgboost", 500)
    fake_server.set("randomforest", {"prediction": "notckd", "probability": 0.1, "confidence": 90})

    body = client.post("/predict/single", json=PATIENT).json()

    assert fake_server.calls == ["xgboost", "randomforest"]
    assert body["model"] == "randomforest"
    assert body["used_fallback"] is True
    assert body["risk_label"] == "LOW RISK: No CKD"
    assert body["recommendation"] == "Low risk. Continue annual checkups."


def test_single_prediction_falls_back_to_local_estimate(client, fake_server):
    fake_server.fail_all()

    r = client.post("/predict/single", json=PATIENT)

    assert r.status_code == 200
    assert r.json()["source"] == "synthesized"
    assert r.json()["used_fallback"] is True
    assert len(fake_server.calls) == 5


def test_failed_persistence_keeps_the_prediction(client, record_store):
    record_store.fail = True

    r = client.post("/predict/single", json=PATIENT)

    assert r.status_code == 200
    assert r.json()["patient_record_id"] is None
    assert r.json()["note"] == "Prediction saved locally only"


def test_all_backends_unavailable_is_503(client, registry, remote_client, fake_server):
    fake_server.fail_all()
    app.dependency_overrides[get_prediction_service] = lambda: PredictionService(
        registry, remote_client, None, timeout=2.0
    )

    r = client.post("/predict/single", json=PATIENT)

    assert r.status_code == 503
    err = r.json()["error"]
    assert err["code"] == "ALL_BACKENDS_UNAVAILABLE"
    assert err["details"]["attempted"] == ["xgboost", "randomforest", "neuralnetwork", "svm", "logistic"]
    assert "suggestion" in err["details"]


def test_compare_returns_every_model(client, fake_server, record_store):
    fake_server.set("neuralnetwork", 502)

    r = client.post("/predict/compare", json=PATIENT)

    assert r.status_code == 200
    body = r.json()
    table = body["comparison_table"]
    assert [e["model"] for e in table] == ["xgboost", "randomforest", "neuralnetwork", "svm", "logistic"]
    assert table[2]["status"] == "failed"
    assert table[2]["error"] == "Service down"
    assert table[2]["prediction"] is None
    assert body["failed"] == 1
    assert body["best_model"]["model"] == "xgboost"
    assert record_store.saved == []


def test_per_model_prediction(client, fake_server):
    r = client.post("/svm/predict", json=PATIENT)
    assert r.status_code == 200
    assert r.json()["model"] == "svm"
    assert r.json()["model_display"] == "SVM"
    assert fake_server.calls == ["svm"]


def test_per_model_path_is_case_insensitive(client, fake_server):
    r = client.post("/XGBoost/predict", json=PATIENT)
    assert r.status_code == 200
    assert r.json()["model"] == "xgboost"


def test_per_model_failure_estimates_that_model(client, fake_server):
    fake_server.set("logistic", 504)
    body = client.post("/logistic/predict", json=PATIENT).json()
    assert body["model"] == "logistic"
    assert body["source"] == "synthesized"
    assert body["used_fallback"] is True
    assert fake_server.calls == ["logistic"]


def test_unknown_model_is_400_without_network_call(client, fake_server):
    r = client.post("/catboost/predict", json=PATIENT)

    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error"]["code"] == "UNKNOWN_MODEL"
    assert body["error"]["details"]["received"] == "catboost"
    assert "xgboost" in body["error"]["details"]["valid_models"]
    assert fake_server.calls == []


def test_unreadable_measurements_take_neutral_defaults(client, fake_server, record_store):
    fake_server.fail_all()

    r = client.post("/predict/single", json={"age": "?", "sc": 1.8, "bu": "n/a", "bp": 210})

    assert r.status_code == 200
    body = r.json()
    # age et bu illisibles => valeurs neutres ; sc (+25) et bp (+10) seuls comptent
    assert body["source"] == "synthesized"
    assert body["probability"] == pytest.approx(0.37)
    saved = record_store.saved[0]["record"]
    assert "age" not in saved and "bu" not in saved
    assert saved["sc"] == 1.8


def test_out_of_range_values_are_accepted(client, fake_server):
    r = client.post("/predict/single", json={"age": 131, "bp": -1})
    assert r.status_code == 200
    assert fake_server.calls == ["xgboost"]


def test_non_object_payload_is_422(client, fake_server):
    r = client.post("/predict/single", json=[1, 2, 3])
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert fake_server.calls == []


def test_unknown_route_is_404(client):
    r = client.get("/does-not-exist")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"
