"""
Tests for PredictionService: per-model prediction and composition from settings.
"""

from __future__ import annotations

import pytest

from app.core.settings import Settings
from app.ml.risk_estimator import LocalRiskEstimator
from app.ml.types import SOURCE_REMOTE, SOURCE_SYNTHESIZED
from app.services.errors import AllBackendsUnavailableError, UnknownModelError
from app.services.prediction_service import PredictionService

from conftest import make_registry

RECORD = {"age": 45, "bp": 80, "sc": 0.9}


def _service(registry, remote_client, estimator=None):
    return PredictionService(registry, remote_client, estimator, timeout=2.0)


async def test_unknown_model_fails_before_any_call(registry, remote_client, estimator, fake_server):
    service = _service(registry, remote_client, estimator)

    with pytest.raises(UnknownModelError) as exc_info:
        await service.predict_with("catboost", RECORD)

    assert fake_server.calls == []
    assert exc_info.value.received == "catboost"
    assert "xgboost" in exc_info.value.valid_models


async def test_identifier_lookup_is_case_insensitive(registry, remote_client, estimator, fake_server):
    outcome = await _service(registry, remote_client, estimator).predict_with("SVM", RECORD)
    assert fake_server.calls == ["svm"]
    assert outcome.model_identifier == "svm"
    assert outcome.source == SOURCE_REMOTE


async def test_named_model_is_the_only_one_called(registry, remote_client, estimator, fake_server):
    fake_server.set("logistic", {"prediction": "notckd", "probability": 0.12, "confidence": 88.0})

    outcome = await _service(registry, remote_client, estimator).predict_with("logistic", RECORD)

    assert fake_server.calls == ["logistic"]
    assert outcome.label == "negative"
    assert outcome.confidence == 88.0
    assert outcome.used_fallback is False


async def test_failed_named_model_is_estimated_for_that_model(registry, remote_client, estimator, fake_server):
    fake_server.set("randomforest", 503)

    outcome = await _service(registry, remote_client, estimator).predict_with("randomforest", RECORD)

    # pas de cascade vers un autre modèle
    assert fake_server.calls == ["randomforest"]
    assert outcome.model_identifier == "randomforest"
    assert outcome.source == SOURCE_SYNTHESIZED
    assert outcome.used_fallback is True


async def test_missing_probability_defaults_to_one_half(registry, remote_client, estimator, fake_server):
    fake_server.set("xgboost", {"prediction": "CKD"})
    outcome = await _service(registry, remote_client, estimator).predict_with("xgboost", RECORD)
    assert outcome.probability == 0.5
    assert outcome.confidence == 50.0


async def test_local_only_model_is_estimated_without_fallback_flag(remote_client, estimator, fake_server):
    reg = make_registry(local_only=("svm",))
    outcome = await _service(reg, remote_client, estimator).predict_with("svm", RECORD)
    assert fake_server.calls == []
    assert outcome.source == SOURCE_SYNTHESIZED
    assert outcome.used_fallback is False


async def test_failure_without_estimator_is_terminal(registry, remote_client, fake_server):
    fake_server.set("svm", 500)
    with pytest.raises(AllBackendsUnavailableError) as exc_info:
        await _service(registry, remote_client).predict_with("svm", RECORD)
    assert exc_info.value.attempted == ("svm",)


async def test_dispatch_and_compare_share_the_same_registry(registry, remote_client, estimator, fake_server):
    service = _service(registry, remote_client, estimator)

    outcome = await service.dispatch(RECORD)
    report = await service.compare_all(RECORD)

    assert outcome.model_identifier == registry.best_model.identifier
    assert len(report) == len(registry)
    assert fake_server.calls.count("xgboost") == 2


def test_from_settings_honours_fallback_switch(registry, remote_client):
    enabled = PredictionService.from_settings(Settings(LOCAL_FALLBACK_ENABLED=True), registry, remote_client)
    disabled = PredictionService.from_settings(
        Settings(LOCAL_FALLBACK_ENABLED=False, MODEL_TIMEOUT_SECONDS=3.5), registry, remote_client
    )

    assert isinstance(enabled.estimator, LocalRiskEstimator)
    assert disabled.estimator is None
    assert disabled.timeout == 3.5
    assert disabled.dispatcher.estimator is None
