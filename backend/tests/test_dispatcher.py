"""
Tests for the single-best dispatcher: best first, cascade by accuracy, local fallback.
"""

from __future__ import annotations

import logging

import httpx
import pytest

from app.ml.types import SOURCE_REMOTE, SOURCE_SYNTHESIZED
from app.services.dispatcher import SingleBestDispatcher
from app.services.errors import AllBackendsUnavailableError

from conftest import HANG, make_registry

RECORD = {"age": 70, "bp": 150, "sc": 1.5, "bu": 50, "bgr": 130, "sg": 1.005, "al": 3, "su": 2}


def _dispatcher(registry, remote_client, estimator):
    return SingleBestDispatcher(registry, remote_client, estimator, timeout=2.0)


async def test_best_model_success_short_circuits(registry, remote_client, estimator, fake_server):
    outcome = await _dispatcher(registry, remote_client, estimator).dispatch(RECORD)

    assert fake_server.calls == ["xgboost"]
    assert outcome.model_identifier == "xgboost"
    assert outcome.source == SOURCE_REMOTE
    assert outcome.used_fallback is False


async def test_cascade_stops_at_first_success(registry, remote_client, estimator, fake_server):
    fake_server.set("xgboost", 500)
    fake_server.set("randomforest", httpx.ReadTimeout("slow"))
    fake_server.set("neuralnetwork", {"prediction": "notckd", "probability": 0.2})

    outcome = await _dispatcher(registry, remote_client, estimator).dispatch(RECORD)

    assert fake_server.calls == ["xgboost", "randomforest", "neuralnetwork"]
    assert outcome.model_identifier == "neuralnetwork"
    assert outcome.label == "negative"
    assert outcome.used_fallback is True
    assert outcome.source == SOURCE_REMOTE


async def test_each_model_tried_once_in_rank_order(remote_client, estimator, fake_server):
    # best model registered last: it is still tried first, and not tried again
    reg = make_registry(
        [("svm", "SVM", 0.90), ("logistic", "Logistic Regression", 0.90), ("xgboost", "XGBoost", 0.99)]
    )
    fake_server.fail_all()

    await _dispatcher(reg, remote_client, estimator).dispatch(RECORD)

    assert fake_server.calls == ["xgboost", "svm", "logistic"]


async def test_all_remote_failures_fall_back_to_local_estimate(registry, remote_client, estimator, fake_server):
    fake_server.fail_all()

    outcome = await _dispatcher(registry, remote_client, estimator).dispatch(RECORD)

    assert fake_server.calls == ["xgboost", "randomforest", "neuralnetwork", "svm", "logistic"]
    assert outcome.source == SOURCE_SYNTHESIZED
    assert outcome.used_fallback is True
    assert outcome.model_identifier == "xgboost"
    assert outcome.probability == pytest.approx(0.95)


async def test_malformed_payload_cascades(registry, remote_client, estimator, fake_server):
    fake_server.set("xgboost", "not json at all")
    outcome = await _dispatcher(registry, remote_client, estimator).dispatch(RECORD)
    assert fake_server.calls == ["xgboost", "randomforest"]
    assert outcome.model_identifier == "randomforest"


async def test_partial_payload_is_accepted(registry, remote_client, estimator, fake_server):
    fake_server.set("xgboost", {"prediction": "CKD"})
    outcome = await _dispatcher(registry, remote_client, estimator).dispatch(RECORD)
    assert fake_server.calls == ["xgboost"]
    assert outcome.label == "positive"
    assert outcome.probability == 0.0
    assert outcome.used_fallback is False


async def test_timeout_counts_as_failure(registry, fake_server, estimator):
    from app.ml.remote_client import RemoteModelClient

    fake_server.set("xgboost", HANG)
    client = RemoteModelClient(transport=httpx.MockTransport(fake_server.handler))
    dispatcher = SingleBestDispatcher(registry, client, estimator, timeout=0.05)

    outcome = await dispatcher.dispatch(RECORD)

    assert fake_server.calls == ["xgboost", "randomforest"]
    assert outcome.model_identifier == "randomforest"
    await client.close()


async def test_models_without_endpoint_are_skipped(remote_client, estimator, fake_server):
    reg = make_registry(local_only=("randomforest", "svm"))
    fake_server.fail_all()

    outcome = await _dispatcher(reg, remote_client, estimator).dispatch(RECORD)

    assert fake_server.calls == ["xgboost", "neuralnetwork", "logistic"]
    assert outcome.source == SOURCE_SYNTHESIZED


async def test_best_model_without_endpoint_estimates_immediately(remote_client, estimator, fake_server):
    reg = make_registry(local_only=("xgboost",))

    outcome = await _dispatcher(reg, remote_client, estimator).dispatch(RECORD)

    assert fake_server.calls == []
    assert outcome.model_identifier == "xgboost"
    assert outcome.source == SOURCE_SYNTHESIZED


async def test_without_local_fallback_all_failures_are_terminal(registry, remote_client, fake_server):
    fake_server.fail_all()

    with pytest.raises(AllBackendsUnavailableError) as exc_info:
        await _dispatcher(registry, remote_client, None).dispatch(RECORD)

    assert exc_info.value.attempted == ("xgboost", "randomforest", "neuralnetwork", "svm", "logistic")


async def test_failing_estimator_is_terminal(registry, remote_client, fake_server):
    class BrokenEstimator:
        def estimate(self, record, model_identifier):
            raise KeyError(model_identifier)

    fake_server.fail_all()
    with pytest.raises(AllBackendsUnavailableError):
        await _dispatcher(registry, remote_client, BrokenEstimator()).dispatch(RECORD)


async def test_logged_attempt_counts_only_real_calls(remote_client, estimator, fake_server, caplog):
    caplog.set_level(logging.INFO, logger="app.dispatch")
    reg = make_registry(local_only=("randomforest",))
    fake_server.set("xgboost", 500)

    outcome = await _dispatcher(reg, remote_client, estimator).dispatch(RECORD)

    assert outcome.model_identifier == "neuralnetwork"
    attempts = {r.model: r.attempt for r in caplog.records if r.name == "app.dispatch" and hasattr(r, "attempt")}
    assert attempts == {"xgboost": 1, "neuralnetwork": 2}
