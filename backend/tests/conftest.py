"""
Pytest fixtures for the NephroScope tests.

The remote model services are replaced by an in-process fake (httpx.MockTransport):
each model is reached at http://<identifier>.models.test/predict and its behaviour is
scripted per test. Calls are recorded in order so cascade / short-circuit properties
can be asserted on.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, List, Optional

import httpx
import pytest

from app.ml.model_registry import ModelDescriptor, ModelRegistry
from app.ml.remote_client import RemoteModelClient
from app.ml.risk_estimator import LocalRiskEstimator

MODEL_TABLE = [
    ("xgboost", "XGBoost", 0.987),
    ("randomforest", "Random Forest", 0.962),
    ("neuralnetwork", "Neural Network", 0.958),
    ("svm", "SVM", 0.941),
    ("logistic", "Logistic Regression", 0.925),
]

HANG = object()


def url_for(identifier: str) -> str:
    return f"http://{identifier}.models.test/predict"


def make_registry(table=None, *, local_only=()) -> ModelRegistry:
    rows = MODEL_TABLE if table is None else table
    return ModelRegistry(
        ModelDescriptor(ident, name, None if ident in local_only else url_for(ident), acc)
        for ident, name, acc in rows
    )


class FakeModelServer:
    """
    Scripted model services.

    Behaviour per model (default: a positive CKD answer):
    - dict  -> 200 with that JSON body
    - int   -> empty response with that status code
    - str   -> 200 with that raw text body
    - Exception instance -> raised by the transport
    - HANG  -> never answers (until the client timeout)
    """

    def __init__(self) -> None:
        self.behaviours: Dict[str, Any] = {}
        self.calls: List[str] = []
        self.requests: List[httpx.Request] = []

    def set(self, model: str, behaviour: Any) -> None:
        self.behaviours[model] = behaviour

    def fail_all(self, models=None) -> None:
        for ident, _, _ in MODEL_TABLE if models is None else [(m, None, None) for m in models]:
            self.behaviours[ident] = httpx.ConnectError("connection refused")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        model = request.url.host.split(".")[0]
        self.calls.append(model)
        self.requests.append(request)

        behaviour = self.behaviours.get(model, {"prediction": "CKD", "probability": 0.9, "confidence": 90.0})

        if behaviour is HANG:
            await asyncio.sleep(30)
        if callable(behaviour):
            behaviour = await behaviour(request)
        if isinstance(behaviour, Exception):
            raise behaviour
        if isinstance(behaviour, int):
            return httpx.Response(behaviour)
        if isinstance(behaviour, str):
            return httpx.Response(200, text=behaviour)
        return httpx.Response(200, json=behaviour)


class FakeRecordStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: List[dict] = []

    async def save(self, db, record, outcome, descriptor) -> Optional[uuid.UUID]:
        if self.fail:
            return None
        rid = uuid.uuid4()
        self.saved.append({"id": rid, "record": dict(record), "outcome": outcome, "model": descriptor.identifier})
        return rid


@pytest.fixture
def registry() -> ModelRegistry:
    return make_registry()


@pytest.fixture
def fake_server() -> FakeModelServer:
    return FakeModelServer()


@pytest.fixture
def remote_client(fake_server) -> RemoteModelClient:
    return RemoteModelClient(timeout=2.0, transport=httpx.MockTransport(fake_server.handler))


@pytest.fixture
def estimator() -> LocalRiskEstimator:
    return LocalRiskEstimator()


@pytest.fixture
def record_store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def client(registry, remote_client, record_store):
    """FastAPI TestClient wired to the fake model services and the fake record store."""
    from fastapi.testclient import TestClient

    from app.api.deps import get_record_store, get_remote_client
    from app.db.session import get_db
    from app.main import app
    from app.ml.model_registry import get_registry

    async def _no_db():
        yield None

    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_remote_client] = lambda: remote_client
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_db] = _no_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
