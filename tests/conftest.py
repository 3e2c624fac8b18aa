import json
import os
import re
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

# Registers the LinkedCombination table on SQLModel.metadata
from limitmatrix.infrastructure.database import models  # noqa: F401
from limitmatrix.infrastructure.database.database import get_session
from limitmatrix.infrastructure.policy_client import (
    PolicyServiceClient,
    get_policy_client,
)
from limitmatrix.main import app

POLICY_BASE_URL = "http://policy.test"

_COMBINATIONS_PATH = re.compile(
    r"/api/policy/v1/(?P<contract>\d+)/limits/combinations(?:/(?P<combination>\d+))?"
)


def _get_test_database_url() -> str:
    """Get database URL for testing based on environment."""
    return os.getenv("TEST_DATABASE_URL", "sqlite://")  # Default: in-memory SQLite


@pytest.fixture(name="session")
def session_fixture():
    database_url = _get_test_database_url()

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(database_url, pool_pre_ping=True)

    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session

    SQLModel.metadata.drop_all(engine)
    engine.dispose()


class FakePolicyBackend:
    """In-memory stand-in for the policy service, served via httpx.MockTransport."""

    def __init__(self):
        self.contracts: dict[int, dict[int, dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.status_override: int | None = None
        self.unreachable = False
        self._next_id = 100

    def add(self, contract_id: int, **combination: Any) -> dict[str, Any]:
        """Store a combination as camelCase JSON; ``id`` is assigned if absent."""
        if "id" not in combination:
            combination["id"] = self._allocate_id()
        combination.setdefault("contractId", contract_id)
        self.contracts.setdefault(contract_id, {})[combination["id"]] = combination
        return combination

    def _allocate_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.unreachable:
            raise httpx.ConnectError("Connection refused", request=request)
        if self.status_override is not None:
            return httpx.Response(
                self.status_override, json={"message": "backend says no"}
            )

        match = _COMBINATIONS_PATH.fullmatch(request.url.path)
        if match is None:
            return httpx.Response(404, json={"message": "Unknown path"})

        store = self.contracts.setdefault(int(match["contract"]), {})
        if match["combination"] is None:
            return self._handle_collection(request, int(match["contract"]), store)
        return self._handle_item(request, int(match["combination"]), store)

    def _handle_collection(
        self, request: httpx.Request, contract_id: int, store: dict[int, dict]
    ) -> httpx.Response:
        if request.method == "POST":
            body = json.loads(request.content)
            created = self.add(contract_id, **body)
            return httpx.Response(201, json=created)

        page = int(request.url.params.get("page", 0))
        size = int(request.url.params.get("size", 20))
        items = list(store.values())
        content = items[page * size : (page + 1) * size]
        total_pages = max(1, -(-len(items) // size))
        return httpx.Response(
            200,
            json={
                "content": content,
                "totalPages": total_pages,
                "totalElements": len(items),
                "number": page,
                "size": size,
            },
        )

    def _handle_item(
        self, request: httpx.Request, combination_id: int, store: dict[int, dict]
    ) -> httpx.Response:
        if combination_id not in store:
            return httpx.Response(404, json={"message": "Combination not found"})

        if request.method == "GET":
            return httpx.Response(200, json=store[combination_id])
        if request.method == "PUT":
            body = json.loads(request.content)
            body["id"] = combination_id
            body["contractId"] = store[combination_id]["contractId"]
            store[combination_id] = body
            return httpx.Response(200, json=body)
        if request.method == "DELETE":
            del store[combination_id]
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture(name="policy_backend")
def policy_backend_fixture() -> FakePolicyBackend:
    return FakePolicyBackend()


@pytest.fixture(name="contract_42")
def contract_42_fixture(policy_backend: FakePolicyBackend) -> FakePolicyBackend:
    """Contract 42: one combination with a yearly in-network amount, one without."""
    policy_backend.add(
        42,
        id=1,
        description="General consultation",
        priority=1,
        regionId=3,
        networkId=7,
        amounts=[{"amount": 5000, "networkScope": "IN", "limitPeriod": "PER_YEAR"}],
    )
    policy_backend.add(42, id=2, priority=5, amounts=[])
    return policy_backend


def make_policy_client(backend: FakePolicyBackend, **kwargs) -> PolicyServiceClient:
    return PolicyServiceClient(POLICY_BASE_URL, transport=backend.transport(), **kwargs)


@pytest.fixture(name="make_client")
def make_client_fixture(policy_backend: FakePolicyBackend):
    """Factory for policy clients talking to the fake backend."""

    def factory(**kwargs) -> PolicyServiceClient:
        return make_policy_client(policy_backend, **kwargs)

    return factory


@pytest.fixture(name="client")
def client_fixture(session: Session, policy_backend: FakePolicyBackend):
    def get_session_override():
        return session

    async def get_policy_client_override():
        async with make_policy_client(policy_backend) as policy_client:
            yield policy_client

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_policy_client] = get_policy_client_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
