"""
Integration tests for the mutation pipeline API endpoints.

The ERP read side is mocked; compilation and queueing run for real against
an in-memory queue.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from services.planner.app.core.dependencies import (
    get_apply_service,
    get_drain_service,
    get_mutation_queue,
    get_redis_client,
    get_reconciler,
)
from services.planner.app.db.repositories.action_repository import ActionRepository
from services.planner.app.db.repositories.session_repository import MutationSessionRepository
from services.planner.app.main import create_app
from services.planner.app.services.mutation_service import MutationService
from shared.exceptions import (
    AuthenticationError,
    ConfigurationError,
    HostResolutionError,
    QueueError,
)
from shared.mutations.compiler import PayloadCompiler
from shared.mutations.reconciler import StalenessReconciler
from shared.odoo.client import OdooClient
from shared.odoo.config import OdooSettings
from shared.queue import InMemoryMutationQueue, RedisClient
from workers.rpc_drain.models import DrainResult
from workers.rpc_drain.worker import RpcDrainWorker

TASK_CHANGE = {
    "id": "a1",
    "session_id": "s1",
    "entity_type": "project.task",
    "entity_id": 42,
    "change_kind": "assign",
    "update_payload": {"user_ids": [7]},
    "match_condition": {"id": 42},
    "after_state": {"user_ids": [7]},
}


@pytest.fixture
def queue():
    """Create in-memory queue."""
    return InMemoryMutationQueue(name="odoo:rpc:calls")


@pytest.fixture
def read_client():
    """Create mock Odoo client for live reads."""
    client = MagicMock(spec=OdooClient)
    client.fetch_current_state = AsyncMock(return_value=[{"id": 42, "name": "Fix bug"}])
    return client


@pytest.fixture
def write_client():
    """Create Odoo client with a static uid for payload building."""
    return OdooClient(
        OdooSettings(
            url="http://odoo.test",
            database="planboard",
            username="bot@example.com",
            api_key="secret-key",
            user_id=2,
        )
    )


@pytest.fixture
def session_repo():
    """Create mock session repository."""
    return AsyncMock(spec=MutationSessionRepository)


@pytest.fixture
def action_repo():
    """Create mock action repository."""
    repo = AsyncMock(spec=ActionRepository)
    repo.list_by_session.return_value = []
    repo.mark_outcome.return_value = []
    return repo


@pytest.fixture
def drain_worker():
    """Create mock drain worker."""
    return AsyncMock(spec=RpcDrainWorker)


@pytest.fixture
def app(queue, read_client, write_client, session_repo, action_repo, drain_worker):
    """Create app with pipeline dependencies overridden."""
    app = create_app()

    app.dependency_overrides[get_mutation_queue] = lambda: queue
    app.dependency_overrides[get_reconciler] = lambda: StalenessReconciler(read_client)
    app.dependency_overrides[get_apply_service] = lambda: MutationService(
        session_repo, action_repo, compiler=PayloadCompiler(write_client, queue)
    )
    app.dependency_overrides[get_drain_service] = lambda: MutationService(
        session_repo, action_repo, worker=drain_worker
    )
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    with TestClient(app) as test_client:
        yield test_client


def reconciled_body(client) -> dict:
    """Run reconcile and return the report body."""
    response = client.post("/api/v1/sessions/s1/reconcile", json={"changes": [TASK_CHANGE]})
    assert response.status_code == 200
    return response.json()


class TestReconcile:
    """Tests for POST /api/v1/sessions/{session_id}/reconcile."""

    def test_ready_report(self, client):
        """Test a change is paired with live state."""
        data = reconciled_body(client)

        assert data["ready"] is True
        assert data["dropped_count"] == 0
        assert data["task_statuses"][0]["original"] == {"id": 42, "name": "Fix bug"}
        assert data["task_statuses"][0]["upcoming"] == {"user_ids": [7]}
        assert data["task_statuses"][0]["action"]["id"] == "a1"

    def test_not_ready_report(self, client, read_client):
        """Test an empty live read is reported, not raised."""
        read_client.fetch_current_state.return_value = []

        data = reconciled_body(client)

        assert data["ready"] is False
        assert data["task_statuses"] == []
        assert data["reason"]

    def test_unreachable_erp(self, client, read_client):
        """Test transport failures map to 502 with a configuration hint."""
        read_client.fetch_current_state.side_effect = HostResolutionError(
            "Cannot resolve hostname", "http://odoo.test/jsonrpc"
        )

        response = client.post("/api/v1/sessions/s1/reconcile", json={"changes": [TASK_CHANGE]})

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["error_code"] == "HOST_RESOLUTION_ERROR"
        assert detail["configuration_fault"] is True

    def test_invalid_change(self, client):
        """Test malformed changes are rejected by validation."""
        response = client.post(
            "/api/v1/sessions/s1/reconcile",
            json={"changes": [{"id": "a1", "change_kind": "explode"}]},
        )

        assert response.status_code == 422


class TestApply:
    """Tests for POST /api/v1/sessions/{session_id}/apply."""

    def test_apply_enqueues(self, client, queue, session_repo):
        """Test an accepted report is compiled and queued."""
        report = reconciled_body(client)

        response = client.post("/api/v1/sessions/s1/apply", json=report)

        assert response.status_code == 202
        data = response.json()
        assert data["enqueued_count"] == 1
        assert data["message"] == "Queued 1 write call(s)"
        assert data["calls"][0]["fields"] == {"user_ids": [[6, 0, [7]]]}
        assert data["calls"][0]["target_ids"] == [42]

        status = client.get("/api/v1/queue").json()
        assert status["length"] == 1
        session_repo.upsert_session.assert_awaited_once()

    def test_apply_not_ready(self, client, queue):
        """Test a not-ready report is refused with 409."""
        report = reconciled_body(client)
        report["ready"] = False

        response = client.post("/api/v1/sessions/s1/apply", json=report)

        assert response.status_code == 409
        assert response.json()["detail"]["error_code"] == "NOT_READY"
        assert client.get("/api/v1/queue").json()["length"] == 0

    def test_apply_authentication_failure(self, app, client, queue, session_repo, action_repo):
        """Test rejected credentials map to 502 and queue nothing."""
        failing = MagicMock(spec=OdooClient)
        failing.build_write_call_payload = AsyncMock(
            side_effect=AuthenticationError("Odoo authentication failed")
        )
        app.dependency_overrides[get_apply_service] = lambda: MutationService(
            session_repo, action_repo, compiler=PayloadCompiler(failing, queue)
        )
        report = reconciled_body(client)

        response = client.post("/api/v1/sessions/s1/apply", json=report)

        assert response.status_code == 502
        assert response.json()["detail"]["error_code"] == "AUTHENTICATION_ERROR"
        assert client.get("/api/v1/queue").json()["length"] == 0

    def test_apply_queue_failure(self, app, client, write_client, session_repo, action_repo):
        """Test an unavailable queue maps to 503."""
        broken = MagicMock()
        broken.name = "broken"
        broken.enqueue_batch = AsyncMock(side_effect=QueueError("Redis batch push failed"))
        app.dependency_overrides[get_apply_service] = lambda: MutationService(
            session_repo, action_repo, compiler=PayloadCompiler(write_client, broken)
        )
        report = reconciled_body(client)

        response = client.post("/api/v1/sessions/s1/apply", json=report)

        assert response.status_code == 503
        assert response.json()["detail"]["error_code"] == "QUEUE_ERROR"


class TestDrain:
    """Tests for POST /api/v1/queue/drain."""

    def test_drain_summary(self, client, drain_worker):
        """Test per-call outcomes are reported."""
        drain_worker.drain_once.return_value = [
            DrainResult(action_id="a1", success=True),
            DrainResult(action_id="a2", success=False, error="access denied"),
        ]

        response = client.post("/api/v1/queue/drain")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["total"] == 2
        assert data["successful"] == 1
        assert data["failed"] == 1
        assert data["results"][1]["error"] == "access denied"

    def test_drain_empty(self, client, drain_worker):
        """Test draining an empty queue succeeds trivially."""
        drain_worker.drain_once.return_value = []

        data = client.post("/api/v1/queue/drain").json()

        assert data["success"] is True
        assert data["total"] == 0

    def test_drain_unconfigured(self, app, client):
        """Test a missing ERP URL maps to 503."""

        def unconfigured():
            raise ConfigurationError("ODOO_URL environment variable is required", key="ODOO_URL")

        app.dependency_overrides[get_drain_service] = unconfigured

        response = client.post("/api/v1/queue/drain")

        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["configuration_fault"] is True
        assert detail["details"] == {"key": "ODOO_URL"}


class TestHealth:
    """Tests for health endpoints."""

    def test_liveness(self, client):
        """Test the liveness probe."""
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_health(self, client):
        """Test the basic health check."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["service"] == "planner"

    def test_readiness(self, app, client):
        """Test readiness pings Redis."""
        redis = AsyncMock(spec=RedisClient)
        redis.ping.return_value = True
        app.dependency_overrides[get_redis_client] = lambda: redis

        assert client.get("/health/ready").json() == {"status": "ready"}

    def test_not_ready(self, app, client):
        """Test readiness fails when Redis is down."""
        redis = AsyncMock(spec=RedisClient)
        redis.ping.side_effect = QueueError("Redis ping failed")
        app.dependency_overrides[get_redis_client] = lambda: redis

        response = client.get("/health/ready")

        assert response.status_code == 503

    def test_metrics(self, client):
        """Test the Prometheus endpoint."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text
