import httpx
import jwt
import pytest

from fake_kube import FakeKube, rollout
from mcp_devops import fastapi_app
from mcp_devops.adapters import DeployAdapter, MonitorAdapter
from mcp_devops.config import settings
from mcp_devops.errors import RollbackError
from mcp_devops.kube_types import Deployment, MonitoringSample
from mcp_devops.notifications import Notifier

pytestmark = pytest.mark.anyio

SECRET = "test-jwt-secret-0123456789abcdef0123"
DEV_TOKEN = "dev-token"

DEPLOY_BODY = {
    "repository": "acme/web",
    "image_tag": "v1.2.0",
    "environment": "staging",
    "kubernetes_config": {
        "deployment": {"metadata": {"name": "acme-web", "labels": {"app": "acme-web"}}, "spec": {"replicas": 1}},
        "service": {"metadata": {"name": "acme-web-service"}, "spec": {"ports": [{"port": 80}]}},
    },
}


class StubRunner:
    async def run(self, app_name, namespace, duration_seconds):
        return [MonitoringSample(
            timestamp="2026-10-17T00:00:00+00:00",
            deployment={"ready_replicas": 2},
            pods={"running_pods": 2},
            health={"status": "healthy"},
        )]


def _install(monkeypatch, kube: FakeKube, environment: str = "development") -> None:
    monkeypatch.setattr(settings, "APP_ENV", environment)
    monkeypatch.setattr(settings, "MCP_SERVER_TOKEN", DEV_TOKEN)
    monkeypatch.setattr(settings, "JWT_SECRET", SECRET)
    monkeypatch.setattr(fastapi_app, "kube_client", kube)
    monkeypatch.setattr(
        fastapi_app, "deploy_adapter",
        DeployAdapter(kube, "mcp-devops-server", readiness_timeout=0.05, poll_interval=0.01),
    )
    monkeypatch.setattr(fastapi_app, "monitor_adapter", MonitorAdapter(kube, "http://grafana.local", runner=StubRunner()))
    monkeypatch.setattr(fastapi_app, "notifier", Notifier())


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=fastapi_app.app), base_url="http://testserver")


def _auth(token: str = DEV_TOKEN) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def test_health_reports_service_metadata(monkeypatch, kube):
    _install(monkeypatch, kube)

    async with _client() as client:
        response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["environment"] == "development"
    assert body["service"] == settings.APP_NAME
    assert body["uptime"] >= 0


async def test_readiness_follows_cluster_access(monkeypatch, kube):
    _install(monkeypatch, kube)
    async with _client() as client:
        ready = await client.get("/health/ready")

    _install(monkeypatch, FakeKube(unavailable_reason="no kubeconfig"))
    async with _client() as client:
        not_ready = await client.get("/health/ready")

    assert ready.status_code == 200
    assert ready.json()["checks"]["slack_notifications"] == "not_configured"
    assert not_ready.status_code == 503
    assert not_ready.json()["reason"] == "no kubeconfig"


@pytest.mark.parametrize(
    "headers, message",
    [
        ({}, "Authorization header required"),
        ({"Authorization": "Bearer"}, "Token required"),
        ({"Authorization": "Bearer nope"}, "Invalid token"),
    ],
)
async def test_agent_routes_require_a_token(monkeypatch, kube, headers, message):
    _install(monkeypatch, kube)

    async with _client() as client:
        response = await client.post("/agent/deploy", json=DEPLOY_BODY, headers=headers)

    assert response.status_code == 401
    assert response.json()["detail"] == {"error": "Unauthorized", "message": message}


async def test_static_token_is_rejected_outside_development(monkeypatch, kube):
    _install(monkeypatch, kube, environment="production")

    async with _client() as client:
        response = await client.post("/agent/rollback", json={"deployment_id": "id-1", "namespace": "staging"}, headers=_auth())

    assert response.status_code == 401


async def test_deploy_with_signed_token(monkeypatch, kube):
    _install(monkeypatch, kube, environment="production")
    kube.statuses[("staging", "acme-web")] = [rollout(1, 1, "acme-web")]
    token = jwt.encode({"id": "alice", "role": "deployer"}, SECRET, algorithm="HS256")

    async with _client() as client:
        response = await client.post("/agent/deploy", json=DEPLOY_BODY, headers=_auth(token))

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["deployment_url"] == "http://acme-web-service.staging.svc.cluster.local"
    assert [r["name"] for r in body["deployed_resources"]] == ["acme-web", "acme-web-service"]


async def test_malformed_repository_is_rejected(monkeypatch, kube):
    _install(monkeypatch, kube)

    async with _client() as client:
        response = await client.post("/agent/deploy", json={**DEPLOY_BODY, "repository": "acme"}, headers=_auth())

    assert response.status_code == 422


async def test_deploy_timeout_maps_to_504(monkeypatch, kube):
    _install(monkeypatch, kube)
    kube.statuses[("staging", "acme-web")] = [rollout(0, 1, "acme-web")]

    async with _client() as client:
        response = await client.post("/agent/deploy", json=DEPLOY_BODY, headers=_auth())

    assert response.status_code == 504
    assert response.json()["detail"]["error"] == "Deployment failed"


async def test_unreachable_cluster_maps_to_503(monkeypatch):
    _install(monkeypatch, FakeKube(unavailable_reason="no kubeconfig"))

    async with _client() as client:
        response = await client.post("/agent/deploy", json=DEPLOY_BODY, headers=_auth())

    assert response.status_code == 503
    assert "no kubeconfig" in response.json()["detail"]["message"]


async def test_monitor_unknown_deployment_maps_to_404(monkeypatch, kube):
    _install(monkeypatch, kube)

    async with _client() as client:
        response = await client.post("/agent/monitor", json={"deployment_id": "missing"}, headers=_auth())

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "Monitoring failed"


async def test_monitor_returns_the_report(monkeypatch, kube):
    _install(monkeypatch, kube)
    kube.add_deployment(Deployment(
        name="acme-web", namespace="staging", replicas=2, ready_replicas=2, labels={"deployment-id": "id-1"}
    ))

    async with _client() as client:
        response = await client.post(
            "/agent/monitor", json={"deployment_id": "id-1", "monitoring_duration": 30}, headers=_auth()
        )

    assert response.status_code == 200
    body = response.json()
    assert body["health_status"] == "healthy"
    assert body["duration"] == 30
    assert body["metrics"]["health_success_rate"] == 100.0


async def test_rollback_route(monkeypatch, kube):
    _install(monkeypatch, kube)
    kube.add_deployment(Deployment(
        name="acme-web", namespace="staging", replicas=2, ready_replicas=2, labels={"deployment-id": "id-1"}
    ))

    async with _client() as client:
        response = await client.post(
            "/agent/rollback", json={"deployment_id": "id-1", "namespace": "staging"}, headers=_auth()
        )

    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "Deployment acme-web rolled back successfully"}


async def test_notification_without_webhook_is_skipped(monkeypatch, kube):
    _install(monkeypatch, kube)

    async with _client() as client:
        response = await client.post("/notifications/slack", json={"message": "Deployed acme/web"})

    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "Notification skipped"}


async def test_rollback_without_history_maps_to_409(monkeypatch, kube):
    _install(monkeypatch, kube)
    kube.add_deployment(Deployment(
        name="acme-web", namespace="staging", replicas=1, ready_replicas=1, labels={"deployment-id": "id-1"}
    ))
    kube.failures["rollback_deployment"] = RollbackError(
        "acme-web", "staging", "a previous revision is not in the rollout history"
    )

    async with _client() as client:
        response = await client.post(
            "/agent/rollback", json={"deployment_id": "id-1", "namespace": "staging"}, headers=_auth()
        )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "Rollback failed"
    assert "id-1" in detail["message"]
