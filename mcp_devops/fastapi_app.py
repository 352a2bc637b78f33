# fastapi_app.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mcp_devops.adapters import DeployAdapter, MonitorAdapter
from mcp_devops.auth import require_auth
from mcp_devops.config import settings
from mcp_devops.errors import (
    ClusterUnavailableError,
    ConvergenceTimeoutError,
    DeploymentNotFoundError,
    RollbackError,
)
from mcp_devops.kube_client import KubeClient
from mcp_devops.notifications import Notifier

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

# Cluster access is optional at startup; agent routes report 503 without it
kube_client = KubeClient.connect(in_cluster=settings.K8S_IN_CLUSTER, context=settings.K8S_CONTEXT)
deploy_adapter = DeployAdapter(
    kube_client,
    settings.MANAGED_BY,
    readiness_timeout=settings.READINESS_TIMEOUT_SECS,
    poll_interval=settings.READINESS_POLL_INTERVAL_SECS,
)
monitor_adapter = MonitorAdapter(kube_client, settings.GRAFANA_URL)
notifier = Notifier(
    slack_webhook_url=settings.SLACK_WEBHOOK_URL,
    teams_webhook_url=settings.TEAMS_WEBHOOK_URL,
    default_channel=settings.SLACK_DEFAULT_CHANNEL,
    timeout=settings.REQUEST_TIMEOUT_SECS,
)
started_at = time.monotonic()

# -----------------------------------------------------------------------------
# FastAPI app + CORS
# -----------------------------------------------------------------------------
app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    client_host = request.client.host if request.client else "unknown"
    logger.info(f"{request.method} {request.url.path} from {client_host}")
    return await call_next(request)

# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------
class KubernetesConfig(BaseModel):
    deployment: Optional[Dict[str, Any]] = Field(default=None, description="Deployment manifest")
    service: Optional[Dict[str, Any]] = Field(default=None, description="Service manifest")
    ingress: Optional[Dict[str, Any]] = Field(default=None, description="Ingress manifest")


class DeployRequest(BaseModel):
    repository: str = Field(..., pattern=r"^[^/\s]+/[^/\s]+$", description="owner/name")
    image_tag: str = Field(..., description="Image tag being deployed")
    environment: str = Field(default="staging")
    kubernetes_config: KubernetesConfig
    namespace: Optional[str] = Field(default=None, description="Defaults to the environment")


class MonitorRequest(BaseModel):
    deployment_id: str
    environment: str = Field(default="staging")
    monitoring_duration: int = Field(default=300, ge=0, description="Campaign length in seconds")
    namespace: Optional[str] = Field(default=None, description="Defaults to the environment")


class RollbackRequest(BaseModel):
    deployment_id: str
    namespace: str
    wait: bool = Field(default=False, description="Wait for the restored revision to become ready")


class SlackNotification(BaseModel):
    message: str
    channel: Optional[str] = None
    deployment_url: Optional[str] = None


class TeamsNotification(BaseModel):
    message: str
    deployment_url: Optional[str] = None

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _failure(operation: str, error: Exception) -> HTTPException:
    if isinstance(error, DeploymentNotFoundError):
        status_code = 404
    elif isinstance(error, ClusterUnavailableError):
        status_code = 503
    elif isinstance(error, ConvergenceTimeoutError):
        status_code = 504
    elif isinstance(error, RollbackError):
        status_code = 409
    elif isinstance(error, ValueError):
        status_code = 400
    else:
        status_code = 500
    return HTTPException(status_code=status_code, detail={"error": f"{operation} failed", "message": str(error)})

# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------
@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - started_at, 3),
        "version": settings.APP_VERSION,
        "environment": settings.APP_ENV,
    }


@app.get("/health/ready")
async def ready():
    checks = {
        "kubernetes_service": "ready" if kube_client.available else "not_ready",
        "slack_notifications": "ready" if notifier.slack_webhook_url else "not_configured",
        "teams_notifications": "ready" if notifier.teams_webhook_url else "not_configured",
    }
    is_ready = checks["kubernetes_service"] == "ready"
    body = {
        "status": "ready" if is_ready else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if not is_ready:
        body["reason"] = kube_client.unavailable_reason
    return JSONResponse(status_code=200 if is_ready else 503, content=body)

# -----------------------------------------------------------------------------
# Agent endpoints
# -----------------------------------------------------------------------------
@app.post("/agent/deploy")
async def agent_deploy(body: DeployRequest, user: Dict[str, Any] = Depends(require_auth)):
    """Apply the manifests, wait for readiness and report the reachable URL."""
    logger.info(f"Deploy request received for {body.repository} by {user.get('id', user.get('sub', 'unknown'))}")
    try:
        return await deploy_adapter.deploy(
            repository=body.repository,
            image_tag=body.image_tag,
            kubernetes_config=body.kubernetes_config.model_dump(exclude_none=True),
            environment=body.environment,
            namespace=body.namespace,
        )
    except Exception as e:
        raise _failure("Deployment", e)


@app.post("/agent/monitor")
async def agent_monitor(body: MonitorRequest, user: Dict[str, Any] = Depends(require_auth)):
    logger.info(f"Monitor request received for deployment ID {body.deployment_id}")
    try:
        return await monitor_adapter.monitor(
            deployment_id=body.deployment_id,
            environment=body.environment,
            monitoring_duration=body.monitoring_duration,
            namespace=body.namespace,
        )
    except Exception as e:
        raise _failure("Monitoring", e)


@app.post("/agent/rollback")
async def agent_rollback(body: RollbackRequest, user: Dict[str, Any] = Depends(require_auth)):
    logger.info(f"Rollback request received for deployment ID {body.deployment_id}")
    try:
        return await deploy_adapter.rollback(body.deployment_id, body.namespace, wait=body.wait)
    except Exception as e:
        raise _failure("Rollback", e)

# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------
@app.post("/notifications/slack")
def notify_slack(body: SlackNotification):
    try:
        sent = notifier.slack(body.message, channel=body.channel, deployment_url=body.deployment_url)
    except Exception as e:
        logger.error(f"❌ Slack notification failed: {e}")
        raise _failure("Notification", e)
    return {"status": "success", "message": "Notification sent" if sent else "Notification skipped"}


@app.post("/notifications/teams")
def notify_teams(body: TeamsNotification):
    try:
        sent = notifier.teams(body.message, deployment_url=body.deployment_url)
    except Exception as e:
        logger.error(f"❌ Teams notification failed: {e}")
        raise _failure("Notification", e)
    return {"status": "success", "message": "Notification sent" if sent else "Notification skipped"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.HTTP_PORT)
