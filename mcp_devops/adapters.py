"""
Adapters exposing the deploy, rollback and monitor operations.
"""
import logging
import re
import uuid
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from mcp_devops.address import AddressResolver
from mcp_devops.health import summarize
from mcp_devops.kube_client import KubeClient
from mcp_devops.kube_types import ResourceKind
from mcp_devops.monitoring import MonitoringCampaignRunner
from mcp_devops.namespaces import NamespaceProvisioner
from mcp_devops.rollback import RollbackController, find_deployment
from mcp_devops.rollout import (
    DEFAULT_POLL_INTERVAL_SECS,
    DEFAULT_READINESS_TIMEOUT_SECS,
    RolloutController,
    build_descriptors,
)

logger = logging.getLogger(__name__)


def app_name_for(repository: str) -> str:
    """``"Owner/My_Repo"`` -> ``"owner-my-repo"``."""
    owner, _, repo = repository.partition("/")
    if not owner or not repo:
        raise ValueError(f"repository must look like 'owner/name', got {repository!r}")
    return re.sub(r"[^a-z0-9-]", "-", f"{owner}-{repo}".lower())


def dashboard_url(grafana_url: str, app_name: str, namespace: str) -> str:
    query = urlencode({"var-deployment": app_name, "var-namespace": namespace})
    return f"{grafana_url.rstrip('/')}/d/kubernetes-deployment?{query}"


class DeployAdapter:
    """Deploy and rollback operations for the agent API."""

    def __init__(
        self,
        kube_client: KubeClient,
        managed_by: str,
        readiness_timeout: float = DEFAULT_READINESS_TIMEOUT_SECS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECS,
    ):
        self.kube_client = kube_client
        self.namespaces = NamespaceProvisioner(kube_client, managed_by)
        self.rollout = RolloutController(
            kube_client, managed_by, timeout=readiness_timeout, poll_interval=poll_interval
        )
        self.resolver = AddressResolver.default(kube_client)
        self.rollbacks = RollbackController(kube_client)

    async def deploy(
        self,
        repository: str,
        image_tag: str,
        kubernetes_config: Dict[str, Any],
        environment: str = "staging",
        namespace: Optional[str] = None,
    ) -> Dict[str, Any]:
        namespace = namespace or environment
        app_name = app_name_for(repository)
        deployment_id = str(uuid.uuid4())
        descriptors = build_descriptors(kubernetes_config)

        logger.info(f"🚀 Starting deployment: {app_name}:{image_tag} (ID: {deployment_id})")
        logger.info(f"📋 Deployment details: environment={environment}, namespace={namespace}, resources={len(descriptors)}")

        try:
            await self.namespaces.ensure(namespace)
            outcomes = await self.rollout.rollout(descriptors, namespace, deployment_id)

            deployment_name = next(
                (o.name for o in outcomes if o.kind is ResourceKind.DEPLOYMENT and o.name),
                app_name,
            )
            await self.rollout.await_ready(deployment_name, namespace)
            deployment_url = await self.resolver.resolve(app_name, namespace)
        except Exception as e:
            logger.error(f"❌ Deployment {deployment_id} of {app_name} failed: {e}")
            raise

        logger.info(f"✅ Deployment completed successfully: {deployment_id} -> {deployment_url}")
        return {
            "deployment_id": deployment_id,
            "status": "success",
            "environment": environment,
            "namespace": namespace,
            "deployment_url": deployment_url,
            "deployed_resources": [outcome.to_dict() for outcome in outcomes],
            "rollout_status": "completed",
        }

    async def rollback(self, deployment_id: str, namespace: str, wait: bool = False) -> Dict[str, Any]:
        try:
            result = await self.rollbacks.rollback(deployment_id, namespace)
            if wait:
                await self.rollout.await_ready(result["deployment"], namespace)
        except Exception as e:
            logger.error(f"❌ Rollback of deployment ID {deployment_id} failed: {e}")
            raise
        return {"status": result["status"], "message": result["message"]}


class MonitorAdapter:
    """Monitoring campaigns for previously deployed workloads."""

    def __init__(
        self,
        kube_client: KubeClient,
        grafana_url: str,
        runner: Optional[MonitoringCampaignRunner] = None,
    ):
        self.kube_client = kube_client
        self.grafana_url = grafana_url
        self.runner = runner or MonitoringCampaignRunner(kube_client)

    async def monitor(
        self,
        deployment_id: str,
        environment: str = "staging",
        monitoring_duration: int = 300,
        namespace: Optional[str] = None,
    ) -> Dict[str, Any]:
        namespace = namespace or environment
        try:
            deployment = await find_deployment(self.kube_client, deployment_id, namespace)
            samples = await self.runner.run(deployment.name, namespace, monitoring_duration)
        except Exception as e:
            logger.error(f"❌ Monitoring of deployment ID {deployment_id} failed: {e}")
            raise

        report = summarize(samples)
        logger.info(f"📊 Monitoring of {deployment.name} finished: {report.overall_health}")
        return {
            "deployment_id": deployment_id,
            "monitoring_status": "completed",
            "duration": monitoring_duration,
            "health_status": report.overall_health,
            "metrics": report.metrics,
            "alerts": report.alerts,
            "recommendations": report.recommendations,
            "dashboard_url": dashboard_url(self.grafana_url, deployment.name, namespace),
        }
