"""
Lookup of deployments by correlation identifier and revision rollback.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List

from mcp_devops.errors import DeploymentNotFoundError, RollbackError
from mcp_devops.kube_client import KubeClient
from mcp_devops.kube_types import DEPLOYMENT_ID_LABEL, Deployment

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def pick_deployment(matches: List[Deployment]) -> Deployment:
    """Newest deployment first; equal timestamps fall back to name order."""
    newest = max(match.creation_timestamp or _EPOCH for match in matches)
    candidates = [match for match in matches if (match.creation_timestamp or _EPOCH) == newest]
    return sorted(candidates, key=lambda match: match.name)[0]


async def find_deployment(kube_client: KubeClient, deployment_id: str, namespace: str) -> Deployment:
    """
    Find the live deployment stamped with ``deployment_id``.

    Raises:
        DeploymentNotFoundError: If no deployment carries the label
    """
    selector = f"{DEPLOYMENT_ID_LABEL}={deployment_id}"
    matches = await asyncio.to_thread(kube_client.list_deployments, namespace, selector)
    if not matches:
        raise DeploymentNotFoundError(deployment_id, namespace)
    if len(matches) > 1:
        names = ", ".join(sorted(match.name for match in matches))
        logger.warning(
            f"⚠️ {len(matches)} deployments in {namespace} carry deployment ID {deployment_id} ({names}); "
            f"using the most recently created"
        )
    return pick_deployment(matches)


class RollbackController:
    """Rolls the deployment of one deploy invocation back to its previous revision."""

    def __init__(self, kube_client: KubeClient):
        self.kube_client = kube_client

    async def rollback(self, deployment_id: str, namespace: str) -> Dict[str, object]:
        """
        Issue a rollback for the deployment stamped with ``deployment_id``.

        Convergence of the restored revision is not awaited here.
        """
        deployment = await find_deployment(self.kube_client, deployment_id, namespace)
        try:
            revision = await asyncio.to_thread(self.kube_client.rollback_deployment, deployment.name, namespace)
        except RollbackError as e:
            raise RollbackError(deployment.name, namespace, e.detail, deployment_id=deployment_id) from e

        logger.info(f"✅ Rolled back deployment {deployment.name} (ID {deployment_id}) to revision {revision}")
        return {
            "status": "success",
            "message": f"Deployment {deployment.name} rolled back successfully",
            "deployment": deployment.name,
            "revision": revision,
        }
