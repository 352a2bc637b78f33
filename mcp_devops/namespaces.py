"""
Namespace provisioning.
"""
import asyncio
import logging

from mcp_devops.kube_client import KubeClient, is_conflict, is_not_found
from mcp_devops.kube_types import MANAGED_BY_LABEL

logger = logging.getLogger(__name__)


class NamespaceProvisioner:
    """Make sure a namespace exists before anything is applied into it."""

    def __init__(self, kube_client: KubeClient, managed_by: str):
        self.kube_client = kube_client
        self.managed_by = managed_by

    async def ensure(self, namespace: str) -> bool:
        """Create ``namespace`` if it is missing. Returns True when it was created."""
        try:
            await asyncio.to_thread(self.kube_client.read_namespace, namespace)
            logger.info(f"Namespace {namespace} already exists")
            return False
        except Exception as e:
            if not is_not_found(e):
                raise

        labels = {"name": namespace, MANAGED_BY_LABEL: self.managed_by}
        try:
            await asyncio.to_thread(self.kube_client.create_namespace, namespace, labels)
        except Exception as e:
            # created by a concurrent invocation between the read and the create
            if is_conflict(e):
                logger.info(f"Namespace {namespace} was created concurrently")
                return False
            raise
        logger.info(f"✅ Created namespace {namespace}")
        return True
