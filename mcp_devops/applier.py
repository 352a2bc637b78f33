"""
Idempotent create-or-update of a single cluster resource.
"""
import asyncio
import logging

from mcp_devops.kube_client import KubeClient, is_conflict
from mcp_devops.kube_types import ApplyStatus, ResourceDescriptor, ResourceKind

logger = logging.getLogger(__name__)

# Kinds that are overwritten in place when they already exist. Services keep
# their allocated cluster IP, so an existing one is left alone.
REPLACEABLE_KINDS = frozenset({ResourceKind.DEPLOYMENT, ResourceKind.INGRESS})


class ResourceApplier:
    """Create a resource, falling back to replace (or no-op) on conflict."""

    def __init__(self, kube_client: KubeClient):
        self.kube_client = kube_client

    async def apply(self, descriptor: ResourceDescriptor, namespace: str) -> ApplyStatus:
        """
        Apply one manifest.

        Only the "already exists" conflict is handled here; every other
        cluster error propagates to the caller unchanged.

        Args:
            descriptor: Manifest to submit
            namespace: Target namespace

        Returns:
            CREATED, UPDATED (replaced after conflict) or EXISTS (service left untouched)
        """
        kind = descriptor.kind.value
        try:
            await asyncio.to_thread(self.kube_client.create_resource, descriptor, namespace)
            logger.info(f"✅ Created {kind} {namespace}/{descriptor.name}")
            return ApplyStatus.CREATED
        except Exception as e:
            if not is_conflict(e):
                logger.error(f"❌ Failed to create {kind} {namespace}/{descriptor.name}: {e}")
                raise

        if descriptor.kind not in REPLACEABLE_KINDS:
            logger.info(f"{kind} {namespace}/{descriptor.name} already exists, leaving it untouched")
            return ApplyStatus.EXISTS

        await asyncio.to_thread(self.kube_client.replace_resource, descriptor, namespace)
        logger.info(f"✅ Replaced existing {kind} {namespace}/{descriptor.name}")
        return ApplyStatus.UPDATED
