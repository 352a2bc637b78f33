"""
Ordered rollout of a deployment/service/ingress set and readiness waiting.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from mcp_devops.applier import ResourceApplier
from mcp_devops.errors import ClusterUnavailableError, ConvergenceTimeoutError
from mcp_devops.kube_client import KubeClient
from mcp_devops.kube_types import (
    DEPLOYMENT_ID_LABEL,
    MANAGED_BY_LABEL,
    ApplyStatus,
    ResourceDescriptor,
    ResourceKind,
    RolloutOutcome,
    RolloutStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_READINESS_TIMEOUT_SECS = 300.0
DEFAULT_POLL_INTERVAL_SECS = 5.0

# Later manifests reference earlier ones by name
APPLY_ORDER = (
    ("deployment", ResourceKind.DEPLOYMENT),
    ("service", ResourceKind.SERVICE),
    ("ingress", ResourceKind.INGRESS),
)


def build_descriptors(kubernetes_config: Dict[str, Any]) -> List[ResourceDescriptor]:
    """Turn a ``{deployment?, service?, ingress?}`` mapping into ordered descriptors."""
    descriptors = []
    for key, kind in APPLY_ORDER:
        manifest = kubernetes_config.get(key)
        if manifest:
            descriptors.append(ResourceDescriptor(kind=kind, body=manifest))
    return descriptors


class RolloutController:
    """Applies a resource set in fixed order and waits for the workload to converge."""

    def __init__(
        self,
        kube_client: KubeClient,
        managed_by: str,
        applier: Optional[ResourceApplier] = None,
        timeout: float = DEFAULT_READINESS_TIMEOUT_SECS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.kube_client = kube_client
        self.managed_by = managed_by
        self.applier = applier or ResourceApplier(kube_client)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    async def rollout(
        self,
        descriptors: Sequence[ResourceDescriptor],
        namespace: str,
        correlation_id: str,
    ) -> List[RolloutOutcome]:
        """
        Apply descriptors as deployment, then service, then ingress.

        Each one is stamped with the correlation identifier and the
        managed-by label before it is submitted. The first failure aborts
        the rollout and propagates.
        """
        rank = {kind: index for index, (_, kind) in enumerate(APPLY_ORDER)}
        ordered = sorted(descriptors, key=lambda d: rank[d.kind])
        labels = {DEPLOYMENT_ID_LABEL: correlation_id, MANAGED_BY_LABEL: self.managed_by}

        outcomes: List[RolloutOutcome] = []
        for descriptor in ordered:
            stamped = descriptor.with_labels(labels)
            try:
                status = await self.applier.apply(stamped, namespace)
            except Exception:
                outcomes.append(RolloutOutcome(kind=descriptor.kind, name=stamped.name, status=ApplyStatus.ERROR))
                summary = ", ".join(f"{o.kind.value}/{o.name}={o.status.value}" for o in outcomes)
                logger.error(f"❌ Rollout {correlation_id} aborted in {namespace}: {summary}")
                raise
            outcomes.append(RolloutOutcome(kind=descriptor.kind, name=stamped.name, status=status))

        return outcomes

    async def await_ready(
        self,
        deployment_name: str,
        namespace: str,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> RolloutStatus:
        """
        Poll until ready replicas equal desired replicas (and are non-zero).

        Read errors while polling are logged and polling continues; only the
        deadline, measured from the start of this call, ends the wait. A
        read still in flight at the deadline is abandoned.

        Raises:
            ConvergenceTimeoutError: If the deadline passes first
        """
        timeout = self.timeout if timeout is None else timeout
        poll_interval = self.poll_interval if poll_interval is None else poll_interval
        started = self._clock()
        deadline = started + timeout

        def expired() -> ConvergenceTimeoutError:
            elapsed = self._clock() - started
            logger.error(f"❌ Deployment {namespace}/{deployment_name} not ready after {elapsed:.1f}s")
            return ConvergenceTimeoutError(deployment_name, namespace, elapsed, timeout)

        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise expired()
            try:
                status = await asyncio.wait_for(
                    asyncio.to_thread(self.kube_client.rollout_status, deployment_name, namespace),
                    timeout=remaining,
                )
                if status.converged:
                    logger.info(
                        f"✅ Deployment {deployment_name} is ready "
                        f"({status.ready_replicas}/{status.desired_replicas} replicas)"
                    )
                    return status
                logger.info(
                    f"Waiting for deployment {deployment_name}: "
                    f"{status.ready_replicas}/{status.desired_replicas} replicas ready"
                )
            except asyncio.TimeoutError:
                raise expired()
            except ClusterUnavailableError:
                raise
            except Exception as e:
                logger.warning(f"⚠️ Error checking deployment status for {deployment_name}: {e}")

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise expired()
            await self._sleep(min(poll_interval, remaining))
