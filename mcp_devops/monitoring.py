"""
Fixed-cadence monitoring campaigns against a deployed workload.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

import requests

from mcp_devops.address import ClusterIpStrategy, ResolverStrategy, service_name
from mcp_devops.kube_client import KubeClient, is_not_found
from mcp_devops.kube_types import MonitoringSample, Pod
from mcp_devops.quantities import parse_cpu, parse_memory_mib

logger = logging.getLogger(__name__)

MONITORING_INTERVAL_SECS = 30
PROBE_TIMEOUT_SECS = 5
HEALTH_PATH = "/health"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthProbe:
    """HTTP GET against ``<base url>/health``; never raises."""

    def __init__(self, timeout: float = PROBE_TIMEOUT_SECS):
        self.timeout = timeout

    def check(self, base_url: str) -> Dict[str, Any]:
        url = f"{base_url.rstrip('/')}{HEALTH_PATH}"
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            return {
                "status": "unhealthy",
                "url": url,
                "message": f"Health check failed: {e}",
            }

        healthy = response.status_code == 200
        return {
            "status": "healthy" if healthy else "unhealthy",
            "url": url,
            "status_code": response.status_code,
            "response_time_ms": round(response.elapsed.total_seconds() * 1000, 1),
            "message": "Health check passed" if healthy else "Health check failed",
        }


def pod_metrics(pods: List[Pod]) -> Dict[str, Any]:
    details = [
        {
            "name": pod.name,
            "phase": pod.status,
            "ready": pod.ready,
            "restarts": pod.restarts,
            "cpu_requests": parse_cpu(pod.cpu_request),
            "memory_requests_mib": parse_memory_mib(pod.memory_request),
            "cpu_limits": parse_cpu(pod.cpu_limit),
            "memory_limits_mib": parse_memory_mib(pod.memory_limit),
        }
        for pod in pods
    ]
    return {
        "total_pods": len(pods),
        "running_pods": sum(1 for pod in pods if pod.status == "Running"),
        "ready_pods": sum(1 for pod in pods if pod.ready),
        "pods": details,
    }


class MonitoringCampaignRunner:
    """Samples a workload every ``interval`` seconds for a fixed duration."""

    def __init__(
        self,
        kube_client: KubeClient,
        target: Optional[ResolverStrategy] = None,
        probe: Optional[HealthProbe] = None,
        interval: float = MONITORING_INTERVAL_SECS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.kube_client = kube_client
        # probed in-cluster through the service ClusterIP only
        self.target = target or ClusterIpStrategy(kube_client)
        self.probe = probe or HealthProbe()
        self.interval = interval
        self._sleep = sleep

    def iterations(self, duration_seconds: float) -> int:
        if duration_seconds <= 0:
            return 0
        return int(duration_seconds // self.interval)

    async def run(self, app_name: str, namespace: str, duration_seconds: float) -> List[MonitoringSample]:
        """
        Run one campaign.

        A failure while collecting a sample is recorded as an error sample
        and the campaign carries on; it always completes its planned
        number of iterations.
        """
        iterations = self.iterations(duration_seconds)
        samples: List[MonitoringSample] = []
        logger.info(f"🚀 Starting monitoring for {namespace}/{app_name} ({duration_seconds}s, {iterations} samples)")

        for i in range(iterations):
            timestamp = _now()
            try:
                sample = await self.collect(app_name, namespace, timestamp)
                logger.info(f"Monitoring iteration {i + 1}/{iterations} completed")
            except Exception as e:
                logger.warning(f"⚠️ Monitoring iteration {i + 1}/{iterations} failed: {e}")
                sample = MonitoringSample(timestamp=timestamp, error=str(e) or e.__class__.__name__)
            samples.append(sample)

            if i < iterations - 1:
                await self._sleep(self.interval)

        return samples

    async def collect(self, app_name: str, namespace: str, timestamp: Optional[str] = None) -> MonitoringSample:
        deployment = await asyncio.to_thread(self.kube_client.get_deployment, app_name, namespace)
        pods = await asyncio.to_thread(self.kube_client.get_pods, namespace, f"app={app_name}")
        service = await self._service_metrics(app_name, namespace)
        address = await self.target.resolve(app_name, namespace)
        if address:
            health = await asyncio.to_thread(self.probe.check, address)
        else:
            health = {"status": "unknown", "message": "Service URL not available"}

        return MonitoringSample(
            timestamp=timestamp or _now(),
            deployment={
                "replicas": deployment.replicas,
                "ready_replicas": deployment.ready_replicas,
                "available_replicas": deployment.available_replicas,
                "unavailable_replicas": deployment.unavailable_replicas,
                "updated_replicas": deployment.updated_replicas,
                "conditions": deployment.conditions,
            },
            pods=pod_metrics(pods),
            service=service,
            health=health,
        )

    async def _service_metrics(self, app_name: str, namespace: str) -> Optional[Dict[str, Any]]:
        name = service_name(app_name)
        try:
            service = await asyncio.to_thread(self.kube_client.get_service, name, namespace)
        except Exception as e:
            if is_not_found(e):
                return None
            raise

        try:
            endpoints = await asyncio.to_thread(self.kube_client.get_endpoints, name, namespace)
            endpoint_metrics = {
                "ready_addresses": endpoints.ready_addresses,
                "not_ready_addresses": endpoints.not_ready_addresses,
            }
        except Exception as e:
            if not is_not_found(e):
                raise
            endpoint_metrics = None

        return {
            "type": service.type,
            "cluster_ip": service.cluster_ip,
            "ports": service.ports,
            "endpoints": endpoint_metrics,
        }
