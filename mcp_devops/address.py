"""
Resolution of a reachable URL for a deployed workload.

Strategies are tried in order and the first one that yields a URL wins.
A strategy that fails to look up its resource simply yields nothing.
"""
import asyncio
import logging
from typing import List, Optional, Sequence

from mcp_devops.kube_client import KubeClient

logger = logging.getLogger(__name__)

DEFAULT_PORT = 80


def service_name(app_name: str) -> str:
    return f"{app_name}-service"


def ingress_name(app_name: str) -> str:
    return f"{app_name}-ingress"


class ResolverStrategy:
    """One tier of address resolution."""

    name = "base"

    async def resolve(self, app_name: str, namespace: str) -> Optional[str]:
        raise NotImplementedError


class IngressStrategy(ResolverStrategy):
    """First ingress host; https when the ingress declares TLS."""

    name = "ingress"

    def __init__(self, kube_client: KubeClient):
        self.kube_client = kube_client

    async def resolve(self, app_name: str, namespace: str) -> Optional[str]:
        try:
            ingress = await asyncio.to_thread(self.kube_client.get_ingress, ingress_name(app_name), namespace)
        except Exception as e:
            logger.debug(f"No ingress address for {app_name}: {e}")
            return None
        if not ingress.hosts:
            return None
        protocol = "https" if ingress.tls else "http"
        return f"{protocol}://{ingress.hosts[0]}"


class LoadBalancerStrategy(ResolverStrategy):
    """External hostname or IP of a LoadBalancer service."""

    name = "load_balancer"

    def __init__(self, kube_client: KubeClient):
        self.kube_client = kube_client

    async def resolve(self, app_name: str, namespace: str) -> Optional[str]:
        try:
            service = await asyncio.to_thread(self.kube_client.get_service, service_name(app_name), namespace)
        except Exception as e:
            logger.debug(f"No load balancer address for {app_name}: {e}")
            return None
        if service.type != "LoadBalancer" or not service.external_hosts:
            return None
        port = service.ports[0] if service.ports else DEFAULT_PORT
        return f"http://{service.external_hosts[0]}:{port}"


class ClusterIpStrategy(ResolverStrategy):
    """Cluster-internal IP of the service, unless it is headless."""

    name = "cluster_ip"

    def __init__(self, kube_client: KubeClient):
        self.kube_client = kube_client

    async def resolve(self, app_name: str, namespace: str) -> Optional[str]:
        try:
            service = await asyncio.to_thread(self.kube_client.get_service, service_name(app_name), namespace)
        except Exception as e:
            logger.debug(f"No cluster IP address for {app_name}: {e}")
            return None
        if not service.cluster_ip or service.cluster_ip == "None":
            return None
        port = service.ports[0] if service.ports else DEFAULT_PORT
        return f"http://{service.cluster_ip}:{port}"


class ClusterDnsStrategy(ResolverStrategy):
    """Synthesized cluster-local DNS name; always succeeds."""

    name = "cluster_dns"

    async def resolve(self, app_name: str, namespace: str) -> Optional[str]:
        return f"http://{service_name(app_name)}.{namespace}.svc.cluster.local"


class AddressResolver:
    """Tries each strategy in order and returns the first URL found."""

    def __init__(self, strategies: Sequence[ResolverStrategy]):
        self.strategies: List[ResolverStrategy] = list(strategies)
        self._fallback = ClusterDnsStrategy()

    @classmethod
    def default(cls, kube_client: KubeClient) -> "AddressResolver":
        return cls([
            IngressStrategy(kube_client),
            LoadBalancerStrategy(kube_client),
            ClusterIpStrategy(kube_client),
            ClusterDnsStrategy(),
        ])

    async def resolve(self, app_name: str, namespace: str) -> str:
        for strategy in self.strategies:
            url = await strategy.resolve(app_name, namespace)
            if url:
                logger.info(f"Resolved {namespace}/{app_name} to {url} via {strategy.name}")
                return url
        return await self._fallback.resolve(app_name, namespace)
