"""
Kubernetes client for orchestrator operations.
"""
import logging
from typing import List, Optional, Dict, Any, Iterable
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from mcp_devops.errors import ClusterUnavailableError, RollbackError
from mcp_devops.kube_types import (
    Deployment,
    Endpoints,
    Ingress,
    Pod,
    ResourceDescriptor,
    ResourceKind,
    RolloutStatus,
    Service,
)

logger = logging.getLogger(__name__)

REVISION_ANNOTATION = "deployment.kubernetes.io/revision"


def is_not_found(error: Exception) -> bool:
    return isinstance(error, ApiException) and error.status == 404


def is_conflict(error: Exception) -> bool:
    return isinstance(error, ApiException) and error.status == 409


def select_rollback_revision(revisions: Iterable[int], current: int, to_revision: int = 0) -> Optional[int]:
    """
    Pick the revision a rollback should restore.

    With ``to_revision`` 0 this is the newest revision other than the
    current one, as ``kubectl rollout undo`` does.
    """
    known = set(revisions)
    if to_revision:
        return to_revision if to_revision in known else None
    previous = [revision for revision in known if revision != current]
    return max(previous) if previous else None


def _revision(annotations: Optional[Dict[str, str]]) -> int:
    try:
        return int((annotations or {}).get(REVISION_ANNOTATION, 0))
    except (TypeError, ValueError):
        return 0


class KubeClient:
    """Kubernetes client for orchestrator operations.

    A client is either available or carries the reason it is not; every
    cluster call checks this first and raises ``ClusterUnavailableError``.
    """

    def __init__(
        self,
        core_v1: Optional[client.CoreV1Api] = None,
        apps_v1: Optional[client.AppsV1Api] = None,
        networking_v1: Optional[client.NetworkingV1Api] = None,
        api_client: Optional[client.ApiClient] = None,
        unavailable_reason: Optional[str] = None,
    ):
        self.v1 = core_v1
        self.apps_v1 = apps_v1
        self.networking_v1 = networking_v1
        self.api_client = api_client
        self.unavailable_reason = unavailable_reason

    @classmethod
    def connect(cls, in_cluster: bool = False, context: str | None = None) -> "KubeClient":
        """
        Load cluster configuration and build the API handles.

        Args:
            in_cluster: Whether running inside cluster
            context: Kubernetes context name (optional)

        Returns:
            A KubeClient; check ``available`` before relying on it
        """
        try:
            if in_cluster:
                config.load_incluster_config()
            elif context:
                config.load_kube_config(context=context)
            else:
                config.load_kube_config()

            api_client = client.ApiClient()
            kube = cls(
                core_v1=client.CoreV1Api(api_client),
                apps_v1=client.AppsV1Api(api_client),
                networking_v1=client.NetworkingV1Api(api_client),
                api_client=api_client,
            )
            logger.info("✅ Kubernetes client initialized")
            return kube

        except Exception as e:
            logger.warning(f"⚠️ Kubernetes client initialization failed: {e}. Cluster operations are disabled.")
            return cls(unavailable_reason=str(e) or e.__class__.__name__)

    @property
    def available(self) -> bool:
        return self.unavailable_reason is None

    def _require(self) -> None:
        if not self.available:
            raise ClusterUnavailableError(self.unavailable_reason)

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------
    def read_namespace(self, name: str) -> None:
        self._require()
        self.v1.read_namespace(name=name)

    def create_namespace(self, name: str, labels: Dict[str, str]) -> None:
        self._require()
        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=name, labels=labels))
        self.v1.create_namespace(body=body)

    # ------------------------------------------------------------------
    # Generic apply primitives
    # ------------------------------------------------------------------
    def create_resource(self, descriptor: ResourceDescriptor, namespace: str) -> None:
        """Create a Deployment, Service or Ingress from its manifest."""
        self._require()
        if descriptor.kind is ResourceKind.DEPLOYMENT:
            self.apps_v1.create_namespaced_deployment(namespace=namespace, body=descriptor.body)
        elif descriptor.kind is ResourceKind.SERVICE:
            self.v1.create_namespaced_service(namespace=namespace, body=descriptor.body)
        elif descriptor.kind is ResourceKind.INGRESS:
            self.networking_v1.create_namespaced_ingress(namespace=namespace, body=descriptor.body)
        else:
            raise ValueError(f"Unsupported resource kind: {descriptor.kind}")

    def replace_resource(self, descriptor: ResourceDescriptor, namespace: str) -> None:
        """Overwrite an existing Deployment or Ingress with its manifest."""
        self._require()
        if descriptor.kind is ResourceKind.DEPLOYMENT:
            self.apps_v1.replace_namespaced_deployment(
                name=descriptor.name, namespace=namespace, body=descriptor.body
            )
        elif descriptor.kind is ResourceKind.INGRESS:
            self.networking_v1.replace_namespaced_ingress(
                name=descriptor.name, namespace=namespace, body=descriptor.body
            )
        else:
            raise ValueError(f"Replace is not supported for {descriptor.kind.value}")

    # ------------------------------------------------------------------
    # Deployments
    # ------------------------------------------------------------------
    def get_deployment(self, name: str, namespace: str) -> Deployment:
        self._require()
        deployment_obj = self.apps_v1.read_namespaced_deployment(name=name, namespace=namespace)
        return self._to_deployment(deployment_obj)

    def list_deployments(self, namespace: str, label_selector: str | None = None) -> List[Deployment]:
        """
        List deployments in a namespace.

        Args:
            namespace: Target namespace
            label_selector: Optional label selector for filtering

        Returns:
            List of Deployment objects
        """
        self._require()
        deployments = self.apps_v1.list_namespaced_deployment(
            namespace=namespace,
            label_selector=label_selector
        )
        return [self._to_deployment(item) for item in deployments.items]

    def rollout_status(self, deployment: str, namespace: str) -> RolloutStatus:
        """
        Check deployment rollout status.

        Args:
            deployment: Deployment name
            namespace: Deployment namespace

        Returns:
            RolloutStatus object
        """
        current = self.get_deployment(deployment, namespace)

        ready_replicas = current.ready_replicas
        desired_replicas = current.replicas

        status = "ready" if ready_replicas == desired_replicas and desired_replicas > 0 else "pending"

        return RolloutStatus(
            deployment=deployment,
            namespace=namespace,
            status=status,
            ready_replicas=ready_replicas,
            desired_replicas=desired_replicas,
            updated_replicas=current.updated_replicas
        )

    def rollback_deployment(self, name: str, namespace: str, to_revision: int = 0) -> int:
        """
        Roll a deployment back to an earlier revision.

        The pod template of the ReplicaSet recorded for the target revision
        replaces the deployment's current template.

        Args:
            name: Deployment name
            namespace: Deployment namespace
            to_revision: Revision to restore; 0 means the previous one

        Returns:
            The revision number that was restored
        """
        self._require()
        deployment_obj = self.apps_v1.read_namespaced_deployment(name=name, namespace=namespace)

        selector = deployment_obj.spec.selector
        match_labels = (selector.match_labels if selector else None) or {}
        label_selector = ",".join(f"{key}={value}" for key, value in sorted(match_labels.items()))
        replicasets = self.apps_v1.list_namespaced_replica_set(
            namespace=namespace,
            label_selector=label_selector or None
        )

        history = {}
        for replicaset in replicasets.items:
            owners = replicaset.metadata.owner_references or []
            if not any(owner.uid == deployment_obj.metadata.uid for owner in owners):
                continue
            revision = _revision(replicaset.metadata.annotations)
            if revision:
                history[revision] = replicaset

        current = _revision(deployment_obj.metadata.annotations)
        target = select_rollback_revision(history.keys(), current, to_revision)
        if target is None:
            wanted = f"revision {to_revision}" if to_revision else "a previous revision"
            raise RollbackError(name, namespace, f"{wanted} is not in the rollout history")

        template = self.api_client.sanitize_for_serialization(history[target].spec.template)
        labels = (template.get("metadata") or {}).get("labels") or {}
        labels.pop("pod-template-hash", None)

        patch = [{"op": "replace", "path": "/spec/template", "value": template}]
        self.apps_v1.patch_namespaced_deployment(name=name, namespace=namespace, body=patch)

        logger.info(f"✅ Rolled back deployment {namespace}/{name} from revision {current} to {target}")
        return target

    # ------------------------------------------------------------------
    # Pods, services, ingresses
    # ------------------------------------------------------------------
    def get_pods(self, namespace: str, label_selector: str | None = None) -> List[Pod]:
        """
        Get pods in the namespace.

        Args:
            namespace: Target namespace
            label_selector: Optional label selector for filtering

        Returns:
            List of Pod objects
        """
        self._require()
        pods = self.v1.list_namespaced_pod(
            namespace=namespace,
            label_selector=label_selector
        )

        pod_list = []
        for pod in pods.items:
            status = pod.status
            conditions = (status.conditions if status else None) or []
            container_statuses = (status.container_statuses if status else None) or []
            containers = (pod.spec.containers if pod.spec else None) or []
            resources = containers[0].resources if containers else None
            requests = (resources.requests if resources else None) or {}
            limits = (resources.limits if resources else None) or {}

            pod_list.append(Pod(
                name=pod.metadata.name,
                namespace=pod.metadata.namespace,
                status=(status.phase if status else None) or "Unknown",
                labels=pod.metadata.labels or {},
                creation_timestamp=pod.metadata.creation_timestamp,
                ready=any(c.type == "Ready" and c.status == "True" for c in conditions),
                restarts=sum(c.restart_count or 0 for c in container_statuses),
                cpu_request=requests.get("cpu"),
                memory_request=requests.get("memory"),
                cpu_limit=limits.get("cpu"),
                memory_limit=limits.get("memory"),
            ))

        logger.debug(f"Retrieved {len(pod_list)} pods from namespace {namespace}")
        return pod_list

    def get_service(self, name: str, namespace: str) -> Service:
        self._require()
        service = self.v1.read_namespaced_service(name=name, namespace=namespace)
        spec = service.spec
        lb_status = service.status.load_balancer if service.status else None
        lb_ingress = (lb_status.ingress if lb_status else None) or []
        return Service(
            name=service.metadata.name,
            namespace=service.metadata.namespace or namespace,
            type=(spec.type if spec else None) or "ClusterIP",
            cluster_ip=spec.cluster_ip if spec else None,
            ports=[port.port for port in (spec.ports or [])] if spec else [],
            external_hosts=[entry.hostname or entry.ip for entry in lb_ingress if entry.hostname or entry.ip],
        )

    def get_endpoints(self, name: str, namespace: str) -> Endpoints:
        self._require()
        endpoints = self.v1.read_namespaced_endpoints(name=name, namespace=namespace)
        subsets = endpoints.subsets or []
        first = subsets[0] if subsets else None
        return Endpoints(
            ready_addresses=len((first.addresses if first else None) or []),
            not_ready_addresses=len((first.not_ready_addresses if first else None) or []),
        )

    def get_ingress(self, name: str, namespace: str) -> Ingress:
        self._require()
        ingress = self.networking_v1.read_namespaced_ingress(name=name, namespace=namespace)
        spec = ingress.spec
        rules = (spec.rules if spec else None) or []
        return Ingress(
            name=ingress.metadata.name,
            namespace=ingress.metadata.namespace or namespace,
            hosts=[rule.host for rule in rules if rule.host],
            tls=bool(spec.tls) if spec else False,
        )

    @staticmethod
    def _to_deployment(deployment_obj: Any) -> Deployment:
        spec = deployment_obj.spec
        status = deployment_obj.status
        conditions = (status.conditions if status else None) or []
        return Deployment(
            name=deployment_obj.metadata.name,
            namespace=deployment_obj.metadata.namespace,
            replicas=(spec.replicas if spec else None) or 0,
            ready_replicas=(status.ready_replicas if status else None) or 0,
            labels=deployment_obj.metadata.labels or {},
            available_replicas=(status.available_replicas if status else None) or 0,
            unavailable_replicas=(status.unavailable_replicas if status else None) or 0,
            updated_replicas=(status.updated_replicas if status else None) or 0,
            conditions=[
                {"type": c.type, "status": c.status, "reason": c.reason, "message": c.message}
                for c in conditions
            ],
            creation_timestamp=deployment_obj.metadata.creation_timestamp,
        )
