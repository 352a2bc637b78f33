"""
Type definitions for Kubernetes objects and orchestrator records.
"""
import copy
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, Any, List, Optional
from datetime import datetime


DEPLOYMENT_ID_LABEL = "deployment-id"
MANAGED_BY_LABEL = "managed-by"


class ResourceKind(str, Enum):
    """Resource kinds the orchestrator applies, in apply order."""
    DEPLOYMENT = "Deployment"
    SERVICE = "Service"
    INGRESS = "Ingress"


class ApplyStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    EXISTS = "exists"
    ERROR = "error"


@dataclass(frozen=True)
class ResourceDescriptor:
    """A manifest to submit to the cluster."""
    kind: ResourceKind
    body: Dict[str, Any]

    @property
    def name(self) -> str:
        return (self.body.get("metadata") or {}).get("name", "")

    def with_labels(self, labels: Dict[str, str]) -> "ResourceDescriptor":
        """Return a copy whose metadata.labels include ``labels``."""
        body = copy.deepcopy(self.body)
        metadata = body.setdefault("metadata", {})
        metadata["labels"] = {**(metadata.get("labels") or {}), **labels}
        return ResourceDescriptor(kind=self.kind, body=body)


@dataclass(frozen=True)
class RolloutOutcome:
    """Result of applying one resource."""
    kind: ResourceKind
    name: str
    status: ApplyStatus

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": self.kind.value.lower(),
            "kind": self.kind.value,
            "name": self.name,
            "status": self.status.value,
        }


@dataclass
class Pod:
    """Kubernetes Pod representation."""
    name: str
    namespace: str
    status: str
    labels: Dict[str, str]
    creation_timestamp: Optional[datetime] = None
    ready: bool = False
    restarts: int = 0
    cpu_request: Optional[str] = None
    memory_request: Optional[str] = None
    cpu_limit: Optional[str] = None
    memory_limit: Optional[str] = None


@dataclass
class Deployment:
    """Kubernetes Deployment representation."""
    name: str
    namespace: str
    replicas: int
    ready_replicas: int
    labels: Dict[str, str]
    available_replicas: int = 0
    unavailable_replicas: int = 0
    updated_replicas: int = 0
    conditions: List[Dict[str, Any]] = field(default_factory=list)
    creation_timestamp: Optional[datetime] = None


@dataclass
class Service:
    """Kubernetes Service representation."""
    name: str
    namespace: str
    type: str
    cluster_ip: Optional[str]
    ports: List[int] = field(default_factory=list)
    external_hosts: List[str] = field(default_factory=list)


@dataclass
class Endpoints:
    """Ready / not-ready address counts behind a service."""
    ready_addresses: int
    not_ready_addresses: int


@dataclass
class Ingress:
    """Kubernetes Ingress representation."""
    name: str
    namespace: str
    hosts: List[str] = field(default_factory=list)
    tls: bool = False


@dataclass
class RolloutStatus:
    """Deployment rollout status."""
    deployment: str
    namespace: str
    status: str  # "ready", "pending"
    ready_replicas: int
    desired_replicas: int
    updated_replicas: int

    @property
    def converged(self) -> bool:
        return self.ready_replicas == self.desired_replicas and self.desired_replicas > 0


@dataclass
class MonitoringSample:
    """One point-in-time observation of a workload, or the error that prevented it."""
    timestamp: str
    deployment: Optional[Dict[str, Any]] = None
    pods: Optional[Dict[str, Any]] = None
    service: Optional[Dict[str, Any]] = None
    health: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"timestamp": self.timestamp, "error": self.error}
        data = asdict(self)
        data.pop("error")
        return data


@dataclass(frozen=True)
class MonitoringReport:
    """Aggregate verdict over a finished monitoring campaign."""
    overall_health: str  # "healthy", "warning", "unhealthy", "unknown"
    metrics: Dict[str, Any]
    alerts: List[str]
    recommendations: List[str]
