"""
Exceptions raised by the deployment orchestrator.

Cluster API failures that are not handled locally propagate as
``kubernetes.client.rest.ApiException`` unchanged; the classes below cover
the conditions the orchestrator itself detects.
"""
from typing import Optional


class OrchestratorError(Exception):
    """Base class for orchestrator failures."""


class ClusterUnavailableError(OrchestratorError):
    """Cluster access was requested but the client never initialized."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Kubernetes cluster access unavailable: {reason}")


class ConvergenceTimeoutError(OrchestratorError):
    """A deployment did not become ready before its deadline."""

    def __init__(self, deployment: str, namespace: str, elapsed: float, timeout: float):
        self.deployment = deployment
        self.namespace = namespace
        self.elapsed = elapsed
        self.timeout = timeout
        super().__init__(
            f"Deployment {namespace}/{deployment} did not become ready within "
            f"{timeout:g}s (waited {elapsed:.1f}s)"
        )


class DeploymentNotFoundError(OrchestratorError):
    """No deployment carries the requested correlation identifier."""

    def __init__(self, deployment_id: str, namespace: str):
        self.deployment_id = deployment_id
        self.namespace = namespace
        super().__init__(f"No deployment found with ID {deployment_id} in namespace {namespace}")


class RollbackError(OrchestratorError):
    """A rollback could not be issued for an existing deployment."""

    def __init__(self, deployment: str, namespace: str, message: str, deployment_id: Optional[str] = None):
        self.deployment = deployment
        self.namespace = namespace
        self.deployment_id = deployment_id
        self.detail = message
        suffix = f" (deployment ID {deployment_id})" if deployment_id else ""
        super().__init__(f"Rollback of deployment {namespace}/{deployment}{suffix} failed: {message}")


class QuantityParseError(ValueError):
    """A resource quantity string could not be parsed."""
