from datetime import datetime, timezone

import pytest

from fake_kube import FakeKube
from mcp_devops.errors import DeploymentNotFoundError, RollbackError
from mcp_devops.kube_types import Deployment
from mcp_devops.rollback import RollbackController, find_deployment, pick_deployment

pytestmark = pytest.mark.anyio


def _deployment(name: str, deployment_id: str, created: datetime = None, namespace: str = "staging") -> Deployment:
    return Deployment(
        name=name,
        namespace=namespace,
        replicas=2,
        ready_replicas=2,
        labels={"app": name, "deployment-id": deployment_id},
        creation_timestamp=created,
    )


async def test_rollback_without_match_fails_and_mutates_nothing(kube: FakeKube):
    kube.add_deployment(_deployment("acme-web", "other-id"))

    with pytest.raises(DeploymentNotFoundError) as excinfo:
        await RollbackController(kube).rollback("missing-id", "staging")

    assert "missing-id" in str(excinfo.value)
    assert kube.rollbacks == []
    assert [call[0] for call in kube.calls] == ["list_deployments"]


async def test_rollback_targets_the_labelled_deployment(kube: FakeKube):
    kube.add_deployment(_deployment("acme-web", "id-1"))
    kube.add_deployment(_deployment("acme-api", "id-2"))
    kube.rollback_revision = 3

    result = await RollbackController(kube).rollback("id-1", "staging")

    assert kube.rollbacks == [("staging", "acme-web")]
    assert result["status"] == "success"
    assert result["message"] == "Deployment acme-web rolled back successfully"
    assert result["revision"] == 3


async def test_lookup_is_scoped_to_the_namespace(kube: FakeKube):
    kube.add_deployment(_deployment("acme-web", "id-1", namespace="production"))

    with pytest.raises(DeploymentNotFoundError):
        await find_deployment(kube, "id-1", "staging")


async def test_ambiguous_match_uses_newest_deployment(kube: FakeKube):
    older = datetime(2026, 1, 1, tzinfo=timezone.utc)
    newer = datetime(2026, 2, 1, tzinfo=timezone.utc)
    kube.add_deployment(_deployment("acme-web-old", "id-1", older))
    kube.add_deployment(_deployment("acme-web-new", "id-1", newer))

    deployment = await find_deployment(kube, "id-1", "staging")

    assert deployment.name == "acme-web-new"


def test_pick_deployment_breaks_timestamp_ties_by_name():
    same = datetime(2026, 1, 1, tzinfo=timezone.utc)
    matches = [_deployment("b", "id", same), _deployment("a", "id", same), _deployment("c", "id")]

    assert pick_deployment(matches).name == "a"


async def test_missing_revision_history_names_the_correlation_id(kube: FakeKube):
    kube.add_deployment(_deployment("acme-web", "id-1"))
    kube.failures["rollback_deployment"] = RollbackError("acme-web", "staging", "a previous revision is not in the rollout history")

    with pytest.raises(RollbackError) as excinfo:
        await RollbackController(kube).rollback("id-1", "staging")

    assert excinfo.value.deployment_id == "id-1"
    assert "id-1" in str(excinfo.value)
    assert str(excinfo.value).count("Rollback of deployment") == 1
