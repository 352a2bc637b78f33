import pytest
from kubernetes.client.rest import ApiException

from fake_kube import FakeKube, conflict
from mcp_devops.namespaces import NamespaceProvisioner

pytestmark = pytest.mark.anyio


async def test_missing_namespace_is_created_with_labels(kube: FakeKube):
    provisioner = NamespaceProvisioner(kube, "mcp-devops-server")

    created = await provisioner.ensure("staging")

    assert created is True
    assert kube.namespaces["staging"] == {"name": "staging", "managed-by": "mcp-devops-server"}


async def test_existing_namespace_is_not_recreated(kube: FakeKube):
    kube.namespaces["staging"] = {}
    provisioner = NamespaceProvisioner(kube, "mcp-devops-server")

    assert await provisioner.ensure("staging") is False
    assert await provisioner.ensure("staging") is False
    assert [call[0] for call in kube.calls] == ["read_namespace", "read_namespace"]


async def test_read_errors_other_than_not_found_propagate(kube: FakeKube):
    kube.failures["read_namespace"] = ApiException(status=403, reason="Forbidden")
    provisioner = NamespaceProvisioner(kube, "mcp-devops-server")

    with pytest.raises(ApiException) as excinfo:
        await provisioner.ensure("staging")

    assert excinfo.value.status == 403
    assert "staging" not in kube.namespaces


async def test_concurrent_creation_counts_as_existing(kube: FakeKube):
    kube.failures["create_namespace"] = conflict()
    provisioner = NamespaceProvisioner(kube, "mcp-devops-server")

    assert await provisioner.ensure("staging") is False
