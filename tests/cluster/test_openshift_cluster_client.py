"""
Tests for the OpenshiftClusterClient
"""
# Standard
from unittest import mock

# Third Party
from kubernetes.client.exceptions import ApiException
from openshift.dynamic.exceptions import ResourceNotFoundError
from openshift.dynamic.resource import Resource
import pytest
import urllib3

# Local
from validation_reconciler.cluster import OpenshiftClusterClient, ResourceKind
from validation_reconciler.exceptions import ClusterError
from validation_reconciler.test_helpers.helpers import (
    CONFIG_MAP_KIND,
    TEST_NAMESPACE,
    make_object,
)

## Helpers #####################################################################


def make_resource(
    kind,
    group="",
    version="v1",
    namespaced=True,
    verbs=("get", "list", "watch"),
    name=None,
    preferred=True,
):
    return Resource(
        prefix="apis" if group else "api",
        group=group,
        api_version=version,
        kind=kind,
        namespaced=namespaced,
        verbs=list(verbs),
        name=name or f"{kind.lower()}s",
        preferred=preferred,
    )


def setup_client(resources=None, list_responses=None):
    """Set up a client with a mocked DynamicClient. The list responses are
    returned in order from the resource handle's get.
    """
    client = OpenshiftClusterClient(request_timeout=5)
    dynamic_client = mock.MagicMock()
    dynamic_client.resources.search.return_value = resources or []
    handle = mock.MagicMock()
    handle.get.side_effect = [
        mock.MagicMock(**{"to_dict.return_value": response})
        for response in (list_responses or [])
    ]
    dynamic_client.resources.get.return_value = handle
    client._client = dynamic_client
    return client, handle


## Discovery ###################################################################


def test_discover_filters_unlistable():
    """Make sure subresources, list kinds and kinds without list are dropped"""
    client, _ = setup_client(
        resources=[
            make_resource("ConfigMap"),
            make_resource("Pod", name="pods/log"),
            make_resource("ConfigMapList"),
            make_resource("TokenReview", verbs=["create"]),
            "not a resource",
        ]
    )
    assert client.discover_resources() == [CONFIG_MAP_KIND]
    client.client.resources.invalidate_cache.assert_called_once()


def test_discover_orders_preferred_first():
    """Make sure preferred versions come before other versions"""
    client, _ = setup_client(
        resources=[
            make_resource("HorizontalPodAutoscaler", "autoscaling", "v1", preferred=False),
            make_resource("HorizontalPodAutoscaler", "autoscaling", "v2"),
        ]
    )
    assert [kind.version for kind in client.discover_resources()] == ["v2", "v1"]


def test_discover_cluster_scoped():
    """Make sure the scope of a kind is carried through"""
    client, _ = setup_client(
        resources=[make_resource("StorageClass", "storage.k8s.io", namespaced=False)]
    )
    assert client.discover_resources() == [
        ResourceKind("storage.k8s.io", "v1", "StorageClass", False)
    ]


def test_discover_error():
    """Make sure a discovery failure is a ClusterError"""
    client, _ = setup_client()
    client.client.resources.search.side_effect = ApiException(status=500)
    with pytest.raises(ClusterError):
        client.discover_resources()


## Listing #####################################################################


def test_list_page_arguments():
    """Make sure the page size, continue token and timeout are sent"""
    client, handle = setup_client(
        list_responses=[
            {
                "items": [make_object(name="a")],
                "metadata": {"continue": "next-page"},
            }
        ]
    )
    page = client.list_page(
        CONFIG_MAP_KIND, namespace=TEST_NAMESPACE, limit=2, continue_token="abc"
    )
    handle.get.assert_called_once_with(
        _request_timeout=5, namespace=TEST_NAMESPACE, limit=2, _continue="abc"
    )
    assert page.continue_token == "next-page"
    assert page.items[0]["metadata"]["name"] == "a"


def test_list_page_fills_kind():
    """Make sure list items carry their apiVersion and kind"""
    client, _ = setup_client(
        list_responses=[{"items": [{"metadata": {"name": "a"}}], "metadata": {}}]
    )
    page = client.list_page(CONFIG_MAP_KIND, namespace=TEST_NAMESPACE)
    assert page.items[0]["kind"] == "ConfigMap"
    assert page.items[0]["apiVersion"] == "v1"
    assert page.continue_token == ""


def test_list_page_api_error():
    """Make sure a failed list is a ClusterError"""
    client, handle = setup_client()
    handle.get.side_effect = ApiException(status=503)
    with pytest.raises(ClusterError):
        client.list_page(CONFIG_MAP_KIND, namespace=TEST_NAMESPACE)


def test_list_page_transport_error():
    """Make sure a dropped connection during a list is a ClusterError"""
    client, handle = setup_client()
    handle.get.side_effect = urllib3.exceptions.ProtocolError("connection reset")
    with pytest.raises(ClusterError):
        client.list_page(CONFIG_MAP_KIND, namespace=TEST_NAMESPACE)


def test_list_page_unknown_kind():
    """Make sure a kind with no resource handle is a ClusterError"""
    client, _ = setup_client()
    client.client.resources.get.side_effect = ResourceNotFoundError("nope")
    with pytest.raises(ClusterError):
        client.list_page(CONFIG_MAP_KIND, namespace=TEST_NAMESPACE)


def test_list_namespaces_follows_pages():
    """Make sure all pages of namespaces are returned"""
    client, handle = setup_client(
        list_responses=[
            {"items": [{"metadata": {"name": "a"}}], "metadata": {"continue": "1"}},
            {"items": [{"metadata": {"name": "b"}}], "metadata": {}},
        ]
    )
    names = [ns["metadata"]["name"] for ns in client.list_namespaces()]
    assert names == ["a", "b"]
    assert handle.get.call_count == 2
