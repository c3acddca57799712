"""
Tests for the DryRunClusterClient
"""

# Standard
import os
import tempfile

# Third Party
import yaml

# Local
from validation_reconciler.cluster import DryRunClusterClient, ResourceKind
from validation_reconciler.test_helpers.helpers import (
    CLUSTER_ROLE_KIND,
    CONFIG_MAP_KIND,
    SOME_OTHER_NAMESPACE,
    TEST_NAMESPACE,
    make_namespace,
    make_object,
)

## Helpers #####################################################################


def list_all(client, resource, namespace=None, limit=None):
    """Follow continue tokens and collect every page"""
    pages = []
    token = None
    while True:
        page = client.list_page(
            resource, namespace=namespace, limit=limit, continue_token=token
        )
        pages.append(page)
        if not page.continue_token:
            return pages
        token = page.continue_token


## Discovery ###################################################################


def test_discover_includes_namespaces():
    """Make sure namespaces are always served"""
    kinds = DryRunClusterClient().discover_resources()
    assert [kind.kind for kind in kinds] == ["Namespace"]
    assert not kinds[0].namespaced


def test_discover_kinds_of_deployed_objects():
    """Make sure deployed objects register their kinds"""
    client = DryRunClusterClient(
        resources=[
            make_object(name="cm"),
            make_object(
                kind="ClusterRole",
                api_version="rbac.authorization.k8s.io/v1",
                name="reader",
                namespace=None,
            ),
        ]
    )
    kinds = client.discover_resources()
    assert CONFIG_MAP_KIND in kinds
    assert CLUSTER_ROLE_KIND in kinds


def test_discover_registered_kinds():
    """Make sure explicitly registered kinds are served with no objects"""
    widget = ResourceKind("foo.bar.com", "v1", "Widget", True)
    client = DryRunClusterClient(resource_kinds=[widget])
    assert widget in client.discover_resources()


## Listing #####################################################################


def test_list_page_namespaced():
    """Make sure listing in a namespace only returns that namespace"""
    client = DryRunClusterClient(
        resources=[
            make_object(name="a"),
            make_object(name="b", namespace=SOME_OTHER_NAMESPACE),
        ]
    )
    page = client.list_page(CONFIG_MAP_KIND, namespace=TEST_NAMESPACE)
    assert [item["metadata"]["name"] for item in page.items] == ["a"]
    assert page.continue_token == ""


def test_list_page_pagination():
    """Make sure pages respect the limit and chain via continue tokens"""
    client = DryRunClusterClient(
        resources=[make_object(name=f"obj-{i}") for i in range(5)]
    )
    pages = list_all(client, CONFIG_MAP_KIND, TEST_NAMESPACE, limit=2)
    assert [len(page.items) for page in pages] == [2, 2, 1]
    names = [item["metadata"]["name"] for page in pages for item in page.items]
    assert names == [f"obj-{i}" for i in range(5)]


def test_list_page_returns_copies():
    """Make sure mutating a listed object does not change the cluster"""
    client = DryRunClusterClient(resources=[make_object(name="a")])
    page = client.list_page(CONFIG_MAP_KIND, namespace=TEST_NAMESPACE)
    page.items[0]["metadata"]["name"] = "changed"
    assert client.get_object("v1", "ConfigMap", "a", TEST_NAMESPACE) is not None


def test_list_namespaces():
    """Make sure namespaces are listed"""
    client = DryRunClusterClient(
        resources=[make_namespace(TEST_NAMESPACE), make_namespace(SOME_OTHER_NAMESPACE)]
    )
    names = {ns["metadata"]["name"] for ns in client.list_namespaces()}
    assert names == {TEST_NAMESPACE, SOME_OTHER_NAMESPACE}


## Mutation ####################################################################


def test_deploy_bumps_resource_version():
    """Make sure every write bumps the revision and keeps the uid"""
    client = DryRunClusterClient()
    assert client.deploy([make_object(name="a")])
    first = client.get_object("v1", "ConfigMap", "a", TEST_NAMESPACE)
    client.deploy([make_object(name="a", data={"k": "v"})])
    second = client.get_object("v1", "ConfigMap", "a", TEST_NAMESPACE)
    assert first["metadata"]["uid"]
    assert first["metadata"]["uid"] == second["metadata"]["uid"]
    assert int(second["metadata"]["resourceVersion"]) > int(
        first["metadata"]["resourceVersion"]
    )


def test_delete():
    """Make sure objects can be deleted"""
    client = DryRunClusterClient(resources=[make_object(name="a")])
    assert client.delete([make_object(name="a")])
    assert not client.delete([make_object(name="a")])
    assert client.get_object("v1", "ConfigMap", "a", TEST_NAMESPACE) is None


def test_from_resource_dir():
    """Make sure objects are read from the yaml files in a directory"""
    with tempfile.TemporaryDirectory() as workdir:
        with open(os.path.join(workdir, "objs.yaml"), "w", encoding="utf-8") as handle:
            yaml.safe_dump_all([make_object(name="a"), make_object(name="b")], handle)
        with open(os.path.join(workdir, "ignored.txt"), "w", encoding="utf-8") as handle:
            handle.write("not yaml")
        client = DryRunClusterClient.from_resource_dir(workdir)
    page = client.list_page(CONFIG_MAP_KIND, namespace=TEST_NAMESPACE)
    assert len(page.items) == 2
