"""
Tests for the TypeScheme
"""

# Standard
import json

# Third Party
import kubernetes
import pytest

# Local
from validation_reconciler.cluster_object import ClusterObject
from validation_reconciler.exceptions import TypeConversionError, TypeLookupError
from validation_reconciler.scheme import KubeModelConstructor, TypeScheme
from validation_reconciler.test_helpers.helpers import make_object

##############
## Registry ##
##############


def test_explicit_registration():
    """Make sure an explicitly registered constructor is used"""
    scheme = TypeScheme(use_kube_models=False)
    scheme.register("foo.bar.com", "v1", "Widget", dict)
    assert scheme.is_registered("foo.bar.com", "v1", "Widget")
    assert scheme.resolve("foo.bar.com", "v1", "Widget") is dict


def test_unregistered_kind():
    """Make sure an unknown kind raises a TypeLookupError"""
    scheme = TypeScheme()
    assert not scheme.is_registered("foo.bar.com", "v1", "Widget")
    with pytest.raises(TypeLookupError):
        scheme.resolve("foo.bar.com", "v1", "Widget")


def test_kube_models_disabled():
    """Make sure built in models are not used when disabled"""
    assert not TypeScheme(use_kube_models=False).is_registered("", "v1", "ConfigMap")


def test_kube_model_resolution():
    """Make sure built in kinds resolve to the kubernetes client models"""
    scheme = TypeScheme()
    constructor = scheme.resolve("apps", "v1", "Deployment")
    assert isinstance(constructor, KubeModelConstructor)
    assert constructor.model_name == "V1Deployment"
    assert scheme.resolve("", "v1", "ConfigMap").model_name == "V1ConfigMap"


def test_model_candidates():
    """Make sure group prefixed model names are considered"""
    assert TypeScheme._model_candidates("", "v1", "Event") == [
        "V1Event",
        "CoreV1Event",
    ]
    assert TypeScheme._model_candidates("events.k8s.io", "v1", "Event") == [
        "V1Event",
        "EventsV1Event",
    ]


################
## Conversion ##
################


def test_to_typed_kube_model():
    """Make sure an object converts to its kubernetes client model"""
    obj = ClusterObject(
        make_object(name="foo", resource_version="3", data={"key": "value"})
    )
    typed = TypeScheme().to_typed(obj)
    assert isinstance(typed, kubernetes.client.V1ConfigMap)
    assert typed.metadata.name == "foo"
    assert typed.metadata.resource_version == "3"
    assert typed.data == {"key": "value"}


def test_to_typed_lookup_error():
    """Make sure conversion of an unknown kind raises a TypeLookupError"""
    obj = ClusterObject(make_object(kind="Widget", api_version="foo.bar.com/v1"))
    with pytest.raises(TypeLookupError, match="looking up object type"):
        TypeScheme().to_typed(obj)


def test_to_typed_conversion_error():
    """Make sure a payload that does not fit the model raises a
    TypeConversionError
    """
    obj = ClusterObject(
        make_object(
            kind="Deployment",
            api_version="apps/v1",
            spec={"template": {}},
        )
    )
    with pytest.raises(TypeConversionError):
        TypeScheme().to_typed(obj)


def test_to_typed_constructor_error():
    """Make sure errors from a registered constructor are wrapped"""

    def bad_constructor(definition):
        raise ValueError(f"Can't build {definition['kind']}")

    scheme = TypeScheme(use_kube_models=False)
    scheme.register("", "v1", "ConfigMap", bad_constructor)
    with pytest.raises(TypeConversionError, match="Can't build ConfigMap"):
        scheme.to_typed(ClusterObject(make_object()))


def test_to_typed_empty_result():
    """Make sure a constructor returning nothing is a conversion error"""
    scheme = TypeScheme(use_kube_models=False)
    scheme.register("", "v1", "ConfigMap", lambda _: None)
    with pytest.raises(TypeConversionError):
        scheme.to_typed(ClusterObject(make_object()))


def test_to_typed_unexpected_constructor_error():
    """Make sure any error type from a registered constructor is wrapped"""

    def broken_constructor(_):
        raise RuntimeError("boom")

    scheme = TypeScheme(use_kube_models=False)
    scheme.register("", "v1", "ConfigMap", broken_constructor)
    with pytest.raises(TypeConversionError, match="boom"):
        scheme.to_typed(ClusterObject(make_object()))


##########################
## KubeModelConstructor ##
##########################


class ContentTypeApiClient:
    """Client whose deserialize takes the body text and its content type"""

    def __init__(self):
        self.calls = []

    def deserialize(self, response_text, response_type, content_type):
        self.calls.append((json.loads(response_text), response_type, content_type))
        return "typed"


class ResponseApiClient:
    """Client whose deserialize reads the body from a response object"""

    def __init__(self):
        self.calls = []

    def deserialize(self, response, response_type):
        self.calls.append((json.loads(response.data), response_type))
        return "typed"


def test_kube_model_constructor_content_type_client():
    """Make sure the body text and content type are passed when the client
    takes a content type
    """
    api_client = ContentTypeApiClient()
    definition = make_object(name="foo")
    constructor = KubeModelConstructor("V1ConfigMap", api_client)
    assert constructor(definition) == "typed"
    assert api_client.calls == [(definition, "V1ConfigMap", "application/json")]


def test_kube_model_constructor_response_client():
    """Make sure a response object is passed when the client reads the body
    from one
    """
    api_client = ResponseApiClient()
    definition = make_object(name="foo")
    constructor = KubeModelConstructor("V1ConfigMap", api_client)
    assert constructor(definition) == "typed"
    assert api_client.calls == [(definition, "V1ConfigMap")]


def test_kube_model_constructor_installed_client():
    """Make sure the installed kubernetes client builds a model"""
    constructor = KubeModelConstructor("V1Namespace", kubernetes.client.ApiClient())
    typed = constructor(
        {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {"name": "test", "uid": "test-uid"},
            "status": {"phase": "Active"},
        }
    )
    assert isinstance(typed, kubernetes.client.V1Namespace)
    assert typed.metadata.uid == "test-uid"
    assert typed.status.phase == "Active"
