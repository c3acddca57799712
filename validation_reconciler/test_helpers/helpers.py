"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional
from unittest import mock
import inspect
import os

# First Party
import alog

# Local
from validation_reconciler.cluster import DryRunClusterClient, ResourceKind
from validation_reconciler.config import library_config as config_detail_dict
from validation_reconciler.engine import ReconciliationEngine
from validation_reconciler.evaluation import EvaluationRequest, EvaluatorBase
from validation_reconciler.namespace_scope import ClusterNamespaceScope
from validation_reconciler.scheme import TypeScheme

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_NAMESPACE = "test"
SOME_OTHER_NAMESPACE = "somewhere"
TEST_NAMESPACE_UID = "12345678-1234-1234-1234-123456789012"
SOME_OTHER_NAMESPACE_UID = "87654321-4321-4321-4321-210987654321"

## Kinds used across the tests
CONFIG_MAP_KIND = ResourceKind(group="", version="v1", kind="ConfigMap", namespaced=True)
SERVICE_KIND = ResourceKind(group="", version="v1", kind="Service", namespaced=True)
DEPLOYMENT_KIND = ResourceKind(
    group="apps", version="v1", kind="Deployment", namespaced=True
)
PDB_KIND = ResourceKind(
    group="policy", version="v1", kind="PodDisruptionBudget", namespaced=True
)
CLUSTER_ROLE_KIND = ResourceKind(
    group="rbac.authorization.k8s.io",
    version="v1",
    kind="ClusterRole",
    namespaced=False,
)
STORAGE_CLASS_KIND = ResourceKind(
    group="storage.k8s.io", version="v1", kind="StorageClass", namespaced=False
)
ALL_TEST_KINDS = [
    CONFIG_MAP_KIND,
    SERVICE_KIND,
    DEPLOYMENT_KIND,
    PDB_KIND,
    CLUSTER_ROLE_KIND,
    STORAGE_CLASS_KIND,
]


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion
    """
    # Override the configs and hang onto the old values
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
        config_detail_dict[key] = val

    # Yield to the context
    try:
        yield
    finally:
        # Revert to the old values
        for key in config_overrides:
            if key in old_vals:
                config_detail_dict[key] = old_vals[key]
            else:
                del config_detail_dict[key]


def get_failable_method(fail_flag, method, failure_return=None):
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if callable(fail_flag):
            log.debug4("Calling callable fail flag")
            res = fail_flag(*args, **kwargs)
            if res is not None:
                return res
        elif fail_flag:
            log.debug4("Returning %s", failure_return)
            return failure_return
        return method(*args, **kwargs)

    return failable_method


class FailOnce:
    """Helper callable that will fail once on the N'th call"""

    def __init__(self, fail_val, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            if isinstance(self.fail_val, type) and issubclass(self.fail_val, Exception):
                raise self.fail_val("Raising!")
            return self.fail_val
        log.debug("Not failing on call %d", self.call_count)
        return None


class FailForKinds:
    """Helper callable for list_page that raises for the given kinds only"""

    def __init__(self, fail_val, kinds: Iterable[str], fail_count: Optional[int] = None):
        self.fail_val = fail_val
        self.kinds = set(kinds)
        self.fail_count = fail_count
        self.failures = 0

    def __call__(self, resource, *_, **__):
        if resource.kind not in self.kinds:
            return None
        if self.fail_count is not None and self.failures >= self.fail_count:
            return None
        self.failures += 1
        raise self.fail_val(f"Failing list of {resource.kind}")


## Object factories ############################################################


def make_object(
    kind: str = "ConfigMap",
    name: str = "test-obj",
    namespace: Optional[str] = TEST_NAMESPACE,
    api_version: str = "v1",
    app_label: Optional[str] = None,
    selector_app_label: Optional[str] = None,
    resource_version: Optional[str] = None,
    uid: Optional[str] = None,
    **kwargs,
) -> dict:
    """Make the dict form of an object as it would be listed from the cluster"""
    obj = {"apiVersion": api_version, "kind": kind, "metadata": {"name": name}}
    obj.update(kwargs)
    metadata = obj["metadata"]
    if namespace is not None:
        metadata["namespace"] = namespace
    if app_label is not None:
        metadata["labels"] = {"app": app_label}
    if selector_app_label is not None:
        obj.setdefault("spec", {})["selector"] = {
            "matchLabels": {"app": selector_app_label}
        }
    if resource_version is not None:
        metadata["resourceVersion"] = resource_version
    if uid is not None:
        metadata["uid"] = uid
    return obj


def make_namespace(name: str, uid: Optional[str] = None, phase: str = "Active") -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": name, "uid": uid or f"{name}-uid"},
        "status": {"phase": phase},
    }


def make_scheme(kinds: Iterable[ResourceKind] = None) -> TypeScheme:
    """Make a scheme where every given kind converts to a plain dict copy"""
    scheme = TypeScheme(use_kube_models=False)
    for resource_kind in kinds if kinds is not None else ALL_TEST_KINDS:
        scheme.register(
            resource_kind.group, resource_kind.version, resource_kind.kind, dict
        )
    return scheme


## Mocks #######################################################################


def typed_object_name(typed_object: Any) -> str:
    """Read the name from a dict or from a kubernetes client model"""
    if isinstance(typed_object, dict):
        return typed_object["metadata"]["name"]
    return typed_object.metadata.name


class RecordingEvaluator(EvaluatorBase):
    """Evaluator that records every call and returns configurable outcomes"""

    def __init__(
        self,
        outcome: Any = "passed",
        evaluate_fail=False,
        retract_fail=False,
    ):
        self.outcome = outcome
        self.evaluate_fail = evaluate_fail
        self.retract_fail = retract_fail
        self.single_calls: List[EvaluationRequest] = []
        self.batch_calls: List[Dict[str, Any]] = []
        self.retractions: List[Dict[str, str]] = []

    @property
    def call_count(self) -> int:
        return len(self.single_calls) + len(self.batch_calls)

    def evaluated_names(self) -> List[str]:
        """All object names sent to the evaluator, in call order"""
        names = [request.name for request in self.single_calls]
        for call in self.batch_calls:
            names.extend(typed_object_name(obj) for obj in call["objects"])
        return names

    def evaluate_one(self, request: EvaluationRequest, typed_object: Any) -> Any:
        self.single_calls.append(request)
        if self.evaluate_fail:
            raise RuntimeError(f"Evaluation failed for {request.name}")
        return self.outcome

    def evaluate_batch(self, typed_objects: List[Any], namespace_uid: str) -> Any:
        self.batch_calls.append(
            {"objects": list(typed_objects), "namespace_uid": namespace_uid}
        )
        if self.evaluate_fail:
            raise RuntimeError("Batch evaluation failed")
        return self.outcome

    def retract_metrics(self, labels: Dict[str, str]):
        self.retractions.append(labels)
        if self.retract_fail:
            raise RuntimeError("Retraction failed")


class MockClusterClient(DryRunClusterClient):
    """The MockClusterClient wraps a standard DryRunClusterClient and adds
    configuration options to simulate failures in each of its operations.
    """

    def __init__(
        self,
        discover_fail=False,
        list_fail=False,
        list_namespaces_fail=False,
        auto_enable=True,
        **kwargs,
    ):
        kwargs.setdefault("resource_kinds", ALL_TEST_KINDS)
        super().__init__(**kwargs)
        self.discover_fail = discover_fail
        self.list_fail = list_fail
        self.list_namespaces_fail = list_namespaces_fail
        if auto_enable:
            self.enable_mocks()

    def enable_mocks(self):
        """Turn the mocks on"""
        self.discover_resources = mock.Mock(
            side_effect=get_failable_method(
                self.discover_fail, super().discover_resources, []
            )
        )
        self.list_page = mock.Mock(
            side_effect=get_failable_method(self.list_fail, super().list_page)
        )
        self.list_namespaces = mock.Mock(
            side_effect=get_failable_method(
                self.list_namespaces_fail, super().list_namespaces, []
            )
        )

    def set_list_fail(self, list_fail):
        """Change the failure mode of list_page between passes"""
        self.list_fail = list_fail
        self.list_page.side_effect = get_failable_method(list_fail, super().list_page)

    def list_calls_for(self, kind: str) -> list:
        """Get the list_page calls made for the given kind"""
        return [
            call for call in self.list_page.call_args_list if call.args[0].kind == kind
        ]


def setup_engine(
    cluster_client: Optional[DryRunClusterClient] = None,
    evaluator: Optional[EvaluatorBase] = None,
    resources: Optional[List[dict]] = None,
    namespaces: Optional[List[str]] = None,
    **kwargs,
) -> ReconciliationEngine:
    """Set up an engine backed by a mock cluster. The given namespaces are
    created with uids of the form <name>-uid.
    """
    if cluster_client is None:
        namespace_defs = [make_namespace(name) for name in namespaces or []]
        cluster_client = MockClusterClient(
            resources=namespace_defs + list(resources or [])
        )
    kwargs.setdefault("scheme", make_scheme())
    kwargs.setdefault("list_retries", 0)
    namespace_scope = kwargs.pop(
        "namespace_scope",
        ClusterNamespaceScope(cluster_client, watch_namespaces=[], ignore_pattern=""),
    )
    return ReconciliationEngine(
        cluster_client=cluster_client,
        namespace_scope=namespace_scope,
        evaluator=evaluator or RecordingEvaluator(),
        **kwargs,
    )
