"""
The TypeScheme converts untyped object dicts read from the cluster into the
typed models the evaluator works with.

Lookups go through explicit registrations first and then fall back to the
models shipped with the kubernetes client (e.g. apps/v1 Deployment ->
V1Deployment). A kind that resolves to neither is unregistered.
"""

# Standard
from typing import Any, Callable, Dict, List, Optional, Tuple
import inspect
import json

# Third Party
import kubernetes

# First Party
import alog

# Local
from .cluster_object import ClusterObject
from .exceptions import TypeConversionError, TypeLookupError

log = alog.use_channel("SCHEM")

# (group, version, kind)
GroupVersionKind = Tuple[str, str, str]

# A constructor takes the dict form of an object and returns its typed form
TypeConstructor = Callable[[dict], Any]

JSON_CONTENT_TYPE = "application/json"


class _JsonResponse:  # pylint: disable=too-few-public-methods
    """Minimal stand-in for a rest response for kubernetes clients whose
    ApiClient.deserialize reads the body from response.data
    """

    def __init__(self, data: dict):
        self.data = json.dumps(data)


class KubeModelConstructor:
    """Constructor that deserializes a dict into a kubernetes client model"""

    def __init__(self, model_name: str, api_client: kubernetes.client.ApiClient):
        self.model_name = model_name
        self._api_client = api_client
        # Newer clients take the raw body text plus its content type
        self._takes_content_type = (
            "content_type" in inspect.signature(api_client.deserialize).parameters
        )

    def __call__(self, definition: dict) -> Any:
        if self._takes_content_type:
            return self._api_client.deserialize(
                json.dumps(definition), self.model_name, JSON_CONTENT_TYPE
            )
        return self._api_client.deserialize(_JsonResponse(definition), self.model_name)

    def __repr__(self):
        return f"KubeModelConstructor({self.model_name})"


class TypeScheme:
    """Registry of typed constructors keyed by group/version/kind"""

    def __init__(self, use_kube_models: bool = True):
        """
        Args:
            use_kube_models:  bool
                If true, kinds without an explicit registration are resolved
                against the kubernetes client models
        """
        self._registry: Dict[GroupVersionKind, TypeConstructor] = {}
        self._use_kube_models = use_kube_models
        self._api_client = None

    @property
    def api_client(self) -> kubernetes.client.ApiClient:
        """Lazy property access to the api client used for deserialization"""
        if self._api_client is None:
            self._api_client = kubernetes.client.ApiClient()
        return self._api_client

    ## Registry ################################################################

    def register(
        self,
        group: str,
        version: str,
        kind: str,
        constructor: TypeConstructor,
    ):
        """Register an explicit constructor for a group/version/kind"""
        log.debug2("Registering %s/%s/%s -> %s", group, version, kind, constructor)
        self._registry[(group, version, kind)] = constructor

    def resolve(self, group: str, version: str, kind: str) -> TypeConstructor:
        """Look up the constructor for a group/version/kind

        Raises:
            TypeLookupError if the kind is not registered
        """
        constructor = self._registry.get((group, version, kind))
        if constructor is None and self._use_kube_models:
            model_name = self._find_kube_model(group, version, kind)
            if model_name is not None:
                constructor = KubeModelConstructor(model_name, self.api_client)
                self._registry[(group, version, kind)] = constructor
        if constructor is None:
            raise TypeLookupError(
                f"creating new object of type {group}/{version}/{kind}: "
                "no type registered"
            )
        return constructor

    def is_registered(self, group: str, version: str, kind: str) -> bool:
        try:
            self.resolve(group, version, kind)
        except TypeLookupError:
            return False
        return True

    ## Conversion ##############################################################

    def to_typed(self, obj: ClusterObject) -> Any:
        """Convert an untyped object into its typed representation

        Raises:
            TypeLookupError if the kind is not registered
            TypeConversionError if the object does not fit the typed shape
        """
        try:
            constructor = self.resolve(obj.group, obj.version, obj.kind)
        except TypeLookupError as err:
            raise TypeLookupError(f"looking up object type: {err}") from err

        try:
            typed = constructor(obj.definition)
        except Exception as err:  # pylint: disable=broad-exception-caught
            raise TypeConversionError(
                f"converting {obj} to typed object: {err}"
            ) from err
        if typed is None:
            raise TypeConversionError(f"converting {obj} to typed object: empty result")
        return typed

    ## Implementation Details ##################################################

    @staticmethod
    def _model_candidates(group: str, version: str, kind: str) -> List[str]:
        """Model names the kubernetes client uses for a kind. Kinds that exist
        in more than one group carry a group prefix (e.g. CoreV1Event,
        EventsV1Event).
        """
        version_kind = f"{version[:1].upper()}{version[1:]}{kind}"
        group_prefix = (group.split(".")[0] if group else "core").capitalize()
        return [version_kind, f"{group_prefix}{version_kind}"]

    @classmethod
    def _find_kube_model(cls, group: str, version: str, kind: str) -> Optional[str]:
        for model_name in cls._model_candidates(group, version, kind):
            model = getattr(kubernetes.client, model_name, None)
            if isinstance(model, type) and hasattr(model, "openapi_types"):
                log.debug3("Resolved %s/%s/%s -> %s", group, version, kind, model_name)
                return model_name
        return None
