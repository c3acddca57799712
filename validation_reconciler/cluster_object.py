"""
Helper objects to represent an untyped kubernetes object read from the cluster
and the identity used to key it in the caches
"""
# Standard
from dataclasses import dataclass
from typing import Optional

# Local
from . import constants
from .utils import nested_get, split_api_version


@dataclass(frozen=True)
class ObjectIdentity:
    """Unique key for a logical object. Two objects with the same coordinates
    are the same entity regardless of their payload or revision.
    """

    group: str
    version: str
    kind: str
    namespace: str
    name: str

    def __str__(self):
        prefix = f"{self.group}/" if self.group else ""
        location = f"{self.namespace}/" if self.namespace else ""
        return f"{prefix}{self.version}/{self.kind}/{location}{self.name}"


class ClusterObject:  # pylint: disable=too-many-instance-attributes
    """Basic struct wrapping the dict representation of a kubernetes object"""

    def __init__(self, definition: dict):
        self.definition = definition
        self.kind = definition.get("kind")
        self.api_version = definition.get("apiVersion")
        self.metadata = definition.get("metadata") or {}
        self.name = self.metadata.get("name")
        self.namespace = self.metadata.get("namespace") or ""
        self.uid = self.metadata.get("uid") or ""
        self.resource_version = self.metadata.get("resourceVersion") or ""
        self.group, self.version = split_api_version(self.api_version)

        assert self.kind is not None, "No kind found"
        assert self.api_version is not None, "No apiVersion found"
        assert self.name is not None, "No name found"

    @property
    def identity(self) -> ObjectIdentity:
        """The cache key for this object"""
        return ObjectIdentity(
            group=self.group,
            version=self.version,
            kind=self.kind,
            namespace=self.namespace,
            name=self.name,
        )

    @property
    def labels(self) -> dict:
        return self.metadata.get("labels") or {}

    def get(self, *args, **kwargs):
        """Pass get calls to the objects definition"""
        return self.definition.get(*args, **kwargs)

    def get_app_label(self) -> Optional[str]:
        """Read the app label from the object's labels, falling back to the
        label selector for kinds (e.g. PodDisruptionBudget) that only carry it
        there. Returns None if neither path holds a string.
        """
        for path in (constants.APP_LABEL_PATH, constants.APP_SELECTOR_LABEL_PATH):
            app_label = nested_get(self.definition, path)
            if isinstance(app_label, str):
                return app_label
        return None

    def __str__(self):
        return str(self.identity)

    def __repr__(self):
        return f"ClusterObject({self.identity}@{self.resource_version})"
