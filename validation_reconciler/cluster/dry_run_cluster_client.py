"""
The DryRunClusterClient implements the ClusterClient interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map.
"""

# Standard
from threading import RLock
from typing import Iterable, List, Optional
import copy
import os
import uuid

# Third Party
import yaml

# First Party
import alog

# Local
from .. import constants
from ..utils import split_api_version
from .base import ClusterClientBase
from .types import ObjectPage, ResourceKind

log = alog.use_channel("DRY-RUN")


class DryRunClusterClient(ClusterClientBase):
    """
    Cluster client which serves discovery and list calls from memory
    """

    def __init__(
        self,
        resources: Optional[List[dict]] = None,
        resource_kinds: Optional[Iterable[ResourceKind]] = None,
    ):
        """Construct with the objects that exist in the cluster

        Args:
            resources:  Optional[List[dict]]
                Objects to pre-populate the cluster with
            resource_kinds:  Optional[Iterable[ResourceKind]]
                Kinds served by discovery even if no object of the kind exists.
                Kinds of pre-populated objects are always served.
        """
        self._lock = RLock()
        # {namespace: {api_version: {kind: {name: object}}}}
        self._cluster_content = {}
        self._resource_kinds = {}
        self._revision_counter = 0

        # Namespaces are always served
        self.register_kind(
            ResourceKind(
                group="", version="v1", kind=constants.NAMESPACE_KIND, namespaced=False
            )
        )
        for resource_kind in resource_kinds or []:
            self.register_kind(resource_kind)
        self.deploy(resources or [])

    @classmethod
    def from_resource_dir(cls, resource_dir: Optional[str], **kwargs):
        """Construct from all yaml files found in the given directory"""
        return cls(resources=parse_resource_dir(resource_dir), **kwargs)

    ## Interface ###############################################################

    def discover_resources(self) -> List[ResourceKind]:
        log.info("DRY RUN discover_resources")
        with self._lock:
            return list(self._resource_kinds.values())

    def list_page(
        self,
        resource: ResourceKind,
        namespace: Optional[str] = None,
        limit: Optional[int] = None,
        continue_token: Optional[str] = None,
    ) -> ObjectPage:
        log.debug(
            "DRY RUN list_page of [%s] in [%s] from [%s]",
            resource,
            namespace,
            continue_token,
        )
        with self._lock:
            matches = []
            namespaces = (
                [namespace] if namespace else sorted(self._cluster_content, key=str)
            )
            for ns_name in namespaces:
                named_entries = (
                    self._cluster_content.get(ns_name, {})
                    .get(resource.api_version, {})
                    .get(resource.kind, {})
                )
                matches.extend(
                    copy.deepcopy(named_entries[name]) for name in sorted(named_entries)
                )

        start = int(continue_token) if continue_token else 0
        end = len(matches) if not limit else start + limit
        next_token = str(end) if end < len(matches) else ""
        return ObjectPage(items=matches[start:end], continue_token=next_token)

    def list_namespaces(self) -> List[dict]:
        log.debug("DRY RUN list_namespaces")
        namespace_kind = self._resource_kinds[("", constants.NAMESPACE_KIND)]
        return self.list_page(namespace_kind).items

    ## Cluster mutation ########################################################

    def register_kind(self, resource_kind: ResourceKind):
        """Serve the given kind from discovery"""
        with self._lock:
            self._resource_kinds.setdefault(resource_kind.group_kind, resource_kind)

    def deploy(self, resource_definitions: List[dict]) -> bool:
        """Create or update objects in the in-memory cluster. Every write
        bumps the object's resourceVersion, matching a real API server.

        Returns:
            changed:  bool
                Whether or not any object was written
        """
        changed = False
        for resource in resource_definitions:
            resource = copy.deepcopy(resource)
            api_version = resource.get("apiVersion")
            kind = resource.get("kind")
            metadata = resource.setdefault("metadata", {})
            name = metadata.get("name")
            namespace = metadata.get("namespace")
            assert None not in [
                api_version,
                kind,
                name,
            ], "Cannot deploy resource without apiVersion, kind and name"

            with self._lock:
                group, version = split_api_version(api_version)
                self.register_kind(
                    ResourceKind(
                        group=group,
                        version=version,
                        kind=kind,
                        namespaced=namespace is not None,
                    )
                )
                named_entries = (
                    self._cluster_content.setdefault(namespace, {})
                    .setdefault(api_version, {})
                    .setdefault(kind, {})
                )
                current = named_entries.get(name)
                if not metadata.get("uid"):
                    metadata["uid"] = (
                        current["metadata"]["uid"]
                        if current is not None
                        else str(uuid.uuid4())
                    )
                self._revision_counter += 1
                metadata["resourceVersion"] = str(self._revision_counter)
                named_entries[name] = resource
                changed = True
            log.debug2("DRY RUN deployed [%s/%s/%s] in %s", api_version, kind, name, namespace)
        return changed

    def delete(self, resource_definitions: List[dict]) -> bool:
        """Remove objects from the in-memory cluster

        Returns:
            changed:  bool
                Whether or not any object was removed
        """
        changed = False
        for resource in resource_definitions:
            api_version = resource.get("apiVersion")
            kind = resource.get("kind")
            name = resource.get("metadata", {}).get("name")
            namespace = resource.get("metadata", {}).get("namespace")
            with self._lock:
                named_entries = (
                    self._cluster_content.get(namespace, {})
                    .get(api_version, {})
                    .get(kind, {})
                )
                if named_entries.pop(name, None) is not None:
                    log.debug2(
                        "DRY RUN deleted [%s/%s/%s] in %s",
                        api_version,
                        kind,
                        name,
                        namespace,
                    )
                    changed = True
        return changed

    def get_object(
        self,
        api_version: str,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
    ) -> Optional[dict]:
        """Fetch a copy of a single object or None if not present"""
        with self._lock:
            current = (
                self._cluster_content.get(namespace, {})
                .get(api_version, {})
                .get(kind, {})
                .get(name)
            )
            return copy.deepcopy(current)


def parse_resource_dir(resource_dir: Optional[str]) -> List[dict]:
    """If given, this will parse all yaml files found in the given directory"""
    all_resources = []
    if resource_dir is not None:
        for fname in sorted(os.listdir(resource_dir)):
            if fname.endswith(".yaml") or fname.endswith(".yml"):
                resource_path = os.path.join(resource_dir, fname)
                log.debug3("Reading resource file [%s]", resource_path)
                with open(resource_path, encoding="utf-8") as handle:
                    all_resources.extend(
                        resource for resource in yaml.safe_load_all(handle) if resource
                    )
    return all_resources
