"""
The ResourceEnumerator turns the cluster's discovery information into the set
of kinds reconciled in a pass
"""

# Standard
from typing import Iterable, List, Optional, Tuple

# First Party
import alog

# Local
from . import config
from .cluster import ClusterClientBase, ResourceKind
from .scheme import TypeScheme

log = alog.use_channel("ENUMR")


class ResourceEnumerator:
    """Enumerate the listable kinds that the reconciler knows how to convert"""

    def __init__(
        self,
        cluster_client: ClusterClientBase,
        scheme: TypeScheme,
        excluded_kinds: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            cluster_client:  ClusterClientBase
                The client used to query discovery
            scheme:  TypeScheme
                Only kinds registered in the scheme are enumerated
            excluded_kinds:  Optional[Iterable[str]]
                Kinds that are never enumerated. Defaults to the excluded_kinds
                config value.
        """
        self._cluster_client = cluster_client
        self._scheme = scheme
        self._excluded_kinds = set(
            excluded_kinds if excluded_kinds is not None else config.excluded_kinds
        )

    def enumerate(self) -> Tuple[List[ResourceKind], List[ResourceKind]]:
        """Query discovery and partition the result

        Returns:
            cluster_scoped:  List[ResourceKind]
                Kinds that live outside of namespaces
            namespaced:  List[ResourceKind]
                Kinds that live in namespaces

        Raises:
            ClusterError if discovery fails
        """
        resources = self.get_resources()
        cluster_scoped = [resource for resource in resources if not resource.namespaced]
        namespaced = [resource for resource in resources if resource.namespaced]
        log.debug(
            "Enumerated %d cluster scoped and %d namespaced kinds",
            len(cluster_scoped),
            len(namespaced),
        )
        return cluster_scoped, namespaced

    def get_resources(self) -> List[ResourceKind]:
        """Get the de-duplicated list of kinds to reconcile. When a kind is
        served in several versions, the first one served (the preferred
        version) wins.
        """
        resources = []
        seen_group_kinds = set()
        for resource in self._cluster_client.discover_resources():
            if resource.group_kind in seen_group_kinds:
                log.debug4("Skipping additional version %s", resource)
                continue
            if resource.kind in self._excluded_kinds:
                log.debug3("Skipping excluded kind %s", resource)
                continue
            if not self._scheme.is_registered(
                resource.group, resource.version, resource.kind
            ):
                log.debug3("Skipping unregistered kind %s", resource)
                continue
            seen_group_kinds.add(resource.group_kind)
            resources.append(resource)

        for i, resource in enumerate(resources):
            log.debug2(
                "apiResource no: %d Group: %s Version: %s Kind: %s",
                i + 1,
                resource.group,
                resource.version,
                resource.kind,
            )
        return resources
