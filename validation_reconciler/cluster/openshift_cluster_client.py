"""
This ClusterClient is responsible for delegating discovery and list operations
to the openshift library. It is the one that will be used when the reconciler
is running in the cluster or outside the cluster against a live API server.
"""
# Standard
from typing import List, Optional

# Third Party
from kubernetes.client.exceptions import ApiException
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import (
    DynamicApiError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes
import urllib3

# First Party
import alog

# Local
from .. import config, constants
from ..exceptions import ClusterError, assert_cluster
from .base import ClusterClientBase
from .types import ObjectPage, ResourceKind

log = alog.use_channel("OSFTC")

# Verb a kind must support to be enumerated
LIST_VERB = "list"

# Errors raised by the client stack for a failed API call
_API_ERRORS = (DynamicApiError, ApiException, urllib3.exceptions.HTTPError)


class OpenshiftClusterClient(ClusterClientBase):
    """This ClusterClient uses the openshift DynamicClient to interact with the
    cluster
    """

    def __init__(self, request_timeout: Optional[float] = None):
        """
        Args:
            request_timeout:  Optional[float]
                Client side timeout in seconds for every request. Defaults to
                the request_timeout_seconds config value. The timeout bounds
                how long a stop request can wait on an in-flight call.
        """
        self.request_timeout = (
            request_timeout
            if request_timeout is not None
            else config.request_timeout_seconds
        )

        log.debug("Initializing openshift client")
        self._client = None

    @property
    def client(self):
        """Lazy property access to the client"""
        if self._client is None:
            self._client = self._setup_client()
        return self._client

    ## Interface ###############################################################

    def discover_resources(self) -> List[ResourceKind]:
        """Walk the discovery API for every listable kind. Preferred versions
        are returned before the other versions of the same group.
        """
        try:
            self.client.resources.invalidate_cache()
            all_resources = self.client.resources.search()
        except _API_ERRORS as err:
            raise ClusterError(f"discovering api resources: {err}") from err

        preferred, other = [], []
        seen = set()
        for resource in all_resources:
            if not self._is_listable(resource):
                continue
            resource_kind = ResourceKind(
                group=resource.group or "",
                version=resource.api_version,
                kind=resource.kind,
                namespaced=bool(resource.namespaced),
            )
            if resource_kind in seen:
                continue
            seen.add(resource_kind)
            (preferred if getattr(resource, "preferred", False) else other).append(
                resource_kind
            )

        log.debug(
            "Discovered %d preferred and %d other listable kinds",
            len(preferred),
            len(other),
        )
        return preferred + other

    def list_page(
        self,
        resource: ResourceKind,
        namespace: Optional[str] = None,
        limit: Optional[int] = None,
        continue_token: Optional[str] = None,
    ) -> ObjectPage:
        resource_handle = self._get_resource_handle(resource.kind, resource.api_version)
        assert_cluster(
            resource_handle,
            f"Failed to fetch resource handle for {resource}",
        )

        kwargs = {"_request_timeout": self.request_timeout}
        if namespace:
            kwargs["namespace"] = namespace
        if limit:
            kwargs["limit"] = limit
        if continue_token:
            kwargs["_continue"] = continue_token

        log.debug3(
            "Listing [%s] in [%s] with limit %s and continue [%s]",
            resource,
            namespace,
            limit,
            continue_token,
        )
        try:
            list_obj = resource_handle.get(**kwargs).to_dict()
        except _API_ERRORS as err:
            raise ClusterError(f"listing {resource}: {err}") from err

        # The server omits apiVersion and kind on list items
        items = list_obj.get("items") or []
        for item in items:
            item.setdefault("apiVersion", resource.api_version)
            item.setdefault("kind", resource.kind)

        next_token = (list_obj.get("metadata") or {}).get("continue") or ""
        return ObjectPage(items=items, continue_token=next_token)

    def list_namespaces(self) -> List[dict]:
        namespace_kind = ResourceKind(
            group="", version="v1", kind=constants.NAMESPACE_KIND, namespaced=False
        )
        namespaces = []
        continue_token = None
        while True:
            page = self.list_page(namespace_kind, continue_token=continue_token)
            namespaces.extend(page.items)
            if not page.continue_token:
                return namespaces
            continue_token = page.continue_token

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client():
        """Create a DynamicClient that will work based on where the reconciler
        is running
        """
        try:
            log.debug2("Running with in-cluster config")
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)
            api_client = kubernetes.client.ApiClient(kube_config)
            return DynamicClient(api_client)

        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    @staticmethod
    def _is_listable(resource) -> bool:
        """Only real (non-list, non-sub) resources that support list"""
        if not isinstance(resource, Resource):
            return False
        if "/" in (resource.name or ""):
            return False
        if resource.kind.endswith(constants.KUBE_LIST_SUFFIX):
            return False
        return LIST_VERB in (getattr(resource, "verbs", None) or [])

    def _get_resource_handle(self, kind: str, api_version: str) -> Optional[Resource]:
        """Get the openshift resource handle for a specified kind and api_version"""
        resources = None
        try:
            resources = self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError):
            log.debug(
                "No objects of kind [%s/%s] found or multiple objects matching request found",
                api_version,
                kind,
            )
        except _API_ERRORS as err:
            raise ClusterError(
                f"fetching resource handle for {api_version}/{kind}: {err}"
            ) from err
        return resources
