"""
This defines the base class for all ClusterClient types.
"""

# Standard
from typing import List, Optional
import abc

# Local
from .types import ObjectPage, ResourceKind


class ClusterClientBase(abc.ABC):
    """
    Base class for cluster clients which are responsible for the read-only
    interactions with the API server: discovering resource kinds and listing
    objects page by page.
    """

    @abc.abstractmethod
    def discover_resources(self) -> List[ResourceKind]:
        """Query the discovery API for every listable resource kind. The
        preferred version of each group is listed first. Subresources are never
        returned.

        Returns:
            resources:  List[ResourceKind]
                All listable kinds served by the cluster

        Raises:
            ClusterError if discovery fails
        """

    @abc.abstractmethod
    def list_page(
        self,
        resource: ResourceKind,
        namespace: Optional[str] = None,
        limit: Optional[int] = None,
        continue_token: Optional[str] = None,
    ) -> ObjectPage:
        """List a single page of objects of the given kind

        Args:
            resource:  ResourceKind
                The kind to list
            namespace:  Optional[str]
                The namespace to list in. If None, list across the cluster
            limit:  Optional[int]
                The maximum number of items in the page
            continue_token:  Optional[str]
                The continue token returned with the previous page

        Returns:
            page:  ObjectPage
                The items of the page, each with apiVersion and kind set, and
                the token for the next page (empty on the last page)

        Raises:
            ClusterError if the list call fails
        """

    @abc.abstractmethod
    def list_namespaces(self) -> List[dict]:
        """List every namespace in the cluster

        Returns:
            namespaces:  List[dict]
                The dict representations of all namespaces

        Raises:
            ClusterError if the list call fails
        """
