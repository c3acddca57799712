"""
Helper module to define shared types for cluster discovery and listing
"""

# Standard
from dataclasses import dataclass, field
from typing import List

# Local
from ..utils import join_api_version


@dataclass(frozen=True)
class ResourceKind:
    """A listable resource kind discovered from the API server"""

    group: str
    version: str
    kind: str
    namespaced: bool

    @property
    def api_version(self) -> str:
        return join_api_version(self.group, self.version)

    @property
    def group_kind(self):
        return (self.group, self.kind)

    def __str__(self):
        return f"{self.api_version}, Kind={self.kind}"


@dataclass
class ObjectPage:
    """A single page of a paginated list call. An empty continue_token marks
    the last page.
    """

    items: List[dict] = field(default_factory=list)
    continue_token: str = ""
