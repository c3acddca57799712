"""
The NamespaceScope decides which namespaces are reconciled in a pass and
resolves namespace names to their uids.
"""

# Standard
from dataclasses import dataclass
from typing import Dict, List, Optional
import abc
import re

# First Party
import alog

# Local
from . import config, constants
from .cluster import ClusterClientBase
from .exceptions import ClusterError, NamespaceScopeError
from .utils import nested_get

log = alog.use_channel("NSSCP")


@dataclass(frozen=True)
class WatchedNamespace:
    """A namespace that is reconciled in the current pass"""

    name: str
    uid: str


class NamespaceScopeBase(abc.ABC):
    """Interface for the collaborator that supplies watched namespaces"""

    @abc.abstractmethod
    def reset_cache(self):
        """Forget any cached namespaces so the next query re-resolves them.
        Called once at the start of every pass.
        """

    @abc.abstractmethod
    def get_watch_namespaces(self) -> List[WatchedNamespace]:
        """Get the ordered list of namespaces to reconcile

        Raises:
            NamespaceScopeError if the namespaces cannot be fetched
        """

    @abc.abstractmethod
    def get_namespace_uid(self, name: str) -> str:
        """Resolve a namespace name to its uid. Returns an empty string when
        the namespace is unknown.
        """


class ClusterNamespaceScope(NamespaceScopeBase):
    """NamespaceScope that reads the namespaces from the cluster once per pass"""

    def __init__(
        self,
        cluster_client: ClusterClientBase,
        watch_namespaces: Optional[List[str]] = None,
        ignore_pattern: Optional[str] = None,
    ):
        """
        Args:
            cluster_client:  ClusterClientBase
                The client used to list namespaces
            watch_namespaces:  Optional[List[str]]
                If non-empty, only these namespaces are watched. Defaults to
                the watch_namespaces config value.
            ignore_pattern:  Optional[str]
                Namespaces matching this regex are never watched. Defaults to
                the namespace_ignore_pattern config value.
        """
        self._cluster_client = cluster_client
        self._watch_namespaces = set(
            watch_namespaces
            if watch_namespaces is not None
            else config.watch_namespaces or []
        )
        ignore_pattern = (
            ignore_pattern
            if ignore_pattern is not None
            else config.namespace_ignore_pattern
        )
        self._ignore_regex = re.compile(ignore_pattern) if ignore_pattern else None
        self._watched: Optional[List[WatchedNamespace]] = None
        self._uids: Dict[str, str] = {}

    def reset_cache(self):
        log.debug2("Resetting namespace cache")
        self._watched = None
        self._uids = {}

    def get_watch_namespaces(self) -> List[WatchedNamespace]:
        if self._watched is None:
            self._refresh()
        return list(self._watched)

    def get_namespace_uid(self, name: str) -> str:
        if not name:
            return ""
        if self._watched is None:
            try:
                self._refresh()
            except NamespaceScopeError as err:
                log.debug("Unable to resolve uid for namespace [%s]: %s", name, err)
                return ""
        return self._uids.get(name, "")

    ## Implementation Details ##################################################

    def _refresh(self):
        try:
            namespaces = self._cluster_client.list_namespaces()
        except ClusterError as err:
            raise NamespaceScopeError(f"listing namespaces: {err}") from err

        watched = []
        uids = {}
        for namespace in namespaces:
            name = nested_get(namespace, "metadata.name")
            if not name:
                continue
            uids[name] = nested_get(namespace, "metadata.uid") or ""
            if self._is_watched(name, namespace):
                watched.append(WatchedNamespace(name=name, uid=uids[name]))

        watched.sort(key=lambda namespace: namespace.name)
        log.debug("Watching %d of %d namespaces", len(watched), len(uids))
        self._watched = watched
        self._uids = uids

    def _is_watched(self, name: str, namespace: dict) -> bool:
        if self._watch_namespaces and name not in self._watch_namespaces:
            return False
        if self._ignore_regex is not None and self._ignore_regex.match(name):
            log.debug3("Ignoring namespace [%s]", name)
            return False
        phase = nested_get(namespace, "status.phase")
        if phase == constants.NAMESPACE_TERMINATING_PHASE:
            log.debug3("Skipping terminating namespace [%s]", name)
            return False
        return True
