"""
The VersionedCache maps an object identity to the revision it was last seen
at, its uid, and the outcome of its last evaluation.

Two instances are used by the ReconciliationEngine: the durable cache that
records what has been evaluated across passes, and the live set that records
which objects were observed during the current pass. The difference between
the two at the end of a pass is the set of deleted objects.

NOTE: The cache is owned by a single worker and is not safe for concurrent
    mutation.
"""

# Standard
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

# First Party
import alog

# Local
from .cluster_object import ClusterObject, ObjectIdentity

log = alog.use_channel("VCACHE")


@dataclass(frozen=True)
class CacheEntry:
    """The value stored for a single identity. Entries are replaced wholesale
    on every store.
    """

    revision: str
    uid: str
    outcome: Any = None


@dataclass(frozen=True)
class CacheCheck:
    """Result of a pure cache check

    valid:  The entry exists and was stored at the current revision
    stale:  The entry exists but was stored at a different revision
    """

    valid: bool
    stale: bool


class VersionedCache:
    """Mapping from ObjectIdentity to CacheEntry with revision checks"""

    def __init__(self, name: str = "cache"):
        self.name = name
        self._entries: Dict[ObjectIdentity, CacheEntry] = {}

    ## Basic mapping operations ################################################

    def store(
        self,
        identity: ObjectIdentity,
        revision: str,
        uid: str = "",
        outcome: Any = None,
    ):
        """Upsert the entry for the given identity. Any previous entry is
        overwritten and its outcome is not preserved.
        """
        self._entries[identity] = CacheEntry(revision=revision, uid=uid, outcome=outcome)

    def store_object(self, obj: ClusterObject, outcome: Any = None):
        """Store the entry for an object at its current revision"""
        self.store(obj.identity, obj.resource_version, obj.uid, outcome)

    def has(self, identity: ObjectIdentity) -> bool:
        return identity in self._entries

    def retrieve(self, identity: ObjectIdentity) -> Tuple[Optional[CacheEntry], bool]:
        """Look up the entry for an identity

        Returns:
            entry:  Optional[CacheEntry]
                The stored entry if present
            found:  bool
                Whether or not an entry was found
        """
        entry = self._entries.get(identity)
        return entry, entry is not None

    def remove(self, identity: ObjectIdentity):
        """Remove the entry for an identity. Removing a missing identity is a
        no-op.
        """
        self._entries.pop(identity, None)

    def drain(self):
        """Drop every entry"""
        log.debug2("Draining %s with %d entries", self.name, len(self._entries))
        self._entries = {}

    def keys(self) -> List[ObjectIdentity]:
        return list(self._entries.keys())

    def items(self) -> List[Tuple[ObjectIdentity, CacheEntry]]:
        return list(self._entries.items())

    def __contains__(self, identity: ObjectIdentity) -> bool:
        return self.has(identity)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ObjectIdentity]:
        return iter(self.keys())

    ## Revision checks #########################################################

    def check(self, identity: ObjectIdentity, revision: str) -> CacheCheck:
        """Check whether the entry for an identity is valid at the given
        revision. This never mutates the cache.
        """
        entry, found = self.retrieve(identity)
        if not found:
            return CacheCheck(valid=False, stale=False)
        if entry.revision != revision:
            return CacheCheck(valid=False, stale=True)
        return CacheCheck(valid=True, stale=False)

    def evict(self, identity: ObjectIdentity):
        """Explicitly evict an entry found to be stale"""
        log.debug3("Evicting %s from %s", identity, self.name)
        self.remove(identity)

    def already_evaluated(self, identity: ObjectIdentity, revision: str) -> bool:
        """Determine whether the identity has already been evaluated at the
        given revision. A stale entry is evicted as part of the check so that
        a revision change always forces a re-evaluation.
        """
        result = self.check(identity, revision)
        if result.stale:
            self.evict(identity)
        return result.valid

    def object_already_evaluated(self, obj: ClusterObject) -> bool:
        """Convenience wrapper around already_evaluated for an object"""
        return self.already_evaluated(obj.identity, obj.resource_version)

    ## Set operations ##########################################################

    def difference(self, other: "VersionedCache") -> List[Tuple[ObjectIdentity, CacheEntry]]:
        """Get the entries whose identity is in this cache but not in other"""
        return [
            (identity, entry)
            for identity, entry in self._entries.items()
            if not other.has(identity)
        ]

    def __str__(self):
        return f"VersionedCache[{self.name}]({len(self)})"
