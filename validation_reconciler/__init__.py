"""
Package exports
"""

# Local
from . import config
from .cache import CacheEntry, VersionedCache
from .cluster import (
    ClusterClientBase,
    DryRunClusterClient,
    ObjectPage,
    OpenshiftClusterClient,
    ResourceKind,
)
from .cluster_object import ClusterObject, ObjectIdentity
from .engine import EngineState, ReconciliationEngine
from .enumerator import ResourceEnumerator
from .evaluation import EvaluationRequest, EvaluatorBase, LoggingEvaluator
from .exceptions import assert_cluster, assert_config
from .namespace_scope import ClusterNamespaceScope, NamespaceScopeBase
from .reconcile_thread import ReconcileThread
from .scheme import TypeScheme
