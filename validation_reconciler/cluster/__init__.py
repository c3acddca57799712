"""
The ClusterClient is the abstraction in charge of discovering resource kinds
and listing objects from the kubernetes cluster.
"""

# Local
from .base import ClusterClientBase
from .dry_run_cluster_client import DryRunClusterClient
from .openshift_cluster_client import OpenshiftClusterClient
from .types import ObjectPage, ResourceKind
