"""
This module holds all of the command classes for the reconciler's main
entrypoint
"""

# Local
from .base import CmdBase
from .check_heartbeat import CheckHeartbeatCmd
from .run_reconciler_cmd import RunReconcilerCmd
