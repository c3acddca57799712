"""
This is the main entrypoint command for running the reconciler
"""
# Standard
from typing import Optional
import argparse
import os
import signal
import threading

# First Party
import alog

# Local
from .. import config
from ..cluster import ClusterClientBase, DryRunClusterClient, OpenshiftClusterClient
from ..engine import ReconciliationEngine
from ..evaluation import EvaluatorBase, LoggingEvaluator, load_evaluator
from ..namespace_scope import ClusterNamespaceScope
from ..reconcile_thread import ReconcileThread
from ..scheme import TypeScheme
from .base import CmdBase

log = alog.use_channel("MAIN")

# Seconds between checks of the reconcile thread while waiting for it to exit
JOIN_POLL_SECONDS = 1.0


class RunReconcilerCmd(CmdBase):
    __doc__ = __doc__

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser("run", help=__doc__)
        runtime_args = parser.add_argument_group("Runtime Configuration")
        runtime_args.add_argument(
            "--module_name",
            "-m",
            default=None,
            help="The module to import that holds the evaluator. Optional with dry run.",
        )
        runtime_args.add_argument(
            "--resource_dir",
            "-r",
            default=None,
            help="(dry run) Path to a directory of yaml files that should exist in the cluster",
        )
        runtime_args.add_argument(
            "--passes",
            "-p",
            default=None,
            type=int,
            help="Stop after this many passes instead of running forever",
        )
        return parser

    def cmd(self, args: argparse.Namespace):
        # Validate args
        assert args.module_name or config.dry_run, "--module_name is required"
        assert args.resource_dir is None or (
            config.dry_run and os.path.isdir(args.resource_dir)
        ), "Can only specify --resource_dir with dry run and it must point to a valid directory"
        assert args.passes is None or args.passes > 0, "--passes must be positive"

        reconcile_thread = self.build_reconcile_thread(
            evaluator=self._get_evaluator(args.module_name),
            cluster_client=self._get_cluster_client(args.resource_dir),
            max_passes=args.passes,
        )

        # Register the signal handler to stop the loop
        def do_stop(*_, **__):  # pragma: no cover
            reconcile_thread.stop_thread()

        signal.signal(signal.SIGINT, do_stop)
        signal.signal(signal.SIGTERM, do_stop)

        log.info("Starting reconcile loop")
        reconcile_thread.start_thread()
        while reconcile_thread.is_alive():
            reconcile_thread.join(JOIN_POLL_SECONDS)

        # All done!
        log.info("SHUTTING DOWN")
        return reconcile_thread

    @staticmethod
    def build_reconcile_thread(
        evaluator: EvaluatorBase,
        cluster_client: ClusterClientBase,
        max_passes: Optional[int] = None,
    ) -> ReconcileThread:
        """Wire up the engine and the thread that runs it"""
        shutdown = threading.Event()
        engine = ReconciliationEngine(
            cluster_client=cluster_client,
            namespace_scope=ClusterNamespaceScope(cluster_client),
            evaluator=evaluator,
            scheme=TypeScheme(),
            shutdown=shutdown,
        )
        return ReconcileThread(engine, max_passes=max_passes, shutdown=shutdown)

    ## Impl ##

    @staticmethod
    def _get_evaluator(module_name: Optional[str]) -> EvaluatorBase:
        if not module_name:
            log.info("No evaluator module given, only logging evaluations")
            return LoggingEvaluator()
        log.debug("Loading evaluator from [%s]", module_name)
        return load_evaluator(module_name)

    @staticmethod
    def _get_cluster_client(resource_dir: Optional[str]) -> ClusterClientBase:
        if config.dry_run:
            log.info("Running DRY RUN")
            return DryRunClusterClient.from_resource_dir(resource_dir)
        return OpenshiftClusterClient()
