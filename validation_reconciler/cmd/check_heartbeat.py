"""
Check that the reconcile loop has written its heartbeat recently
"""
# Standard
from datetime import datetime, timedelta
from pathlib import Path
import argparse

# First Party
import alog

# Local
from .. import config
from ..reconcile_thread import ReconcileThread
from .base import CmdBase

log = alog.use_channel("MAIN")


class CheckHeartbeatCmd(CmdBase):
    __doc__ = __doc__

    ## Interface ##

    def add_subparser(
        self,
        subparsers: argparse._SubParsersAction,
    ) -> argparse.ArgumentParser:
        parser = subparsers.add_parser("check-heartbeat", help=__doc__)
        runtime_args = parser.add_argument_group("Check Heartbeat Configuration")
        runtime_args.add_argument(
            "--delta",
            "-d",
            required=True,
            type=int,
            help="Max seconds allowed since the last heartbeat",
        )
        runtime_args.add_argument(
            "--file",
            "-f",
            default=None,
            help="Location of the heartbeat file. Defaults to config based.",
        )
        return parser

    def cmd(self, args: argparse.Namespace):
        """Validate the age of the heartbeat file"""
        heartbeat_file = args.file or config.heartbeat_file
        assert args.delta is not None
        assert heartbeat_file, "No heartbeat file given or configured"

        file_path = Path(heartbeat_file)
        if not file_path.exists():
            log.error("Health Check failed: %s does not exist", file_path)
            raise FileNotFoundError(str(file_path))

        last_log_time = file_path.read_text(encoding="utf-8").strip()
        last_time = datetime.strptime(last_log_time, ReconcileThread._DATE_FORMAT)

        if last_time + timedelta(seconds=args.delta) < datetime.now():
            msg = f"Health Check failed: {last_log_time} is too old"
            log.error(msg)
            raise KeyError(msg)
        log.info("Health Check passed: last heartbeat at %s", last_log_time)
