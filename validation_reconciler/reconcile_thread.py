"""
The ReconcileThread runs reconciliation passes forever, waiting a minimum
period between passes, until it is asked to stop
"""

# Standard
from datetime import datetime
from typing import Optional
import threading

# First Party
import alog

# Local
from . import config
from .engine import ReconciliationEngine
from .exceptions import ReconcilerError
from .utils import parse_time_delta

log = alog.use_channel("RTHRD")


class ReconcileThread(threading.Thread):
    """Thread that repeatedly calls reconcile_everything on the engine. Errors
    from a pass are logged and never terminate the loop.
    """

    # This format is designed to be read using `date -d $(cat heartbeat.txt)`
    # using the GNU date utility
    _DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(
        self,
        engine: ReconciliationEngine,
        reconcile_period: Optional[str] = None,
        heartbeat_file: Optional[str] = None,
        max_passes: Optional[int] = None,
        shutdown: Optional[threading.Event] = None,
    ):
        """
        Args:
            engine:  ReconciliationEngine
                The engine that runs each pass
            reconcile_period:  Optional[str]
                Time delta string for the minimum time between the start of
                two passes. Defaults to the reconcile_period config value.
            heartbeat_file:  Optional[str]
                If set, the time of the last finished pass is written here.
                Defaults to the heartbeat_file config value.
            max_passes:  Optional[int]
                If set, the thread stops on its own after this many passes
            shutdown:  Optional[threading.Event]
                Event used to signal the thread to stop. Share it with the
                engine so in-progress backoff waits are interrupted too.
        """
        reconcile_period = (
            reconcile_period
            if reconcile_period is not None
            else config.reconcile_period
        )
        period = parse_time_delta(reconcile_period)
        assert period is not None, f"Invalid reconcile_period: {reconcile_period}"
        self._period_seconds = period.total_seconds()
        self._heartbeat_file = (
            heartbeat_file if heartbeat_file is not None else config.heartbeat_file
        )
        self._max_passes = max_passes
        self.engine = engine
        self.shutdown = shutdown or threading.Event()
        self.passes_run = 0
        self.failed_passes = 0
        super().__init__(name="reconcile_thread", daemon=True)

    ## Lifecycle ###############################################################

    def start_thread(self):
        """If the thread is not already alive start it"""
        if not self.is_alive():
            log.info("Starting %s: %s", self.__class__.__name__, self.name)
            self.start()

    def stop_thread(self):
        """Set the shutdown event"""
        log.info("Stopping %s: %s", self.__class__.__name__, self.name)
        self.shutdown.set()

    def should_stop(self) -> bool:
        """Helper to determine if the thread should shutdown"""
        return self.shutdown.is_set()

    ## Loop ####################################################################

    def run(self):
        """Run passes until stopped. A pass that is underway is not preempted,
        cancellation is observed between passes and during the wait.
        """
        while not self.should_stop():
            started = datetime.now()
            self.run_pass()
            if self._max_passes is not None and self.passes_run >= self._max_passes:
                log.info("Finished %d passes", self.passes_run)
                self.shutdown.set()
                break

            elapsed = (datetime.now() - started).total_seconds()
            wait_time = max(self._period_seconds - elapsed, 0)
            log.debug3("Waiting %fs until the next pass", wait_time)
            self.shutdown.wait(wait_time)
        log.debug("Reconcile loop exited after %d passes", self.passes_run)

    def run_pass(self) -> bool:
        """Run a single pass and record the heartbeat

        Returns:
            success:  bool
                Whether or not the pass completed without errors
        """
        success = True
        try:
            self.engine.reconcile_everything()
        except ReconcilerError as err:
            success = False
            self.failed_passes += 1
            if self.should_stop():
                log.debug("Pass interrupted by shutdown: %s", err)
            else:
                log.error("Failed to reconcile: %s", err)
        except Exception as err:  # pylint: disable=broad-exception-caught
            success = False
            self.failed_passes += 1
            log.error("Unexpected error during reconcile: %s", err, exc_info=True)
        self.passes_run += 1
        self._write_heartbeat()
        return success

    ## Implementation Details ##################################################

    def _write_heartbeat(self):
        """Dump the current time to the heartbeat file if one is configured"""
        if not self._heartbeat_file:
            return
        now = datetime.now()
        log.debug3("Heartbeat %s", now)
        try:
            with open(self._heartbeat_file, "w", encoding="utf-8") as handle:
                handle.write(now.strftime(self._DATE_FORMAT))
                handle.flush()
        except OSError as err:
            log.warning("Failed to write heartbeat file: %s", err, exc_info=True)
