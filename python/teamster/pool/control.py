"""Start, stop and restart control for the worker pool process.

The pool runs as a detached process whose PID is kept in a PID file. Every
control invocation is independent: the PID file is the only state shared
between a "start" and a later "stop".

Stopping sends SIGUSR1, which the pool is expected to handle by shutting down
gracefully, then polls for the process to go away. There is no escalation to
SIGKILL: a pool that outlives the wait timeout is reported as a failure and
left running.

Between the liveness check and the signal the pool may exit and its PID may
be reused by an unrelated process. This is inherent to PID-file supervision
and is not guarded against here.
"""

import os
import signal
import time
from typing import Callable, Optional

from ..config import DEFAULT_WAIT_TIMEOUT, PoolConfig
from ..exceptions import NotFoundError, PidError, ProcessError
from ..logging_config import get_logger
from .pid import Pid, PidFactory
from .runner import RunnerFactory

logger = get_logger(__name__)

# Fixed number of poll iterations while waiting for the pool to stop
MAX_POLL_COUNT = 1000

STOP_SIGNAL = signal.SIGUSR1

ACTIONS = ("start", "stop", "restart")


class PoolControlCommand:
    """Controls the pool process identified by `pool_pid_file`.

    Args:
        runner_factory: Builds the runner used to launch the pool
        pid_factory: Reads the pool's PID file
        pool_pid_file: Path of the pool's PID file
        pool_command: Pool command, passed to the console runner
        can_run_as_root: Allow starting the pool as the superuser
        wait_timeout: How long to wait for the pool to stop, in microseconds
        output: Receives the informational lines reported to the operator
    """

    def __init__(
        self,
        runner_factory: RunnerFactory,
        pid_factory: PidFactory,
        pool_pid_file: str,
        pool_command: str,
        can_run_as_root: bool = False,
        wait_timeout: int = DEFAULT_WAIT_TIMEOUT,
        output: Callable[[str], None] = print,
    ) -> None:
        self.runner_factory = runner_factory
        self.pid_factory = pid_factory
        self.pool_pid_file = pool_pid_file
        self.pool_command = pool_command
        self.can_run_as_root = can_run_as_root
        self.wait_timeout = int(wait_timeout)
        self.output = output
        self._pid: Optional[Pid] = None

    @classmethod
    def from_config(
        cls, config: PoolConfig, output: Callable[[str], None] = print
    ) -> "PoolControlCommand":
        """Wire up a control command and its factories from a PoolConfig."""
        pid_factory = PidFactory()
        runner_factory = RunnerFactory(pid_factory, config.console_path)
        runner_factory.set_process_timeout(config.process_timeout)
        runner_factory.set_wait_timeout(config.runner_wait_timeout)
        return cls(
            runner_factory,
            pid_factory,
            config.pool_pid_file,
            config.pool_command or "",
            can_run_as_root=config.can_run_as_root,
            wait_timeout=config.wait_timeout,
            output=output,
        )

    def execute(self, action: str) -> None:
        """Run a control action.

        Unrecognised actions do nothing.

        Raises:
            ProcessError: If the action fails
        """
        if action == "start":
            self.start()
        elif action == "stop":
            self.stop()
        elif action == "restart":
            self.restart()
        else:
            logger.debug(f"Ignoring unknown action '{action}'")

    def stop(self) -> None:
        """Signal the pool to stop and wait for it to exit.

        Raises:
            ProcessError: If the signal cannot be delivered or the pool is
                still running once the wait timeout has elapsed
        """
        self._invalidate_pid()
        if not self.is_pool_running():
            self.output("The pool was not running")
            return

        pid = self._get_pid()
        interval = self.wait_timeout / MAX_POLL_COUNT / 1_000_000

        logger.info(f"Sending {STOP_SIGNAL.name} to pool process {pid}")
        try:
            os.kill(pid, STOP_SIGNAL)
        except OSError as e:
            error_msg = f"Could not send the terminate command to the pool, {pid}"
            logger.error(f"{error_msg}: {e}")
            raise ProcessError(error_msg) from e

        # bounded wait, the pool cannot notify us when it exits
        count = 0
        running = True
        while running and count < MAX_POLL_COUNT:
            time.sleep(interval)
            count += 1
            running = self.is_pool_running()

        if running:
            error_msg = "Could not stop the pool"
            logger.error(f"{error_msg}, process {pid} still running after {count} checks")
            raise ProcessError(error_msg)

        logger.info(f"Pool process {pid} exited after {count} checks")
        self._invalidate_pid()
        self.output("Pool stopped")

    def start(self) -> None:
        """Launch the pool in the background.

        Raises:
            ProcessError: If running as a disallowed superuser, if the pool
                is already running, or if the pool process cannot be spawned
        """
        if os.getuid() == 0 and not self.can_run_as_root:
            error_msg = "Cannot run the pool as the root user"
            logger.error(error_msg)
            raise ProcessError(error_msg)

        self._invalidate_pid()
        if self.is_pool_running():
            error_msg = "Pool is already running"
            logger.error(f"{error_msg} (pid {self._get_pid()})")
            raise ProcessError(error_msg)

        # the pool respawns its own workers, so it is launched exactly once
        runner = self.runner_factory.create_runner("console", self.pool_pid_file, 1)
        pid = runner.execute(self.pool_command, False)
        self._invalidate_pid()
        logger.info(f"Pool started with pid {pid}")
        self.output("Pool started")

    def restart(self) -> None:
        """Stop the pool, then start it again. A failed stop aborts the restart."""
        self.stop()
        self.start()

    def is_pool_running(self) -> bool:
        """Check whether the process named in the PID file is alive.

        A missing or unreadable PID file means the pool is not running.
        """
        try:
            pid = self._get_pid()
        except (NotFoundError, PidError) as e:
            logger.debug(f"Pool not running: {e}")
            return False

        # a non-blocking reap only works on our own children
        try:
            reaped_pid, _ = os.waitpid(pid, os.WNOHANG)
        except OSError as e:
            logger.debug(f"waitpid({pid}) failed: {e}")
            return self._process_exists(pid)

        running = reaped_pid == 0
        logger.debug(f"Pool process {pid} is {'running' if running else 'reaped'}")
        return running

    @staticmethod
    def _process_exists(pid: int) -> bool:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # exists, but belongs to another user
            return True
        return True

    def _get_pid(self) -> int:
        """Resolve the pool PID, reading the PID file at most once per resolution."""
        if self._pid is None:
            self._pid = self.pid_factory.create(self.pool_pid_file)
        return self._pid.get_pid()

    def _invalidate_pid(self) -> None:
        self._pid = None
