"""Subprocess runners: spawn a command, record its PID and respawn on failure."""

import shlex
import signal
import subprocess
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from ...exceptions import ProcessError
from ...logging_config import get_logger
from ..pid import PidFactory
from .descriptors import Directive, describe, open_streams

logger = get_logger(__name__)

Command = Union[str, Sequence[str]]

MICROSECONDS = 1_000_000

DEFAULT_PROCESS_TIMEOUT = 3600 * MICROSECONDS  # one hour
DEFAULT_WAIT_TIMEOUT = 20 * MICROSECONDS


class RunnerSettings(BaseModel):
    """Immutable snapshot of the configuration a runner was built with.

    Timeouts are in microseconds.
    """

    model_config = ConfigDict(frozen=True)

    descriptor_spec: Dict[int, Directive]
    pid_file: str = ""
    max_run_count: int = 0
    process_timeout: int = DEFAULT_PROCESS_TIMEOUT
    wait_timeout: int = DEFAULT_WAIT_TIMEOUT

    @property
    def process_timeout_seconds(self) -> float:
        return self.process_timeout / MICROSECONDS

    @property
    def wait_timeout_seconds(self) -> float:
        return self.wait_timeout / MICROSECONDS

    @property
    def run_limit(self) -> int:
        """Total number of invocations allowed; 0 and 1 both mean a single run."""
        return max(1, self.max_run_count)


class Runner(ABC):
    """Runs a command as a subprocess on behalf of the pool supervisor.

    In background mode the command is spawned once in its own session, its
    PID is written to the PID file and control returns to the caller straight
    away. In foreground mode the runner stays in charge: it waits for each
    invocation (bounded by the process timeout) and respawns the command after
    an abnormal exit until the run limit is reached.
    """

    def __init__(self, pid_factory: PidFactory, settings: RunnerSettings) -> None:
        self.pid_factory = pid_factory
        self.settings = settings
        self.process: Optional[subprocess.Popen] = None
        self.run_count = 0
        self.last_output: Tuple[Optional[bytes], Optional[bytes]] = (None, None)
        self._stopping = threading.Event()

    @abstractmethod
    def build_command(self, command: Command) -> List[str]:
        """Turn the caller's command into the argument vector to spawn."""

    @staticmethod
    def split_command(command: Command) -> List[str]:
        if isinstance(command, str):
            return shlex.split(command)
        return [str(part) for part in command]

    def spawn(self, command: Command, background: bool = False) -> subprocess.Popen:
        """Spawn the command once with the configured stream wiring.

        The PID file, if one is configured, is written before this returns.

        Raises:
            ProcessError: If the process could not be spawned, or its PID file
                could not be written (the process is killed in that case)
        """
        args = self.build_command(command)
        if not args:
            raise ProcessError("Cannot run an empty command")

        logger.info(
            f"Spawning {' '.join(args)} ({'background' if background else 'foreground'}, "
            f"streams: {describe(self.settings.descriptor_spec)})"
        )
        try:
            with open_streams(self.settings.descriptor_spec, background) as streams:
                process = subprocess.Popen(
                    args, start_new_session=background, **streams
                )
        except OSError as e:
            error_msg = f"Could not start process '{args[0]}': {e}"
            logger.error(error_msg)
            raise ProcessError(error_msg) from e

        if self.settings.pid_file:
            try:
                self.pid_factory.write(self.settings.pid_file, process.pid)
            except OSError as e:
                # never leave a process running without its PID file
                process.kill()
                process.wait()
                error_msg = (
                    f"Could not write PID file '{self.settings.pid_file}' "
                    f"for process {process.pid}: {e}"
                )
                logger.error(error_msg)
                raise ProcessError(error_msg) from e

        self.process = process
        self.run_count += 1
        logger.info(f"Started process {process.pid} (run {self.run_count})")
        return process

    def execute(self, command: Command, foreground: bool = True) -> int:
        """Run the command.

        Args:
            command: Command line as a string or an argument sequence
            foreground: Block until the command is finished for good if True,
                return as soon as the PID is recorded otherwise

        Returns:
            int: The PID of the spawned process in background mode, the exit
            code of the final invocation in foreground mode

        Raises:
            ProcessError: If the process could not be spawned
        """
        if not foreground:
            return self.spawn(command, background=True).pid

        try:
            return self._run_foreground(command)
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping the managed process")
            self.stop()
            raise
        finally:
            if self.settings.pid_file:
                self.pid_factory.remove(self.settings.pid_file)

    def _run_foreground(self, command: Command) -> int:
        self._stopping.clear()
        self.run_count = 0
        returncode = 0
        while self.run_count < self.settings.run_limit and not self._stopping.is_set():
            process = self.spawn(command)
            returncode = self._wait(process)
            if returncode == 0 or self._stopping.is_set():
                break
            if self.run_count < self.settings.run_limit:
                logger.warning(
                    f"Process {process.pid} exited with code {returncode}, respawning "
                    f"(run {self.run_count + 1} of {self.settings.run_limit})"
                )
        else:
            logger.error(
                f"Giving up after {self.run_count} runs, last exit code {returncode}"
            )
        self.process = None
        return returncode

    def _wait(self, process: subprocess.Popen) -> int:
        """Wait for one invocation, killing it if it outlives the process timeout."""
        try:
            self.last_output = process.communicate(
                timeout=self.settings.process_timeout_seconds
            )
        except subprocess.TimeoutExpired:
            logger.warning(
                f"Process {process.pid} exceeded the process timeout of "
                f"{self.settings.process_timeout_seconds}s"
            )
            self._shutdown(process, drain=True)
        self._log_output(process)
        return process.returncode

    def _log_output(self, process: subprocess.Popen) -> None:
        stdout, stderr = self.last_output
        if stdout:
            logger.debug(f"Process {process.pid} stdout: {stdout!r}")
        if stderr:
            logger.debug(f"Process {process.pid} stderr: {stderr!r}")

    def _shutdown(self, process: subprocess.Popen, drain: bool = False) -> None:
        """Terminate a process, escalating to SIGKILL after the wait timeout.

        Only the thread that owns the process pipes may pass `drain=True`.
        """
        if process.poll() is not None:
            return
        process.send_signal(signal.SIGTERM)
        try:
            if drain:
                self.last_output = process.communicate(
                    timeout=self.settings.wait_timeout_seconds
                )
            else:
                process.wait(timeout=self.settings.wait_timeout_seconds)
        except subprocess.TimeoutExpired:
            logger.warning(
                f"Process {process.pid} did not exit within "
                f"{self.settings.wait_timeout_seconds}s, killing it"
            )
            process.kill()
            if drain:
                self.last_output = process.communicate()
            else:
                process.wait()

    def stop(self) -> None:
        """Stop the active process and prevent any further respawn."""
        self._stopping.set()
        process = self.process
        if process is None:
            return
        logger.info(f"Stopping process {process.pid}")
        self._shutdown(process)
