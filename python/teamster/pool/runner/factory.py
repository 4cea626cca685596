"""Factory for configured subprocess runners."""

import copy
from typing import Any, Mapping, Union

from ...exceptions import RunnerError
from ...logging_config import get_logger
from ..pid import PidFactory
from .base import DEFAULT_PROCESS_TIMEOUT, DEFAULT_WAIT_TIMEOUT, Runner, RunnerSettings
from .console_runner import ConsoleRunner
from .descriptors import (
    DEFAULT_DESCRIPTOR_SPEC,
    DescriptorSpec,
    is_int,
    validate_definition,
    validate_index,
    validate_spec,
)
from .process_runner import ProcessRunner

logger = get_logger(__name__)

RUNNER_TYPES = ("process", "console")


class RunnerFactory:
    """Builds runners from a mutable configuration.

    The descriptor spec and timeouts can be changed between calls to
    `create_runner`; every runner receives a snapshot of the configuration
    as it was when the runner was created. Timeouts are in microseconds.
    """

    def __init__(self, pid_factory: PidFactory, console_path: str) -> None:
        self.pid_factory = pid_factory
        self.console_path = console_path
        self.descriptor_spec: DescriptorSpec = copy.deepcopy(DEFAULT_DESCRIPTOR_SPEC)
        self.process_timeout = DEFAULT_PROCESS_TIMEOUT
        self.wait_timeout = DEFAULT_WAIT_TIMEOUT

    def set_descriptor_spec(self, spec: Mapping[Any, Any]) -> None:
        """Replace the whole descriptor spec.

        Raises:
            RunnerError: If any index or definition is invalid; the current
                spec is left untouched
        """
        self.descriptor_spec = validate_spec(spec)

    def modify_descriptor_spec(self, index: Union[int, str], definition: Any) -> None:
        """Add, change or remove (with an empty definition) a single stream slot.

        Raises:
            RunnerError: If the index or definition is invalid; the current
                spec is left untouched
        """
        slot = validate_index(index)
        directive = validate_definition(definition)

        # an empty definition means "do not wire this stream"
        if not directive:
            self.descriptor_spec.pop(slot, None)
        else:
            self.descriptor_spec[slot] = directive

    def set_process_timeout(self, timeout: Union[int, str]) -> None:
        self.process_timeout = self._validate_timeout(timeout, "process")

    def set_wait_timeout(self, timeout: Union[int, str]) -> None:
        self.wait_timeout = self._validate_timeout(timeout, "wait")

    @staticmethod
    def _validate_timeout(timeout: Union[int, str], name: str) -> int:
        if not is_int(timeout) or int(timeout) <= 0:
            raise RunnerError(f"The {name} timeout must be a positive integer")
        return int(timeout)

    def create_runner(
        self, runner_type: str, pid_file: str = "", max_run_count: int = 0
    ) -> Runner:
        """Create a runner of the given type.

        Args:
            runner_type: "process" to run commands literally, "console" to run
                them through the console entry point
            pid_file: Where the runner records the PID of its process
            max_run_count: Total invocations allowed after abnormal exits

        Raises:
            RunnerError: If the runner type is unknown
        """
        if runner_type not in RUNNER_TYPES:
            raise RunnerError(f"The runner type '{runner_type}' is invalid")

        settings = RunnerSettings(
            descriptor_spec=copy.deepcopy(self.descriptor_spec),
            pid_file=str(pid_file),
            max_run_count=max_run_count,
            process_timeout=self.process_timeout,
            wait_timeout=self.wait_timeout,
        )
        logger.debug(f"Creating {runner_type} runner with {settings}")

        if runner_type == "console":
            return ConsoleRunner(self.console_path, self.pid_factory, settings)
        return ProcessRunner(self.pid_factory, settings)
