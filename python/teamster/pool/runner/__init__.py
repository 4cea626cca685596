"""Subprocess runners for the managed pool process."""

from .base import (
    DEFAULT_PROCESS_TIMEOUT,
    DEFAULT_WAIT_TIMEOUT,
    Runner,
    RunnerSettings,
)
from .console_runner import ConsoleRunner
from .descriptors import DEFAULT_DESCRIPTOR_SPEC, STDERR, STDIN, STDOUT
from .factory import RUNNER_TYPES, RunnerFactory
from .process_runner import ProcessRunner

__all__ = [
    "Runner",
    "RunnerSettings",
    "ProcessRunner",
    "ConsoleRunner",
    "RunnerFactory",
    "RUNNER_TYPES",
    "DEFAULT_DESCRIPTOR_SPEC",
    "DEFAULT_PROCESS_TIMEOUT",
    "DEFAULT_WAIT_TIMEOUT",
    "STDIN",
    "STDOUT",
    "STDERR",
]
