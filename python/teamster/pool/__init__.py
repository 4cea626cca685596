"""
Pool process control.

This package keeps a single worker pool process alive across separate
operator invocations, using a PID file as the only shared state.
"""

from .control import MAX_POLL_COUNT, STOP_SIGNAL, PoolControlCommand
from .pid import Pid, PidFactory
from .runner import ConsoleRunner, ProcessRunner, Runner, RunnerFactory

__all__ = [
    "PoolControlCommand",
    "MAX_POLL_COUNT",
    "STOP_SIGNAL",
    "Pid",
    "PidFactory",
    "Runner",
    "ProcessRunner",
    "ConsoleRunner",
    "RunnerFactory",
]
