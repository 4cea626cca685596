"""Teamster pool supervisor.

Controls the lifecycle of a single long-running worker pool process tracked
through a PID file:
- Control: from .pool.control import PoolControlCommand
- Runners: from .pool.runner import RunnerFactory
"""

__version__ = "0.1.0"
