"""
Configuration management for the pool supervisor.

This module provides the configuration dataclass and environment variable
parsing for the pool control command. All timeouts are in microseconds.
"""

import os
import sys
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .exceptions import ConfigurationError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PID_FILE = "/tmp/teamster-pool.pid"
DEFAULT_WAIT_TIMEOUT = 20_000_000  # 20 seconds
DEFAULT_PROCESS_TIMEOUT = 3_600_000_000  # one hour
DEFAULT_RUNNER_WAIT_TIMEOUT = 20_000_000

# upper bound for any timeout read from the environment (one day)
MAX_TIMEOUT = 86_400_000_000


@dataclass
class PoolConfig:
    """Configuration for the pool control command.

    Attributes:
        pool_pid_file: Path of the PID file that tracks the pool process
        pool_command: Pool command line, run through the console entry point
        console_path: Console entry point the pool command is passed to
        can_run_as_root: Allow starting the pool as the superuser
        wait_timeout: How long "stop" waits for the pool to exit
        process_timeout: Hard cap on a single foreground run of a runner
        runner_wait_timeout: How long a runner waits for a process it terminates
    """

    pool_pid_file: str = DEFAULT_PID_FILE
    pool_command: Optional[str] = None
    console_path: str = field(default_factory=lambda: sys.executable)
    can_run_as_root: bool = False
    wait_timeout: int = DEFAULT_WAIT_TIMEOUT
    process_timeout: int = DEFAULT_PROCESS_TIMEOUT
    runner_wait_timeout: int = DEFAULT_RUNNER_WAIT_TIMEOUT


_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def validate_environment_variable(
    var_name: str,
    var_value: str,
    var_type: type,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> Tuple[bool, Optional[str]]:
    """Check a raw TEAMSTER_* value against the type its setting expects.

    Timeouts are ints bounded by `min_value`/`max_value`, the root switch is
    a bool and paths or commands are non-blank strings.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if var_type is bool:
        if var_value.lower() in _TRUE_VALUES + _FALSE_VALUES:
            return True, None
        return False, f"{var_name} must be a boolean value (true/false, 1/0, yes/no, on/off), got '{var_value}'"

    if var_type is int:
        try:
            number = int(var_value)
        except ValueError as e:
            return False, f"{var_name} has invalid format: {e}"
        if min_value is not None and number < min_value:
            return False, f"{var_name} must be >= {min_value}, got {number}"
        if max_value is not None and number > max_value:
            return False, f"{var_name} must be <= {max_value}, got {number}"
        return True, None

    if not var_value.strip():
        return False, f"{var_name} cannot be empty"
    return True, None


def _parse_bool(value: str) -> bool:
    return value.lower() in _TRUE_VALUES


def parse_environment_variables() -> PoolConfig:
    """Parse TEAMSTER_* environment variables into a PoolConfig.

    Invalid values are logged as warnings and replaced by their defaults.

    Returns:
        PoolConfig: Configuration instance
    """
    config = PoolConfig()
    validation_warnings: List[str] = []

    for var_name, attr in (
        ("TEAMSTER_POOL_PID_FILE", "pool_pid_file"),
        ("TEAMSTER_POOL_COMMAND", "pool_command"),
        ("TEAMSTER_CONSOLE_PATH", "console_path"),
    ):
        value = os.getenv(var_name)
        if value is None:
            continue
        is_valid, error_msg = validate_environment_variable(var_name, value, str)
        if is_valid:
            setattr(config, attr, value.strip())
        else:
            validation_warnings.append(
                f"Invalid {var_name}: {error_msg}. Using default: {getattr(config, attr)}"
            )

    can_run_as_root = os.getenv("TEAMSTER_CAN_RUN_AS_ROOT")
    if can_run_as_root is not None:
        is_valid, error_msg = validate_environment_variable(
            "TEAMSTER_CAN_RUN_AS_ROOT", can_run_as_root, bool
        )
        if is_valid:
            config.can_run_as_root = _parse_bool(can_run_as_root)
        else:
            validation_warnings.append(
                f"Invalid TEAMSTER_CAN_RUN_AS_ROOT: {error_msg}. Using default: {config.can_run_as_root}"
            )

    for var_name, attr in (
        ("TEAMSTER_WAIT_TIMEOUT", "wait_timeout"),
        ("TEAMSTER_PROCESS_TIMEOUT", "process_timeout"),
        ("TEAMSTER_RUNNER_WAIT_TIMEOUT", "runner_wait_timeout"),
    ):
        value = os.getenv(var_name)
        if not value:
            continue
        is_valid, error_msg = validate_environment_variable(
            var_name, value, int, min_value=1, max_value=MAX_TIMEOUT
        )
        if is_valid:
            setattr(config, attr, int(value))
        else:
            validation_warnings.append(
                f"Invalid {var_name}: {error_msg}. Using default: {getattr(config, attr)}"
            )

    for warning in validation_warnings:
        logger.warning(warning)

    return config


def validate_config(config: PoolConfig, require_command: bool = True) -> None:
    """Check that a configuration is complete enough to control the pool.

    Stopping the pool needs no pool command, so `require_command` can be
    turned off for that action.

    Raises:
        ConfigurationError: If the PID file path or the pool command is missing
    """
    errors = []
    if not config.pool_pid_file or not config.pool_pid_file.strip():
        errors.append("Pool PID file path cannot be empty")
    if require_command and (not config.pool_command or not config.pool_command.strip()):
        errors.append(
            "No pool command available. Set TEAMSTER_POOL_COMMAND or pass --command"
        )
    if not config.console_path or not config.console_path.strip():
        errors.append("Console path cannot be empty")

    if errors:
        error_msg = "Configuration validation errors:\n" + "\n".join(errors)
        logger.error(error_msg)
        raise ConfigurationError(error_msg)
