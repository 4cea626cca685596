"""Unit tests for PoolConfig and environment parsing."""

import os
import sys
from unittest.mock import patch

import pytest

from teamster.config import (
    DEFAULT_PID_FILE,
    DEFAULT_PROCESS_TIMEOUT,
    DEFAULT_WAIT_TIMEOUT,
    PoolConfig,
    parse_environment_variables,
    validate_config,
    validate_environment_variable,
)
from teamster.exceptions import ConfigurationError


def teamster_free_environ():
    return {k: v for k, v in os.environ.items() if not k.startswith("TEAMSTER_")}


class TestPoolConfig:
    """Test the PoolConfig dataclass."""

    def test_defaults(self):
        """Test that PoolConfig can be created with default values."""
        config = PoolConfig()

        assert config.pool_pid_file == DEFAULT_PID_FILE
        assert config.pool_command is None
        assert config.console_path == sys.executable
        assert config.can_run_as_root is False
        assert config.wait_timeout == 20_000_000
        assert config.process_timeout == DEFAULT_PROCESS_TIMEOUT
        assert config.runner_wait_timeout == DEFAULT_WAIT_TIMEOUT


class TestValidateEnvironmentVariable:
    """Test validate_environment_variable function."""

    def test_valid_integer(self):
        """Test valid integer validation."""
        is_valid, error = validate_environment_variable(
            "TEST_VAR", "5", int, min_value=1, max_value=10
        )
        assert is_valid is True
        assert error is None

    def test_integer_out_of_range(self):
        """Test integer range validation."""
        is_valid, error = validate_environment_variable("TEST_VAR", "0", int, min_value=1)
        assert is_valid is False
        assert "must be >= 1" in error

        is_valid, error = validate_environment_variable("TEST_VAR", "11", int, max_value=10)
        assert is_valid is False
        assert "must be <= 10" in error

    def test_invalid_integer(self):
        """Test invalid integer format."""
        is_valid, error = validate_environment_variable("TEST_VAR", "abc", int)
        assert is_valid is False
        assert "invalid format" in error

    @pytest.mark.parametrize("value", ["true", "False", "1", "0", "yes", "NO", "on", "off"])
    def test_valid_boolean(self, value):
        """Test accepted boolean spellings."""
        is_valid, error = validate_environment_variable("TEST_VAR", value, bool)
        assert is_valid is True

    def test_invalid_boolean(self):
        """Test invalid boolean value."""
        is_valid, error = validate_environment_variable("TEST_VAR", "maybe", bool)
        assert is_valid is False
        assert "must be a boolean value" in error

    def test_empty_string(self):
        """Test empty string validation."""
        is_valid, error = validate_environment_variable("TEST_VAR", "   ", str)
        assert is_valid is False
        assert "cannot be empty" in error


class TestParseEnvironmentVariables:
    """Test parse_environment_variables function."""

    def test_defaults(self):
        """Test parsing with no TEAMSTER_ variables set."""
        with patch.dict(os.environ, teamster_free_environ(), clear=True):
            config = parse_environment_variables()

        assert config == PoolConfig()

    def test_custom_values(self):
        """Test parsing custom environment variables."""
        env_vars = {
            "TEAMSTER_POOL_PID_FILE": "/var/run/pool.pid",
            "TEAMSTER_POOL_COMMAND": " -m myapp.pool --workers 4 ",
            "TEAMSTER_CONSOLE_PATH": "/usr/local/bin/console",
            "TEAMSTER_CAN_RUN_AS_ROOT": "yes",
            "TEAMSTER_WAIT_TIMEOUT": "5000000",
            "TEAMSTER_PROCESS_TIMEOUT": "60000000",
            "TEAMSTER_RUNNER_WAIT_TIMEOUT": "1000000",
        }

        with patch.dict(os.environ, env_vars):
            config = parse_environment_variables()

        assert config.pool_pid_file == "/var/run/pool.pid"
        assert config.pool_command == "-m myapp.pool --workers 4"
        assert config.console_path == "/usr/local/bin/console"
        assert config.can_run_as_root is True
        assert config.wait_timeout == 5_000_000
        assert config.process_timeout == 60_000_000
        assert config.runner_wait_timeout == 1_000_000

    def test_invalid_values_fall_back_to_defaults(self):
        """Test that invalid values are warned about and replaced by defaults."""
        env_vars = {
            "TEAMSTER_POOL_PID_FILE": "  ",
            "TEAMSTER_CAN_RUN_AS_ROOT": "sometimes",
            "TEAMSTER_WAIT_TIMEOUT": "0",
            "TEAMSTER_PROCESS_TIMEOUT": "forever",
        }

        with patch.dict(os.environ, env_vars), patch(
            "teamster.config.logger"
        ) as mock_logger:
            config = parse_environment_variables()

        assert config.pool_pid_file == DEFAULT_PID_FILE
        assert config.can_run_as_root is False
        assert config.wait_timeout == 20_000_000
        assert config.process_timeout == DEFAULT_PROCESS_TIMEOUT
        assert mock_logger.warning.call_count == 4


class TestValidateConfig:
    """Test validate_config function."""

    def test_valid(self):
        """Test that a complete configuration passes."""
        validate_config(PoolConfig(pool_command="-m myapp.pool"))

    def test_missing_command(self):
        """Test that start-capable configurations need a pool command."""
        with pytest.raises(ConfigurationError, match="No pool command"):
            validate_config(PoolConfig())

    def test_missing_command_allowed_for_stop(self):
        """Test that the command requirement can be relaxed."""
        validate_config(PoolConfig(), require_command=False)

    def test_empty_pid_file(self):
        """Test that an empty PID file path is rejected."""
        with pytest.raises(ConfigurationError, match="PID file"):
            validate_config(PoolConfig(pool_pid_file="", pool_command="x"))
