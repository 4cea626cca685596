#!/usr/bin/env python3
"""
Pool Control CLI Script

Starts, stops or restarts the worker pool process.

Usage:
    teamster-control {start,stop,restart} [options]

Example:
    teamster-control start --pid-file /var/run/pool.pid --command "-m myapp.pool"
"""

import argparse
import logging
import sys
from typing import List, Optional

from teamster.config import parse_environment_variables, validate_config
from teamster.exceptions import ConfigurationError, TeamsterError
from teamster.logging_config import get_logger
from teamster.pool.control import ACTIONS, PoolControlCommand


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Control command for the teamster pool service"
    )

    # free text so that unknown actions are ignored instead of rejected
    parser.add_argument("action", help="service action: start, stop or restart")
    parser.add_argument("--pid-file", help="PID file of the pool process")
    parser.add_argument(
        "-c", "--command", help="Pool command (overrides TEAMSTER_POOL_COMMAND)"
    )
    parser.add_argument(
        "--console-path", help="Console entry point the pool command is run with"
    )
    parser.add_argument(
        "--allow-root",
        action="store_true",
        default=None,
        help="Allow the pool to be started as the root user",
    )
    parser.add_argument(
        "--wait-timeout",
        type=int,
        help="How long to wait for the pool to stop, in microseconds",
    )
    parser.add_argument(
        "--log-level",
        choices=["ERROR", "INFO", "DEBUG"],
        default="ERROR",
        help="Log level",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with error handling and logging."""
    args = build_parser().parse_args(argv)

    # Set up logging based on command line argument, module loggers included
    logger = get_logger("teamster")
    level = getattr(logging, args.log_level)
    for name in list(logging.root.manager.loggerDict):
        if name == "teamster" or name.startswith("teamster."):
            logging.getLogger(name).setLevel(level)

    if args.action not in ACTIONS:
        logger.debug(f"Unknown action '{args.action}', nothing to do")
        return 0

    try:
        config = parse_environment_variables()
        if args.pid_file:
            config.pool_pid_file = args.pid_file
        if args.command:
            config.pool_command = args.command
        if args.console_path:
            config.console_path = args.console_path
        if args.allow_root is not None:
            config.can_run_as_root = args.allow_root
        if args.wait_timeout is not None:
            if args.wait_timeout <= 0:
                raise ConfigurationError("--wait-timeout must be a positive integer")
            config.wait_timeout = args.wait_timeout

        validate_config(config, require_command=args.action != "stop")

        command = PoolControlCommand.from_config(config)
        command.execute(args.action)
        return 0

    except ConfigurationError as e:
        logger.error(f"Configuration error: {str(e)}")
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 1
    except TeamsterError as e:
        logger.error(f"Pool {args.action} failed: {str(e)}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
