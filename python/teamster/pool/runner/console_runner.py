"""Runner for commands expressed as sub-commands of a console entry point."""

from typing import List

from ..pid import PidFactory
from .base import Command, Runner, RunnerSettings


class ConsoleRunner(Runner):
    """Spawns the command through a fixed console entry point.

    With `console_path="/usr/bin/python3"` the command `-m myapp.pool --workers 4`
    runs as `/usr/bin/python3 -m myapp.pool --workers 4`.
    """

    def __init__(
        self, console_path: str, pid_factory: PidFactory, settings: RunnerSettings
    ) -> None:
        super().__init__(pid_factory, settings)
        self.console_path = console_path

    def build_command(self, command: Command) -> List[str]:
        return [self.console_path] + self.split_command(command)
