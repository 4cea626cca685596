"""Runner that executes its command line as given."""

from typing import List

from .base import Command, Runner


class ProcessRunner(Runner):
    """Spawns the command literally."""

    def build_command(self, command: Command) -> List[str]:
        return self.split_command(command)
