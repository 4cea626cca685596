"""PID handles and PID-file access for the managed pool process."""

import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..exceptions import NotFoundError, PidError
from ..logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_PID_PATTERN = re.compile(r"^\d+$")

# largest value a signed 32-bit pid_t can hold
MAX_PID = 2**31 - 1


@dataclass(frozen=True)
class Pid:
    """A validated process identifier and the file it was read from.

    Attributes:
        pid: The process identifier, always a positive integer
        path: The PID file this value came from, if any
    """

    pid: int
    path: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.pid, bool) or not isinstance(self.pid, int):
            raise PidError(f"Process identifier must be an integer, got {self.pid!r}")
        if self.pid <= 0:
            raise PidError(f"Process identifier must be positive, got {self.pid}")
        if self.pid > MAX_PID:
            raise PidError(f"Process identifier {self.pid} is out of range")

    def get_pid(self) -> int:
        return self.pid

    def __int__(self) -> int:
        return self.pid

    def __str__(self) -> str:
        return str(self.pid)


class PidFactory:
    """Reads and writes PID files.

    A PID file holds a single process identifier as decimal text. Reading never
    modifies the file; a missing file and an unparsable file are reported as
    different errors so callers can tell "never started" from "corrupt".
    """

    def create(self, path: PathLike) -> Pid:
        """Read the PID file at `path` and return its Pid.

        Args:
            path: Location of the PID file

        Returns:
            Pid: The parsed process identifier

        Raises:
            NotFoundError: If the file does not exist
            PidError: If the file content is not a valid process identifier
        """
        pid_path = Path(path)
        try:
            content = pid_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError as e:
            raise NotFoundError(f"PID file '{pid_path}' does not exist") from e
        except (OSError, UnicodeDecodeError) as e:
            raise PidError(f"Could not read PID file '{pid_path}': {e}") from e

        # the length check keeps int() away from huge digit runs
        if not _PID_PATTERN.match(content) or len(content) > len(str(MAX_PID)):
            raise PidError(
                f"PID file '{pid_path}' does not contain a valid process identifier: {content[:32]!r}"
            )

        pid = Pid(int(content), str(pid_path))
        logger.debug(f"Read PID {pid} from '{pid_path}'")
        return pid

    def write(self, path: PathLike, pid: int) -> Pid:
        """Persist `pid` to the PID file at `path`.

        The file is replaced atomically so a concurrent reader sees either the
        old identifier or the new one, never a partial write.

        Returns:
            Pid: Handle on the identifier that was written
        """
        new_pid = Pid(pid, str(path))
        pid_path = Path(path)
        pid_path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            dir=str(pid_path.parent), prefix=f".{pid_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(f"{new_pid.pid}\n")
            os.chmod(temp_path, 0o644)
            os.replace(temp_path, pid_path)
        except BaseException:
            Path(temp_path).unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote PID {new_pid} to '{pid_path}'")
        return new_pid

    def remove(self, path: PathLike) -> bool:
        """Delete the PID file if it exists.

        Returns:
            bool: True if a file was removed
        """
        pid_path = Path(path)
        try:
            pid_path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Removed PID file '{pid_path}'")
        return True
