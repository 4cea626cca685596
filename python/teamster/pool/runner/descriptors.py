"""Descriptor specs: how a spawned process's standard streams are wired.

A descriptor spec maps a standard stream slot to a directive:

- ("pipe", "r") / ("pipe", "w"): connect the stream to a pipe owned by the runner
- ("file", path, mode): redirect the stream to a file opened with `mode`
- ("null",): connect the stream to the null device

A slot that is absent from the descriptor spec is not wired at all, so the child
inherits that stream from its parent.
"""

import subprocess
from contextlib import contextmanager
from typing import IO, Any, Dict, Iterator, Mapping, Sequence, Tuple, Union

from ...exceptions import RunnerError

STDIN = 0
STDOUT = 1
STDERR = 2

STREAM_NAMES = {STDIN: "stdin", STDOUT: "stdout", STDERR: "stderr"}

Directive = Tuple[Any, ...]
DescriptorSpec = Dict[int, Directive]

DEFAULT_DESCRIPTOR_SPEC: DescriptorSpec = {
    STDIN: ("pipe", "r"),
    STDOUT: ("pipe", "w"),
    STDERR: ("pipe", "w"),
}

_PIPE_MODES = ("r", "w")


def is_int(value: Any) -> bool:
    """Check for an integer, or a string that reads back as the same integer."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, str):
        try:
            return str(int(value)) == value
        except ValueError:
            return False
    return False


def validate_index(index: Union[int, str]) -> int:
    """Validate a descriptor slot and return it as an int.

    Raises:
        RunnerError: If the index is not an integer naming a standard stream
    """
    if not is_int(index):
        raise RunnerError("Descriptor spec indices must be integers")
    slot = int(index)
    if slot not in STREAM_NAMES:
        raise RunnerError(
            f"Descriptor spec index {slot} is not a standard stream (expected 0, 1 or 2)"
        )
    return slot


def validate_definition(definition: Any) -> Directive:
    """Validate a directive and return it as a tuple.

    An empty definition is valid and means "remove this slot".

    Raises:
        RunnerError: If the definition is not a list or tuple, or names an
            unknown directive
    """
    if not isinstance(definition, (list, tuple)):
        raise RunnerError("Descriptor spec definitions must be lists or tuples")
    directive = tuple(definition)
    if not directive:
        return directive

    kind = directive[0]
    if kind == "pipe":
        if len(directive) != 2 or directive[1] not in _PIPE_MODES:
            raise RunnerError(f"Pipe directives must be ('pipe', 'r'|'w'), got {directive}")
    elif kind == "file":
        if len(directive) != 3 or not directive[1] or not isinstance(directive[2], str):
            raise RunnerError(
                f"File directives must be ('file', path, mode), got {directive}"
            )
    elif kind == "null":
        if len(directive) != 1:
            raise RunnerError(f"Null directives take no arguments, got {directive}")
    else:
        raise RunnerError(f"Unknown descriptor directive '{kind}'")
    return directive


def validate_spec(spec: Mapping[Any, Any]) -> DescriptorSpec:
    """Validate a whole descriptor spec, dropping slots with empty definitions."""
    if not isinstance(spec, Mapping):
        raise RunnerError("Descriptor spec must be a mapping of stream index to definition")
    validated: DescriptorSpec = {}
    for index, definition in spec.items():
        slot = validate_index(index)
        directive = validate_definition(definition)
        if directive:
            validated[slot] = directive
    return validated


@contextmanager
def open_streams(
    spec: Mapping[int, Directive], background: bool = False
) -> Iterator[Dict[str, Any]]:
    """Build the stdin/stdout/stderr arguments for `subprocess.Popen`.

    Files named by `file` directives are opened on entry and closed on exit,
    which is safe once the child has been spawned since it holds its own
    copies of the descriptors. In background mode nobody is left to service
    a pipe, so `pipe` directives are connected to the null device instead.

    Yields:
        Dict[str, Any]: Keyword arguments for `subprocess.Popen`
    """
    opened = []
    streams: Dict[str, Any] = {name: None for name in STREAM_NAMES.values()}
    try:
        for slot, directive in spec.items():
            kind = directive[0]
            if kind == "pipe":
                streams[STREAM_NAMES[slot]] = (
                    subprocess.DEVNULL if background else subprocess.PIPE
                )
            elif kind == "file":
                handle: IO[Any] = open(directive[1], directive[2])
                opened.append(handle)
                streams[STREAM_NAMES[slot]] = handle
            elif kind == "null":
                streams[STREAM_NAMES[slot]] = subprocess.DEVNULL
        yield streams
    finally:
        for handle in opened:
            handle.close()


def describe(spec: Mapping[int, Sequence[Any]]) -> str:
    """Short human readable form of a spec, used in log messages."""
    return ", ".join(
        f"{STREAM_NAMES.get(slot, slot)}={'/'.join(str(part) for part in directive)}"
        for slot, directive in sorted(spec.items())
    ) or "inherit all"
