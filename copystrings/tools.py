"""Wrappers around the external tools: plutil and iconv."""

import enum
import logging
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from copystrings.config import ToolPaths

logger = logging.getLogger(__name__)

# Shell convention for a command that could not be run at all.
COMMAND_NOT_FOUND = 127


class Outcome(enum.Enum):
    SUCCESS = "success"
    EXITED = "exited"
    SIGNALED = "signaled"


@dataclass(frozen=True)
class ToolResult:
    """How an external tool run ended.

    code is the exit status for EXITED and the signal number for SIGNALED.
    error holds the OS error text when the tool could not be started.
    """

    outcome: Outcome
    code: int = 0
    error: str | None = None

    @classmethod
    def from_returncode(cls, returncode: int) -> "ToolResult":
        if returncode == 0:
            return cls(Outcome.SUCCESS)
        if returncode < 0:
            return cls(Outcome.SIGNALED, -returncode)
        return cls(Outcome.EXITED, returncode)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def describe(self) -> str:
        """Human-readable description for log messages."""
        if self.outcome is Outcome.SIGNALED:
            try:
                name = signal.Signals(self.code).name
            except ValueError:
                name = f"signal {self.code}"
            return f"terminated by {name}"
        if self.error is not None:
            return f"could not be run: {self.error}"
        if self.outcome is Outcome.EXITED:
            return f"exited with status {self.code}"
        return "succeeded"


def run_tool(args: list[str], stdout: IO[bytes] | None = None) -> ToolResult:
    """Run an external tool to completion and classify how it ended.

    There is no timeout; a hung tool hangs the pipeline.

    Args:
        args: Command line, executable first.
        stdout: Optional binary file to receive the tool's standard output.

    Returns:
        ToolResult for the run.
    """
    logger.debug("Running: %s", subprocess.list2cmdline(args))
    try:
        completed = subprocess.run(args, stdout=stdout, check=False)
    except OSError as e:
        logger.debug("Cannot run %s: %s", args[0], e)
        return ToolResult(Outcome.EXITED, COMMAND_NOT_FOUND, error=e.strerror or str(e))
    return ToolResult.from_returncode(completed.returncode)


def lint(path: Path, tools: ToolPaths) -> ToolResult:
    """Check the structure of a property-list resource with plutil -lint."""
    return run_tool([tools.plutil, "-lint", str(path)])


def convert_to_binary(source: Path, dest: Path, tools: ToolPaths) -> ToolResult:
    """Write source to dest as a binary property list."""
    return run_tool([tools.plutil, "-convert", "binary1", "-o", str(dest), str(source)])


def reencode(
    source: Path,
    dest: Path,
    from_encoding: str,
    to_encoding: str,
    tools: ToolPaths,
) -> ToolResult:
    """Re-encode source into dest with iconv, which writes to standard output."""
    with open(dest, "wb") as out:
        return run_tool(
            [tools.iconv, "-f", from_encoding, "-t", to_encoding, str(source)],
            stdout=out,
        )
