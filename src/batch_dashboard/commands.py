"""Execution of external scheduler status commands.

Provides the single capability the assembler needs from the outside world:
run a command with fixed arguments, within a deadline, and hand back its
output. Nothing is retried; a failed command surfaces to the caller.
"""

import subprocess
import time
from dataclasses import dataclass

import pydantic
import structlog

from .errors import CommandExecutionError, CommandTimeoutError

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 15.0


class CommandPaths(pydantic.BaseModel):
    """Paths of the scheduler commands, fixed at startup."""

    pbsnodes: str = pydantic.Field("/usr/bin/pbsnodes", description="pbsnodes path")
    qstat: str = pydantic.Field("/usr/bin/qstat", description="qstat path")
    bhosts: str = pydantic.Field("bhosts", description="LSF bhosts path")
    lsload: str = pydantic.Field("lsload", description="LSF lsload path")
    bjobs: str = pydantic.Field("bjobs", description="LSF bjobs path")


@dataclass(frozen=True)
class CommandResult:
    """Decoded output of a successful command."""

    stdout: str
    stderr: str = ""


class CommandRunner:
    """Runs scheduler commands with a bounded timeout.

    Arguments are passed as an argv list, never through a shell, so an
    identifier can only ever become one argument.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        """Initialize the runner.

        Args:
            timeout: Seconds to wait for each command before killing it.

        Raises:
            ValueError: If timeout is not positive.
        """
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        self.timeout = timeout

    def execute(self, path: str, *args: str) -> CommandResult:
        """Run ``path args...`` and return its output.

        Args:
            path: Command path or name, e.g. ``/usr/bin/pbsnodes``.
            *args: Command arguments.

        Returns:
            CommandResult with stdout and stderr decoded as UTF-8.

        Raises:
            CommandTimeoutError: If the command does not finish in time.
            CommandExecutionError: If the command cannot be started or
                exits with a non-zero status.
        """
        command = (path, *args)
        start_time = time.monotonic()
        logger.debug("Running command", command=" ".join(command))

        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            logger.warning(
                "Command timed out",
                command=" ".join(command),
                timeout_seconds=self.timeout,
            )
            msg = f"timed out after {self.timeout}s"
            raise CommandTimeoutError(command, msg) from exc
        except OSError as exc:
            logger.warning("Command could not be started", command=" ".join(command))
            raise CommandExecutionError(command, str(exc)) from exc

        duration = time.monotonic() - start_time
        stdout = completed.stdout.decode("utf-8", "replace")
        stderr = completed.stderr.decode("utf-8", "replace").strip()

        if completed.returncode != 0:
            logger.warning(
                "Command failed",
                command=" ".join(command),
                returncode=completed.returncode,
                stderr=stderr,
                duration_seconds=round(duration, 3),
            )
            msg = stderr or f"exit status {completed.returncode}"
            raise CommandExecutionError(
                command,
                msg,
                returncode=completed.returncode,
                stderr=stderr,
            )

        logger.debug(
            "Command completed",
            command=" ".join(command),
            duration_seconds=round(duration, 3),
        )
        return CommandResult(stdout=stdout, stderr=stderr)
