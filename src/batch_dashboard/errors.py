"""Error taxonomy for the batch dashboard.

Structural failures (no usable data) are raised as these exceptions and
surface to the HTTP layer. Partial failures (one bad row or field) never
raise; parsers log and absorb them.
"""

from collections.abc import Sequence


class DashboardError(Exception):
    """Base class for all dashboard errors."""


class InvalidIdentifierError(DashboardError, ValueError):
    """Raised when a user-supplied hostname or job id fails validation."""

    def __init__(self, kind: str, value: str):
        self.kind = kind
        self.value = value
        super().__init__(f"invalid {kind}: {value!r}")


class UnknownEntityError(DashboardError, LookupError):
    """Raised when the scheduler reports no node or job for a valid identifier."""

    def __init__(self, kind: str, value: str):
        self.kind = kind
        self.value = value
        super().__init__(f"{kind} not found: {value}")


class CommandExecutionError(DashboardError):
    """Raised when an external scheduler command cannot run or exits non-zero."""

    def __init__(
        self,
        command: Sequence[str],
        message: str,
        returncode: int | None = None,
        stderr: str = "",
    ):
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{' '.join(self.command)}: {message}")


class CommandTimeoutError(CommandExecutionError):
    """Raised when an external scheduler command exceeds its deadline."""


class MalformedOutputError(DashboardError):
    """Raised when command output does not have the expected structure."""


class EmptyOutputError(DashboardError):
    """Raised when a scheduler command succeeds but prints nothing.

    Kept distinct from an empty cluster, which still prints a table header
    or an empty XML document.
    """

    def __init__(self, command: Sequence[str]):
        self.command = tuple(command)
        super().__init__(f"no output from {' '.join(self.command)}")
