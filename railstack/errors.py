"""Exception hierarchy for railstack.

Every failure that ends a run derives from ``ScaffoldError`` so the CLI can
report it and map it to a non-zero exit code in one place.
"""

from __future__ import annotations

from pathlib import Path


class ScaffoldError(Exception):
    """Base class for all errors that terminate a generation run."""

    exit_code: int = 1


class InvalidArgument(ScaffoldError):
    """Raised for unknown flags, missing values, or a malformed project name."""


class TargetExists(ScaffoldError):
    """Raised when the project directory is already present."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Directory '{self.path.name}' already exists")


class EnvironmentUnavailable(ScaffoldError):
    """Raised when the host platform or a required tool is unusable.

    Attributes:
        remediation: Lines of guidance printed after the error message.
    """

    def __init__(self, message: str, remediation: list[str] | None = None) -> None:
        self.remediation = list(remediation or [])
        super().__init__(message)


class GenerationFailure(ScaffoldError):
    """Raised when an external generator (Docker, npx, npm, git) exits non-zero."""

    def __init__(self, tool: str, returncode: int, message: str = "") -> None:
        self.tool = tool
        self.returncode = returncode
        super().__init__(message or f"{tool} failed with exit code {returncode}")


class PatchFailure(ScaffoldError):
    """Raised when a post-generation rewrite cannot be applied.

    Attributes:
        step: Name of the patch step (``database``, ``cors``, ``jobs``).
        path: The file the step was working on.
    """

    def __init__(self, step: str, path: str | Path, reason: str) -> None:
        self.step = step
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Patch step '{step}' failed on {self.path}: {reason}")
