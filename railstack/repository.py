"""Repository finalizer.

Initializes the one git repository of a generated project and records the
generated tree as its first commit.
"""

from __future__ import annotations

from pathlib import Path

from .config import GenerationConfig
from .errors import GenerationFailure
from .utils import print_error, print_info, print_success, run_command


def commit_message(config: GenerationConfig) -> str:
    """Initial commit message naming exactly the selected features."""
    stack = " + ".join(
        [f"Rails {config.versions.rails} API", *config.selected_features()]
    )
    return f"init: scaffold {stack} project with Docker"


async def _run_git(*args: str, cwd: str | Path, timeout: float = 60.0) -> str:
    """Run a git command in *cwd* and return its stdout.

    Raises GenerationFailure if the command exits with a non-zero code.
    """
    cmd = ["git", *args]
    returncode, stdout, stderr = await run_command(cmd, cwd=cwd, timeout=timeout)
    if returncode != 0:
        print_error(f"Command failed: {' '.join(cmd)}")
        if stderr:
            print_error(stderr)
        raise GenerationFailure("git", returncode, f"git {args[0]} failed: {stderr or stdout}")
    return stdout


class RepositoryFinalizer:
    """Creates the project repository and its initial commit."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    async def finalize(self, config: GenerationConfig) -> str:
        """Init, stage everything, and commit. Returns the commit message used."""
        message = commit_message(config)
        print_info("Initializing git repository...")
        await _run_git("init", "--quiet", cwd=self.root)
        await _run_git("add", ".", cwd=self.root)
        await _run_git("commit", "--quiet", "-m", message, cwd=self.root)
        print_success("Git repository initialized with initial commit")
        return message
