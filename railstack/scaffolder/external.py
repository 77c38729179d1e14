"""Invocation of the external generators.

The Rails application is produced by ``rails new`` inside a throwaway
``ruby`` container; the React application by ``create-vite`` through
``npx`` on the host, followed by ``npm install``. Both stream their output
straight to the terminal. A failed generator leaves nothing behind: its
target directory is removed before the failure is raised.
"""

from __future__ import annotations

from pathlib import Path

from ..config import GenerationConfig
from ..environment import HostEnvironment
from ..errors import GenerationFailure
from ..utils import (
    discard_tree,
    print_error,
    print_info,
    print_success,
    remove_tree,
    run_command,
)

# Leftovers of ``rails new`` that would clash with the project-level repository.
RAILS_VCS_LEFTOVERS = (".git", ".github")


class ExternalGenerators:
    """Runs ``rails new`` and ``create-vite`` for one project.

    Args:
        config: The run's configuration.
        host: Host facts from the environment probe (used for file ownership).
        root: The project root directory, which must already exist.
    """

    def __init__(self, config: GenerationConfig, host: HostEnvironment, root: Path) -> None:
        self.config = config
        self.host = host
        self.root = Path(root)

    @property
    def api_root(self) -> Path:
        return self.root / self.config.api_dir

    @property
    def web_root(self) -> Path:
        return self.root / self.config.web_dir

    # -- Rails -------------------------------------------------------------

    def rails_new_script(self) -> str:
        """Shell snippet run inside the Ruby container."""
        rails = self.config.versions.rails
        return (
            f"gem install --no-document rails -v '~> {rails}' && "
            "rails new . --api --database=postgresql "
            "--skip-git --skip-test --skip-system-test --force"
        )

    def backend_command(self) -> list[str]:
        """Full ``docker run`` argv for the Rails generator."""
        cmd = [
            "docker", "run", "--rm",
            "-v", f"{self.api_root.resolve()}:/app",
            "-w", "/app",
        ]
        if self.host.docker_user is not None:
            # Gems install under HOME; the host uid has no home in the image.
            cmd += ["-u", self.host.docker_user, "-e", "HOME=/tmp"]
        cmd += [
            f"ruby:{self.config.versions.ruby}",
            "bash", "-c", self.rails_new_script(),
        ]
        return cmd

    async def generate_backend(self) -> Path:
        """Generate the Rails API into ``<root>/<name>-api``.

        Raises:
            GenerationFailure: The container exited non-zero. The API
                directory has been removed.
        """
        print_info(
            f"Generating Rails {self.config.versions.rails} API "
            f"(Ruby {self.config.versions.ruby}) in Docker..."
        )
        self.api_root.mkdir(parents=True, exist_ok=True)

        returncode, _, stderr = await run_command(
            self.backend_command(), cwd=self.root, capture=False
        )
        if returncode != 0:
            print_error(f"Rails generation failed (exit code {returncode})")
            if stderr:
                print_error(stderr)
            discard_tree(self.api_root)
            raise GenerationFailure("rails new", returncode)

        for leftover in RAILS_VCS_LEFTOVERS:
            remove_tree(self.api_root / leftover)
        print_success(f"Rails API created in {self.config.api_dir}")
        return self.api_root

    # -- React -------------------------------------------------------------

    def frontend_command(self) -> list[str]:
        """``npx create-vite`` argv for the selected React variant."""
        template = self.config.frontend.vite_template
        if template is None:
            raise GenerationFailure("create-vite", 2, "No React variant selected")
        return [
            "npx", "create-vite@latest", self.config.web_dir,
            "--template", template,
            "--no-rolldown", "--no-interactive",
        ]

    async def generate_frontend(self) -> Path:
        """Generate the React app into ``<root>/<name>-web-react`` and install its packages.

        Raises:
            GenerationFailure: ``create-vite`` or ``npm install`` exited
                non-zero. The web directory has been removed.
        """
        print_info(f"Creating React app ({self.config.frontend.vite_template}) with Vite...")
        returncode, _, stderr = await run_command(
            self.frontend_command(), cwd=self.root, capture=False
        )
        if returncode != 0:
            self._abandon_frontend("create-vite", returncode, stderr)

        print_info("Installing frontend dependencies...")
        returncode, _, stderr = await run_command(
            ["npm", "install"], cwd=self.web_root, capture=False
        )
        if returncode != 0:
            self._abandon_frontend("npm install", returncode, stderr)

        print_success(f"React app created in {self.config.web_dir}")
        return self.web_root

    def _abandon_frontend(self, tool: str, returncode: int, stderr: str) -> None:
        print_error(f"{tool} failed (exit code {returncode})")
        if stderr:
            print_error(stderr)
        discard_tree(self.web_root)
        raise GenerationFailure(tool, returncode)
