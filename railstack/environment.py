"""Host environment probing.

Detects the host platform and verifies that Docker (and, for frontend
projects, ``npx``) is available before anything is written to disk.
"""

from __future__ import annotations

import os
import shutil
import sys
from dataclasses import dataclass
from enum import Enum

from .config import GenerationConfig
from .errors import EnvironmentUnavailable
from .utils import print_info, print_warning, run_command

DOCKER_INSTALL_URL = "https://www.docker.com/products/docker-desktop"
WSL_INSTALL_URL = "https://docs.microsoft.com/en-us/windows/wsl/install"


class Platform(str, Enum):
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "unsupported-windows"
    UNKNOWN = "unknown"


def detect_platform(platform_id: str | None = None) -> Platform:
    """Map a ``sys.platform`` identifier to a ``Platform``."""
    platform_id = sys.platform if platform_id is None else platform_id
    if platform_id.startswith("linux"):
        return Platform.LINUX
    if platform_id == "darwin":
        return Platform.MACOS
    if platform_id.startswith(("win32", "cygwin", "msys")):
        return Platform.WINDOWS
    return Platform.UNKNOWN


@dataclass(frozen=True)
class HostEnvironment:
    """Facts about the machine running the generator.

    Kept apart from ``GenerationConfig``: it describes where the tool runs,
    not what it generates.
    """

    platform: Platform
    uid: int | None = None
    gid: int | None = None

    @property
    def match_host_ownership(self) -> bool:
        """Whether container-written files should be owned by the host user."""
        return self.platform in (Platform.LINUX, Platform.MACOS) and self.uid is not None

    @property
    def docker_user(self) -> str | None:
        """Value for ``docker run -u``, or ``None`` to keep the image default."""
        if not self.match_host_ownership:
            return None
        return f"{self.uid}:{self.gid}"


class EnvironmentProber:
    """Runs the pre-flight checks for one generation run."""

    def __init__(self, platform_id: str | None = None) -> None:
        self.platform_id = platform_id

    async def probe(self, config: GenerationConfig) -> HostEnvironment:
        """Check the host and return its ``HostEnvironment``.

        Raises:
            EnvironmentUnavailable: Unsupported platform, Docker missing or
                not running, or ``npx`` missing when a frontend is requested.
        """
        platform = detect_platform(self.platform_id)
        if platform is Platform.WINDOWS:
            raise EnvironmentUnavailable(
                "Native Windows is not supported. Please use WSL2.",
                remediation=[f"Install WSL2: {WSL_INSTALL_URL}"],
            )
        if platform is Platform.UNKNOWN:
            print_warning(
                f"Unknown platform: {self.platform_id or sys.platform}. "
                "Generation may not work correctly."
            )
        print_info(f"Platform detected: {platform.value}")

        await require_docker()
        if config.has_frontend:
            require_npx()

        uid = getattr(os, "getuid", None)
        gid = getattr(os, "getgid", None)
        return HostEnvironment(
            platform=platform,
            uid=uid() if uid else None,
            gid=gid() if gid else None,
        )


async def require_docker() -> None:
    """Ensure the ``docker`` binary exists and its daemon answers."""
    if shutil.which("docker") is None:
        raise EnvironmentUnavailable(
            "Docker is required but not installed.",
            remediation=[f"Install: {DOCKER_INSTALL_URL}"],
        )

    returncode, _, _ = await run_command(["docker", "info"], timeout=60)
    if returncode != 0:
        raise EnvironmentUnavailable(
            "Docker daemon is not running. Please start Docker Desktop."
        )


def require_npx() -> None:
    """Ensure ``npx`` exists for the Vite scaffolding step."""
    if shutil.which("npx") is None:
        raise EnvironmentUnavailable(
            "npx is required to create the React app but it's not installed.",
            remediation=["Please install Node.js and npm first."],
        )
