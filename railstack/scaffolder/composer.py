"""Artifact composer.

Declares every file railstack writes itself as an ordered list of gated
fragments and renders them from a ``GenerationConfig``. Rendering is a pure
function of the config: no timestamps, randomness or environment lookups, so
the same config always yields byte-identical artifacts.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from ..config import GenerationConfig
from ..utils import make_executable, print_info, write_file
from .docker_gen import SERVICE_NAMES, build_topology, render_service_blocks
from .fragments import (
    Artifact,
    ArtifactSpec,
    Fragment,
    Stage,
    join_fragments,
    wants_frontend,
    wants_jobs,
)
from .templates import TemplateRenderer

SIDEKIQ_REQUIREMENT = "~> 8.0"
SIDEKIQ_WEB_PATH = "/sidekiq"


# ---------------------------------------------------------------------------
# Artifact declarations
# ---------------------------------------------------------------------------

COMPOSE_FILE = ArtifactSpec(
    "docker-compose.yml",
    (
        Fragment("services", "compose/services.yml.j2"),
        Fragment("volumes", "compose/volumes.yml.j2"),
    ),
)

MAKEFILE = ArtifactSpec(
    "makefile",
    (
        Fragment("header", "makefile/header.mk.j2"),
        Fragment("bundler", "makefile/bundler.mk.j2"),
        Fragment("rails", "makefile/rails.mk.j2"),
        Fragment("shortcuts", "makefile/shortcuts.mk.j2"),
        Fragment("setup", "makefile/setup.mk.j2"),
        Fragment("rspec", "makefile/rspec.mk.j2"),
        Fragment("lifecycle", "makefile/lifecycle.mk.j2"),
        Fragment("jobs", "makefile/jobs.mk.j2", wants_jobs),
        Fragment("frontend", "makefile/frontend.mk.j2", wants_frontend),
        Fragment("catch_all", "makefile/catch_all.mk.j2"),
    ),
)

GITIGNORE = ArtifactSpec(
    ".gitignore",
    (
        Fragment("ide", "root/gitignore_ide.j2"),
        Fragment("os", "root/gitignore_os.j2"),
        Fragment("environment", "root/gitignore_env.j2"),
    ),
)

README = ArtifactSpec(
    "README.md",
    (
        Fragment("overview", "readme/overview.md.j2"),
        Fragment("tech_stack", "readme/tech_stack.md.j2"),
        Fragment("getting_started", "readme/getting_started.md.j2"),
        Fragment("commands", "readme/commands.md.j2"),
        Fragment("urls", "readme/urls.md.j2"),
        Fragment("background_jobs", "readme/background_jobs.md.j2", wants_jobs),
        Fragment("structure", "readme/structure.md.j2"),
    ),
)

BACKEND_FILES: tuple[ArtifactSpec, ...] = (
    ArtifactSpec(
        "{api_dir}/Dockerfile.dev",
        (Fragment("dockerfile", "backend/Dockerfile.dev.j2"),),
        Stage.BACKEND,
    ),
    ArtifactSpec(
        "{api_dir}/entrypoint.sh",
        (Fragment("entrypoint", "backend/entrypoint.sh.j2"),),
        Stage.BACKEND,
        executable=True,
    ),
    ArtifactSpec(
        "{api_dir}/.dockerignore",
        (Fragment("dockerignore", "backend/dockerignore.j2"),),
        Stage.BACKEND,
        append=True,
    ),
)

FRONTEND_FILES: tuple[ArtifactSpec, ...] = (
    ArtifactSpec(
        "{web_dir}/vite.config.{config_extension}",
        (Fragment("vite_config", "frontend/vite.config.j2"),),
        Stage.FRONTEND,
        when=wants_frontend,
    ),
    ArtifactSpec(
        "{web_dir}/Dockerfile.dev",
        (Fragment("dockerfile_dev", "frontend/Dockerfile.dev.j2"),),
        Stage.FRONTEND,
        when=wants_frontend,
    ),
    ArtifactSpec(
        "{web_dir}/.dockerignore",
        (Fragment("dockerignore", "frontend/dockerignore.j2"),),
        Stage.FRONTEND,
        when=wants_frontend,
    ),
    ArtifactSpec(
        "{web_dir}/nginx.conf",
        (Fragment("nginx", "frontend/nginx.conf.j2"),),
        Stage.FRONTEND,
        when=wants_frontend,
    ),
    ArtifactSpec(
        "{web_dir}/Dockerfile",
        (
            Fragment("build_stage", "frontend/Dockerfile_build.j2"),
            Fragment("serve_stage", "frontend/Dockerfile_serve.j2"),
        ),
        Stage.FRONTEND,
        when=wants_frontend,
    ),
)

ARTIFACTS: tuple[ArtifactSpec, ...] = (
    COMPOSE_FILE,
    MAKEFILE,
    GITIGNORE,
    README,
    *BACKEND_FILES,
    *FRONTEND_FILES,
)


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------


class ArtifactComposer:
    """Renders the declared artifacts for a ``GenerationConfig``."""

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        artifacts: tuple[ArtifactSpec, ...] = ARTIFACTS,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.artifacts = artifacts

    # -- Context building --------------------------------------------------

    def build_context(self, config: GenerationConfig) -> dict[str, Any]:
        """Build the template context shared by every artifact and patch."""
        topology = build_topology(config)
        return {
            "project_name": config.project_name,
            "snake_name": config.snake_name,
            "api_dir": config.api_dir,
            "web_dir": config.web_dir,
            "versions": config.versions,
            "ports": config.ports,
            "has_frontend": config.has_frontend,
            "background_jobs": config.background_jobs,
            "vite_template": config.frontend.vite_template or "",
            "config_extension": config.frontend.config_extension or "",
            "frontend_origin": f"http://localhost:{config.ports.frontend}",
            "services": SERVICE_NAMES,
            "service_blocks": render_service_blocks(self.renderer, topology),
            "named_volumes": topology.named_volumes(),
            "sidekiq_requirement": SIDEKIQ_REQUIREMENT,
            "sidekiq_web_path": SIDEKIQ_WEB_PATH,
        }

    # -- Rendering ---------------------------------------------------------

    def render_fragment(self, fragment: Fragment, context: dict[str, Any]) -> str:
        return self.renderer.render(fragment.template, context)

    def render_artifact(
        self,
        spec: ArtifactSpec,
        config: GenerationConfig,
        context: dict[str, Any],
    ) -> Artifact:
        parts = [
            self.render_fragment(fragment, context)
            for fragment in spec.fragments
            if fragment.applies(config)
        ]
        return Artifact(
            path=spec.resolve_path(context),
            content=join_fragments(parts, spec.separator),
            stage=spec.stage,
            append=spec.append,
            executable=spec.executable,
        )

    def compose(
        self,
        config: GenerationConfig,
        stage: Stage | None = None,
        context: dict[str, Any] | None = None,
    ) -> list[Artifact]:
        """Render every applicable artifact, optionally limited to *stage*.

        Returns artifacts in declaration order.
        """
        context = context if context is not None else self.build_context(config)
        return [
            self.render_artifact(spec, config, context)
            for spec in self.artifacts
            if spec.applies(config) and (stage is None or spec.stage is stage)
        ]

    # -- Filesystem --------------------------------------------------------

    def prepare(self, root: Path, config: GenerationConfig) -> Path:
        """Create the project root and the API directory the Rails generator mounts.

        The root must not exist yet; ``FileExistsError`` propagates otherwise.
        """
        root.mkdir(parents=False, exist_ok=False)
        (root / config.api_dir).mkdir()
        return root

    async def write(self, root: Path, artifacts: list[Artifact]) -> list[Path]:
        """Write *artifacts* under *root*, creating parent directories."""
        written: list[Path] = []
        for artifact in artifacts:
            out = root / artifact.path
            print_info(f"{'Updating' if artifact.append else 'Creating'} {artifact.path}...")
            await asyncio.to_thread(write_file, out, artifact.content, append=artifact.append)
            if artifact.executable:
                await asyncio.to_thread(make_executable, out)
            written.append(out)
        return written
