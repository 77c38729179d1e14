"""Project generator orchestrator.

Coordinates the artifact composer, the external generators, the
post-generation patcher and the repository finalizer to produce a complete
project from a ``GenerationConfig``.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from ..config import GenerationConfig
from ..environment import HostEnvironment
from ..errors import ScaffoldError
from ..repository import RepositoryFinalizer
from ..utils import discard_tree, print_error, print_info
from .composer import ArtifactComposer
from .external import ExternalGenerators
from .fragments import Stage
from .patcher import PostGenerationPatcher
from .templates import TemplateRenderer


class ProjectGenerator:
    """Main scaffolding orchestrator.

    Produces, under ``<workdir>/<project-name>``:
    - a Rails API generated in Docker, patched for the Compose topology
    - an optional React (Vite) app with dev and production Dockerfiles
    - an optional Sidekiq worker and Redis service
    - docker-compose.yml, makefile, README.md and .gitignore
    - a git repository holding the result as its first commit

    Any failure or interrupt after the project root has been created removes
    the whole root before the error propagates, so a failed run leaves
    nothing behind.

    Collaborators can be injected for testing; by default they are built
    from the config.
    """

    def __init__(
        self,
        config: GenerationConfig,
        host: HostEnvironment,
        workdir: str | Path | None = None,
        renderer: TemplateRenderer | None = None,
        composer: ArtifactComposer | None = None,
        externals: ExternalGenerators | None = None,
        patcher: PostGenerationPatcher | None = None,
        finalizer: RepositoryFinalizer | None = None,
    ) -> None:
        self.config = config
        self.host = host
        self.root = Path(workdir or Path.cwd()) / config.project_name
        self.renderer = renderer or TemplateRenderer()
        self.composer = composer or ArtifactComposer(self.renderer)
        self.context: dict[str, Any] = self.composer.build_context(config)
        self.externals = externals or ExternalGenerators(config, host, self.root)
        self.patcher = patcher or PostGenerationPatcher(
            config, self.root / config.api_dir, self.context, self.renderer
        )
        self.finalizer = finalizer or RepositoryFinalizer(self.root)

    # -- Public API --------------------------------------------------------

    async def generate(self) -> Path:
        """Generate the complete project. Returns the project root.

        Raises:
            ScaffoldError: Any generation, patch or git failure (after cleanup).
            OSError: A filesystem write failed (after cleanup).
        """
        print_info(f"Creating project directory: {self.config.project_name}")
        self.composer.prepare(self.root, self.config)

        try:
            await self._write_stage(Stage.ROOT)

            await self.externals.generate_backend()
            await self.patcher.apply()
            await self._write_stage(Stage.BACKEND)

            if self.config.has_frontend:
                await self.externals.generate_frontend()
                await self._write_stage(Stage.FRONTEND)

            await self.finalizer.finalize(self.config)
        except (ScaffoldError, OSError, KeyboardInterrupt, asyncio.CancelledError):
            print_error(f"Generation failed; removing {self.root}")
            discard_tree(self.root)
            raise

        return self.root

    # -- Internal ----------------------------------------------------------

    async def _write_stage(self, stage: Stage) -> list[Path]:
        artifacts = self.composer.compose(self.config, stage=stage, context=self.context)
        return await self.composer.write(self.root, artifacts)
