"""railstack scaffolder -- renders and assembles the generated project.

Takes a ``GenerationConfig`` and produces a dockerized Rails API project,
optionally with a React (Vite) frontend and a Sidekiq worker.

Quick usage::

    from railstack.config import GenerationConfig
    from railstack.environment import EnvironmentProber
    from railstack.scaffolder import ProjectGenerator

    config = GenerationConfig(project_name="blog")
    host = await EnvironmentProber().probe(config)
    project_path = await ProjectGenerator(config, host).generate()
"""

from railstack.scaffolder.composer import ArtifactComposer
from railstack.scaffolder.generator import ProjectGenerator
from railstack.scaffolder.templates import TemplateRenderer

__all__ = [
    "ArtifactComposer",
    "ProjectGenerator",
    "TemplateRenderer",
]
