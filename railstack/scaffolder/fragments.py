"""Building blocks of the artifact composer.

An artifact (one generated file) is declared as an ordered tuple of
fragments. Each fragment is a Jinja2 template gated by a predicate over the
``GenerationConfig``; the composer renders the fragments whose predicate
holds, in declaration order, and joins them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from ..config import GenerationConfig

Predicate = Callable[[GenerationConfig], bool]


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def always(config: GenerationConfig) -> bool:
    return True


def wants_frontend(config: GenerationConfig) -> bool:
    return config.has_frontend


def wants_jobs(config: GenerationConfig) -> bool:
    return config.background_jobs


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


class Stage(str, Enum):
    """When an artifact is written relative to the external generators."""

    ROOT = "root"          # before any external generator runs
    BACKEND = "backend"    # after ``rails new`` and the patcher
    FRONTEND = "frontend"  # after ``create-vite`` and ``npm install``


@dataclass(frozen=True)
class Fragment:
    """A named template included only when ``when(config)`` holds."""

    name: str
    template: str
    when: Predicate = always

    def applies(self, config: GenerationConfig) -> bool:
        return self.when(config)


@dataclass(frozen=True)
class ArtifactSpec:
    """Declaration of one output file.

    ``path`` is a ``str.format`` pattern over the render context, e.g.
    ``"{api_dir}/Dockerfile.dev"``.
    """

    path: str
    fragments: tuple[Fragment, ...]
    stage: Stage = Stage.ROOT
    when: Predicate = always
    append: bool = False
    executable: bool = False
    separator: str = "\n"

    def applies(self, config: GenerationConfig) -> bool:
        return self.when(config)

    def resolve_path(self, context: dict[str, Any]) -> str:
        return self.path.format(**context)


@dataclass(frozen=True)
class Artifact:
    """A rendered output file, relative to the project root."""

    path: str
    content: str
    stage: Stage
    append: bool = False
    executable: bool = False


def join_fragments(parts: list[str], separator: str = "\n") -> str:
    """Terminate every part with exactly one newline and join them."""
    return separator.join(part.rstrip("\n") + "\n" for part in parts)
