"""Post-generation patches for the Rails application.

``rails new`` writes its own defaults. Once it has finished, the patcher
rewrites the files that must agree with the Compose topology: the database
connection config, the CORS policy (frontend projects) and the Sidekiq
wiring (background-job projects).

Edits inside generator-owned files are anchored on a recognised line and
fail loudly when the anchor is missing or ambiguous, rather than guessing.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any, Callable

from ..config import GenerationConfig
from ..errors import PatchFailure
from ..utils import print_info, print_success, write_file
from .fragments import Predicate, always, wants_frontend, wants_jobs
from .templates import TemplateRenderer

COMMENTED_RACK_CORS = re.compile(r"^#\s*gem\b.*rack-cors.*$", re.MULTILINE)
RAILS_GEM_ANCHOR = re.compile(r"""^gem ["']rails["']""")
APPLICATION_CLASS_ANCHOR = re.compile(r"^\s*class Application < Rails::Application\s*$")


class AnchorError(ValueError):
    """Raised when an anchor line is missing or matches more than once."""


class PatchTargetError(Exception):
    """A patch could not be applied to *path*; converted to ``PatchFailure``."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(reason)


# ---------------------------------------------------------------------------
# Line-anchored editing
# ---------------------------------------------------------------------------


def find_anchor(lines: list[str], anchor: re.Pattern[str]) -> int:
    """Return the index of the single line matching *anchor*."""
    matches = [i for i, line in enumerate(lines) if anchor.search(line)]
    if len(matches) != 1:
        raise AnchorError(
            f"expected exactly one line matching {anchor.pattern!r}, found {len(matches)}"
        )
    return matches[0]


def insert_after_anchor(
    text: str,
    anchor: re.Pattern[str],
    block: str,
    indent: str | None = None,
) -> str:
    """Insert *block* on the lines right after the unique *anchor* line.

    Unless *indent* is given, the block is indented one level (two spaces)
    deeper than the anchor line. Blank lines in the block stay blank.
    """
    lines = text.splitlines(keepends=True)
    index = find_anchor(lines, anchor)
    anchor_line = lines[index]
    if not anchor_line.endswith("\n"):
        lines[index] = anchor_line + "\n"
    if indent is None:
        indent = anchor_line[: len(anchor_line) - len(anchor_line.lstrip())] + "  "

    inserted = [
        f"{indent}{line}\n" if line.strip() else "\n"
        for line in block.rstrip("\n").split("\n")
    ]
    return "".join(lines[: index + 1] + inserted + lines[index + 1:])


def uncomment_first(text: str, pattern: re.Pattern[str], replacement: str) -> tuple[str, bool]:
    """Replace the first line matching *pattern*. Returns ``(text, replaced)``."""
    patched, count = pattern.subn(replacement, text, count=1)
    return patched, count > 0


def append_line(text: str, line: str) -> str:
    """Append *line* to *text*, making sure it starts on its own line."""
    if text and not text.endswith("\n"):
        text += "\n"
    return f"{text}{line}\n"


# ---------------------------------------------------------------------------
# Patcher
# ---------------------------------------------------------------------------


class PostGenerationPatcher:
    """Applies the patch steps implied by a ``GenerationConfig``.

    Args:
        config: The run's configuration.
        api_root: The Rails application directory.
        context: Template context from ``ArtifactComposer.build_context`` so
            service names and ports match the compose file.
        renderer: Template renderer (a fresh one by default).
    """

    def __init__(
        self,
        config: GenerationConfig,
        api_root: Path,
        context: dict[str, Any],
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.api_root = Path(api_root)
        self.context = context
        self.renderer = renderer or TemplateRenderer()

    @property
    def steps(self) -> list[tuple[str, Callable[[], None], Predicate]]:
        return [
            ("database", self.configure_database, always),
            ("cors", self.configure_cors, wants_frontend),
            ("jobs", self.configure_background_jobs, wants_jobs),
        ]

    async def apply(self) -> list[str]:
        """Run every applicable step in order. Returns the names of the steps run.

        Raises:
            PatchFailure: A target file or anchor was missing, or a write failed.
        """
        applied: list[str] = []
        for name, step, when in self.steps:
            if not when(self.config):
                continue
            try:
                await asyncio.to_thread(step)
            except PatchTargetError as exc:
                raise PatchFailure(name, exc.path, exc.reason) from exc
            applied.append(name)
        return applied

    # -- Steps -------------------------------------------------------------

    def configure_database(self) -> None:
        """Replace ``config/database.yml`` with the environment-driven template."""
        print_info("Configuring database.yml to use environment variables...")
        self._replace("config/database.yml", "patches/database.yml.j2")
        print_success("Database configuration updated")

    def configure_cors(self) -> None:
        """Enable rack-cors and allow the frontend's dev origin."""
        print_info("Configuring CORS for React frontend...")

        gemfile = self._read("Gemfile")
        patched, uncommented = uncomment_first(gemfile, COMMENTED_RACK_CORS, 'gem "rack-cors"')
        if uncommented:
            print_info("Uncommented rack-cors gem in Gemfile")
        else:
            patched = self._anchored("Gemfile", gemfile, RAILS_GEM_ANCHOR, 'gem "rack-cors"', indent="")
            print_info("Added rack-cors gem to Gemfile")
        self._write("Gemfile", patched)

        self._replace("config/initializers/cors.rb", "patches/cors.rb.j2")
        print_success(f"CORS configured for {self.context['frontend_origin']}")

    def configure_background_jobs(self) -> None:
        """Wire Active Job to Sidekiq and mount the Sidekiq dashboard."""
        print_info("Configuring Sidekiq background jobs...")

        gemfile = self._read("Gemfile")
        self._write(
            "Gemfile",
            append_line(gemfile, f'gem "sidekiq", "{self.context["sidekiq_requirement"]}"'),
        )

        self._create("config/initializers/sidekiq.rb", "patches/sidekiq_initializer.rb.j2")
        self._create("config/sidekiq.yml", "patches/sidekiq.yml.j2")

        application = self._read("config/application.rb")
        block = self.renderer.render("patches/application_jobs.rb.j2", self.context)
        self._write(
            "config/application.rb",
            self._anchored("config/application.rb", application, APPLICATION_CLASS_ANCHOR, block),
        )

        self._replace("config/routes.rb", "patches/routes.rb.j2")
        self._create("app/jobs/example_job.rb", "patches/example_job.rb.j2")
        print_success(
            f"Sidekiq configured, dashboard mounted at {self.context['sidekiq_web_path']}"
        )

    # -- File helpers ------------------------------------------------------

    def _path(self, relative: str) -> Path:
        return self.api_root / relative

    def _read(self, relative: str) -> str:
        path = self._path(relative)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PatchTargetError(path, f"cannot read file ({exc.strerror or exc})") from exc

    def _write(self, relative: str, content: str) -> None:
        path = self._path(relative)
        try:
            write_file(path, content)
        except OSError as exc:
            raise PatchTargetError(path, f"cannot write file ({exc.strerror or exc})") from exc

    def _anchored(
        self,
        relative: str,
        text: str,
        anchor: re.Pattern[str],
        block: str,
        indent: str | None = None,
    ) -> str:
        try:
            return insert_after_anchor(text, anchor, block, indent=indent)
        except AnchorError as exc:
            raise PatchTargetError(self._path(relative), str(exc)) from exc

    def _replace(self, relative: str, template: str) -> None:
        """Overwrite a file the generator must already have produced."""
        path = self._path(relative)
        if not path.is_file():
            raise PatchTargetError(path, "expected generated file is missing")
        self._write(relative, self.renderer.render(template, self.context))

    def _create(self, relative: str, template: str) -> None:
        """Write a new file into a directory the generator must have produced."""
        path = self._path(relative)
        if not path.parent.is_dir():
            raise PatchTargetError(path, f"expected directory {path.parent} is missing")
        self._write(relative, self.renderer.render(template, self.context))
