"""Command-line argument resolution.

Turns the raw argument list into a validated ``GenerationConfig``. Nothing
in this module touches the filesystem except the read-only check that the
target directory does not exist yet.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from .config import (
    FrontendVariant,
    GenerationConfig,
    ToolchainVersions,
    is_valid_project_name,
)
from .errors import InvalidArgument, TargetExists

HELP_FLAGS = frozenset({"-h", "--help"})


class HelpRequested(Exception):
    """Raised when ``-h``/``--help`` is given. Not an error: the CLI exits 0."""

    def __init__(self, help_text: str) -> None:
        self.help_text = help_text
        super().__init__("help requested")


class _RaisingParser(argparse.ArgumentParser):
    """ArgumentParser that raises ``InvalidArgument`` instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise InvalidArgument(message)


def build_parser() -> argparse.ArgumentParser:
    """Build the ``railstack`` argument parser.

    Version defaults are taken from ``ToolchainVersions.from_env()`` so that
    ``RAILSTACK_*_VERSION`` variables act as site-wide overrides.
    """
    defaults = ToolchainVersions.from_env()

    parser = _RaisingParser(
        prog="railstack",
        allow_abbrev=False,
        description="Generate a dockerized Rails API project with optional React and Sidekiq",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        epilog=(
            "Examples:\n"
            "  railstack myapp --react-ts\n"
            "  railstack myapp --react-js --ruby-version 3.3 --node-version 20\n"
            "  railstack myapp --react-ts --sidekiq\n"
        ),
    )

    parser.add_argument(
        "project_name",
        nargs="?",
        metavar="project-name",
        help="Name of the project directory to create",
    )
    parser.add_argument(
        "--ruby-version",
        default=defaults.ruby,
        metavar="VERSION",
        help=f"Ruby version (default: {defaults.ruby})",
    )
    parser.add_argument(
        "--node-version",
        default=defaults.node,
        metavar="VERSION",
        help=f"Node.js version (default: {defaults.node})",
    )
    parser.add_argument(
        "--postgres-version",
        default=defaults.postgres,
        metavar="VERSION",
        help=f"PostgreSQL version (default: {defaults.postgres})",
    )
    parser.add_argument(
        "--rails-version",
        default=defaults.rails,
        metavar="VERSION",
        help=f"Rails version (default: {defaults.rails})",
    )
    parser.add_argument(
        "--redis-version",
        default=defaults.redis,
        metavar="VERSION",
        help=f"Redis version, used with --sidekiq (default: {defaults.redis})",
    )

    frontend = parser.add_mutually_exclusive_group()
    frontend.add_argument(
        "--react-ts",
        dest="frontend",
        action="store_const",
        const=FrontendVariant.TYPESCRIPT,
        default=FrontendVariant.NONE,
        help="Include React frontend with TypeScript",
    )
    frontend.add_argument(
        "--react-js",
        dest="frontend",
        action="store_const",
        const=FrontendVariant.JAVASCRIPT,
        help="Include React frontend with JavaScript",
    )

    parser.add_argument(
        "--sidekiq",
        dest="background_jobs",
        action="store_true",
        help="Include a Sidekiq worker and Redis for background jobs",
    )
    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Show this help message",
    )
    return parser


def resolve_arguments(
    argv: list[str] | None,
    cwd: str | Path | None = None,
) -> GenerationConfig:
    """Parse *argv* into a ``GenerationConfig``.

    Args:
        argv: Arguments without the program name. ``None`` reads ``sys.argv``.
        cwd: Directory the project will be created in (default: current).

    Raises:
        HelpRequested: ``-h``/``--help`` was given.
        InvalidArgument: Unknown flag, missing value, bad or missing name.
        TargetExists: ``<cwd>/<project-name>`` is already present.
    """
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]

    # Help wins over any other argument, valid or not.
    if HELP_FLAGS.intersection(argv):
        raise HelpRequested(parser.format_help())

    args = parser.parse_args(argv)

    if not args.project_name:
        raise InvalidArgument("Project name is required")

    if not is_valid_project_name(args.project_name):
        raise InvalidArgument(
            "Invalid project name. Use only letters, numbers, hyphens, and "
            "underscores. Must start with a letter."
        )

    try:
        config = GenerationConfig(
            project_name=args.project_name,
            versions=ToolchainVersions(
                ruby=args.ruby_version,
                node=args.node_version,
                postgres=args.postgres_version,
                rails=args.rails_version,
                redis=args.redis_version,
            ),
            frontend=args.frontend,
            background_jobs=args.background_jobs,
        )
    except ValidationError as exc:
        raise InvalidArgument(str(exc)) from exc

    ensure_target_absent(config, cwd)
    return config


def ensure_target_absent(config: GenerationConfig, cwd: str | Path | None = None) -> Path:
    """Return the project root path, raising ``TargetExists`` if it is taken."""
    root = Path(cwd or Path.cwd()) / config.project_name
    if root.exists():
        raise TargetExists(root)
    return root
