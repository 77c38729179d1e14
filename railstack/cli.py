"""Command-line entry point for railstack.

Runs one generation: resolve arguments, probe the host, generate the
project, print a summary. Every ``ScaffoldError`` is reported here and
mapped to its exit code.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from rich.panel import Panel

from .config import GenerationConfig
from .environment import EnvironmentProber
from .errors import InvalidArgument, ScaffoldError
from .resolver import HelpRequested, build_parser, resolve_arguments
from .scaffolder.generator import ProjectGenerator
from .utils import console, err_console, print_error, print_info, print_success, print_summary_table

EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None, cwd: str | Path | None = None) -> int:
    """Run railstack and return the process exit code."""
    try:
        config = resolve_arguments(argv, cwd)
    except HelpRequested as exc:
        console.print(exc.help_text, markup=False, highlight=False)
        return 0
    except InvalidArgument as exc:
        print_error(str(exc))
        err_console.print(build_parser().format_usage(), markup=False, highlight=False)
        return exc.exit_code
    except ScaffoldError as exc:
        print_error(str(exc))
        return exc.exit_code

    try:
        asyncio.run(_run(config, cwd))
    except ScaffoldError as exc:
        print_error(str(exc))
        for line in getattr(exc, "remediation", []):
            print_error(line)
        return exc.exit_code
    except KeyboardInterrupt:
        print_error("Interrupted")
        return EXIT_INTERRUPTED
    except OSError as exc:
        print_error(f"Filesystem error: {exc}")
        return 1
    return 0


async def _run(config: GenerationConfig, cwd: str | Path | None) -> Path:
    console.print(
        Panel(
            f"[bold]Creating Rails {config.versions.rails} API project: "
            f"{config.project_name}[/bold]",
            style="cyan",
        )
    )

    host = await EnvironmentProber().probe(config)
    root = await ProjectGenerator(config, host, workdir=cwd).generate()

    console.print()
    print_success(f"Project '{config.project_name}' created successfully!")
    print_info(f"Rails {config.versions.rails} API generated and configured")
    if config.has_frontend:
        print_info("React frontend configured with CORS support")
    if config.background_jobs:
        print_info("Sidekiq worker configured with Redis")
    console.print()

    print_summary_table(_summary(config, root), title="Project Summary")
    console.print(
        Panel(
            f"1. cd {config.project_name}\n"
            "2. Run setup:              make setup\n"
            "3. Start the application:  make up",
            title="[bold]Next steps[/bold]",
            border_style="green",
        )
    )
    return root


def _summary(config: GenerationConfig, root: Path) -> dict[str, str]:
    summary = {
        "Location": str(root),
        "Ruby": config.versions.ruby,
        "Rails": config.versions.rails,
        "PostgreSQL": config.versions.postgres,
        "Backend": config.api_dir,
    }
    if config.has_frontend:
        summary["Frontend"] = f"{config.web_dir} ({config.frontend.vite_template})"
        summary["Node.js"] = config.versions.node
    if config.background_jobs:
        summary["Background jobs"] = f"Sidekiq + Redis {config.versions.redis}"
    return summary


if __name__ == "__main__":
    sys.exit(main())
