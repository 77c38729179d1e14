"""Docker Compose topology for the generated project.

Each service is produced by a small builder function gated by a predicate,
in a fixed precedence order: the API, the Sidekiq worker, the frontend, the
database, then Redis. The worker extends the API so it shares the API's
build, mounts and environment without repeating them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..config import GenerationConfig
from .fragments import Predicate, always, wants_frontend, wants_jobs
from .templates import TemplateRenderer
from .topology import INHERITABLE_FIELDS, BuildSpec, Service, Topology

# Service and volume names shared by every generated file.
API_SERVICE = "api"
WORKER_SERVICE = "sidekiq"
FRONTEND_SERVICE = "frontend"
DATABASE_SERVICE = "db"
BROKER_SERVICE = "redis"

BUNDLE_VOLUME = "bundle"
NODE_VOLUME = "node_packages"
POSTGRES_VOLUME = "postgres_data"
REDIS_VOLUME = "redis_data"

SERVICE_NAMES: dict[str, str] = {
    "api": API_SERVICE,
    "worker": WORKER_SERVICE,
    "frontend": FRONTEND_SERVICE,
    "database": DATABASE_SERVICE,
    "broker": BROKER_SERVICE,
}

DATABASE_USER = "postgres"
DATABASE_PASSWORD = "postgres"


# ---------------------------------------------------------------------------
# Service builders
# ---------------------------------------------------------------------------


def redis_url(config: GenerationConfig) -> str:
    return f"redis://{BROKER_SERVICE}:{config.ports.redis}/0"


def api_service(config: GenerationConfig) -> Service:
    environment = {
        "DB_HOST": DATABASE_SERVICE,
        "DB_USERNAME": DATABASE_USER,
        "DB_PASSWORD": DATABASE_PASSWORD,
    }
    if config.background_jobs:
        environment["REDIS_URL"] = redis_url(config)
    environment["EDITOR"] = "${EDITOR:-nano}"

    depends_on = [DATABASE_SERVICE]
    if config.background_jobs:
        depends_on.append(BROKER_SERVICE)

    return Service(
        name=API_SERVICE,
        build=BuildSpec(context=f"./{config.api_dir}"),
        volumes=(f"./{config.api_dir}:/app", f"{BUNDLE_VOLUME}:/bundle"),
        environment=environment,
        ports=(f"{config.ports.api}:{config.ports.api}",),
        interactive=True,
        depends_on=tuple(depends_on),
    )


def worker_service(config: GenerationConfig) -> Service:
    return Service(
        name=WORKER_SERVICE,
        extends=API_SERVICE,
        command="bundle exec sidekiq -C config/sidekiq.yml",
        depends_on=(DATABASE_SERVICE, BROKER_SERVICE),
    )


def frontend_service(config: GenerationConfig) -> Service:
    # The dev server proxies to the API per request; nothing to wait for at startup.
    return Service(
        name=FRONTEND_SERVICE,
        build=BuildSpec(context=f"./{config.web_dir}"),
        volumes=(f"./{config.web_dir}:/app", f"{NODE_VOLUME}:/app/node_modules"),
        ports=(f"{config.ports.frontend}:{config.ports.frontend}",),
        interactive=True,
    )


def database_service(config: GenerationConfig) -> Service:
    return Service(
        name=DATABASE_SERVICE,
        image=f"postgres:{config.versions.postgres}",
        volumes=(f"{POSTGRES_VOLUME}:/var/lib/postgresql/data",),
        environment={"POSTGRES_PASSWORD": DATABASE_PASSWORD},
        ports=(f"{config.ports.postgres}:5432",),
    )


def broker_service(config: GenerationConfig) -> Service:
    return Service(
        name=BROKER_SERVICE,
        image=f"redis:{config.versions.redis}",
        command="redis-server --appendonly yes",
        volumes=(f"{REDIS_VOLUME}:/data",),
        ports=(f"{config.ports.redis}:6379",),
    )


@dataclass(frozen=True)
class ServiceFragment:
    name: str
    build: Callable[[GenerationConfig], Service]
    when: Predicate = always


SERVICE_FRAGMENTS: tuple[ServiceFragment, ...] = (
    ServiceFragment(API_SERVICE, api_service),
    ServiceFragment(WORKER_SERVICE, worker_service, wants_jobs),
    ServiceFragment(FRONTEND_SERVICE, frontend_service, wants_frontend),
    ServiceFragment(DATABASE_SERVICE, database_service),
    ServiceFragment(BROKER_SERVICE, broker_service, wants_jobs),
)


def build_topology(config: GenerationConfig) -> Topology:
    """Build the service graph implied by *config*'s feature flags."""
    return Topology(
        fragment.build(config)
        for fragment in SERVICE_FRAGMENTS
        if fragment.when(config)
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def service_view(topology: Topology, name: str) -> dict[str, Any]:
    """Template context for one service block.

    For every inheritable field the view carries either the declared value
    plus an optional `` &anchor`` suffix, or the alias to refer to instead.
    """
    service = topology.get(name)
    resolved = topology.resolve(name)
    inherited = topology.inherited_fields(name)
    anchored = topology.anchored_fields(name)

    view: dict[str, Any] = {
        "name": service.name,
        "image": service.image,
        "command": service.command,
        "ports": service.ports,
        "interactive": service.interactive,
        "depends_on": service.depends_on,
    }
    for field in INHERITABLE_FIELDS:
        view[field] = getattr(service, field)
        view[f"{field}_anchor"] = (
            f" &{topology.anchor_name(name, field)}" if field in anchored else ""
        )
        if field in inherited and getattr(resolved, field):
            view[f"{field}_alias"] = topology.anchor_name(
                topology.origin(name, field), field
            )
        else:
            view[f"{field}_alias"] = ""
    return view


def render_service_blocks(renderer: TemplateRenderer, topology: Topology) -> list[str]:
    """Render every service of *topology* as an indented compose block."""
    return [
        renderer.render("compose/service.yml.j2", {"service": service_view(topology, name)})
        for name in topology.names
    ]
