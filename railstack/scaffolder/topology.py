"""Service graph of the generated Docker Compose project.

Services are declared in order. A service may ``extends`` an earlier one and
then inherits its build context, volume mounts and environment unless it
sets them itself. Inheritance is resolved here, once, so the composer can
render the parent's blocks with YAML anchors and the child's as aliases
instead of duplicating values.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

INHERITABLE_FIELDS: tuple[str, ...] = ("build", "volumes", "environment")

_ANCHOR_SUFFIX: dict[str, str] = {
    "build": "build",
    "volumes": "volumes",
    "environment": "env",
}


class TopologyError(ValueError):
    """Raised when a service graph references undeclared services."""


class BuildSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    context: str
    dockerfile: str = "Dockerfile.dev"


class Service(BaseModel):
    """One entry of the ``services:`` mapping."""

    model_config = ConfigDict(frozen=True)

    name: str
    image: str | None = None
    build: BuildSpec | None = None
    command: str | None = None
    volumes: tuple[str, ...] = ()
    environment: dict[str, str] = Field(default_factory=dict)
    ports: tuple[str, ...] = ()
    depends_on: tuple[str, ...] = ()
    interactive: bool = False
    extends: str | None = None

    def named_volumes(self) -> list[str]:
        """Names of Docker-managed volumes mounted by this service.

        Bind mounts (sources starting with ``.`` or ``/``) are skipped.
        """
        names: list[str] = []
        for mount in self.volumes:
            source = mount.split(":", 1)[0]
            if source and not source.startswith((".", "/")):
                names.append(source)
        return names


class Topology:
    """Ordered, validated collection of ``Service`` declarations."""

    def __init__(self, services: Iterable[Service]) -> None:
        self._services: dict[str, Service] = {}
        for service in services:
            if service.name in self._services:
                raise TopologyError(f"Duplicate service '{service.name}'")
            if service.extends is not None and service.extends not in self._services:
                raise TopologyError(
                    f"Service '{service.name}' extends '{service.extends}', "
                    "which must be declared before it"
                )
            self._services[service.name] = service

        for service in self._services.values():
            missing = [d for d in service.depends_on if d not in self._services]
            if missing:
                raise TopologyError(
                    f"Service '{service.name}' depends on undeclared "
                    f"service(s): {', '.join(missing)}"
                )

    # -- Collection protocol -----------------------------------------------

    def __iter__(self) -> Iterator[Service]:
        return iter(self._services.values())

    def __len__(self) -> int:
        return len(self._services)

    def __contains__(self, name: object) -> bool:
        return name in self._services

    @property
    def names(self) -> list[str]:
        return list(self._services)

    def get(self, name: str) -> Service:
        try:
            return self._services[name]
        except KeyError:
            raise TopologyError(f"Unknown service '{name}'") from None

    # -- Inheritance -------------------------------------------------------

    def inherited_fields(self, name: str) -> tuple[str, ...]:
        """Fields *name* takes from the service it extends."""
        service = self.get(name)
        if service.extends is None:
            return ()
        return tuple(f for f in INHERITABLE_FIELDS if f not in service.model_fields_set)

    def origin(self, name: str, field: str) -> str:
        """Name of the service that actually declares *field* for *name*."""
        current = name
        while field in self.inherited_fields(current):
            current = self.get(current).extends  # type: ignore[assignment]
        return current

    def resolve(self, name: str) -> Service:
        """Return *name* with every inherited field filled in from its parent."""
        service = self.get(name)
        inherited = self.inherited_fields(name)
        if not inherited:
            return service
        parent = self.resolve(service.extends)  # type: ignore[arg-type]
        return service.model_copy(update={f: getattr(parent, f) for f in inherited})

    def anchor_name(self, name: str, field: str) -> str:
        return f"{name}-{_ANCHOR_SUFFIX[field]}"

    def anchored_fields(self, name: str) -> tuple[str, ...]:
        """Fields of *name* that another service refers to by alias."""
        service = self.get(name)
        anchored = {
            field
            for other in self._services
            if other != name
            for field in self.inherited_fields(other)
            if self.origin(other, field) == name and getattr(service, field)
        }
        return tuple(f for f in INHERITABLE_FIELDS if f in anchored)

    # -- Aggregates --------------------------------------------------------

    def named_volumes(self) -> list[str]:
        """Named volumes referenced by any service, in first-use order."""
        seen: list[str] = []
        for name in self._services:
            for volume in self.resolve(name).named_volumes():
                if volume not in seen:
                    seen.append(volume)
        return seen
