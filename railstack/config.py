"""railstack configuration.

``GenerationConfig`` is the resolved, immutable description of one generation
run. It is built once by the argument resolver and read by every other
component. All models are frozen Pydantic v2 models so a stray assignment
fails loudly instead of silently desynchronising generated files.
"""

from __future__ import annotations

import os
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_NAME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_-]*")

ENV_PREFIX = "RAILSTACK_"


def is_valid_project_name(name: str) -> bool:
    """Return ``True`` if *name* starts with a letter and contains only
    letters, digits, hyphens and underscores."""
    return PROJECT_NAME_PATTERN.fullmatch(name) is not None


class FrontendVariant(str, Enum):
    """Which React template (if any) to scaffold with Vite."""

    NONE = "none"
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"

    @property
    def vite_template(self) -> str | None:
        """The ``create-vite --template`` value for this variant."""
        return {
            FrontendVariant.TYPESCRIPT: "react-ts",
            FrontendVariant.JAVASCRIPT: "react",
        }.get(self)

    @property
    def config_extension(self) -> str | None:
        """File extension of the generated ``vite.config`` file."""
        return {
            FrontendVariant.TYPESCRIPT: "ts",
            FrontendVariant.JAVASCRIPT: "js",
        }.get(self)


class ToolchainVersions(BaseModel):
    """Version pins for every external toolchain.

    Values are free-form and substituted verbatim into images, gem
    requirements and documentation; nothing here parses them.
    """

    model_config = ConfigDict(frozen=True)

    ruby: str = Field(default="3.4", min_length=1)
    node: str = Field(default="22", min_length=1)
    postgres: str = Field(default="15", min_length=1)
    rails: str = Field(default="8.1", min_length=1)
    redis: str = Field(default="7", min_length=1)

    @classmethod
    def from_env(cls) -> "ToolchainVersions":
        """Build versions from environment variables.

        Recognised variables (all optional):
            RAILSTACK_RUBY_VERSION, RAILSTACK_NODE_VERSION,
            RAILSTACK_POSTGRES_VERSION, RAILSTACK_RAILS_VERSION,
            RAILSTACK_REDIS_VERSION.
        """
        kwargs: dict[str, str] = {}
        for field_name in cls.model_fields:
            value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}_VERSION")
            if value:
                kwargs[field_name] = value
        return cls(**kwargs)


class PortConfig(BaseModel):
    """Published ports of the generated services."""

    model_config = ConfigDict(frozen=True)

    api: int = Field(default=3000, ge=1, le=65535)
    frontend: int = Field(default=5173, ge=1, le=65535)
    postgres: int = Field(default=5432, ge=1, le=65535)
    redis: int = Field(default=6379, ge=1, le=65535)


class GenerationConfig(BaseModel):
    """Settings for a single generation run.

    Derived names (snake-case name, sub-project directories) are exposed as
    read-only properties so they can never drift from ``project_name``.
    """

    model_config = ConfigDict(frozen=True)

    project_name: str
    versions: ToolchainVersions = Field(default_factory=ToolchainVersions)
    frontend: FrontendVariant = Field(default=FrontendVariant.NONE)
    background_jobs: bool = Field(default=False)
    ports: PortConfig = Field(default_factory=PortConfig)

    @field_validator("project_name")
    @classmethod
    def _check_project_name(cls, value: str) -> str:
        if not is_valid_project_name(value):
            raise ValueError(
                "Use only letters, numbers, hyphens, and underscores. "
                "Must start with a letter."
            )
        return value

    # ------------------------------------------------------------------
    # Derived names
    # ------------------------------------------------------------------

    @property
    def snake_name(self) -> str:
        """Project name with hyphens replaced by underscores (Rails convention)."""
        return self.project_name.replace("-", "_")

    @property
    def api_dir(self) -> str:
        return f"{self.project_name}-api"

    @property
    def web_dir(self) -> str:
        return f"{self.project_name}-web-react"

    @property
    def has_frontend(self) -> bool:
        return self.frontend is not FrontendVariant.NONE

    def selected_features(self) -> list[str]:
        """Human-readable labels of the optional features, in fixed order."""
        features: list[str] = []
        if self.has_frontend:
            features.append(f"React ({self.frontend.vite_template})")
        if self.background_jobs:
            features.append("Sidekiq")
        return features
