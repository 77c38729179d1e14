"""Shared pytest fixtures for the railstack test suite.

Provides reusable fixtures for:
- Generation configs for the ``blog`` (backend only) and ``shop``
  (TypeScript frontend + Sidekiq) scenarios, and all six feature combinations
- Host environments
- A real template renderer and artifact composer
- A fake ``rails new`` output tree for the patcher
"""

from __future__ import annotations

import itertools
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from railstack.config import FrontendVariant, GenerationConfig
from railstack.environment import HostEnvironment, Platform
from railstack.scaffolder.composer import ArtifactComposer
from railstack.scaffolder.templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Configs
# ---------------------------------------------------------------------------

@pytest.fixture
def blog_config() -> GenerationConfig:
    """Backend-only project with default versions."""
    return GenerationConfig(project_name="blog")


@pytest.fixture
def shop_config() -> GenerationConfig:
    """TypeScript frontend plus Sidekiq."""
    return GenerationConfig(
        project_name="shop",
        frontend=FrontendVariant.TYPESCRIPT,
        background_jobs=True,
    )


ALL_COMBINATIONS = list(itertools.product(FrontendVariant, (False, True)))


@pytest.fixture(
    params=ALL_COMBINATIONS,
    ids=[f"{variant.value}-{'jobs' if jobs else 'nojobs'}" for variant, jobs in ALL_COMBINATIONS],
)
def any_config(request) -> GenerationConfig:
    """Every frontend variant crossed with jobs on/off."""
    variant, jobs = request.param
    return GenerationConfig(
        project_name="my-app",
        frontend=variant,
        background_jobs=jobs,
    )


# ---------------------------------------------------------------------------
# Host
# ---------------------------------------------------------------------------

@pytest.fixture
def linux_host() -> HostEnvironment:
    return HostEnvironment(platform=Platform.LINUX, uid=1000, gid=1000)


@pytest.fixture
def unknown_host() -> HostEnvironment:
    return HostEnvironment(platform=Platform.UNKNOWN)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def composer(renderer) -> ArtifactComposer:
    return ArtifactComposer(renderer)


# ---------------------------------------------------------------------------
# Fake Rails tree
# ---------------------------------------------------------------------------

RAILS_GEMFILE = textwrap.dedent("""\
    source "https://rubygems.org"

    # Bundle edge Rails instead: gem "rails", github: "rails/rails", branch: "main"
    gem "rails", "~> 8.1.0"
    # Use postgresql as the database for Active Record
    gem "pg", "~> 1.1"
    # Use the Puma web server [https://github.com/puma/puma]
    gem "puma", ">= 5.0"

    # Use Rack CORS for handling Cross-Origin Resource Sharing (CORS), making cross-origin Ajax possible
    # gem "rack-cors"

    group :development, :test do
      gem "debug", platforms: %i[ mri windows ], require: "debug/prelude"
    end
""")

RAILS_APPLICATION = textwrap.dedent("""\
    require_relative "boot"

    require "rails/all"

    Bundler.require(*Rails.groups)

    module App
      class Application < Rails::Application
        config.load_defaults 8.1
        config.api_only = true
      end
    end
""")

RAILS_DATABASE = textwrap.dedent("""\
    default: &default
      adapter: postgresql
      encoding: unicode
      max_connections: <%= ENV.fetch("RAILS_MAX_THREADS") { 5 } %>

    development:
      <<: *default
      database: app_development
""")

RAILS_ROUTES = textwrap.dedent("""\
    Rails.application.routes.draw do
      get "up" => "rails/health#show", as: :rails_health_check
    end
""")

RAILS_CORS = textwrap.dedent("""\
    # Rails.application.config.middleware.insert_before 0, Rack::Cors do
    #   allow do
    #     origins "example.com"
    #   end
    # end
""")

RAILS_APPLICATION_JOB = textwrap.dedent("""\
    class ApplicationJob < ActiveJob::Base
    end
""")

RAILS_DOCKERIGNORE = textwrap.dedent("""\
    /.git/
    /log/*
    /tmp/*
""")

RAILS_FILES: dict[str, str] = {
    "Gemfile": RAILS_GEMFILE,
    "config/application.rb": RAILS_APPLICATION,
    "config/database.yml": RAILS_DATABASE,
    "config/routes.rb": RAILS_ROUTES,
    "config/initializers/cors.rb": RAILS_CORS,
    "app/jobs/application_job.rb": RAILS_APPLICATION_JOB,
    ".dockerignore": RAILS_DOCKERIGNORE,
    ".git/HEAD": "ref: refs/heads/main\n",
    ".github/dependabot.yml": "version: 2\n",
}


def make_rails_app(api_root: Path) -> Path:
    """Write a minimal ``rails new --api`` output tree into *api_root*."""
    for relative, content in RAILS_FILES.items():
        path = api_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return api_root


@pytest.fixture
def rails_app_factory() -> Callable[[Path], Path]:
    return make_rails_app


@pytest.fixture
def rails_app(tmp_path: Path) -> Path:
    """A fake Rails API tree under ``tmp_path/app-api``."""
    return make_rails_app(tmp_path / "app-api")
