"""Tests for the artifact composer (railstack.scaffolder.composer).

Covers:
- Artifact selection and stages per feature combination
- docker-compose.yml validity and contents (parsed with PyYAML)
- Cross-artifact consistency (service names, database names, ports)
- makefile recipes and gated targets
- Determinism of rendering
- Writing artifacts to disk (append, executable bit)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest
import yaml

from railstack.config import FrontendVariant, GenerationConfig
from railstack.scaffolder.composer import ArtifactComposer
from railstack.scaffolder.fragments import Artifact, Stage, join_fragments

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _by_path(composer: ArtifactComposer, config: GenerationConfig) -> dict[str, Artifact]:
    return {artifact.path: artifact for artifact in composer.compose(config)}


def _compose(composer: ArtifactComposer, config: GenerationConfig) -> dict[str, Any]:
    return yaml.safe_load(_by_path(composer, config)["docker-compose.yml"].content)


def _makefile_targets(content: str) -> list[str]:
    return [
        line.split(":", 1)[0]
        for line in content.splitlines()
        if line and not line.startswith(("\t", "#", ".PHONY", "%")) and ":" in line
    ]


# ---------------------------------------------------------------------------
# Artifact selection
# ---------------------------------------------------------------------------


class TestArtifactSelection:
    def test_backend_only_paths(self, composer, blog_config):
        assert [a.path for a in composer.compose(blog_config)] == [
            "docker-compose.yml",
            "makefile",
            ".gitignore",
            "README.md",
            "blog-api/Dockerfile.dev",
            "blog-api/entrypoint.sh",
            "blog-api/.dockerignore",
        ]

    def test_frontend_paths(self, composer, shop_config):
        paths = [a.path for a in composer.compose(shop_config, stage=Stage.FRONTEND)]
        assert paths == [
            "shop-web-react/vite.config.ts",
            "shop-web-react/Dockerfile.dev",
            "shop-web-react/.dockerignore",
            "shop-web-react/nginx.conf",
            "shop-web-react/Dockerfile",
        ]

    def test_javascript_vite_config(self, composer):
        config = GenerationConfig(project_name="web", frontend=FrontendVariant.JAVASCRIPT)
        assert "web-web-react/vite.config.js" in _by_path(composer, config)

    def test_stage_filter(self, composer, shop_config):
        root = composer.compose(shop_config, stage=Stage.ROOT)
        backend = composer.compose(shop_config, stage=Stage.BACKEND)
        assert all(a.stage is Stage.ROOT for a in root)
        assert [a.path for a in backend] == [
            "shop-api/Dockerfile.dev",
            "shop-api/entrypoint.sh",
            "shop-api/.dockerignore",
        ]

    def test_write_flags(self, composer, blog_config):
        artifacts = _by_path(composer, blog_config)
        assert artifacts["blog-api/entrypoint.sh"].executable
        assert artifacts["blog-api/.dockerignore"].append
        assert not artifacts["makefile"].append

    def test_frontend_orthogonality(self, composer, any_config):
        paths = set(_by_path(composer, any_config))
        has_web = any(path.startswith("my-app-web-react/") for path in paths)
        assert has_web == any_config.has_frontend

    def test_unselected_features_leave_no_trace(self, composer, any_config):
        absent: list[str] = []
        if not any_config.background_jobs:
            absent += ["redis", "sidekiq"]
        if not any_config.has_frontend:
            absent += ["npm", "react", "vite", "5173"]

        for path, artifact in _by_path(composer, any_config).items():
            content = artifact.content.lower()
            for word in absent:
                assert word not in content, f"{word!r} found in {path}"


# ---------------------------------------------------------------------------
# docker-compose.yml
# ---------------------------------------------------------------------------


class TestComposeFile:
    def test_blog_services(self, composer, blog_config):
        compose = _compose(composer, blog_config)
        assert list(compose["services"]) == ["api", "db"]
        assert set(compose["volumes"]) == {"bundle", "postgres_data"}

    def test_blog_has_no_anchors(self, composer, blog_config):
        content = _by_path(composer, blog_config)["docker-compose.yml"].content
        assert "&api" not in content
        assert "*api" not in content

    def test_shop_services(self, composer, shop_config):
        compose = _compose(composer, shop_config)
        assert list(compose["services"]) == ["api", "sidekiq", "frontend", "db", "redis"]
        assert set(compose["volumes"]) == {"bundle", "node_packages", "postgres_data", "redis_data"}

    def test_worker_aliases_resolve_to_api(self, composer, shop_config):
        services = _compose(composer, shop_config)["services"]
        api, worker = services["api"], services["sidekiq"]
        assert worker["build"] == api["build"]
        assert worker["volumes"] == api["volumes"]
        assert worker["environment"] == api["environment"]
        assert worker["command"] == "bundle exec sidekiq -C config/sidekiq.yml"
        assert "ports" not in worker
        assert worker["depends_on"] == ["db", "redis"]

    def test_api_service(self, composer, shop_config):
        api = _compose(composer, shop_config)["services"]["api"]
        assert api["build"] == {"context": "./shop-api", "dockerfile": "Dockerfile.dev"}
        assert api["ports"] == ["3000:3000"]
        assert api["stdin_open"] is True
        assert api["tty"] is True
        assert api["environment"]["DB_HOST"] == "db"
        assert api["environment"]["REDIS_URL"] == "redis://redis:6379/0"
        assert api["environment"]["EDITOR"] == "${EDITOR:-nano}"

    def test_frontend_service(self, composer, shop_config):
        frontend = _compose(composer, shop_config)["services"]["frontend"]
        assert frontend["build"]["context"] == "./shop-web-react"
        assert frontend["ports"] == ["5173:5173"]
        assert "depends_on" not in frontend

    def test_database_and_broker(self, composer, shop_config):
        services = _compose(composer, shop_config)["services"]
        assert services["db"]["image"] == "postgres:15"
        assert services["db"]["environment"] == {"POSTGRES_PASSWORD": "postgres"}
        assert services["redis"]["image"] == "redis:7"
        assert services["redis"]["volumes"] == ["redis_data:/data"]

    def test_jobs_off_mentions_no_redis(self, composer, any_config):
        content = _by_path(composer, any_config)["docker-compose.yml"].content
        compose = yaml.safe_load(content)
        if any_config.background_jobs:
            assert {"redis", "sidekiq"} <= set(compose["services"])
        else:
            assert "redis" not in content
            assert "sidekiq" not in content
            assert "redis_data" not in compose["volumes"]

    def test_every_dependency_is_declared(self, composer, any_config):
        services = _compose(composer, any_config)["services"]
        for service in services.values():
            for dependency in service.get("depends_on", []):
                assert dependency in services

    def test_every_named_volume_is_declared(self, composer, any_config):
        compose = _compose(composer, any_config)
        for service in compose["services"].values():
            for mount in service.get("volumes", []):
                source = mount.split(":", 1)[0]
                if not source.startswith((".", "/")):
                    assert source in compose["volumes"]


# ---------------------------------------------------------------------------
# Cross-artifact consistency
# ---------------------------------------------------------------------------


class TestConsistency:
    def test_nginx_upstream_matches_api_service(self, composer, shop_config):
        artifacts = _by_path(composer, shop_config)
        services = yaml.safe_load(artifacts["docker-compose.yml"].content)["services"]
        assert "api" in services
        assert "proxy_pass http://api:3000;" in artifacts["shop-web-react/nginx.conf"].content

    def test_dockerfiles_use_versions(self, composer):
        config = GenerationConfig(
            project_name="pinned",
            frontend=FrontendVariant.TYPESCRIPT,
            versions={"ruby": "3.3", "node": "20"},
        )
        artifacts = _by_path(composer, config)
        assert artifacts["pinned-api/Dockerfile.dev"].content.startswith("# Dockerfile.dev\nFROM ruby:3.3\n")
        assert "FROM node:20-alpine" in artifacts["pinned-web-react/Dockerfile.dev"].content
        assert "FROM node:20-alpine AS build" in artifacts["pinned-web-react/Dockerfile"].content

    def test_production_dockerfile_stages(self, composer, shop_config):
        content = _by_path(composer, shop_config)["shop-web-react/Dockerfile"].content
        assert content.index("AS build") < content.index("COPY --from=build")

    def test_vite_config_uses_frontend_port(self, composer, shop_config):
        content = _by_path(composer, shop_config)["shop-web-react/vite.config.ts"].content
        assert "port: 5173," in content
        assert "host: '0.0.0.0'" in content
        assert "usePolling: true" in content

    def test_readme_mentions_only_selected_features(self, composer, blog_config, shop_config):
        blog = _by_path(composer, blog_config)["README.md"].content
        shop = _by_path(composer, shop_config)["README.md"].content
        assert blog.startswith("# blog\n")
        assert "React" not in blog
        assert "Sidekiq" not in blog
        assert "shop-web-react/" in shop
        assert "http://localhost:3000/sidekiq" in shop

    def test_backend_dockerignore_appends_on_new_line(self, composer, blog_config):
        content = _by_path(composer, blog_config)["blog-api/.dockerignore"].content
        assert content.startswith("\n")
        assert "vendor/bundle" in content


# ---------------------------------------------------------------------------
# makefile
# ---------------------------------------------------------------------------


class TestMakefile:
    def test_recipes_are_tab_indented(self, composer, any_config):
        content = _by_path(composer, any_config)["makefile"].content
        for line in content.splitlines():
            if line.startswith(" "):
                pytest.fail(f"space-indented makefile line: {line!r}")
        assert "\tdocker-compose up\n" in content

    def test_backend_targets(self, composer, blog_config):
        content = _by_path(composer, blog_config)["makefile"].content
        targets = _makefile_targets(content)
        assert targets == [
            "bundle", "rails", "console", "test", "migrate", "pg", "shell",
            "setup", "rspec", "up", "down", "restart",
        ]
        assert "sidekiq" not in content
        assert "npm" not in content

    def test_feature_targets(self, composer, shop_config):
        content = _by_path(composer, shop_config)["makefile"].content
        targets = _makefile_targets(content)
        assert targets[-3:] == ["sidekiq", "redis-cli", "npm"]
        phony = content.splitlines()[0]
        assert phony.endswith(" sidekiq redis-cli npm")

    def test_catch_all_is_last(self, composer, any_config):
        content = _by_path(composer, any_config)["makefile"].content
        assert content.endswith("%:\n\t@:\n")

    def test_targets_use_service_names(self, composer, shop_config):
        content = _by_path(composer, shop_config)["makefile"].content
        assert "docker-compose run --rm api bin/rails console" in content
        assert "docker-compose exec db psql -U postgres" in content
        assert "docker-compose logs -f sidekiq" in content
        assert "docker-compose exec redis redis-cli" in content


# ---------------------------------------------------------------------------
# Determinism and joining
# ---------------------------------------------------------------------------


class TestDeterminism:
    def test_same_config_same_output(self, composer, any_config):
        assert composer.compose(any_config) == composer.compose(any_config)

    def test_fresh_composers_agree(self, shop_config):
        assert ArtifactComposer().compose(shop_config) == ArtifactComposer().compose(shop_config)

    def test_join_fragments(self):
        assert join_fragments(["a\n\n", "b", "c\n"]) == "a\n\nb\n\nc\n"


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------


class TestWrite:
    def test_prepare_creates_root_and_api_dir(self, composer, blog_config, tmp_path):
        root = composer.prepare(tmp_path / "blog", blog_config)
        assert (root / "blog-api").is_dir()

    def test_prepare_refuses_existing_root(self, composer, blog_config, tmp_path):
        (tmp_path / "blog").mkdir()
        with pytest.raises(FileExistsError):
            composer.prepare(tmp_path / "blog", blog_config)

    @pytest.mark.asyncio
    async def test_write_root_stage(self, composer, blog_config, tmp_path):
        artifacts = composer.compose(blog_config, stage=Stage.ROOT)
        written = await composer.write(tmp_path, artifacts)
        assert written == [tmp_path / a.path for a in artifacts]
        assert (tmp_path / "docker-compose.yml").read_text(encoding="utf-8") == artifacts[0].content

    @pytest.mark.asyncio
    async def test_write_backend_stage(self, composer, blog_config, tmp_path):
        api = tmp_path / "blog-api"
        api.mkdir()
        (api / ".dockerignore").write_text("/.git/\n", encoding="utf-8")

        await composer.write(tmp_path, composer.compose(blog_config, stage=Stage.BACKEND))

        dockerignore = (api / ".dockerignore").read_text(encoding="utf-8")
        assert dockerignore.startswith("/.git/\n\n# Additional Docker-specific ignores\n")
        assert os.access(api / "entrypoint.sh", os.X_OK)
        assert Path(api / "Dockerfile.dev").is_file()
