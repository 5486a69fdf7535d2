"""Shared pytest fixtures for the stackgen test suite.

Provides reusable fixtures for:
- Project configurations (raw mappings and ``ProjectConfig`` models)
- On-disk template bundles built under ``tmp_path``
- A recording observer
- Fully wired generators backed by the local file system
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from stackgen.config import Config
from stackgen.filesystem import LocalFileSystem
from stackgen.generator import ProjectGenerator
from stackgen.models import GenerationProgress, GenerationResult, ProjectConfig
from stackgen.templates import TemplateRepository
from stackgen.validation import ProjectValidator


# ---------------------------------------------------------------------------
# Project configurations
# ---------------------------------------------------------------------------

@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Parent directory for generated projects (does not exist yet)."""
    return tmp_path / "out"


@pytest.fixture
def backend_config_data(output_dir: Path) -> dict[str, Any]:
    """A valid backend-only configuration as a raw mapping."""
    return {
        "name": "my-api",
        "type": "backend-only",
        "architecture": "monolithic",
        "technologies": {"backend": {"language": "node", "framework": "express"}},
        "output_path": str(output_dir),
    }


@pytest.fixture
def backend_config(backend_config_data: dict[str, Any]) -> ProjectConfig:
    return ProjectConfig.model_validate(backend_config_data)


@pytest.fixture
def frontend_config_data(output_dir: Path) -> dict[str, Any]:
    return {
        "name": "my-spa",
        "type": "frontend-only",
        "architecture": "spa",
        "technologies": {
            "frontend": {"framework": "react", "styling": "css", "bundler": "vite"},
        },
        "output_path": str(output_dir),
    }


@pytest.fixture
def full_stack_config_data(output_dir: Path) -> dict[str, Any]:
    return {
        "name": "my-shop",
        "type": "full-stack",
        "architecture": "monolithic",
        "technologies": {
            "backend": {"language": "node", "framework": "express"},
            "frontend": {"framework": "react", "styling": "tailwind", "bundler": "vite"},
            "database": {"type": "nosql", "name": "mongodb"},
            "deployment": {"platform": "docker", "ci": "github-actions"},
        },
        "output_path": str(output_dir),
    }


# ---------------------------------------------------------------------------
# Template bundles
# ---------------------------------------------------------------------------

def write_bundle(
    root: Path,
    name: str,
    manifest: dict[str, Any] | None,
    files: dict[str, str] | None = None,
) -> Path:
    """Create ``root/name`` with a ``template.yml`` and ``files/`` contents.

    A ``None`` manifest leaves the manifest out entirely.
    """
    bundle_dir = root / name
    bundle_dir.mkdir(parents=True, exist_ok=True)
    if manifest is not None:
        (bundle_dir / "template.yml").write_text(
            yaml.safe_dump(manifest, sort_keys=False), encoding="utf-8"
        )
    for rel_path, content in (files or {}).items():
        target = bundle_dir / "files" / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return bundle_dir


SAMPLE_MANIFEST: dict[str, Any] = {
    "name": "sample-bundle",
    "version": "2.1.0",
    "description": "Bundle used by the test suite",
    "author": "tests",
    "supportedTypes": ["backend-only", "full-stack"],
    "variables": [
        {"name": "port", "type": "number", "default": 3000},
        {"name": "owner", "type": "string", "required": True},
    ],
    "files": [
        {"path": "README.md"},
        {"path": "src/index.js"},
        {"path": "src/lib/util/helpers.js"},
        {"path": "bin/run.sh", "permissions": "755"},
        {"path": "assets/raw.txt", "isTemplate": False},
    ],
}

SAMPLE_FILES: dict[str, str] = {
    "README.md": "# {{ name }}\n\n{{ name_pascal }} ({{ type }}) {{ current_year }}\n",
    "src/index.js": "const port = {{ variables.port }};\n",
    "src/lib/util/helpers.js": "module.exports = '{{ name_snake }}';\n",
    "bin/run.sh": "#!/bin/sh\necho {{ name }}\n",
    "assets/raw.txt": "{{ left as is }}\n",
}


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    """Templates root holding ``sample-bundle`` and a ``basic-project`` fallback."""
    root = tmp_path / "templates"
    write_bundle(root, "sample-bundle", SAMPLE_MANIFEST, SAMPLE_FILES)
    write_bundle(
        root,
        "basic-project",
        {
            "name": "basic-project",
            "version": "1.0.0",
            "supportedTypes": ["backend-only", "frontend-only", "full-stack"],
            "files": ["README.md"],
        },
        {"README.md": "# {{ name }}\n"},
    )
    return root


@pytest.fixture
def make_bundle(templates_dir: Path) -> Callable[..., Path]:
    """Factory writing extra bundles next to the sample ones."""

    def _make(name: str, manifest: dict[str, Any] | None, files: dict[str, str] | None = None) -> Path:
        return write_bundle(templates_dir, name, manifest, files)

    return _make


# ---------------------------------------------------------------------------
# Observers & generators
# ---------------------------------------------------------------------------

class RecordingObserver:
    """Observer that keeps every event it receives."""

    def __init__(self) -> None:
        self.progress: list[GenerationProgress] = []
        self.completed: list[GenerationResult] = []
        self.errors: list[Exception] = []

    def on_progress(self, progress: GenerationProgress) -> None:
        self.progress.append(progress)

    def on_complete(self, result: GenerationResult) -> None:
        self.completed.append(result)

    def on_error(self, error: Exception) -> None:
        self.errors.append(error)


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def local_fs() -> LocalFileSystem:
    return LocalFileSystem()


@pytest.fixture
def settings(templates_dir: Path) -> Config:
    return Config(templates_dir=templates_dir, run_hooks=False)


@pytest.fixture
def generator(local_fs: LocalFileSystem, templates_dir: Path, settings: Config) -> ProjectGenerator:
    """Generator wired to the test templates with hooks disabled."""
    return ProjectGenerator(
        ProjectValidator(local_fs),
        TemplateRepository(templates_dir, local_fs),
        local_fs,
        settings=settings,
    )
