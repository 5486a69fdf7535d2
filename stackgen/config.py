"""stackgen tool configuration.

Centralised, typed settings for the generator. All settings use Pydantic v2
models so they can be validated at construction time and serialised to/from
JSON or environment variables without boiler-plate.

Project configurations (what to generate) live in :mod:`stackgen.models`;
this module also knows how to read one from a YAML or JSON file for the CLI.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "bundles"

_TRUTHY = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Global stackgen configuration.

    Instances are typically created once by the CLI entry point (or by an
    embedding application) and passed to
    :meth:`stackgen.generator.ProjectGenerator.from_config`.
    """

    templates_dir: Path = Field(
        default=DEFAULT_TEMPLATES_DIR,
        description="Directory containing one sub-directory per template bundle",
    )
    default_engine: str = Field(
        default="jinja2",
        description="Engine used when a bundle does not name one",
    )
    run_hooks: bool = Field(default=True, description="Execute bundle pre/post-generation hooks")
    hook_timeout: int = Field(default=120, ge=1, description="Per-hook timeout in seconds")
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = Field(default=None)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            STACKGEN_TEMPLATES_DIR, STACKGEN_ENGINE, STACKGEN_RUN_HOOKS,
            STACKGEN_HOOK_TIMEOUT, STACKGEN_LOG_LEVEL, STACKGEN_LOG_FILE.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("STACKGEN_TEMPLATES_DIR"):
            kwargs["templates_dir"] = Path(os.environ["STACKGEN_TEMPLATES_DIR"])
        if os.environ.get("STACKGEN_ENGINE"):
            kwargs["default_engine"] = os.environ["STACKGEN_ENGINE"]
        if os.environ.get("STACKGEN_RUN_HOOKS"):
            kwargs["run_hooks"] = os.environ["STACKGEN_RUN_HOOKS"].strip().lower() in _TRUTHY
        if os.environ.get("STACKGEN_HOOK_TIMEOUT"):
            kwargs["hook_timeout"] = int(os.environ["STACKGEN_HOOK_TIMEOUT"])
        if os.environ.get("STACKGEN_LOG_LEVEL"):
            kwargs["log_level"] = os.environ["STACKGEN_LOG_LEVEL"].upper()
        if os.environ.get("STACKGEN_LOG_FILE"):
            kwargs["log_file"] = Path(os.environ["STACKGEN_LOG_FILE"])
        return cls(**kwargs)


def load_project_config(path: str | Path) -> dict[str, Any]:
    """Read a project configuration file (YAML or JSON) into a raw mapping.

    The mapping is returned unvalidated so the validator can report every
    problem at once instead of failing on the first one.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is not a mapping.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        data = json.loads(raw)
    else:
        data = yaml.safe_load(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Project configuration must be a mapping: {file_path}")
    return data
