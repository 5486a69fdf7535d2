"""Pydantic v2 models shared across the generation pipeline.

Defines the project configuration the user supplies, the template bundle
model produced by the repository, validation results, and the progress and
result records the orchestrator reports to observers and callers.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ProjectType(str, Enum):
    """Which tiers the generated project contains."""
    BACKEND_ONLY = "backend-only"
    FRONTEND_ONLY = "frontend-only"
    FULL_STACK = "full-stack"


class ArchitectureType(str, Enum):
    """High-level architecture style of the generated project."""
    MONOLITHIC = "monolithic"
    MICROSERVICES = "microservices"
    SERVERLESS = "serverless"
    JAMSTACK = "jamstack"
    SPA = "spa"
    SSR = "ssr"


class GenerationPhase(str, Enum):
    """Pipeline stages of a single ``generate()`` call, in execution order."""
    INITIALIZING = "initializing"
    GENERATING_STRUCTURE = "generating-structure"
    PROCESSING_TEMPLATES = "processing-templates"
    FINALIZING = "finalizing"
    COMPLETED = "completed"

    @property
    def order(self) -> int:
        """Rank of the phase; later phases have higher ranks."""
        return list(GenerationPhase).index(self)


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------

class BackendStack(BaseModel):
    """Backend technology selection."""
    model_config = ConfigDict(extra="forbid")

    language: Literal["node", "python", "java", "go", "csharp"]
    framework: str
    orm: Optional[str] = None


class FrontendStack(BaseModel):
    """Frontend technology selection."""
    model_config = ConfigDict(extra="forbid")

    framework: Literal["react", "vue", "angular", "svelte"]
    styling: Literal["css", "scss", "tailwind", "styled-components"]
    bundler: Literal["webpack", "vite", "parcel"]


class DatabaseStack(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["sql", "nosql"]
    name: str


class DeploymentStack(BaseModel):
    model_config = ConfigDict(extra="forbid")

    platform: Literal["docker", "kubernetes", "aws", "vercel", "netlify"]
    ci: Literal["github-actions", "gitlab-ci", "jenkins"]


class TechnologyStack(BaseModel):
    """Per-concern technology records; each one is optional."""
    model_config = ConfigDict(extra="forbid")

    backend: Optional[BackendStack] = None
    frontend: Optional[FrontendStack] = None
    database: Optional[DatabaseStack] = None
    deployment: Optional[DeploymentStack] = None


class ProjectConfig(BaseModel):
    """Declarative description of the project to generate.

    Structural checks (presence, types, enum membership) happen at model
    construction.  Semantic rules such as the name pattern and reserved
    names are enforced by :class:`stackgen.validation.ProjectValidator`, so a
    ``ProjectConfig`` can hold a name the validator will later reject.
    """
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Project name, used as the output directory name")
    type: ProjectType = Field(..., description="Which tiers the project contains")
    architecture: ArchitectureType = Field(..., description="Architecture style")
    technologies: TechnologyStack = Field(default_factory=TechnologyStack)
    output_path: str = Field(..., min_length=1, description="Parent directory of the project")
    template: Optional[str] = Field(default=None, description="Explicit bundle name")
    custom_options: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form options exposed to templates",
    )


# ---------------------------------------------------------------------------
# Template bundles
# ---------------------------------------------------------------------------

class TemplateFile(BaseModel):
    """A single file of a bundle, read once at load time."""
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="POSIX path relative to the project root")
    content: str = Field(default="")
    is_template: bool = Field(default=True, description="Compile content before writing")
    permissions: Optional[str] = Field(default=None, description="Octal mode, e.g. '755'")


class TemplateVariable(BaseModel):
    """A variable a bundle declares for its templates."""

    name: str = ""
    type: str = ""
    description: str = ""
    required: bool = False
    default: Any = None
    validation: Optional[str] = None


class TemplateHooks(BaseModel):
    pre_generation: list[str] = Field(default_factory=list)
    post_generation: list[str] = Field(default_factory=list)


class TemplateDependencies(BaseModel):
    runtime: list[str] = Field(default_factory=list)
    system: list[str] = Field(default_factory=list)


class TemplateBundleConfig(BaseModel):
    variables: list[TemplateVariable] = Field(default_factory=list)
    hooks: Optional[TemplateHooks] = None
    dependencies: Optional[TemplateDependencies] = None


class TemplateBundle(BaseModel):
    """A named, versioned set of template files plus their manifest data."""

    name: str
    version: str
    description: str = ""
    author: str = ""
    supported_types: list[str] = Field(default_factory=list)
    files: list[TemplateFile] = Field(default_factory=list)
    config: TemplateBundleConfig = Field(default_factory=TemplateBundleConfig)
    engine: str = Field(default="jinja2", description="Name of the engine compiling this bundle")
    source_dir: Optional[Path] = Field(default=None, description="Where the bundle was loaded from")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationIssue(BaseModel):
    """A single validation error or warning."""

    field: str = Field(..., description="Dotted path of the offending field")
    message: str
    code: str = Field(..., description="Machine-readable code, e.g. 'RESERVED_NAME'")


class ValidationResult(BaseModel):
    """Outcome of validating one project configuration."""

    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def is_valid(self) -> bool:
        """True when no blocking errors were recorded."""
        return not self.errors

    def codes(self) -> list[str]:
        """Return the error codes followed by the warning codes."""
        return [e.code for e in self.errors] + [w.code for w in self.warnings]


# ---------------------------------------------------------------------------
# Generation progress & result
# ---------------------------------------------------------------------------

PROGRESS_TOTAL = 100


class GenerationProgress(BaseModel):
    """A progress notification emitted during ``generate()``."""
    model_config = ConfigDict(frozen=True)

    current: int = Field(..., ge=0, le=PROGRESS_TOTAL)
    total: int = Field(default=PROGRESS_TOTAL)
    current_item: str = Field(default="", description="Human-readable label of the current step")
    phase: GenerationPhase


class GenerationResult(BaseModel):
    """Outcome of one ``generate()`` call."""
    model_config = ConfigDict(frozen=True)

    success: bool = False
    output_path: str = ""
    files_generated: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    duration_seconds: float = Field(default=0.0, ge=0.0)
