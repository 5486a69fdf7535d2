"""Main generation orchestrator.

Takes a project configuration, validates it, loads a template bundle, and
writes the generated project to ``<output_path>/<name>``.  Progress flows
through a fixed sequence of :class:`~stackgen.models.GenerationPhase` values:

1. INITIALIZING          -- validate the configuration, load the bundle.
2. GENERATING_STRUCTURE  -- create the project and planned directories,
                            run pre-generation hooks.
3. PROCESSING_TEMPLATES  -- compile and write every bundle file in order.
4. FINALIZING            -- run post-generation hooks.
5. COMPLETED             -- report success.

Any failure is caught once at the top of :meth:`ProjectGenerator.generate`,
recorded in the returned result, and reported to observers through a single
``on_error`` call.  Permission and hook failures are only warnings.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from stackgen.config import Config
from stackgen.errors import (
    ConfigurationInvalid,
    FileSystemError,
    HookExecutionFailure,
    PermissionApplicationFailure,
    StackgenError,
)
from stackgen.filesystem import FileSystem, LocalFileSystem
from stackgen.generator.cancellation import CancellationToken
from stackgen.generator.observers import GenerationObserver, ObserverBus
from stackgen.generator.planner import plan_directories
from stackgen.logger import get_logger
from stackgen.models import (
    PROGRESS_TOTAL,
    GenerationPhase,
    GenerationProgress,
    GenerationResult,
    ProjectConfig,
    ProjectType,
    TemplateBundle,
    TemplateFile,
)
from stackgen.templates.engine import TemplateEngine, get_engine, name_variants
from stackgen.templates.repository import TemplateRepository
from stackgen.utils import run_command
from stackgen.validation.validator import ProjectValidator

DEFAULT_TEMPLATE = "basic-project"

# Progress checkpoints (percent of PROGRESS_TOTAL).
PROGRESS_START = 0
PROGRESS_LOADING = 10
PROGRESS_STRUCTURE = 20
PROGRESS_TEMPLATES = 30
PROGRESS_FINALIZING = 90

_TEMPLATES_SPAN = PROGRESS_FINALIZING - PROGRESS_TEMPLATES


# ---------------------------------------------------------------------------
# Per-run state
# ---------------------------------------------------------------------------


class _RunState:
    """Mutable bookkeeping for one ``generate()`` call."""

    def __init__(self, output_path: str) -> None:
        self.output_path = output_path
        self.files_generated: list[str] = []
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.started = time.monotonic()

    def result(self, success: bool) -> GenerationResult:
        return GenerationResult(
            success=success,
            output_path=self.output_path,
            files_generated=list(self.files_generated),
            errors=list(self.errors),
            warnings=list(self.warnings),
            duration_seconds=time.monotonic() - self.started,
        )


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class ProjectGenerator:
    """Drives the generation pipeline for project configurations.

    Collaborators are passed in explicitly; :meth:`from_config` wires the
    default local implementations.  A single instance may serve several
    ``generate()`` calls, including concurrent ones: each call notifies its
    own snapshot of observers and keeps its state local.
    """

    def __init__(
        self,
        validator: ProjectValidator,
        repository: TemplateRepository,
        file_system: FileSystem,
        *,
        engine: TemplateEngine | None = None,
        settings: Config | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.validator = validator
        self.repository = repository
        self.file_system = file_system
        self.engine = engine
        self.settings = settings or Config()
        self.logger = logger or get_logger(__name__)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.observers = ObserverBus(self.logger)

    @classmethod
    def from_config(
        cls, settings: Config | None = None, logger: logging.Logger | None = None
    ) -> "ProjectGenerator":
        """Build a generator backed by the local file system."""
        settings = settings or Config()
        file_system = LocalFileSystem(logger)
        return cls(
            ProjectValidator(file_system, logger),
            TemplateRepository(
                settings.templates_dir,
                file_system,
                logger,
                default_engine=settings.default_engine,
            ),
            file_system,
            settings=settings,
            logger=logger,
        )

    # -- Public API --------------------------------------------------------

    async def generate(
        self,
        config: ProjectConfig | Mapping[str, Any],
        *,
        observers: Iterable[GenerationObserver] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> GenerationResult:
        """Generate the project described by *config*.

        Args:
            config: A ``ProjectConfig`` or a raw mapping with the same fields.
            observers: Extra observers notified for this call only, after
                the ones registered with :meth:`add_observer`.
            cancel_token: Checked at every phase boundary and before each
                file write.

        Returns:
            The result of the run.  It never raises for pipeline failures;
            check ``result.success`` and ``result.errors`` instead.
        """
        targets = self.observers.snapshot() + list(observers or [])
        token = cancel_token or CancellationToken()
        state = _RunState(_raw_output_path(config))
        project_name = _raw_name(config)

        try:
            self._progress(targets, PROGRESS_START, "Initializing...", GenerationPhase.INITIALIZING)

            # 1. Validate configuration
            validation = await self.validator.validate(config)
            state.warnings.extend(w.message for w in validation.warnings)
            if not validation.is_valid:
                raise ConfigurationInvalid(validation)
            project = (
                config if isinstance(config, ProjectConfig)
                else ProjectConfig.model_validate(config)
            )

            # 2. Load template bundle
            token.raise_if_cancelled("before loading the template")
            self._progress(
                targets, PROGRESS_LOADING, "Loading template...", GenerationPhase.INITIALIZING
            )
            bundle = await self._load_template(project, state)
            engine = self.engine or get_engine(bundle.engine, self.logger)

            # 3. Directory structure
            token.raise_if_cancelled("before generating the directory structure")
            self._progress(
                targets,
                PROGRESS_STRUCTURE,
                "Creating directory structure...",
                GenerationPhase.GENERATING_STRUCTURE,
            )
            project_dir = Path(project.output_path).resolve() / project.name
            state.output_path = str(project_dir)
            await self._create_directory_structure(project_dir, bundle, state)

            # 4. Template files
            token.raise_if_cancelled("before processing template files")
            self._progress(
                targets,
                PROGRESS_TEMPLATES,
                "Processing template files...",
                GenerationPhase.PROCESSING_TEMPLATES,
            )
            context = self._build_context(project, bundle, state)
            await self._process_template_files(
                project_dir, bundle, engine, context, state, targets, token
            )

            # 5. Finalize
            token.raise_if_cancelled("before finalizing")
            self._progress(
                targets, PROGRESS_FINALIZING, "Finalizing...", GenerationPhase.FINALIZING
            )
            await self._finalize_generation(project_dir, bundle, state)

            self._progress(targets, PROGRESS_TOTAL, "Completed", GenerationPhase.COMPLETED)

        except Exception as exc:
            if isinstance(exc, StackgenError):
                state.errors.extend(exc.details)
                self.logger.error(
                    "Project generation failed: %s",
                    exc,
                    extra={"project_name": project_name, "output_path": state.output_path},
                )
            else:
                state.errors.append(str(exc) or type(exc).__name__)
                self.logger.error(
                    "Project generation failed: %s",
                    exc,
                    exc_info=exc,
                    extra={"project_name": project_name, "output_path": state.output_path},
                )
            result = state.result(success=False)
            self.observers.notify_error(exc, targets)
            return result

        result = state.result(success=True)
        self.logger.info(
            "Project generation completed: %s (%d files)",
            project_name,
            len(result.files_generated),
            extra={
                "project_name": project_name,
                "output_path": result.output_path,
                "files_generated": len(result.files_generated),
                "duration": result.duration_seconds,
            },
        )
        self.observers.notify_complete(result, targets)
        return result

    async def validate_config(self, config: ProjectConfig | Mapping[str, Any]) -> bool:
        """Return ``True`` if *config* has no blocking validation errors."""
        result = await self.validator.validate(config)
        return result.is_valid

    def add_observer(self, observer: GenerationObserver) -> None:
        self.observers.add(observer)

    def remove_observer(self, observer: GenerationObserver) -> None:
        self.observers.remove(observer)

    async def list_templates(self) -> list[str]:
        return await self.repository.list_templates()

    # -- Template selection ------------------------------------------------

    async def _load_template(self, project: ProjectConfig, state: _RunState) -> TemplateBundle:
        name = project.template or default_template_name(project)
        bundle = await self.repository.load_template(name)
        if project.type.value not in bundle.supported_types:
            message = (
                f"Template {bundle.name} does not declare support for "
                f"{project.type.value} projects"
            )
            self.logger.warning(message)
            state.warnings.append(message)
        return bundle

    # -- Directory structure -----------------------------------------------

    async def _create_directory_structure(
        self, project_dir: Path, bundle: TemplateBundle, state: _RunState
    ) -> None:
        """Create the project root, run pre-generation hooks, then create planned dirs."""
        await self.file_system.create_directory(project_dir)

        if bundle.config.hooks:
            await self._run_hooks(
                bundle.config.hooks.pre_generation, project_dir, "pre-generation", state
            )

        for directory in plan_directories(bundle.files):
            await self.file_system.create_directory(project_dir / directory)

    # -- Template files ----------------------------------------------------

    async def _process_template_files(
        self,
        project_dir: Path,
        bundle: TemplateBundle,
        engine: TemplateEngine,
        context: dict[str, Any],
        state: _RunState,
        targets: list[GenerationObserver],
        token: CancellationToken,
    ) -> None:
        """Compile and write every bundle file in declaration order."""
        total = len(bundle.files)
        for index, file in enumerate(bundle.files):
            self._progress(
                targets,
                PROGRESS_TEMPLATES + (index * _TEMPLATES_SPAN) // total,
                file.path,
                GenerationPhase.PROCESSING_TEMPLATES,
            )

            content = file.content
            if file.is_template:
                content = engine.compile(content, context, path=file.path)

            token.raise_if_cancelled(f"before writing {file.path}")
            output_file = project_dir / file.path
            await self.file_system.write_file(output_file, content)

            if file.permissions:
                await self._apply_permissions(output_file, file, state)

            state.files_generated.append(file.path)

    async def _apply_permissions(
        self, output_file: Path, file: TemplateFile, state: _RunState
    ) -> None:
        """Best-effort chmod; failures become warnings."""
        try:
            mode = int(str(file.permissions), 8)
            await self.file_system.set_permissions(output_file, mode)
        except (ValueError, FileSystemError) as exc:
            failure = PermissionApplicationFailure(file.path, str(file.permissions), str(exc))
            self.logger.warning(str(failure))
            state.warnings.append(str(failure))

    # -- Context building --------------------------------------------------

    def _build_context(
        self, project: ProjectConfig, bundle: TemplateBundle, state: _RunState
    ) -> dict[str, Any]:
        """Build the template data context from the project config."""
        now = self.clock()
        technologies = project.technologies
        is_full_stack = project.type == ProjectType.FULL_STACK

        return {
            "name": project.name,
            "type": project.type.value,
            "architecture": project.architecture.value,
            "technologies": technologies.model_dump(mode="json"),
            "custom_options": dict(project.custom_options),
            "variables": self._bind_variables(project, bundle, state),
            **name_variants(project.name),
            "current_date": now.date().isoformat(),
            "current_year": now.year,
            "is_backend": project.type == ProjectType.BACKEND_ONLY or is_full_stack,
            "is_frontend": project.type == ProjectType.FRONTEND_ONLY or is_full_stack,
            "is_full_stack": is_full_stack,
            "has_database": technologies.database is not None,
            "has_deployment": technologies.deployment is not None,
        }

    def _bind_variables(
        self, project: ProjectConfig, bundle: TemplateBundle, state: _RunState
    ) -> dict[str, Any]:
        """Bind declared bundle variables from custom options or their defaults."""
        bound: dict[str, Any] = {}
        for variable in bundle.config.variables:
            value = project.custom_options.get(variable.name, variable.default)
            if value is None and variable.required:
                message = f"Required template variable '{variable.name}' has no value"
                self.logger.warning(message)
                state.warnings.append(message)
            bound[variable.name] = value
        return bound

    # -- Hooks -------------------------------------------------------------

    async def _finalize_generation(
        self, project_dir: Path, bundle: TemplateBundle, state: _RunState
    ) -> None:
        if bundle.config.hooks:
            await self._run_hooks(
                bundle.config.hooks.post_generation, project_dir, "post-generation", state
            )

    async def _run_hooks(
        self, commands: list[str], cwd: Path, stage: str, state: _RunState
    ) -> None:
        """Run hook commands in order; failures are logged and never raised."""
        if not commands:
            return
        if not self.settings.run_hooks:
            self.logger.info("Skipping %d %s hook(s): hooks are disabled", len(commands), stage)
            return

        for command in commands:
            self.logger.info("Executing %s hook: %s", stage, command)
            try:
                returncode, stdout, stderr = await run_command(
                    command, cwd=cwd, timeout=self.settings.hook_timeout
                )
            except OSError as exc:
                returncode, stdout, stderr = -1, "", str(exc)

            if returncode != 0:
                failure = HookExecutionFailure(command, returncode, stderr)
                self.logger.warning(str(failure))
                state.warnings.append(str(failure))
            elif stdout:
                self.logger.debug("Hook output (%s): %s", command, stdout)

    # -- Observers ---------------------------------------------------------

    def _progress(
        self,
        targets: list[GenerationObserver],
        current: int,
        label: str,
        phase: GenerationPhase,
    ) -> None:
        progress = GenerationProgress(current=current, current_item=label, phase=phase)
        self.logger.debug("[%3d%%] %s: %s", current, phase.value, label)
        self.observers.notify_progress(progress, targets)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def default_template_name(project: ProjectConfig) -> str:
    """Pick a bundle when the configuration does not name one."""
    technologies = project.technologies
    if (
        project.type == ProjectType.BACKEND_ONLY
        and technologies.backend is not None
        and technologies.backend.language == "node"
    ):
        return "node-express-api"
    if (
        project.type == ProjectType.FRONTEND_ONLY
        and technologies.frontend is not None
        and technologies.frontend.framework == "react"
    ):
        return "react-spa"
    if project.type == ProjectType.FULL_STACK:
        return "full-stack-mern"
    return DEFAULT_TEMPLATE


def _raw_output_path(config: ProjectConfig | Mapping[str, Any]) -> str:
    if isinstance(config, BaseModel):
        return str(getattr(config, "output_path", ""))
    if isinstance(config, Mapping):
        return str(config.get("output_path") or "")
    return ""


def _raw_name(config: ProjectConfig | Mapping[str, Any]) -> str:
    if isinstance(config, BaseModel):
        return str(getattr(config, "name", ""))
    if isinstance(config, Mapping):
        return str(config.get("name") or "")
    return ""
