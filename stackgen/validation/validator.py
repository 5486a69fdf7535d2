"""Project configuration validation.

Checks a project configuration in two tiers:

* **Schema** -- presence, types and enum membership, delegated to the
  :class:`~stackgen.models.ProjectConfig` pydantic model.  Every pydantic
  error becomes a blocking :class:`~stackgen.models.ValidationIssue`.
* **Semantic** -- name format and reserved names, output-path sanity,
  technology-stack completeness per project type, and architecture
  plausibility.  Some of these only produce warnings.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from stackgen.filesystem import FileSystem
from stackgen.logger import get_logger
from stackgen.models import (
    ArchitectureType,
    ProjectConfig,
    ProjectType,
    ValidationIssue,
    ValidationResult,
)


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

RESERVED_NAMES: frozenset[str] = frozenset(
    ["con", "prn", "aux", "nul", "node_modules", ".git"]
    + [f"com{i}" for i in range(1, 10)]
    + [f"lpt{i}" for i in range(1, 10)]
)

# (project type, architecture) pairs that only make sense with a backend.
IMPLAUSIBLE_ARCHITECTURES: tuple[tuple[ProjectType, ArchitectureType], ...] = (
    (ProjectType.FRONTEND_ONLY, ArchitectureType.MICROSERVICES),
    (ProjectType.FRONTEND_ONLY, ArchitectureType.SERVERLESS),
)

_SCHEMA_CODES: dict[str, str] = {
    "missing": "FIELD_REQUIRED",
    "string_too_short": "FIELD_REQUIRED",
    "enum": "INVALID_OPTION",
    "literal_error": "INVALID_OPTION",
    "extra_forbidden": "UNKNOWN_FIELD",
}


# ---------------------------------------------------------------------------
# ProjectValidator
# ---------------------------------------------------------------------------


class ProjectValidator:
    """Validates project configurations against structural and semantic rules.

    The only side effect is read-only existence checks on the output path,
    performed through the injected file-system collaborator.
    """

    def __init__(self, file_system: FileSystem, logger: logging.Logger | None = None) -> None:
        self.file_system = file_system
        self.logger = logger or get_logger(__name__)

    async def validate(self, config: ProjectConfig | Mapping[str, Any]) -> ValidationResult:
        """Validate *config* and return every error and warning found.

        Args:
            config: A ``ProjectConfig`` or a raw mapping (e.g. parsed from a
                YAML file).  Raw mappings are schema-checked first; semantic
                checks then run on whatever values are usable.
        """
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        raw = _as_mapping(config)
        errors.extend(_schema_issues(raw))

        self._check_name(raw.get("name"), errors)
        await self._check_output_path(raw.get("output_path"), errors, warnings)
        self._check_technology_stack(raw, errors, warnings)
        self._check_architecture(raw, warnings)

        result = ValidationResult(errors=errors, warnings=warnings)
        self.logger.debug(
            "Project validation completed: valid=%s errors=%d warnings=%d",
            result.is_valid,
            len(errors),
            len(warnings),
            extra={
                "is_valid": result.is_valid,
                "error_count": len(errors),
                "warning_count": len(warnings),
            },
        )
        return result

    def validate_name(self, name: str) -> bool:
        """Return ``True`` if *name* is a well-formed project identifier."""
        return validate_name(name)

    def validate_path(self, path: str) -> bool:
        """Return ``True`` if *path* resolves to an absolute path."""
        return validate_path(path)

    # -- Semantic rules ----------------------------------------------------

    def _check_name(self, name: Any, errors: list[ValidationIssue]) -> None:
        if not isinstance(name, str):
            return
        if not validate_name(name):
            errors.append(ValidationIssue(
                field="name",
                message=(
                    "Project name must start with a letter, contain only letters, "
                    f"numbers, hyphens and underscores, and be {NAME_MIN_LENGTH}-"
                    f"{NAME_MAX_LENGTH} characters long"
                ),
                code="INVALID_NAME_FORMAT",
            ))
        if name.lower() in RESERVED_NAMES:
            errors.append(ValidationIssue(
                field="name",
                message="Project name cannot be a reserved word",
                code="RESERVED_NAME",
            ))

    async def _check_output_path(
        self,
        output_path: Any,
        errors: list[ValidationIssue],
        warnings: list[ValidationIssue],
    ) -> None:
        if not isinstance(output_path, str):
            return
        if not validate_path(output_path):
            errors.append(ValidationIssue(
                field="output_path",
                message="Invalid output path format",
                code="INVALID_PATH_FORMAT",
            ))
            return

        resolved = Path(output_path).resolve()
        if await self.file_system.exists(resolved):
            warnings.append(ValidationIssue(
                field="output_path",
                message="Output path already exists and may be overwritten",
                code="PATH_EXISTS",
            ))
        if not await self.file_system.exists(resolved.parent):
            warnings.append(ValidationIssue(
                field="output_path",
                message="Parent directory does not exist and will be created",
                code="PARENT_DIR_MISSING",
            ))

    def _check_technology_stack(
        self,
        raw: Mapping[str, Any],
        errors: list[ValidationIssue],
        warnings: list[ValidationIssue],
    ) -> None:
        project_type = raw.get("type")
        technologies = raw.get("technologies") or {}
        if isinstance(technologies, BaseModel):
            technologies = technologies.model_dump()
        if not isinstance(technologies, Mapping):
            return
        has_backend = bool(technologies.get("backend"))
        has_frontend = bool(technologies.get("frontend"))

        if project_type == ProjectType.BACKEND_ONLY:
            if not has_backend:
                errors.append(ValidationIssue(
                    field="technologies.backend",
                    message="Backend technology is required for backend-only projects",
                    code="MISSING_BACKEND_TECH",
                ))
            if has_frontend:
                warnings.append(ValidationIssue(
                    field="technologies.frontend",
                    message="Frontend technology specified for backend-only project",
                    code="UNNECESSARY_FRONTEND_TECH",
                ))
        elif project_type == ProjectType.FRONTEND_ONLY:
            if not has_frontend:
                errors.append(ValidationIssue(
                    field="technologies.frontend",
                    message="Frontend technology is required for frontend-only projects",
                    code="MISSING_FRONTEND_TECH",
                ))
            if has_backend:
                warnings.append(ValidationIssue(
                    field="technologies.backend",
                    message="Backend technology specified for frontend-only project",
                    code="UNNECESSARY_BACKEND_TECH",
                ))
        elif project_type == ProjectType.FULL_STACK:
            if not (has_backend and has_frontend):
                errors.append(ValidationIssue(
                    field="technologies",
                    message="Both backend and frontend technologies are required for full-stack projects",
                    code="MISSING_FULLSTACK_TECH",
                ))

    def _check_architecture(
        self, raw: Mapping[str, Any], warnings: list[ValidationIssue]
    ) -> None:
        project_type = raw.get("type")
        architecture = raw.get("architecture")
        for combo_type, combo_arch in IMPLAUSIBLE_ARCHITECTURES:
            if project_type == combo_type and architecture == combo_arch:
                warnings.append(ValidationIssue(
                    field="architecture",
                    message=(
                        f"{combo_arch.value} architecture may not be suitable for "
                        f"{combo_type.value} projects"
                    ),
                    code="ARCHITECTURE_MISMATCH",
                ))


# ---------------------------------------------------------------------------
# Standalone checks
# ---------------------------------------------------------------------------

def validate_name(name: str) -> bool:
    """Return ``True`` if *name* matches the identifier pattern and length limits."""
    if not isinstance(name, str):
        return False
    return (
        NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH
        and NAME_PATTERN.match(name) is not None
    )


def validate_path(path: str) -> bool:
    """Return ``True`` if *path* is non-empty and resolves to an absolute path."""
    if not isinstance(path, str) or not path.strip():
        return False
    try:
        resolved = Path(path).resolve()
    except (OSError, ValueError, RuntimeError):
        return False
    return resolved.is_absolute()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _as_mapping(config: ProjectConfig | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(config, BaseModel):
        return config.model_dump()
    if isinstance(config, Mapping):
        return dict(config)
    raise TypeError(f"Expected ProjectConfig or mapping, got {type(config).__name__}")


def _schema_issues(raw: Mapping[str, Any]) -> list[ValidationIssue]:
    """Run the pydantic model over *raw* and convert its errors."""
    try:
        ProjectConfig.model_validate(raw)
    except PydanticValidationError as exc:
        return [
            ValidationIssue(
                field=".".join(str(part) for part in err["loc"]),
                message=err["msg"],
                code=_SCHEMA_CODES.get(err["type"], "INVALID_TYPE"),
            )
            for err in exc.errors()
        ]
    return []
