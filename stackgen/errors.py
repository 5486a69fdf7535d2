"""Exception taxonomy for the generation pipeline.

Every error raised by the core derives from :class:`StackgenError` and
carries a ``details`` list of human-readable messages, which is what ends up
in ``GenerationResult.errors`` when a run fails.

``PermissionApplicationFailure`` and ``HookExecutionFailure`` are non-fatal:
the orchestrator logs them as warnings and never lets them abort a run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stackgen.models import ValidationResult


class StackgenError(Exception):
    """Base class for every error raised by stackgen."""

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        self.message = message
        self.details = list(details) if details else [message]
        super().__init__(message)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationInvalid(StackgenError):
    """Raised when a project configuration has one or more blocking errors."""

    def __init__(self, validation: "ValidationResult") -> None:
        self.validation = validation
        details = [f"{e.field}: {e.message}" if e.field else e.message for e in validation.errors]
        super().__init__(
            f"Configuration validation failed: {', '.join(details)}",
            details=details,
        )


# ---------------------------------------------------------------------------
# Template bundles and engines
# ---------------------------------------------------------------------------


class TemplateError(StackgenError):
    """Base class for bundle loading and engine selection failures."""


class TemplateNotFound(TemplateError):
    """The named bundle's storage location does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template not found: {name}")


class TemplateManifestMissing(TemplateError):
    """The bundle directory exists but has no manifest."""

    def __init__(self, name: str, manifest: str) -> None:
        self.name = name
        super().__init__(f"Template configuration not found: {name}/{manifest}")


class TemplateStructureInvalid(TemplateError):
    """The manifest is unparseable or the assembled bundle fails validation."""

    def __init__(self, name: str, reasons: list[str]) -> None:
        self.name = name
        self.reasons = list(reasons)
        super().__init__(
            f"Template {name} is invalid: {'; '.join(reasons)}",
        )


class UnknownEngine(TemplateError):
    """No template engine is registered under the requested name."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        super().__init__(
            f"Unknown template engine '{name}' (available: {', '.join(available)})"
        )


class CompilationError(StackgenError):
    """Wraps a template syntax or runtime failure."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        prefix = f"Template compilation failed for {path}" if path else "Template compilation failed"
        super().__init__(f"{prefix}: {message}")


# ---------------------------------------------------------------------------
# File system
# ---------------------------------------------------------------------------


class FileSystemError(StackgenError):
    """Wraps an I/O failure for a specific path and operation."""

    def __init__(self, message: str, path: str, operation: str) -> None:
        self.path = path
        self.operation = operation
        super().__init__(f"File {operation} failed for {path}: {message}")


# ---------------------------------------------------------------------------
# Non-fatal failures
# ---------------------------------------------------------------------------


class PermissionApplicationFailure(StackgenError):
    """A declared file permission could not be applied."""

    def __init__(self, path: str, permissions: str, reason: str) -> None:
        self.path = path
        self.permissions = permissions
        super().__init__(f"Failed to set permissions {permissions} on {path}: {reason}")


class HookExecutionFailure(StackgenError):
    """A pre- or post-generation hook exited non-zero or timed out."""

    def __init__(self, command: str, returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"Hook failed (exit {returncode}): {command}"
        if stderr:
            message += f" -- {stderr}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class GenerationCancelled(StackgenError):
    """The caller cancelled a generation run."""

    def __init__(self, where: str) -> None:
        self.where = where
        super().__init__(f"Generation cancelled {where}")
