"""Template bundle discovery, loading and structural validation.

A bundle is a directory under the templates root::

    <templates_dir>/<bundle-name>/
        template.yml          # manifest
        files/                # one entry per manifest ``files`` item
            README.md
            src/index.js

Manifest keys follow the on-disk format (``supportedTypes``, ``isTemplate``,
``preGeneration``...).  Optional keys fall back to defaults, and files the
manifest lists but that are missing on disk are skipped with a warning so
partial bundles still load.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from stackgen.errors import (
    FileSystemError,
    TemplateError,
    TemplateManifestMissing,
    TemplateNotFound,
    TemplateStructureInvalid,
)
from stackgen.filesystem import FileSystem
from stackgen.logger import get_logger
from stackgen.models import (
    TemplateBundle,
    TemplateBundleConfig,
    TemplateDependencies,
    TemplateFile,
    TemplateHooks,
    TemplateVariable,
)

MANIFEST_FILENAME = "template.yml"
FILES_DIRNAME = "files"
DEFAULT_VERSION = "1.0.0"

VARIABLE_TYPES = frozenset({"string", "boolean", "number", "array", "object"})


# ---------------------------------------------------------------------------
# TemplateRepository
# ---------------------------------------------------------------------------


class TemplateRepository:
    """Locates, loads and validates template bundles under *templates_dir*."""

    def __init__(
        self,
        templates_dir: str | Path,
        file_system: FileSystem,
        logger: logging.Logger | None = None,
        default_engine: str = "jinja2",
    ) -> None:
        self.templates_dir = Path(templates_dir)
        self.file_system = file_system
        self.logger = logger or get_logger(__name__)
        self.default_engine = default_engine

    # -- Loading -----------------------------------------------------------

    async def load_template(self, name: str) -> TemplateBundle:
        """Load, assemble and validate the bundle called *name*.

        Raises:
            TemplateNotFound: The bundle directory does not exist.
            TemplateManifestMissing: The directory has no ``template.yml``.
            TemplateStructureInvalid: The manifest is malformed or the
                assembled bundle fails :meth:`validate_template`.
            FileSystemError: A manifest or file read failed.
        """
        bundle_dir = self._bundle_dir(name)
        if bundle_dir is None or not await self.file_system.exists(bundle_dir):
            raise TemplateNotFound(name)

        manifest_path = bundle_dir / MANIFEST_FILENAME
        if not await self.file_system.exists(manifest_path):
            raise TemplateManifestMissing(name, MANIFEST_FILENAME)

        try:
            manifest = await self._read_manifest(name, manifest_path)
            bundle = await self._assemble(name, bundle_dir, manifest)
        except (TemplateError, FileSystemError) as exc:
            self.logger.error("Failed to load template: %s", name, exc_info=exc)
            raise

        problems = self._report_problems(bundle)
        if problems:
            raise TemplateStructureInvalid(name, problems)

        self.logger.info("Loaded template: %s v%s", bundle.name, bundle.version)
        return bundle

    async def list_templates(self) -> list[str]:
        """Return the sorted names of bundles with a present, parseable manifest.

        Never raises: enumeration failures degrade to an empty list.
        """
        if not await self.file_system.exists(self.templates_dir):
            self.logger.warning("Templates directory does not exist: %s", self.templates_dir)
            return []

        try:
            entries = await self.file_system.glob(
                f"*/{MANIFEST_FILENAME}", cwd=self.templates_dir
            )
        except FileSystemError as exc:
            self.logger.warning("Failed to list templates: %s", exc)
            return []

        names: list[str] = []
        for entry in entries:
            name = PurePosixPath(entry).parts[0]
            try:
                await self._read_manifest(name, self.templates_dir / entry)
            except (TemplateError, FileSystemError) as exc:
                self.logger.warning("Skipping template %s: %s", name, exc)
                continue
            names.append(name)

        self.logger.debug("Found %d templates", len(names))
        return sorted(names)

    # -- Validation --------------------------------------------------------

    def validate_template(self, bundle: TemplateBundle) -> bool:
        """Return ``True`` if *bundle* is structurally sound.

        Failures are logged with every reason found.
        """
        return not self._report_problems(bundle)

    def template_problems(self, bundle: TemplateBundle) -> list[str]:
        """Return every structural problem of *bundle* (empty when valid)."""
        problems: list[str] = []

        if not isinstance(bundle.name, str) or not bundle.name.strip():
            problems.append("Template name is required")
        if not isinstance(bundle.version, str) or not bundle.version.strip():
            problems.append("Template version is required")
        if not isinstance(bundle.supported_types, list) or not bundle.supported_types:
            problems.append("Template must support at least one project type")

        if not isinstance(bundle.files, list):
            problems.append("Template files must be a list")
        else:
            for file in bundle.files:
                if not is_safe_relative_path(file.path):
                    problems.append(f"Unsafe template file path: {file.path}")

        for variable in bundle.config.variables:
            if not variable.name or not variable.type:
                problems.append(
                    f"Invalid variable configuration: {variable.model_dump(exclude_none=True)}"
                )
            elif variable.type not in VARIABLE_TYPES:
                self.logger.warning(
                    "Variable %s in template %s has unknown type %s",
                    variable.name, bundle.name, variable.type,
                )

        return problems

    # -- Internal ----------------------------------------------------------

    def _report_problems(self, bundle: TemplateBundle) -> list[str]:
        problems = self.template_problems(bundle)
        if problems:
            self.logger.error(
                "Template validation failed for %s: %s", bundle.name, ", ".join(problems)
            )
        elif not bundle.files:
            self.logger.warning("Template %s has no files", bundle.name)
        return problems

    def _bundle_dir(self, name: str) -> Path | None:
        """Return the bundle directory, or ``None`` if *name* escapes the root."""
        if not name or not is_safe_relative_path(name) or len(PurePosixPath(name).parts) != 1:
            return None
        return self.templates_dir / name

    async def _read_manifest(self, name: str, manifest_path: Path) -> dict[str, Any]:
        content = await self.file_system.read_file(manifest_path)
        try:
            manifest = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise TemplateStructureInvalid(name, [f"Manifest is not valid YAML: {exc}"]) from exc
        if manifest is None:
            manifest = {}
        if not isinstance(manifest, dict):
            raise TemplateStructureInvalid(name, ["Manifest must be a mapping"])
        return manifest

    async def _assemble(
        self, name: str, bundle_dir: Path, manifest: Mapping[str, Any]
    ) -> TemplateBundle:
        files_raw = _list_field(name, manifest, "files")
        variables_raw = _list_field(name, manifest, "variables")
        supported_types = _list_field(name, manifest, "supportedTypes")

        try:
            variables = [
                TemplateVariable.model_validate(v if isinstance(v, Mapping) else {})
                for v in variables_raw
            ]
            config = TemplateBundleConfig(
                variables=variables,
                hooks=_parse_hooks(manifest.get("hooks")),
                dependencies=_parse_dependencies(manifest.get("dependencies")),
            )
        except PydanticValidationError as exc:
            raise TemplateStructureInvalid(name, [str(exc)]) from exc

        return TemplateBundle(
            name=str(manifest.get("name") or name),
            version=str(manifest.get("version") or DEFAULT_VERSION),
            description=str(manifest.get("description") or ""),
            author=str(manifest.get("author") or ""),
            supported_types=[str(t) for t in supported_types],
            files=await self._load_files(name, bundle_dir, files_raw),
            config=config,
            engine=str(manifest.get("engine") or self.default_engine),
            source_dir=bundle_dir,
        )

    async def _load_files(
        self, name: str, bundle_dir: Path, entries: list[Any]
    ) -> list[TemplateFile]:
        files: list[TemplateFile] = []
        files_root = bundle_dir / FILES_DIRNAME

        for entry in entries:
            if isinstance(entry, str):
                entry = {"path": entry}
            if not isinstance(entry, Mapping) or not entry.get("path"):
                raise TemplateStructureInvalid(name, [f"Invalid file entry: {entry!r}"])

            rel_path = str(entry["path"])
            if not is_safe_relative_path(rel_path):
                raise TemplateStructureInvalid(name, [f"Unsafe template file path: {rel_path}"])

            source = files_root / rel_path
            if not await self.file_system.exists(source):
                self.logger.warning("Template file not found: %s", rel_path)
                continue

            # YAML 1.1 reads an unquoted 0644 as the integer 420.
            permissions = entry.get("permissions")
            if permissions is not None and not isinstance(permissions, str):
                raise TemplateStructureInvalid(name, [
                    f"Permissions for {rel_path} must be a quoted octal string, "
                    f"got {permissions!r}"
                ])
            is_template = entry.get("isTemplate", True)
            if not isinstance(is_template, bool):
                raise TemplateStructureInvalid(name, [
                    f"isTemplate for {rel_path} must be a boolean, got {is_template!r}"
                ])

            files.append(TemplateFile(
                path=PurePosixPath(rel_path).as_posix(),
                content=await self.file_system.read_file(source),
                is_template=is_template,
                permissions=permissions,
            ))

        return files


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_safe_relative_path(path: str) -> bool:
    """Return ``True`` for a non-empty relative path without ``..`` segments."""
    if not isinstance(path, str) or not path.strip() or "\\" in path:
        return False
    pure = PurePosixPath(path)
    if pure.is_absolute() or ".." in pure.parts:
        return False
    return pure.as_posix() != "."


def _list_field(name: str, manifest: Mapping[str, Any], key: str) -> list[Any]:
    value = manifest.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TemplateStructureInvalid(name, [f"Manifest field '{key}' must be a list"])
    return value


def _parse_hooks(raw: Any) -> TemplateHooks | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raw = {}
    return TemplateHooks(
        pre_generation=raw.get("preGeneration") or [],
        post_generation=raw.get("postGeneration") or [],
    )


def _parse_dependencies(raw: Any) -> TemplateDependencies | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raw = {}
    return TemplateDependencies(
        runtime=raw.get("runtime") or [],
        system=raw.get("system") or [],
    )
