"""Template engines that compile bundle files against a data context.

An engine is anything satisfying the :class:`TemplateEngine` protocol.  The
concrete engines are looked up by name in :data:`ENGINES`; a bundle names
the engine it was written for in its manifest.

Every engine enhances the caller's data context before compiling (see
:func:`enhance_context`) without mutating the caller's mapping, and
compilation never touches the network or the file system beyond reading a
template file in :meth:`TemplateEngine.compile_file`.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol

from jinja2 import StrictUndefined, TemplateSyntaxError, Undefined
from jinja2.sandbox import SandboxedEnvironment

from stackgen.errors import CompilationError, FileSystemError, UnknownEngine
from stackgen.logger import get_logger
from stackgen.utils import to_camel_case, to_kebab_case, to_pascal_case, to_snake_case


# ---------------------------------------------------------------------------
# Engine protocol
# ---------------------------------------------------------------------------


class TemplateEngine(Protocol):
    """Capability shared by every template engine."""

    name: str

    def compile(self, source: str, data: Mapping[str, Any], *, path: str | None = None) -> str: ...

    def compile_file(self, path: str | Path, data: Mapping[str, Any]) -> str: ...

    def validate(self, source: str) -> bool: ...


# ---------------------------------------------------------------------------
# Data-context enhancement
# ---------------------------------------------------------------------------


def includes(collection: Any, item: Any) -> bool:
    """Membership test that is ``False`` instead of raising for non-containers."""
    try:
        return item in collection
    except TypeError:
        return False


def _upper(value: Any) -> str:
    return str(value).upper()


def _lower(value: Any) -> str:
    return str(value).lower()


TEMPLATE_HELPERS: dict[str, Callable[..., Any]] = {
    "includes": includes,
    "upper": _upper,
    "lower": _lower,
    "camel_case": to_camel_case,
    "pascal_case": to_pascal_case,
    "kebab_case": to_kebab_case,
    "snake_case": to_snake_case,
}


def name_variants(name: str) -> dict[str, str]:
    """Return the case variants of a project name exposed to templates."""
    return {
        "name_upper": name.upper(),
        "name_lower": name.lower(),
        "name_camel": to_camel_case(name),
        "name_pascal": to_pascal_case(name),
        "name_kebab": to_kebab_case(name),
        "name_snake": to_snake_case(name),
    }


def enhance_context(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *data* with name variants and helper callables added.

    Keys already present in *data* win over helpers of the same name.
    """
    enhanced = dict(data)
    name = data.get("name")
    if isinstance(name, str):
        enhanced.update(name_variants(name))
    for key, helper in TEMPLATE_HELPERS.items():
        enhanced.setdefault(key, helper)
    return enhanced


# ---------------------------------------------------------------------------
# Jinja2 engine
# ---------------------------------------------------------------------------


class Jinja2Engine:
    """Compiles templates with a sandboxed Jinja2 environment.

    With ``strict=True`` references to undefined variables fail compilation
    instead of rendering as empty strings.
    """

    def __init__(self, strict: bool = False, logger: logging.Logger | None = None) -> None:
        self.name = "jinja2-strict" if strict else "jinja2"
        self.strict = strict
        self.logger = logger or get_logger(__name__)
        self.env = SandboxedEnvironment(
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined if strict else Undefined,
        )
        # Helpers double as filters: {{ name | kebab_case }}
        self.env.filters.update(TEMPLATE_HELPERS)

    def compile(self, source: str, data: Mapping[str, Any], *, path: str | None = None) -> str:
        """Render *source* against an enhanced copy of *data*.

        Raises:
            CompilationError: On template syntax or rendering errors.
        """
        context = enhance_context(data)
        try:
            template = self.env.from_string(source)
            return template.render(**context)
        except Exception as exc:
            self.logger.debug("Compilation failed for %s: %s", path or "<string>", exc)
            raise CompilationError(_describe(exc), path=path) from exc

    def compile_file(self, path: str | Path, data: Mapping[str, Any]) -> str:
        """Read *path* and compile its contents.

        Raises:
            FileSystemError: If the file cannot be read.
            CompilationError: On template syntax or rendering errors.
        """
        file_path = Path(path)
        try:
            source = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.error("Failed to read template file: %s", file_path, exc_info=exc)
            raise FileSystemError(str(exc), str(file_path), "read") from exc
        return self.compile(source, data, path=str(file_path))

    def validate(self, source: str) -> bool:
        """Best-effort syntax check; does not render."""
        try:
            self.env.parse(source)
        except TemplateSyntaxError:
            return False
        return True


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

ENGINES: dict[str, Callable[..., TemplateEngine]] = {
    "jinja2": Jinja2Engine,
    "jinja2-strict": functools.partial(Jinja2Engine, strict=True),
}


def available_engines() -> list[str]:
    """Return the sorted names of registered engines."""
    return sorted(ENGINES)


def get_engine(name: str, logger: logging.Logger | None = None) -> TemplateEngine:
    """Construct the engine registered under *name*.

    Raises:
        UnknownEngine: If no engine is registered under *name*.
    """
    factory = ENGINES.get(name)
    if factory is None:
        raise UnknownEngine(name, available_engines())
    return factory(logger=logger)


def _describe(exc: Exception) -> str:
    if isinstance(exc, TemplateSyntaxError) and exc.lineno:
        return f"{exc.message} (line {exc.lineno})"
    return str(exc) or type(exc).__name__
