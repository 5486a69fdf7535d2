"""Template bundles and the engines that compile them.

Quick usage::

    from stackgen.filesystem import LocalFileSystem
    from stackgen.templates import TemplateRepository, get_engine

    repo = TemplateRepository("./templates", LocalFileSystem())
    bundle = await repo.load_template("basic-project")
    engine = get_engine(bundle.engine)
    text = engine.compile(bundle.files[0].content, {"name": "my-app"})
"""

from stackgen.templates.engine import (
    ENGINES,
    Jinja2Engine,
    TemplateEngine,
    available_engines,
    enhance_context,
    get_engine,
    name_variants,
)
from stackgen.templates.repository import (
    MANIFEST_FILENAME,
    TemplateRepository,
    is_safe_relative_path,
)

__all__ = [
    "ENGINES",
    "MANIFEST_FILENAME",
    "Jinja2Engine",
    "TemplateEngine",
    "TemplateRepository",
    "available_engines",
    "enhance_context",
    "get_engine",
    "is_safe_relative_path",
    "name_variants",
]
