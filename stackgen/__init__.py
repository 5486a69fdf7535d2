"""stackgen: generate project skeletons from declarative configurations.

Quick usage::

    from stackgen import Config, ProjectGenerator

    generator = ProjectGenerator.from_config(Config())
    result = await generator.generate({
        "name": "my-api",
        "type": "backend-only",
        "architecture": "monolithic",
        "technologies": {"backend": {"language": "node", "framework": "express"}},
        "output_path": "./out",
    })
    if not result.success:
        print(result.errors)
"""

from stackgen.config import Config
from stackgen.errors import StackgenError
from stackgen.generator import CancellationToken, ObserverBus, ProjectGenerator
from stackgen.models import (
    GenerationPhase,
    GenerationProgress,
    GenerationResult,
    ProjectConfig,
    ProjectType,
    ValidationResult,
)

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "Config",
    "GenerationPhase",
    "GenerationProgress",
    "GenerationResult",
    "ObserverBus",
    "ProjectConfig",
    "ProjectGenerator",
    "ProjectType",
    "StackgenError",
    "ValidationResult",
]
