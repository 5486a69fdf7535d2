"""Project configuration validation."""

from stackgen.validation.validator import (
    RESERVED_NAMES,
    ProjectValidator,
    validate_name,
    validate_path,
)

__all__ = [
    "RESERVED_NAMES",
    "ProjectValidator",
    "validate_name",
    "validate_path",
]
