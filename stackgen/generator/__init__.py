"""Generation pipeline for stackgen.

Turns a validated project configuration and a template bundle into a
project directory on disk, reporting progress to observers as it goes.

Key classes:
    ProjectGenerator   - Orchestrates validation, loading, planning and writing
    ObserverBus        - Thread-safe observer list with isolated deliveries
    CancellationToken  - Cooperative cancellation checked between steps
"""

from .cancellation import CancellationToken
from .observers import GenerationObserver, ObserverBus
from .orchestrator import DEFAULT_TEMPLATE, ProjectGenerator, default_template_name
from .planner import plan_directories

__all__ = [
    # Orchestration
    "ProjectGenerator",
    "DEFAULT_TEMPLATE",
    "default_template_name",
    # Observers
    "GenerationObserver",
    "ObserverBus",
    # Cancellation
    "CancellationToken",
    # Planning
    "plan_directories",
]
