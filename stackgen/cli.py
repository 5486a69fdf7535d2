"""Command-line entry point: ``stackgen generate|validate|list``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml
from rich.progress import Progress, TaskID
from rich.table import Table

from stackgen.config import Config, load_project_config
from stackgen.errors import StackgenError
from stackgen.filesystem import LocalFileSystem
from stackgen.generator import ProjectGenerator
from stackgen.logger import setup_logging
from stackgen.models import PROGRESS_TOTAL, GenerationProgress, GenerationResult
from stackgen.utils import (
    console,
    create_progress,
    format_duration,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)
from stackgen.validation import ProjectValidator


class ConsoleObserver:
    """Mirror generation progress onto a Rich progress bar."""

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self.task_id: TaskID = progress.add_task("Initializing...", total=PROGRESS_TOTAL)

    def on_progress(self, progress: GenerationProgress) -> None:
        self.progress.update(
            self.task_id, completed=progress.current, description=progress.current_item
        )

    def on_complete(self, result: GenerationResult) -> None:
        self.progress.update(self.task_id, completed=PROGRESS_TOTAL, description="Done")

    def on_error(self, error: Exception) -> None:
        self.progress.update(self.task_id, description="[red]Failed[/red]")


# ---------------------------------------------------------------------------
# Sub-commands
# ---------------------------------------------------------------------------


def _settings_from_args(args: argparse.Namespace) -> Config:
    settings = Config.from_env()
    updates: dict[str, Any] = {}
    if getattr(args, "templates_dir", None):
        updates["templates_dir"] = Path(args.templates_dir)
    if getattr(args, "no_hooks", False):
        updates["run_hooks"] = False
    if getattr(args, "verbose", False):
        updates["log_level"] = "DEBUG"
    return settings.model_copy(update=updates) if updates else settings


def _read_project_config(path: str) -> Optional[dict[str, Any]]:
    try:
        return load_project_config(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print_error(f"Error: cannot read project configuration {path}: {exc}")
        return None


async def _generate(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    setup_logging(settings.log_level, settings.log_file)

    data = _read_project_config(args.config)
    if data is None:
        return 1
    if args.template:
        data["template"] = args.template
    if args.output:
        data["output_path"] = args.output

    generator = ProjectGenerator.from_config(settings)
    with create_progress() as progress:
        result = await generator.generate(data, observers=[ConsoleObserver(progress)])

    for warning in result.warnings:
        print_warning(f"Warning: {warning}")

    if not result.success:
        for error in result.errors:
            print_error(f"Error: {error}")
        print_error("Project generation failed.")
        return 1

    print_summary_table(
        {
            "Project": str(data.get("name", "")),
            "Output": result.output_path,
            "Files generated": str(len(result.files_generated)),
            "Warnings": str(len(result.warnings)),
            "Duration": format_duration(result.duration_seconds),
        },
        title="Generation Summary",
    )
    print_success("Project generated successfully!")
    return 0


async def _validate(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    setup_logging(settings.log_level, settings.log_file)

    data = _read_project_config(args.config)
    if data is None:
        return 1

    validation = await ProjectValidator(LocalFileSystem()).validate(data)
    if validation.errors or validation.warnings:
        table = Table(title="Validation", show_header=True, header_style="bold cyan")
        table.add_column("Severity", no_wrap=True)
        table.add_column("Field", style="dim")
        table.add_column("Code")
        table.add_column("Message")
        for issue in validation.errors:
            table.add_row("[red]error[/red]", issue.field, issue.code, issue.message)
        for issue in validation.warnings:
            table.add_row("[yellow]warning[/yellow]", issue.field, issue.code, issue.message)
        console.print(table)

    if not validation.is_valid:
        print_error(f"Configuration is invalid ({len(validation.errors)} error(s)).")
        return 1
    print_success("Configuration is valid.")
    return 0


async def _list(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    setup_logging(settings.log_level, settings.log_file)

    generator = ProjectGenerator.from_config(settings)
    names = await generator.list_templates()
    if not names:
        print_warning(f"No templates found in {settings.templates_dir}")
        return 0

    table = Table(title="Templates", show_header=True, header_style="bold cyan")
    table.add_column("Name", no_wrap=True)
    table.add_column("Version", style="dim")
    table.add_column("Types")
    table.add_column("Description")
    for name in names:
        try:
            bundle = await generator.repository.load_template(name)
        except StackgenError as exc:
            table.add_row(name, "-", "-", f"[red]{exc}[/red]")
            continue
        table.add_row(
            bundle.name, bundle.version, ", ".join(bundle.supported_types), bundle.description
        )
    console.print(table)
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackgen",
        description="stackgen -- generate project skeletons from template bundles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  stackgen generate project.yml\n"
            "  stackgen generate project.yml -o ./out --template react-spa\n"
            "  stackgen validate project.yml\n"
            "  stackgen list --templates-dir ./templates\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a project")
    generate.add_argument("config", help="Path to a YAML or JSON project configuration")
    generate.add_argument("--template", "-t", default=None, help="Template bundle to use")
    generate.add_argument(
        "--output", "-o", default=None, help="Parent directory of the generated project"
    )
    generate.add_argument("--templates-dir", default=None, help="Directory of template bundles")
    generate.add_argument(
        "--no-hooks", action="store_true", help="Do not run pre/post-generation hooks"
    )
    generate.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    generate.set_defaults(handler=_generate)

    validate = subparsers.add_parser("validate", help="Validate a project configuration")
    validate.add_argument("config", help="Path to a YAML or JSON project configuration")
    validate.set_defaults(handler=_validate)

    list_cmd = subparsers.add_parser("list", help="List available template bundles")
    list_cmd.add_argument("--templates-dir", default=None, help="Directory of template bundles")
    list_cmd.set_defaults(handler=_list)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for the ``stackgen`` console script."""
    args = build_parser().parse_args(argv)
    exit_code = asyncio.run(args.handler(args))
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
