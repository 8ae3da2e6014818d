"""RuneMate publish command line tool.

Usage:
    runemate-publish [-p PROJECT_DIR] list
    runemate-publish generate | validate | collect | bundle | clean
    runemate-publish check-deps
    runemate-publish submit [--key KEY]
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from runemate_publish.config import ProjectLoader
from runemate_publish.errors import PublishError, SubmissionOfflineError, SubmissionRejectedError
from runemate_publish.pipeline import (
    TASK_BUILD_SUBMISSION,
    TASK_CLEAN,
    TASK_COLLECT_SOURCES,
    TASK_GENERATE_MANIFESTS,
    TASK_SUBMIT,
    TASK_VALIDATE_MANIFESTS,
    TASK_VERIFY_DEPENDENCIES,
    PublishPipeline,
)
from runemate_publish.project import PublishProject

logger = logging.getLogger(__name__)

console = Console()

EXIT_FAILURE = 1
EXIT_RETRY_LATER = 2


def configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def load_project(args) -> PublishProject:
    return ProjectLoader().load(Path(args.project_dir))


def cmd_list(args) -> None:
    """List every declared manifest."""
    project = load_project(args)

    table = Table(title=f"Manifests in '{project.name}'")
    for column in ("Project", "Name", "Main class", "Publish", "Price"):
        table.add_column(column)

    count = 0
    for p in project.all_projects():
        for declaration in p.declarations:
            main_class = declaration.main_class if "main_class" not in declaration.missing_fields() else "-"
            table.add_row(
                p.path,
                declaration.name,
                main_class,
                "Yes" if declaration.publish else "No",
                str(declaration.price),
            )
            count += 1

    if not count:
        console.print("No manifests declared.")
        return
    console.print(table)


def _run(args, *targets: str) -> PublishPipeline:
    pipeline = PublishPipeline(load_project(args))
    stages = pipeline.run(*targets)
    console.print(f"[green]✓[/green] {len(stages)} stage(s) completed: {', '.join(s.path for s in stages)}")
    return pipeline


def cmd_generate(args) -> None:
    """Write manifests from declarations."""
    _run(args, TASK_GENERATE_MANIFESTS)


def cmd_validate(args) -> None:
    """Generate and validate all manifests."""
    _run(args, TASK_VALIDATE_MANIFESTS)


def cmd_collect(args) -> None:
    """Copy sources into the staging tree."""
    _run(args, TASK_COLLECT_SOURCES)


def cmd_bundle(args) -> None:
    """Build the submission archive."""
    pipeline = _run(args, TASK_BUILD_SUBMISSION)
    console.print(f"Archive: {pipeline.root_project.archive_path}")


def cmd_clean(args) -> None:
    """Delete the RuneMate build directory."""
    _run(args, TASK_CLEAN)


def cmd_check_deps(args) -> None:
    """Check resolved dependencies against the allow-list."""
    pipeline = _run(args, TASK_VERIFY_DEPENDENCIES)
    disallowed = [
        key
        for stage in pipeline.registry.select(TASK_VERIFY_DEPENDENCIES)
        for key in stage.disallowed
    ]
    if disallowed:
        console.print(f"[yellow]External dependencies tolerated: {', '.join(disallowed)}[/yellow]")
    else:
        console.print("All dependencies are on the allow-list.")


def cmd_submit(args) -> None:
    """Build the archive and submit it for review."""
    project = load_project(args)
    if args.key:
        project.settings.submission_key = args.key

    pipeline = PublishPipeline(project)
    pipeline.run(TASK_SUBMIT)
    console.print(Panel.fit(
        "[bold green]Submission successful[/bold green]\n"
        "You will receive a forum message when your submission has been reviewed.",
        border_style="green",
    ))


COMMANDS = {
    "list": cmd_list,
    "generate": cmd_generate,
    "validate": cmd_validate,
    "collect": cmd_collect,
    "bundle": cmd_bundle,
    "clean": cmd_clean,
    "check-deps": cmd_check_deps,
    "submit": cmd_submit,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RuneMate bot publishing tool")
    parser.add_argument(
        "-p", "--project-dir", default=".", help="Root project directory (default: .)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("list", help="List declared manifests")
    subparsers.add_parser("generate", help="Generate manifests from declarations")
    subparsers.add_parser("validate", help="Validate generated and discovered manifests")
    subparsers.add_parser("collect", help="Collect sources into the staging tree")
    subparsers.add_parser("bundle", help="Build the submission archive")
    subparsers.add_parser("clean", help="Delete the RuneMate build directory")
    subparsers.add_parser("check-deps", help="Check dependencies against the allow-list")

    submit_parser = subparsers.add_parser("submit", help="Submit the project for review")
    submit_parser.add_argument("--key", help="Submission key (overrides config and environment)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    configure_logging()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILURE

    logger.debug(f"Running command '{args.command}' in {args.project_dir}")
    try:
        COMMANDS[args.command](args)
    except SubmissionOfflineError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return EXIT_RETRY_LATER
    except SubmissionRejectedError as e:
        console.print(f"[red]Submission rejected: {e}[/red]")
        return EXIT_FAILURE
    except PublishError as e:
        console.print(f"[red]{e}[/red]")
        return EXIT_FAILURE
    return 0


if __name__ == "__main__":
    sys.exit(main())
