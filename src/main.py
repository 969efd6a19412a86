# src/main.py
"""CLI entry point: start, resume, status, clear commands.

Usage:
    docforge start <outline.json> [--title T] [--idea I] [--project-id ID] [--model M]
    docforge resume [--project-id ID]
    docforge status [--project-id ID]
    docforge clear <project_id>

Exit codes: 0 success, 1 failure, 2 configuration error, 130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from docforge.config.settings import ConfigurationError, Settings, load_settings
from docforge.logging.logger import setup_logging
from docforge.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_FAILURE

    try:
        settings = load_settings()
    except (ConfigurationError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    if args.command in ("start", "resume"):
        try:
            settings.require_api_key()
        except ConfigurationError as exc:
            logger.error("%s", exc)
            return EXIT_CONFIG

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user; progress is checkpointed")
        return EXIT_INTERRUPTED
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_FAILURE


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="docforge",
        description=f"docforge v{__version__}: resumable multi-agent document generation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- start ---
    p_start = subparsers.add_parser("start", help="Plan an outline and generate it")
    p_start.add_argument("outline", type=Path, help="Outline JSON file")
    p_start.add_argument("--title", default="", help="Document title")
    p_start.add_argument("--idea", default="", help="Core idea of the document")
    p_start.add_argument(
        "--project-id", default=None,
        help="Project id (generated if omitted; reusing one continues or re-plans it)",
    )
    p_start.add_argument("--model", default=None, help="Model override")
    p_start.set_defaults(func=_cmd_start)

    # --- resume ---
    p_resume = subparsers.add_parser("resume", help="Resume an interrupted project")
    p_resume.add_argument(
        "--project-id", default=None,
        help="Project to resume (default: most recently updated incomplete one)",
    )
    p_resume.set_defaults(func=_cmd_resume)

    # --- status ---
    p_status = subparsers.add_parser("status", help="Show project progress")
    p_status.add_argument("--project-id", default=None, help="Show one project in detail")
    p_status.set_defaults(func=_cmd_status)

    # --- clear ---
    p_clear = subparsers.add_parser("clear", help="Delete a project's saved progress")
    p_clear.add_argument("project_id", help="Project to delete")
    p_clear.set_defaults(func=_cmd_clear)

    return parser


async def _cmd_start(args: argparse.Namespace, settings: Settings) -> int:
    """Plan and generate a new (or re-planned) project."""
    from docforge.checkpoint.store_factory import create_checkpoint_store
    from docforge.pipeline.orchestrator import DocumentOrchestrator
    from docforge.storage import layout
    from docforge.storage.project_manager import load_outline

    if args.project_id is not None:
        try:
            layout.validate_project_id(args.project_id)
        except layout.InvalidProjectIdError as exc:
            logger.error("%s", exc)
            return EXIT_FAILURE

    outline_path: Path = args.outline
    if not outline_path.exists():
        logger.error("Outline not found: %s", outline_path)
        return EXIT_FAILURE

    outline = load_outline(outline_path)
    store = create_checkpoint_store(settings)
    orchestrator = DocumentOrchestrator(settings, store)
    result = await orchestrator.start(
        outline,
        title=args.title,
        idea=args.idea,
        project_id=args.project_id,
        model=args.model,
    )
    _print_run_summary(result)
    return EXIT_OK if result.phase in ("completed", "paused") else EXIT_FAILURE


async def _cmd_resume(args: argparse.Namespace, settings: Settings) -> int:
    """Resume the most recent (or named) incomplete project."""
    from docforge.checkpoint.store_factory import create_checkpoint_store
    from docforge.generation.client import client_factory_from_settings
    from docforge.pipeline.resume import NoResumableProject, ResumeController
    from docforge.storage.layout import InvalidProjectIdError
    from docforge.tracking.progress import ProgressTracker

    store = create_checkpoint_store(settings)
    controller = ResumeController(
        store, client_factory_from_settings(settings), ProgressTracker(), settings,
    )
    try:
        result = await controller.resume(args.project_id)
    except (NoResumableProject, InvalidProjectIdError) as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    _print_run_summary(result)
    return EXIT_OK if result.phase in ("completed", "paused") else EXIT_FAILURE


async def _cmd_status(args: argparse.Namespace, settings: Settings) -> int:
    """Print the project index, or one project's statistics."""
    from docforge.checkpoint.store_factory import create_checkpoint_store
    from docforge.storage import layout
    from docforge.tracking.call_logger import load_call_records
    from docforge.tracking.stats import build_project_stats, format_stats

    store = create_checkpoint_store(settings)

    if args.project_id is None:
        entries = await store.list_index()
        if not entries:
            print("No projects.")
            return EXIT_OK
        for entry in entries:
            print(
                f"{entry.project_id:50s} {entry.status:10s} "
                f"{entry.completed:4d}/{entry.total:<4d} "
                f"{entry.last_updated_at:%Y-%m-%d %H:%M:%S}"
            )
        return EXIT_OK

    try:
        layout.validate_project_id(args.project_id)
    except layout.InvalidProjectIdError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    record = await store.load(args.project_id)
    if record is None:
        logger.error("Unknown project: %s", args.project_id)
        return EXIT_FAILURE
    stats = build_project_stats(
        record,
        await store.load_sections(args.project_id),
        load_call_records(layout.calls_log_path(settings.progress_dir, args.project_id)),
        min_interval_s=settings.min_call_interval_s,
    )
    print(format_stats(stats))
    print(f"Status:    {record.status}")
    if record.last_error:
        print(f"Error:     {record.last_error}")
    return EXIT_OK


async def _cmd_clear(args: argparse.Namespace, settings: Settings) -> int:
    """Delete a project's checkpoint, sections and manifest."""
    from docforge.checkpoint.lock import ProjectLock
    from docforge.checkpoint.store_factory import create_checkpoint_store
    from docforge.storage import layout

    project_id: str = args.project_id
    try:
        layout.validate_project_id(project_id)
    except layout.InvalidProjectIdError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    store = create_checkpoint_store(settings)
    if await store.load(project_id) is None and await store.load_manifest(project_id) is None:
        logger.error("Unknown project: %s", project_id)
        return EXIT_FAILURE

    with ProjectLock(layout.lock_path(settings.progress_dir, project_id), project_id):
        await store.delete(project_id)
        layout.calls_log_path(settings.progress_dir, project_id).unlink(missing_ok=True)
    print(f"Cleared {project_id}")
    return EXIT_OK


def _print_run_summary(result: object) -> None:
    """Print a human-readable summary of a RunResult."""
    print(f"\nRun {result.phase}:")
    print(f"  Project:   {result.project_id}")
    if result.worker is not None:
        print(f"  Sections:  {result.worker.completed}/{result.worker.total}")
        print(f"  Generated: {len(result.worker.generated)} this run")
    if result.review is not None and result.review.flagged:
        print(f"  Review:    {len(result.review.flagged)} short section(s)")
    if result.document_path is not None:
        print(f"  Document:  {result.document_path}")
    if result.error:
        print(f"  Error:     {result.error}")
        print("  Run `docforge resume` to continue from the last completed section.")


if __name__ == "__main__":
    sys.exit(main())
