from __future__ import annotations

import argparse
from datetime import datetime, timedelta, timezone
import logging
from pathlib import Path
import sys

from fastmirror.logging_setup import configure_logging
from fastmirror.mirror_engine import MirrorRunOptions, mirror
from fastmirror.models import RunStatistics
from fastmirror.run_service import run_mirror_jobs


EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_MISSING_TARGET = 2
EXIT_SOURCE_NOT_FOUND = 3

BANNER = "fastmirror - one-way directory mirror"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fastmirror",
        description="Mirror a source directory into a target directory",
        usage="%(prog)s [options] [source] target",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="target, or source and target (source defaults to the current directory)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report what would change without touching the target")
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="gitignore-style pattern relative to the source (repeatable)",
    )
    parser.add_argument("--config", type=Path, help="Run the jobs of a YAML/JSON config file")
    parser.add_argument("--job", help="Run only one job of --config by name")
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--log-level", default="INFO", choices=["INFO", "WARN", "ERROR"])
    return parser


def render_summary(stats: RunStatistics, duration: timedelta) -> str:
    lines = [
        "SUMMARY:",
        "=============",
        f"Duration: {duration}",
        "",
        f"Handled directories: {stats.copied.directories}",
        f"Copied files: {stats.copied.files} ({stats.copied.bytes})",
        "",
        f"Skipped files: {stats.skipped.files} ({stats.skipped.bytes})",
        "",
        f"Extra directories: {stats.extra.directories}",
        f"Extra files: {stats.extra.files} ({stats.extra.bytes})",
        "",
        f"Failed directories: {stats.failed.directories}",
        f"Failed files: {stats.failed.files} ({stats.failed.bytes})",
        "",
        f"Failed extra directories: {stats.failed_extra.directories}",
        f"Failed extra files: {stats.failed_extra.files} ({stats.failed_extra.bytes})",
    ]
    return "\n".join(lines)


def _resolve_paths(paths: list[str]) -> tuple[Path, Path]:
    if len(paths) == 1:
        # one argument mirrors the current working directory
        return Path.cwd(), Path(paths[0])
    return Path(paths[0]), Path(paths[1])


def cmd_mirror(paths: list[str], options: MirrorRunOptions, logger: logging.Logger) -> int:
    if not paths:
        print("[ERROR] Please define at least a target directory!", file=sys.stderr)
        return EXIT_MISSING_TARGET
    if len(paths) > 2:
        print("[ERROR] Expected at most a source and a target directory!", file=sys.stderr)
        return EXIT_MISSING_TARGET

    source, target = _resolve_paths(paths)
    if not source.is_dir():
        print(f"[ERROR] Directory '{source.absolute()}' not found!", file=sys.stderr)
        return EXIT_SOURCE_NOT_FOUND

    try:
        logger.info("Starting copy process from '%s' to '%s' ...", source.absolute(), target.absolute())

        started_at = datetime.now(timezone.utc)
        stats = mirror(source, target, options, logger=logger)
        duration = datetime.now(timezone.utc) - started_at
    except Exception as exc:
        logger.exception("Uncaught exception: %s", exc)
        return EXIT_RUNTIME_ERROR

    print()
    print(render_summary(stats, duration))
    return EXIT_SUCCESS


def cmd_run_config(config_path: Path, job_name: str | None, dry_run: bool) -> int:
    started_at = datetime.now(timezone.utc)
    exit_code, summary = run_mirror_jobs(
        config_path=config_path,
        job_name=job_name,
        dry_run=dry_run,
        logger=logging.getLogger("fastmirror.run"),
    )
    duration = datetime.now(timezone.utc) - started_at

    if summary.processed_jobs or summary.failed_jobs:
        print()
        print(f"Jobs: {summary.processed_jobs} completed, {summary.failed_jobs} failed")
        print(render_summary(summary.totals, duration))
    return exit_code


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logger = configure_logging(level=args.log_level, log_file=args.log_file)

    print(BANNER)
    print()

    if args.config is not None:
        if args.paths or args.exclude:
            print("[ERROR] --config cannot be combined with paths or --exclude", file=sys.stderr)
            return EXIT_MISSING_TARGET
        return cmd_run_config(args.config, args.job, args.dry_run)

    options = MirrorRunOptions(dry_run=args.dry_run, excludes=args.exclude)
    return cmd_mirror(args.paths, options, logger)


if __name__ == "__main__":
    raise SystemExit(main())
