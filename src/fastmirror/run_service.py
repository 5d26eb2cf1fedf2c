from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import logging

from fastmirror.config import get_jobs, load_config
from fastmirror.mirror_engine import MirrorRunOptions, mirror
from fastmirror.models import RunStatistics


EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_INVALID_CONFIG = 3


@dataclass(slots=True)
class RunSummary:
    totals: RunStatistics = field(default_factory=RunStatistics)
    processed_jobs: int = 0
    failed_jobs: int = 0
    partial_failures: bool = False

    def absorb(self, stats: RunStatistics) -> None:
        self.totals.merge(stats)
        self.processed_jobs += 1
        if stats.has_failures:
            self.partial_failures = True


def run_mirror_jobs(
    config_path: Path,
    job_name: str | None = None,
    dry_run: bool = False,
    logger: logging.Logger | None = None,
) -> tuple[int, RunSummary]:
    log = logger or logging.getLogger("fastmirror.run")

    try:
        config = load_config(config_path)
        jobs = get_jobs(config, job_name)
    except Exception as exc:
        log.error("Config error: %s", exc)
        return EXIT_INVALID_CONFIG, RunSummary()

    summary = RunSummary()

    for job in jobs:
        if not job.source.is_dir():
            summary.failed_jobs += 1
            log.error("[%s] Directory '%s' not found!", job.name, job.source)
            continue

        options = MirrorRunOptions(dry_run=dry_run, excludes=job.excludes)
        log.info("[%s] Starting copy process from '%s' to '%s' ...", job.name, job.source, job.target)
        try:
            stats = mirror(job.source, job.target, options, logger=log)
        except Exception as exc:
            summary.failed_jobs += 1
            log.error("[%s] failed for source %s: %s", job.name, job.source, exc)
            continue

        summary.absorb(stats)
        log.info(
            "[%s] %s -> %s | copied=%s skipped=%s extra=%s failed=%s",
            job.name,
            job.source,
            job.target,
            stats.copied.files,
            stats.skipped.files,
            stats.extra.files,
            stats.failed.files,
        )
        if stats.has_failures:
            log.warning("[%s] completed with entries that could not be copied or removed", job.name)

    exit_code = EXIT_RUNTIME_ERROR if summary.failed_jobs else EXIT_SUCCESS
    return exit_code, summary
