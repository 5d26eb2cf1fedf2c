from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path, PurePosixPath
import shutil
import tempfile

from fastmirror.ignore_engine import ExcludeEngine, build_exclude_engine
from fastmirror.models import RunStatistics


NANOSECONDS_PER_SECOND = 1_000_000_000


@dataclass(slots=True)
class MirrorRunOptions:
    dry_run: bool = False
    excludes: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DirectoryEntry:
    name: str
    path: Path
    is_symlink: bool = False


@dataclass(slots=True)
class FileEntry:
    name: str
    path: Path
    size: int
    mtime_ns: int


@dataclass(slots=True)
class _RunContext:
    stats: RunStatistics
    log: logging.Logger
    dry_run: bool
    excludes: ExcludeEngine


def _list_directories(directory: Path) -> list[DirectoryEntry]:
    entries: list[DirectoryEntry] = []
    with os.scandir(directory) as scanner:
        for entry in scanner:
            if entry.is_dir():
                entries.append(
                    DirectoryEntry(name=entry.name, path=Path(entry.path), is_symlink=entry.is_symlink())
                )
    return entries


def _list_files(directory: Path) -> list[FileEntry]:
    entries: list[FileEntry] = []
    with os.scandir(directory) as scanner:
        for entry in scanner:
            if entry.is_file():
                entry_stat = entry.stat()
                entries.append(
                    FileEntry(
                        name=entry.name,
                        path=Path(entry.path),
                        size=entry_stat.st_size,
                        mtime_ns=entry_stat.st_mtime_ns,
                    )
                )
    return entries


def _list_destination_files(directory: Path) -> list[FileEntry]:
    """Everything in ``directory`` that is not a directory, dangling links and pipes included."""
    entries: list[FileEntry] = []
    with os.scandir(directory) as scanner:
        for entry in scanner:
            if entry.is_dir():
                continue
            try:
                entry_stat = entry.stat()
            except OSError:
                entry_stat = entry.stat(follow_symlinks=False)
            entries.append(
                FileEntry(
                    name=entry.name,
                    path=Path(entry.path),
                    size=entry_stat.st_size,
                    mtime_ns=entry_stat.st_mtime_ns,
                )
            )
    return entries


def _truncate_to_seconds(mtime_ns: int) -> int:
    return mtime_ns // NANOSECONDS_PER_SECOND


def _is_unchanged(source_file: FileEntry, destination_file: Path) -> bool:
    if not destination_file.is_file():
        return False
    destination_stat = destination_file.stat()
    if destination_stat.st_size != source_file.size:
        return False
    return _truncate_to_seconds(destination_stat.st_mtime_ns) == _truncate_to_seconds(source_file.mtime_ns)


def _safe_copy(source_file: Path, destination_file: Path) -> None:
    with tempfile.NamedTemporaryFile(delete=False, dir=str(destination_file.parent)) as tmp:
        tmp_path = Path(tmp.name)
    try:
        shutil.copy2(source_file, tmp_path)
        tmp_path.replace(destination_file)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def _remove_directory(directory: DirectoryEntry) -> None:
    if directory.is_symlink:
        directory.path.unlink()
    else:
        shutil.rmtree(directory.path)


def _validate_paths(source_root: Path, destination_root: Path) -> None:
    source_resolved = source_root.resolve()
    destination_resolved = destination_root.resolve()

    if source_resolved == destination_resolved:
        raise ValueError(f"Invalid mapping: source and destination are equal: {source_root}")

    if destination_resolved.is_relative_to(source_resolved):
        raise ValueError(
            f"Invalid mapping: destination is inside source, which can recurse: {destination_root}"
        )


def _source_has_directory(ctx: _RunContext, source: Path, relative: PurePosixPath, name: str) -> bool:
    if ctx.excludes.is_excluded(relative / name, is_dir=True):
        return False
    return (source / name).is_dir()


def _source_has_file(ctx: _RunContext, source: Path, relative: PurePosixPath, name: str) -> bool:
    if ctx.excludes.is_excluded(relative / name):
        return False
    return (source / name).is_file()


def _prune_extra_directories(ctx: _RunContext, source: Path, destination: Path, relative: PurePosixPath) -> None:
    for destination_dir in sorted(_list_directories(destination), key=lambda entry: entry.name.lower()):
        try:
            if _source_has_directory(ctx, source, relative, destination_dir.name):
                continue

            if not ctx.dry_run:
                _remove_directory(destination_dir)

            ctx.log.info("\tRemoved extra directory '%s'", destination_dir.path)
            ctx.stats.extra.directories += 1
        except OSError as exc:
            ctx.log.warning("\tCould not delete extra directory '%s': %s", destination_dir.path, exc)
            ctx.stats.failed_extra.directories += 1


def _prune_extra_files(ctx: _RunContext, source: Path, destination: Path, relative: PurePosixPath) -> None:
    extra_candidates = sorted(
        _list_destination_files(destination),
        key=lambda entry: (-entry.size, entry.name.lower()),
    )
    for destination_file in extra_candidates:
        try:
            if _source_has_file(ctx, source, relative, destination_file.name):
                continue

            if not ctx.dry_run:
                destination_file.path.unlink()

            ctx.log.info("\tRemoved extra file '%s' (%s)", destination_file.path, destination_file.size)
            ctx.stats.extra.files += 1
            ctx.stats.extra.bytes += destination_file.size
        except OSError as exc:
            ctx.stats.failed_extra.files += 1
            ctx.stats.failed_extra.bytes += destination_file.size
            ctx.log.warning("\tCould not delete extra file '%s': %s", destination_file.path, exc)


def _copy_files(ctx: _RunContext, source: Path, destination: Path, relative: PurePosixPath) -> None:
    source_files = sorted(_list_files(source), key=lambda entry: (entry.size, entry.name.lower()))
    for source_file in source_files:
        if ctx.excludes.is_excluded(relative / source_file.name):
            continue

        destination_file = destination / source_file.name
        try:
            if _is_unchanged(source_file, destination_file):
                ctx.stats.skipped.files += 1
                ctx.stats.skipped.bytes += source_file.size
                continue

            ctx.log.info("Copying file to '%s' ...", destination_file)
            if ctx.dry_run:
                copied_bytes = source_file.size
            else:
                _safe_copy(source_file.path, destination_file)
                copied_bytes = destination_file.stat().st_size

            ctx.stats.copied.files += 1
            ctx.stats.copied.bytes += copied_bytes
        except OSError as exc:
            ctx.log.error("Could not copy file '%s': %s", source_file.path, exc)
            ctx.stats.failed.files += 1
            ctx.stats.failed.bytes += source_file.size


def _mirror_subdirectories(ctx: _RunContext, source: Path, destination: Path, relative: PurePosixPath) -> None:
    for source_dir in sorted(_list_directories(source), key=lambda entry: entry.name.lower()):
        if ctx.excludes.is_excluded(relative / source_dir.name, is_dir=True):
            continue
        try:
            _mirror_directory(ctx, source_dir.path, destination / source_dir.name, relative / source_dir.name)
        except Exception as exc:
            ctx.log.error("Could not copy directory '%s': %s", source_dir.path, exc)


def _mirror_directory(ctx: _RunContext, source: Path, destination: Path, relative: PurePosixPath) -> None:
    ctx.log.info("Entering '%s' ...", source)

    if not source.is_dir():
        ctx.log.warning("\tDirectory '%s' does not exist (anymore)!", source)
        return

    try:
        destination_exists = destination.is_dir()
        if not destination_exists and not ctx.dry_run:
            # only the root may be missing its parents
            destination.mkdir(parents=not relative.parts)
            destination_exists = True
            ctx.log.info("\tDirectory '%s' created", destination)

        if destination_exists:
            _prune_extra_directories(ctx, source, destination, relative)
            _prune_extra_files(ctx, source, destination, relative)

        _copy_files(ctx, source, destination, relative)
        _mirror_subdirectories(ctx, source, destination, relative)

        ctx.stats.copied.directories += 1
    except Exception:
        ctx.stats.failed.directories += 1
        raise


def mirror(
    source: Path,
    destination: Path,
    options: MirrorRunOptions | None = None,
    logger: logging.Logger | None = None,
    stats: RunStatistics | None = None,
) -> RunStatistics:
    """Make ``destination`` an exact copy of the file tree below ``source``.

    Files are compared by size and by modification time truncated to whole
    seconds. Failures on single entries are logged and counted; only an error
    that escapes the root directory itself is raised to the caller.
    """
    options = options or MirrorRunOptions()
    source_root = Path(source).absolute()
    destination_root = Path(destination).absolute()

    _validate_paths(source_root, destination_root)

    ctx = _RunContext(
        stats=stats if stats is not None else RunStatistics(),
        log=logger or logging.getLogger("fastmirror"),
        dry_run=options.dry_run,
        excludes=build_exclude_engine(options.excludes),
    )
    _mirror_directory(ctx, source_root, destination_root, PurePosixPath("."))
    return ctx.stats
