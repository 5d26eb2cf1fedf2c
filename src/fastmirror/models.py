from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class DirectoryFileCounters:
    directories: int = 0
    files: int = 0
    bytes: int = 0

    def merge(self, other: DirectoryFileCounters) -> None:
        self.directories += other.directories
        self.files += other.files
        self.bytes += other.bytes


@dataclass(slots=True)
class FileCounters:
    files: int = 0
    bytes: int = 0

    def merge(self, other: FileCounters) -> None:
        self.files += other.files
        self.bytes += other.bytes


@dataclass(slots=True)
class RunStatistics:
    """Counters for one mirror run.

    A single instance is shared by every directory level of a run and is
    mutated in place; it is only read once the run has finished.
    """

    copied: DirectoryFileCounters = field(default_factory=DirectoryFileCounters)
    skipped: FileCounters = field(default_factory=FileCounters)
    extra: DirectoryFileCounters = field(default_factory=DirectoryFileCounters)
    failed: DirectoryFileCounters = field(default_factory=DirectoryFileCounters)
    failed_extra: DirectoryFileCounters = field(default_factory=DirectoryFileCounters)

    @property
    def has_failures(self) -> bool:
        return bool(
            self.failed.directories
            or self.failed.files
            or self.failed_extra.directories
            or self.failed_extra.files
        )

    def merge(self, other: RunStatistics) -> None:
        self.copied.merge(other.copied)
        self.skipped.merge(other.skipped)
        self.extra.merge(other.extra)
        self.failed.merge(other.failed)
        self.failed_extra.merge(other.failed_extra)
