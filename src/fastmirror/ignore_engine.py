from __future__ import annotations

from pathlib import PurePosixPath
from typing import Iterable

import pathspec


def _clean_patterns(patterns: Iterable[str]) -> list[str]:
    cleaned: list[str] = []
    for pattern in patterns:
        stripped = pattern.strip()
        if not stripped or stripped.startswith("#"):
            continue
        cleaned.append(stripped)
    return cleaned


class ExcludeEngine:
    """Matches paths relative to the source root against gitignore-style patterns."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = _clean_patterns(patterns)
        self._spec = pathspec.PathSpec.from_lines("gitignore", self.patterns)

    def is_excluded(self, relative_path: PurePosixPath, is_dir: bool = False) -> bool:
        if not self.patterns:
            return False
        unix_path = relative_path.as_posix()
        candidate = f"{unix_path}/" if is_dir and not unix_path.endswith("/") else unix_path
        return self._spec.match_file(candidate)


def build_exclude_engine(patterns: Iterable[str] | None) -> ExcludeEngine:
    return ExcludeEngine(patterns or [])
