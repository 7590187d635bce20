from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Iterable


def matches_any(rel_path: str, patterns: Iterable[str]) -> bool:
    """
    Match a workspace-relative POSIX path against ``**/...`` style globs.
    A leading ``**/`` also matches at the workspace root.
    """
    for pat in patterns:
        if fnmatchcase(rel_path, pat):
            return True
        if pat.startswith("**/") and fnmatchcase(rel_path, pat[3:]):
            return True
    return False


def should_ignore_dir(rel_dir: str, patterns: Iterable[str]) -> bool:
    # "a/bin" must match "**/bin/**", so test it as a directory prefix
    return matches_any(rel_dir.rstrip("/") + "/", patterns)
