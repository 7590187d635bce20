from __future__ import annotations

import os
import re
from pathlib import Path

from apinav.config import ExplorerConfig
from apinav.logging import get_logger
from apinav.repo.ignore import matches_any, should_ignore_dir

logger = get_logger(__name__)

# Cheap rejection test: conforming controllers always contain one of these.
_ROUTE_MARKER = re.compile(r"\b(?:HttpGet|HttpPost|HttpPut|HttpDelete|Route)\b")

# Abstract bases are named by convention and never carry concrete actions.
_BASE_CONTROLLER_MARKERS = ("basecontroller", "controllerbase")


def scan_source_files(
    repo_path: Path,
    config: ExplorerConfig,
    max_files: int | None = None,
) -> list[str]:
    """
    Return absolute paths of ``*<source_extension>`` files under repo_path,
    minus the configured exclude globs. Sorted, so scans are deterministic.
    Unreadable subdirectories are logged and skipped; an unreadable repo_path
    raises OSError.
    """
    repo_path = repo_path.resolve()
    out: list[str] = []
    for root, dirs, files in _walk(repo_path):
        root_p = Path(root)
        rel_root = root_p.relative_to(repo_path).as_posix()
        rel_root = "" if rel_root == "." else rel_root

        # prune ignored dirs
        dirs[:] = sorted(
            d for d in dirs
            if not should_ignore_dir(f"{rel_root}/{d}" if rel_root else d, config.exclude_patterns)
        )

        for f in sorted(files):
            if not f.endswith(config.source_extension):
                continue
            rel = f"{rel_root}/{f}" if rel_root else f
            if matches_any(rel, config.exclude_patterns):
                continue
            out.append(str(root_p / f))
            if max_files is not None and len(out) >= max_files:
                return out
    return out


def _walk(repo_path: Path):
    # Separate helper to make unit testing easier (can be mocked)
    root = os.path.normpath(os.fspath(repo_path))

    def onerror(err: OSError) -> None:
        # an unreadable root means nothing can be enumerated at all
        if err.filename is not None and os.path.normpath(os.fspath(err.filename)) == root:
            raise err
        _log_walk_error(err)

    return os.walk(repo_path, onerror=onerror)


def _log_walk_error(err: OSError) -> None:
    logger.warning("Cannot list %s: %s", err.filename, err.strerror)


def has_project(repo_path: Path, config: ExplorerConfig) -> bool:
    """True when the workspace contains at least one project descriptor."""
    for root, dirs, files in _walk(repo_path):
        rel_root = os.path.relpath(root, repo_path).replace(os.sep, "/")
        dirs[:] = [
            d for d in dirs
            if not should_ignore_dir(d if rel_root == "." else f"{rel_root}/{d}", config.exclude_patterns)
        ]
        if any(f.endswith(config.project_extension) for f in files):
            return True
    return False


def is_controller_file_name(path: str, config: ExplorerConfig) -> bool:
    name = os.path.basename(path)
    if not name.endswith(config.controller_file_suffix):
        return False
    lowered = name.lower()
    return not any(m in lowered for m in _BASE_CONTROLLER_MARKERS)


def has_route_markers(text: str) -> bool:
    return _ROUTE_MARKER.search(text) is not None
