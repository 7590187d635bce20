from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterable, Optional

from apinav.logging import get_logger

logger = get_logger(__name__)

# (name, is_file) pairs for one directory
ListDir = Callable[[Path], Iterable[tuple[str, bool]]]

DEFAULT_PROJECT_EXTENSION = ".csproj"
DEFAULT_MAX_DEPTH = 10


def list_directory(directory: Path) -> list[tuple[str, bool]]:
    with os.scandir(directory) as it:
        return sorted((e.name, e.is_file()) for e in it)


def find_project_descriptor(
    file_path: str | Path,
    extension: str = DEFAULT_PROJECT_EXTENSION,
    max_depth: int = DEFAULT_MAX_DEPTH,
    list_dir: Optional[ListDir] = None,
) -> Optional[Path]:
    """
    Walk up from the file's directory to the nearest directory holding a project
    descriptor. Gives up at the filesystem root, after ``max_depth`` levels, or on
    the first listing error.
    """
    list_dir = list_dir or list_directory
    current = Path(file_path).parent

    for _ in range(max_depth):
        try:
            entries = list_dir(current)
        except OSError as e:
            logger.debug("Project lookup stopped at %s: %s", current, e)
            return None

        for name, is_file in entries:
            if is_file and name.endswith(extension):
                return current / name

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None
