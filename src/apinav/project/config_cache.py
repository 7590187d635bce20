from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Generic, Hashable, Optional, TypeVar

from apinav.config import ExplorerConfig, get_config
from apinav.logging import get_logger
from apinav.project.launch_settings import read_base_url
from apinav.repo.project_locator import find_project_descriptor

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

ReadText = Callable[[Path], str]
Locator = Callable[[str], Optional[Path]]

_MISSING = object()


class KeyedCache(Generic[K, V]):
    """
    Memo table with explicit invalidation. A stored None is a real entry (a miss
    is a valid, cacheable outcome). All operations hold the instance lock, so a
    lookup never observes a half-invalidated entry.
    """

    def __init__(self, name: str = "cache"):
        self.name = name
        self._data: dict[K, V] = {}
        self._lock = threading.RLock()

    def get_or_compute(self, key: K, compute: Callable[[K], V]) -> V:
        with self._lock:
            value = self._data.get(key, _MISSING)
            if value is not _MISSING:
                return value  # type: ignore[return-value]
            value = compute(key)
            self._data[key] = value
            return value

    def invalidate(self, key: K) -> bool:
        with self._lock:
            removed = self._data.pop(key, _MISSING) is not _MISSING
        if removed:
            logger.debug("%s: invalidated %s", self.name, key)
        return removed

    def invalidate_all(self) -> None:
        with self._lock:
            self._data.clear()
        logger.debug("%s: cleared", self.name)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


def _read_utf8(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class ProjectBaseUrlResolver:
    """Two cache layers over project lookup and launch-settings parsing.

    - source file -> project descriptor path (saves re-walking directories)
    - project directory -> base URL

    Instances are independent; create one per workspace. The file watcher calls
    ``on_launch_settings_changed`` / ``on_launch_settings_deleted`` and
    ``on_project_file_changed`` to keep both layers current.
    """

    def __init__(
        self,
        read_text: Optional[ReadText] = None,
        locator: Optional[Locator] = None,
        config: Optional[ExplorerConfig] = None,
    ):
        self.config = config or get_config()
        self._read_text = read_text or _read_utf8
        self._locator = locator or self._default_locator
        self._descriptors: KeyedCache[str, Optional[Path]] = KeyedCache("project-descriptor")
        self._base_urls: KeyedCache[str, Optional[str]] = KeyedCache("base-url")

    # ----------------------------
    # Lookups
    # ----------------------------

    def get_project_descriptor(self, source_file: str) -> Optional[Path]:
        return self._descriptors.get_or_compute(str(source_file), self._locator)

    def get_project_directory(self, source_file: str) -> Optional[Path]:
        descriptor = self.get_project_descriptor(source_file)
        return descriptor.parent if descriptor else None

    def get_base_url(self, project_dir: str | Path) -> Optional[str]:
        return self._base_urls.get_or_compute(_key(project_dir), self._load_base_url)

    def get_base_url_for_file(self, source_file: str) -> Optional[str]:
        project_dir = self.get_project_directory(source_file)
        if project_dir is None:
            return None
        return self.get_base_url(project_dir)

    def build_full_route_url(self, project_path: Optional[str], route_path: str) -> str:
        """Base URL + route for a project descriptor path; the bare route otherwise."""
        if not project_path:
            return route_path
        base_url = self.get_base_url(Path(project_path).parent)
        return f"{base_url}{route_path}" if base_url else route_path

    # ----------------------------
    # Invalidation
    # ----------------------------

    def invalidate_project(self, project_dir: str | Path) -> bool:
        return self._base_urls.invalidate(_key(project_dir))

    def on_launch_settings_changed(self, launch_settings_path: str | Path) -> bool:
        return self.invalidate_project(self._project_dir_of_launch_settings(launch_settings_path))

    def on_launch_settings_deleted(self, launch_settings_path: str | Path) -> bool:
        return self.on_launch_settings_changed(launch_settings_path)

    def on_project_file_changed(self, project_file_path: str | Path) -> None:
        # a created/removed descriptor can re-home any source file
        self._descriptors.invalidate_all()
        self.invalidate_project(Path(project_file_path).parent)

    def clear_base_urls(self) -> None:
        self._base_urls.invalidate_all()

    def clear_all(self) -> None:
        self._descriptors.invalidate_all()
        self._base_urls.invalidate_all()

    def stats(self) -> dict[str, int]:
        return {
            "project_dir_cache_size": len(self._descriptors),
            "base_url_cache_size": len(self._base_urls),
        }

    # ----------------------------
    # Internals
    # ----------------------------

    def _default_locator(self, source_file: str) -> Optional[Path]:
        return find_project_descriptor(
            source_file,
            extension=self.config.project_extension,
            max_depth=self.config.project_search_depth,
        )

    def _project_dir_of_launch_settings(self, launch_settings_path: str | Path) -> Path:
        # <project>/Properties/launchSettings.json -> <project>
        depth = len(Path(self.config.launch_settings_path).parts)
        path = Path(launch_settings_path)
        for _ in range(depth):
            path = path.parent
        return path

    def _load_base_url(self, project_dir: str) -> Optional[str]:
        path = Path(project_dir) / self.config.launch_settings_path
        try:
            text = self._read_text(path)
        except (OSError, UnicodeDecodeError):
            logger.debug("No readable launch settings at %s", path)
            return None
        base_url = read_base_url(text)
        logger.debug("Base URL for %s: %s", project_dir, base_url)
        return base_url


def _key(project_dir: str | Path) -> str:
    return str(Path(project_dir))
