from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from apinav.config import ExplorerConfig, load_config
from apinav.domain.models import RouteRecord
from apinav.errors import ScanCancelled, WorkspaceScanError
from apinav.extractors.aspnet.route_parser import extract_routes_from_file
from apinav.logging import get_logger
from apinav.project.config_cache import ProjectBaseUrlResolver
from apinav.repo.scanner import has_project, is_controller_file_name, scan_source_files
from apinav.store.aliases import AliasStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScanResult:
    workspace: str
    files_scanned: int
    candidate_files: list[str]
    routes: list[RouteRecord]
    has_project: bool = True
    skipped_files: list[str] = field(default_factory=list)


def scan_workspace(
    workspace: Path,
    config: Optional[ExplorerConfig] = None,
    resolver: Optional[ProjectBaseUrlResolver] = None,
    aliases: Optional[AliasStore] = None,
    cancel_event: Optional[threading.Event] = None,
    max_files: int | None = None,
) -> ScanResult:
    """
    Enumerate source files, parse each controller file, attach aliases.

    Per-file failures yield no routes for that file. Failing to enumerate at all
    raises WorkspaceScanError; setting ``cancel_event`` aborts between files with
    ScanCancelled.
    """
    workspace = workspace.expanduser().resolve()
    if not workspace.is_dir():
        raise WorkspaceScanError(str(workspace), "not a directory")

    config = config or load_config(workspace)
    resolver = resolver or ProjectBaseUrlResolver(config=config)

    try:
        source_files = scan_source_files(workspace, config, max_files=max_files)
        project_found = has_project(workspace, config)
    except OSError as e:
        raise WorkspaceScanError(str(workspace), str(e)) from e

    if not project_found:
        logger.info("No %s project under %s; nothing to scan", config.project_extension, workspace)
        return ScanResult(
            workspace=str(workspace),
            files_scanned=len(source_files),
            candidate_files=[],
            routes=[],
            has_project=False,
        )

    candidates = [p for p in source_files if is_controller_file_name(p, config)]
    routes: list[RouteRecord] = []
    skipped: list[str] = []

    for p in candidates:
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelled(f"Scan of {workspace} cancelled")

        file_routes = extract_routes_from_file(
            Path(p),
            project_locator=resolver.get_project_descriptor,
            config=config,
        )
        if not file_routes:
            skipped.append(p)
        routes.extend(file_routes)

    if aliases is not None:
        aliases.load()
        routes = aliases.apply(routes)

    logger.info("Found %d routes in %d controller files", len(routes), len(candidates))

    return ScanResult(
        workspace=str(workspace),
        files_scanned=len(source_files),
        candidate_files=candidates,
        routes=routes,
        has_project=True,
        skipped_files=skipped,
    )
