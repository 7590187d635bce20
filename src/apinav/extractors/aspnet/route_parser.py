from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from apinav.config import ExplorerConfig, get_config
from apinav.domain.models import RouteRecord
from apinav.extractors.aspnet.attributes import (
    collect_action_attributes,
    nearest_route_template,
    resolve_verb,
    scan_attributes_above,
)
from apinav.extractors.aspnet.declarations import (
    ControllerDecl,
    find_body_end,
    match_class_declaration,
    match_method_declaration,
    split_lines,
)
from apinav.extractors.aspnet.templates import compose_route
from apinav.logging import get_logger
from apinav.repo.scanner import has_route_markers, is_controller_file_name

logger = get_logger(__name__)

# source file -> project descriptor path (or None)
ProjectLocator = Callable[[str], Optional[Path]]


def find_controllers(lines: list[str], config: Optional[ExplorerConfig] = None) -> list[ControllerDecl]:
    """Controller classes in declaration order, each with base route and body span."""
    config = config or get_config()
    controllers: list[ControllerDecl] = []

    for i, line in enumerate(lines):
        match = match_class_declaration(line)
        if match is None:
            continue
        name, column = match
        if not name.endswith(config.controller_suffix):
            continue

        hits = scan_attributes_above(lines, i, config.controller_window, decl_prefix=line[:column])
        controllers.append(
            ControllerDecl(
                name=name,
                line_index=i,
                base_route=nearest_route_template(hits),
                body_end=find_body_end(lines, i),
            )
        )

    return controllers


def find_owning_controller(controllers: list[ControllerDecl], line_index: int) -> Optional[ControllerDecl]:
    """Innermost controller whose body span contains the line."""
    owner: Optional[ControllerDecl] = None
    for c in controllers:
        if c.contains(line_index) and (owner is None or c.line_index > owner.line_index):
            owner = c
    return owner


def extract_routes_from_source(
    source: str,
    file_path: str = "",
    project_path: Optional[str] = None,
    config: Optional[ExplorerConfig] = None,
) -> list[RouteRecord]:
    """
    Scan C# source line by line and return one RouteRecord per controller action,
    in controller order then line order. No tokenizer: attribute and declaration
    matching happens inside bounded line windows.
    """
    config = config or get_config()
    lines = split_lines(source)
    routes: list[RouteRecord] = []

    for controller in find_controllers(lines, config):
        routes.extend(_routes_for_controller(controller, lines, file_path, project_path, config))

    return routes


def _routes_for_controller(
    controller: ControllerDecl,
    lines: list[str],
    file_path: str,
    project_path: Optional[str],
    config: ExplorerConfig,
) -> list[RouteRecord]:
    routes: list[RouteRecord] = []
    end = min(controller.body_end, len(lines))

    for i in range(controller.line_index + 1, end):
        line = lines[i]
        method = match_method_declaration(line)
        if method is None:
            continue

        hits = scan_attributes_above(lines, i, config.action_window, decl_prefix=line[: method.start])
        attrs = collect_action_attributes(hits)
        verb = resolve_verb(attrs, controller.base_route)
        if verb is None:
            continue

        routes.append(
            RouteRecord(
                route_path=compose_route(
                    controller.base_route,
                    attrs.fragment,
                    controller.name,
                    method.name,
                    config.controller_suffix,
                ),
                http_verb=verb,
                controller_name=controller.name,
                action_name=method.name,
                source_file=file_path,
                declaration_line=i + 1,
                project_descriptor_path=project_path,
                action_route_fragment=attrs.fragment,
            )
        )

    return routes


def parse_file(
    path: str,
    text: str,
    project_locator: Optional[ProjectLocator] = None,
    config: Optional[ExplorerConfig] = None,
) -> list[RouteRecord]:
    """
    Routes from one file's text. Files that do not follow the controller naming
    convention, or carry no routing attribute at all, produce nothing.
    """
    config = config or get_config()
    if not is_controller_file_name(path, config):
        return []
    if not has_route_markers(text):
        return []

    project_path: Optional[str] = None
    if project_locator is not None:
        found = project_locator(path)
        project_path = str(found) if found else None

    return extract_routes_from_source(text, file_path=path, project_path=project_path, config=config)


def extract_routes_from_file(
    path: Path,
    project_locator: Optional[ProjectLocator] = None,
    config: Optional[ExplorerConfig] = None,
    max_bytes: int = 2_000_000,
) -> list[RouteRecord]:
    """Read and parse one file; any read or scan failure yields no routes."""
    config = config or get_config()
    if not is_controller_file_name(str(path), config):
        return []

    try:
        data = path.read_bytes()[:max_bytes]
        source = data.decode("utf-8-sig", errors="ignore")
    except OSError as e:
        logger.warning("Skipping unreadable file %s: %s", path, e)
        return []

    try:
        return parse_file(str(path), source, project_locator=project_locator, config=config)
    except Exception:
        logger.warning("Skipping %s: route scan failed", path, exc_info=True)
        return []
