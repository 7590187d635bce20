from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from apinav.domain.models import RouteRecord

UNKNOWN_PROJECT = "Unknown"
UNKNOWN_PROJECT_LABEL = "Unknown project"


@dataclass(frozen=True)
class RouteItem:
    route: RouteRecord
    label: str
    description: str
    tooltip: str


@dataclass
class ControllerGroup:
    project_key: str
    controller_name: str
    label: str
    items: list[RouteItem] = field(default_factory=list)


@dataclass
class ProjectGroup:
    project_key: str  # descriptor path, or UNKNOWN_PROJECT
    label: str
    controllers: list[ControllerGroup] = field(default_factory=list)

    @property
    def route_count(self) -> int:
        return sum(len(c.items) for c in self.controllers)


def project_label(project_key: str) -> str:
    if project_key == UNKNOWN_PROJECT:
        return UNKNOWN_PROJECT_LABEL
    return Path(project_key).stem


def controller_label(controller_name: str, suffix: str = "Controller") -> str:
    if suffix and controller_name.endswith(suffix) and controller_name != suffix:
        return controller_name[: -len(suffix)]
    return controller_name


def make_route_item(
    route: RouteRecord,
    replace_variables: Optional[Callable[[str], str]] = None,
) -> RouteItem:
    """
    Label is the alias, else the action's own route part, else the full route.
    Routes are shown lower-cased with route variables substituted.
    """
    display_route = route.route_path.lower()
    if replace_variables is not None:
        display_route = replace_variables(display_route)

    short_route = display_route
    if route.action_route_fragment:
        fragment = route.action_route_fragment.lower()
        short_route = fragment if fragment.startswith("/") else "/" + fragment

    return RouteItem(
        route=route,
        label=route.alias or short_route,
        description=short_route if route.alias else "",
        tooltip=f"[{route.http_verb}] {display_route}",
    )


def build_route_tree(
    routes: Iterable[RouteRecord],
    replace_variables: Optional[Callable[[str], str]] = None,
    controller_suffix: str = "Controller",
) -> list[ProjectGroup]:
    """
    Group routes project -> controller -> route. Groups are sorted by label; the
    routes keep the order they were given in (the catalog sorts them).
    """
    projects: dict[str, ProjectGroup] = {}
    controllers: dict[tuple[str, str], ControllerGroup] = {}

    for r in routes:
        pkey = r.project_descriptor_path or UNKNOWN_PROJECT
        project = projects.get(pkey)
        if project is None:
            project = ProjectGroup(project_key=pkey, label=project_label(pkey))
            projects[pkey] = project

        ckey = (pkey, r.controller_name)
        group = controllers.get(ckey)
        if group is None:
            group = ControllerGroup(
                project_key=pkey,
                controller_name=r.controller_name,
                label=controller_label(r.controller_name, controller_suffix),
            )
            controllers[ckey] = group
            project.controllers.append(group)

        group.items.append(make_route_item(r, replace_variables))

    out = sorted(projects.values(), key=lambda p: (p.label.lower(), p.project_key))
    for p in out:
        p.controllers.sort(key=lambda c: (c.label.lower(), c.controller_name))
    return out
