from __future__ import annotations

import re
from typing import Optional

from apinav.domain.models import normalize_route_path

_CONTROLLER_PLACEHOLDER = re.compile(r"\[controller\]", re.IGNORECASE)
_ACTION_PLACEHOLDER = re.compile(r"\[action\]", re.IGNORECASE)
_ASYNC_SUFFIX = re.compile(r"Async$", re.IGNORECASE)

# {id}, {id:int}, {id?}, {*slug}, {**path}
_PATH_PARAM = re.compile(r"\{\**(?P<name>\w+)[^}]*\}")


def controller_short_name(controller_name: str, suffix: str = "Controller") -> str:
    """OrdersController -> orders"""
    if suffix and controller_name.endswith(suffix):
        controller_name = controller_name[: -len(suffix)]
    return controller_name.lower()


def action_short_name(action_name: str) -> str:
    """GetOrdersAsync -> getorders"""
    return _ASYNC_SUFFIX.sub("", action_name).lower()


def has_action_placeholder(route: Optional[str]) -> bool:
    return bool(route) and _ACTION_PLACEHOLDER.search(route) is not None


def substitute_placeholders(
    template: str,
    controller_name: str,
    action_name: str,
    suffix: str = "Controller",
) -> str:
    route = _CONTROLLER_PLACEHOLDER.sub(lambda _: controller_short_name(controller_name, suffix), template)
    return _ACTION_PLACEHOLDER.sub(lambda _: action_short_name(action_name), route)


def compose_route(
    controller_route: Optional[str],
    action_fragment: Optional[str],
    controller_name: str,
    action_name: str,
    suffix: str = "Controller",
) -> str:
    """
    Controller route (placeholders substituted) + "/" + action fragment, with
    exactly one leading "/". Either part may be absent; both absent gives "/".
    """
    route = ""
    if controller_route:
        route = substitute_placeholders(controller_route, controller_name, action_name, suffix)

    if action_fragment:
        route = f"{route}/{action_fragment}" if route else action_fragment

    return normalize_route_path(route)


def extract_path_placeholders(template: str) -> list[str]:
    """Lower-cased ``{name}`` placeholder names, constraints dropped, in order."""
    return [m.group("name").lower() for m in _PATH_PARAM.finditer(template or "")]
