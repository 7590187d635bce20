"""
Bounded attribute-window scan shared by the route parser and the endpoint detector.

Attributes are read from at most ``window`` lines directly above a declaration,
nearest line first. Within one line, verb attributes come before ``Route``
attributes, so ``[Route("b"), HttpGet("a")]`` yields the verb hit first. The scan
stops early at a ``class`` token or at the end of the previous member, so
attributes never leak from one declaration into another.

Resolution rules are explicit functions over the ordered hits:

- ``last_verb``: the last verb attribute discovered wins, i.e. the one farthest
  above the declaration.
- ``first_fragment``: the first non-empty template discovered wins, whether it
  came from ``Route(...)`` or a verb attribute argument; later ones never
  overwrite it.
- ``resolve_verb``: a verb attribute wins; otherwise the action is accepted as
  ``ANY`` only when it carries its own ``Route`` or the controller route has an
  ``[action]`` placeholder; otherwise it is not an action.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Optional

from apinav.domain.models import HttpVerb
from apinav.extractors.aspnet.declarations import (
    has_class_token,
    is_comment_line,
    is_member_boundary,
)
from apinav.extractors.aspnet.templates import has_action_placeholder

# [HttpGet], [HttpGet()], [HttpGet("t")], [HttpGet("t", Name = "n")], also inside [A, B]
_VERB_ATTR = re.compile(
    r"\bHttp(?P<verb>Get|Post|Put|Delete)"
    r"(?:\s*\(\s*(?:\"(?P<template>[^\"]*)\")?[^)]*\))?"
    r"(?=\s*[,\]])"
)

_ROUTE_ATTR = re.compile(
    r"\bRoute\s*\(\s*\"(?P<template>[^\"]*)\"[^)]*\)"
    r"(?=\s*[,\]])"
)

AttributeKind = Literal["verb", "route"]


@dataclass(frozen=True)
class AttributeHit:
    kind: AttributeKind
    template: Optional[str]
    line_index: int
    column: int
    verb: Optional[HttpVerb] = None


@dataclass(frozen=True)
class ActionAttributes:
    verb: Optional[HttpVerb]
    fragment: Optional[str]
    has_route_attribute: bool


def attributes_on_line(line: str, line_index: int) -> list[AttributeHit]:
    """Verb hits left to right, then Route hits left to right."""
    hits: list[AttributeHit] = []
    for m in _VERB_ATTR.finditer(line):
        hits.append(
            AttributeHit(
                kind="verb",
                template=m.group("template"),
                line_index=line_index,
                column=m.start(),
                verb=m.group("verb").upper(),  # type: ignore[arg-type]
            )
        )
    for m in _ROUTE_ATTR.finditer(line):
        hits.append(
            AttributeHit(
                kind="route",
                template=m.group("template"),
                line_index=line_index,
                column=m.start(),
            )
        )
    return hits


def scan_attributes_above(
    lines: list[str],
    decl_index: int,
    window: int,
    decl_prefix: str = "",
) -> list[AttributeHit]:
    """
    Attribute hits above ``decl_index`` in discovery order (nearest first).
    ``decl_prefix`` is the text before the declaration on its own line, for
    ``[HttpGet] public IActionResult Get()`` style one-liners.
    """
    hits: list[AttributeHit] = attributes_on_line(decl_prefix, decl_index) if decl_prefix else []
    start = max(0, decl_index - window)

    for i in range(decl_index - 1, start - 1, -1):
        line = lines[i]
        if is_comment_line(line):
            continue
        if has_class_token(line) or is_member_boundary(line):
            break
        hits.extend(attributes_on_line(line, i))

    return hits


def nearest_route_template(hits: list[AttributeHit]) -> Optional[str]:
    for h in hits:
        if h.kind == "route":
            return h.template
    return None


def last_verb(hits: list[AttributeHit]) -> Optional[HttpVerb]:
    for h in reversed(hits):
        if h.kind == "verb":
            return h.verb
    return None


def first_fragment(hits: list[AttributeHit]) -> Optional[str]:
    for h in hits:
        if h.template:
            return h.template.strip()
    return None


def collect_action_attributes(hits: list[AttributeHit]) -> ActionAttributes:
    return ActionAttributes(
        verb=last_verb(hits),
        fragment=first_fragment(hits),
        has_route_attribute=any(h.kind == "route" for h in hits),
    )


def resolve_verb(attrs: ActionAttributes, controller_route: Optional[str]) -> Optional[HttpVerb]:
    """HTTP verb for an action, or None when the method is not an action."""
    if attrs.verb is not None:
        return attrs.verb
    if attrs.has_route_attribute or has_action_placeholder(controller_route):
        return "ANY"
    return None
