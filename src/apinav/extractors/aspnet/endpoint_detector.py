from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from apinav.config import ExplorerConfig, get_config
from apinav.domain.models import ApiEndpoint, ApiParameter, HttpVerb, ParameterSource
from apinav.extractors.aspnet.attributes import (
    collect_action_attributes,
    resolve_verb,
    scan_attributes_above,
)
from apinav.extractors.aspnet.declarations import match_method_declaration, split_lines
from apinav.extractors.aspnet.route_parser import find_controllers, find_owning_controller
from apinav.extractors.aspnet.templates import compose_route, extract_path_placeholders
from apinav.logging import get_logger
from apinav.repo.project_locator import find_project_descriptor

if TYPE_CHECKING:
    from apinav.project.config_cache import ProjectBaseUrlResolver

logger = get_logger(__name__)

# [attributes] [modifiers] Type Name [= default]
_PARAM = re.compile(
    r"^(?P<attrs>(?:\[[^\]]*\]\s*)*)"
    r"(?:(?:this|ref|out|in|params|scoped)\s+)*"
    r"(?P<type>[\w.]+(?:\s*<.*>)?(?:\[\s*\])*\??)\s+"
    r"(?P<name>@?\w+)\s*"
    r"(?P<default>=.*)?$",
    re.DOTALL,
)

_FROM_ATTR = re.compile(r"\bFrom(?P<source>Query|Body|Header|Route)\b")

_FROM_SOURCES = {
    "Query": ParameterSource.QUERY,
    "Body": ParameterSource.BODY,
    "Header": ParameterSource.HEADER,
    "Route": ParameterSource.PATH,
}

_VERB_DEFAULT_SOURCES: dict[str, ParameterSource] = {
    "GET": ParameterSource.QUERY,
    "DELETE": ParameterSource.QUERY,
    "POST": ParameterSource.BODY,
    "PUT": ParameterSource.BODY,
    "ANY": ParameterSource.QUERY,
}

_CLOSERS = {")": "(", ">": "<", "]": "[", "}": "{"}


@dataclass(frozen=True)
class FormalParameter:
    attributes: str
    declared_type: str
    name: str
    has_default: bool


def capture_signature(lines: list[str], decl_index: int, open_paren: int, window: int) -> str:
    """
    Declaration text from the method's "(" down to the line where parenthesis
    nesting returns to zero, reading at most ``window`` lines below.
    """
    parts: list[str] = []
    depth = 0
    opened = False
    last = min(len(lines), decl_index + window + 1)

    for i in range(decl_index, last):
        text = lines[i][open_paren:] if i == decl_index else lines[i]
        for j, ch in enumerate(text):
            if ch == "(":
                depth += 1
                opened = True
            elif ch == ")":
                depth -= 1
                if opened and depth == 0:
                    parts.append(text[: j + 1])
                    return " ".join(parts)
        parts.append(text)

    return " ".join(parts)


def parameter_list_text(signature: str) -> str:
    """Text between the outermost parentheses of a captured signature."""
    start = signature.find("(")
    if start < 0:
        return ""
    end = signature.rfind(")")
    if end <= start:
        # unterminated signature: take what we have
        return signature[start + 1 :]
    return signature[start + 1 : end]


def split_parameters(text: str) -> list[str]:
    """Split on commas outside generics, brackets, parens and string literals."""
    parts: list[str] = []
    stack: list[str] = []
    current: list[str] = []
    in_string = False
    prev = ""

    for ch in text:
        if in_string:
            current.append(ch)
            if ch == '"' and prev != "\\":
                in_string = False
        elif ch == '"':
            in_string = True
            current.append(ch)
        elif ch in "(<[{":
            stack.append(ch)
            current.append(ch)
        elif ch in _CLOSERS:
            if stack and stack[-1] == _CLOSERS[ch]:
                stack.pop()
            current.append(ch)
        elif ch == "," and not stack:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        prev = ch

    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def parse_formal_parameter(text: str) -> Optional[FormalParameter]:
    m = _PARAM.match(text.strip())
    if m is None:
        return None
    return FormalParameter(
        attributes=m.group("attrs") or "",
        declared_type=re.sub(r"\s+", " ", m.group("type")).strip(),
        name=m.group("name").lstrip("@"),
        has_default=m.group("default") is not None,
    )


def is_cancellation_token(declared_type: str) -> bool:
    simple = declared_type.strip().rstrip("?").split(".")[-1]
    return simple.lower() == "cancellationtoken"


def classify_parameter(
    param: FormalParameter,
    verb: HttpVerb,
    path_placeholders: list[str],
) -> ParameterSource:
    """
    Binding source: explicit [From*] first, then a matching route placeholder,
    then the verb default (GET/DELETE -> Query, POST/PUT -> Body).
    """
    m = _FROM_ATTR.search(param.attributes)
    if m is not None:
        return _FROM_SOURCES[m.group("source")]
    if param.name.lower() in path_placeholders:
        return ParameterSource.PATH
    return _VERB_DEFAULT_SOURCES[verb]


def is_required(param: FormalParameter, infer_optional: bool) -> bool:
    if not infer_optional:
        return True
    return not (param.declared_type.endswith("?") or param.has_default)


def parse_method_parameters(
    lines: list[str],
    decl_index: int,
    open_paren: int,
    verb: HttpVerb,
    route_template: str,
    config: ExplorerConfig,
) -> list[ApiParameter]:
    signature = capture_signature(lines, decl_index, open_paren, config.signature_window)
    placeholders = extract_path_placeholders(route_template)
    out: list[ApiParameter] = []

    for raw in split_parameters(parameter_list_text(signature)):
        param = parse_formal_parameter(raw)
        if param is None:
            logger.debug("Unrecognised parameter %r at line %d", raw, decl_index + 1)
            continue
        if is_cancellation_token(param.declared_type):
            continue
        out.append(
            ApiParameter(
                name=param.name,
                declared_type=param.declared_type,
                source=classify_parameter(param, verb, placeholders),
                required=is_required(param, config.infer_optional_parameters),
            )
        )

    return out


def detect_api_endpoint(
    text: str,
    line: int,
    file_path: str = "",
    resolver: Optional["ProjectBaseUrlResolver"] = None,
    config: Optional[ExplorerConfig] = None,
) -> Optional[ApiEndpoint]:
    """
    Endpoint declared at ``line`` (1-based, the method declaration line), with
    classified parameters and the project's base URL merged in. Returns None when
    the line is not an action of a controller.
    """
    config = config or get_config()
    lines = split_lines(text)
    decl_index = line - 1
    if decl_index < 0 or decl_index >= len(lines):
        return None

    method = match_method_declaration(lines[decl_index])
    if method is None:
        return None

    controller = find_owning_controller(find_controllers(lines, config), decl_index)
    if controller is None:
        return None

    hits = scan_attributes_above(
        lines, decl_index, config.detector_window, decl_prefix=lines[decl_index][: method.start]
    )
    attrs = collect_action_attributes(hits)
    verb = resolve_verb(attrs, controller.base_route)
    if verb is None:
        return None

    route_path = compose_route(
        controller.base_route, attrs.fragment, controller.name, method.name, config.controller_suffix
    )
    parameters = parse_method_parameters(lines, decl_index, method.open_paren, verb, route_path, config)

    project_path: Optional[str] = None
    full_url: Optional[str] = None
    if file_path:
        if resolver is not None:
            descriptor = resolver.get_project_descriptor(file_path)
            base_url = resolver.get_base_url_for_file(file_path)
            full_url = f"{base_url}{route_path}" if base_url else None
        else:
            descriptor = find_project_descriptor(
                file_path, config.project_extension, config.project_search_depth
            )
        project_path = str(descriptor) if descriptor else None

    return ApiEndpoint(
        route_path=route_path,
        http_verb=verb,
        controller_name=controller.name,
        action_name=method.name,
        source_file=file_path,
        declaration_line=line,
        project_descriptor_path=project_path,
        action_route_fragment=attrs.fragment,
        full_url=full_url,
        parameters=parameters,
    )


def detect_api_endpoint_in_file(
    path: Path,
    line: int,
    resolver: Optional["ProjectBaseUrlResolver"] = None,
    config: Optional[ExplorerConfig] = None,
) -> Optional[ApiEndpoint]:
    """Read the file and detect; an unreadable file yields None."""
    try:
        text = path.read_text(encoding="utf-8-sig", errors="ignore")
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return None
    return detect_api_endpoint(text, line, file_path=str(path), resolver=resolver, config=config)
