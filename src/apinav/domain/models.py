from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

HttpVerb = Literal["GET", "POST", "PUT", "DELETE", "ANY"]


class ParameterSource(str, Enum):
    PATH = "Path"
    QUERY = "Query"
    BODY = "Body"
    HEADER = "Header"


def normalize_route_path(route: str) -> str:
    # exactly one leading slash, "/" when empty
    stripped = (route or "").lstrip("/")
    return "/" + stripped


class RouteRecord(BaseModel):
    """One discovered controller action."""

    route_path: str
    http_verb: HttpVerb
    controller_name: str
    action_name: str
    source_file: str = ""
    declaration_line: int = 1  # 1-based
    project_descriptor_path: Optional[str] = None
    action_route_fragment: Optional[str] = None
    alias: Optional[str] = None

    @field_validator("route_path")
    @classmethod
    def _leading_slash(cls, v: str) -> str:
        return normalize_route_path(v)

    def with_alias(self, alias: Optional[str]) -> "RouteRecord":
        return self.model_copy(update={"alias": alias or None})

    @property
    def location(self) -> str:
        return f"{self.source_file}:{self.declaration_line}"


class ApiParameter(BaseModel):
    name: str
    declared_type: str
    source: ParameterSource
    required: bool = True


class ApiEndpoint(RouteRecord):
    """Single endpoint with resolved URL and classified parameters."""

    full_url: Optional[str] = None
    parameters: list[ApiParameter] = Field(default_factory=list)

    @property
    def request_url(self) -> str:
        return self.full_url or self.route_path

    def parameters_from(self, source: ParameterSource) -> list[ApiParameter]:
        return [p for p in self.parameters if p.source == source]


class AliasEntry(BaseModel):
    """Persisted alias row; field names match the on-disk JSON."""

    model_config = ConfigDict(populate_by_name=True)

    route: str = Field(alias="Route")
    http_verb: str = Field(alias="HttpVerb")
    alias: str = Field(alias="Alias")
