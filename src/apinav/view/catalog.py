from __future__ import annotations

from typing import Callable, Optional

from apinav.config import SortKey
from apinav.domain.models import RouteRecord
from apinav.errors import ApiNavError
from apinav.logging import get_logger
from apinav.orchestrator.pipeline import ScanResult
from apinav.store.variables import VariableStore
from apinav.view.tree import ProjectGroup, build_route_tree

logger = get_logger(__name__)

_SORT_FIELDS: dict[str, Callable[[RouteRecord], str]] = {
    "route": lambda r: r.route_path.lower(),
    "controller": lambda r: r.controller_name.lower(),
    "httpVerb": lambda r: r.http_verb,
}


def matches_search(route: RouteRecord, needle: str) -> bool:
    needle = needle.lower()
    return any(
        needle in value.lower()
        for value in (
            route.route_path,
            route.controller_name,
            route.action_name,
            route.alias or "",
            route.http_verb,
        )
    )


def sort_routes(routes: list[RouteRecord], sort_by: SortKey = "route") -> list[RouteRecord]:
    """Aliased routes first, then by the chosen field. Stable for ties."""
    key = _SORT_FIELDS.get(sort_by, _SORT_FIELDS["route"])
    return sorted(routes, key=lambda r: (r.alias is None, key(r)))


class RouteCatalog:
    """Current route set plus search state, as shown by the tree."""

    def __init__(
        self,
        variables: Optional[VariableStore] = None,
        sort_by: SortKey = "route",
        controller_suffix: str = "Controller",
    ):
        self.variables = variables
        self.sort_by = sort_by
        self.controller_suffix = controller_suffix
        self._routes: list[RouteRecord] = []
        self._search_text = ""

    @property
    def routes(self) -> list[RouteRecord]:
        return list(self._routes)

    @property
    def search_text(self) -> str:
        return self._search_text

    def is_searching(self) -> bool:
        return bool(self._search_text.strip())

    def set_routes(self, routes: list[RouteRecord]) -> None:
        self._routes = list(routes)

    def set_search_text(self, text: str) -> None:
        self._search_text = (text or "").lower()

    def refresh(self, scan: Callable[[], ScanResult]) -> ScanResult:
        """
        Replace the route set with a fresh scan. If the scan raises, the previous
        routes stay in place and the error propagates to the caller.
        """
        try:
            result = scan()
        except ApiNavError:
            logger.warning("Refresh failed; keeping %d previous routes", len(self._routes))
            raise
        self.set_routes(result.routes)
        return result

    def filtered(self) -> list[RouteRecord]:
        routes = self._routes
        if self.is_searching():
            routes = [r for r in routes if matches_search(r, self._search_text.strip())]
        return sort_routes(routes, self.sort_by)

    def groups(self) -> list[ProjectGroup]:
        replace = self.variables.replace_route_variables if self.variables is not None else None
        return build_route_tree(self.filtered(), replace, self.controller_suffix)

    def find(self, query: str) -> list[RouteRecord]:
        """Routes whose alias or route equals ``query``, else those matching it."""
        q = query.strip().lower()
        exact = [r for r in self._routes if (r.alias or "").lower() == q or r.route_path.lower() == q]
        return exact or [r for r in self._routes if matches_search(r, q)]
