from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from apinav.config import state_dir_for_workspace
from apinav.domain.models import AliasEntry, RouteRecord
from apinav.errors import StoreError
from apinav.logging import get_logger

logger = get_logger(__name__)

ALIAS_FILE_NAME = "aliases.json"


def _make_key(route: str, http_verb: str) -> str:
    return f"{http_verb.lower()}:{route.lower()}"


def _parse_key(key: str) -> tuple[str, str]:
    http_verb, _, route = key.partition(":")
    return route, http_verb


class AliasStore:
    """Human-friendly names for routes, keyed by (verb, route) case-insensitively.

    Persisted as a JSON list of ``{"Route", "HttpVerb", "Alias"}`` objects under
    ``<workspace>/.apinav/aliases.json``.
    """

    def __init__(self, workspace_root: Path):
        self.workspace_root = workspace_root
        self._aliases: dict[str, str] = {}

    @property
    def path(self) -> Path:
        return state_dir_for_workspace(self.workspace_root) / ALIAS_FILE_NAME

    def load(self) -> None:
        """Reload from disk; a missing or malformed file leaves the store empty."""
        self._aliases.clear()
        if not self.path.is_file():
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8-sig"))
            entries = [AliasEntry.model_validate(item) for item in raw]
        except (OSError, ValueError, TypeError, ValidationError) as e:
            logger.warning("Ignoring unreadable alias file %s: %s", self.path, e)
            return

        for entry in entries:
            self._aliases[_make_key(entry.route, entry.http_verb)] = entry.alias

    def save(self) -> None:
        payload = [e.model_dump(by_alias=True) for e in self.entries()]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Cannot write {self.path}: {e}") from e

    def entries(self) -> list[AliasEntry]:
        out = []
        for key, alias in self._aliases.items():
            route, http_verb = _parse_key(key)
            out.append(AliasEntry(route=route, http_verb=http_verb, alias=alias))
        return out

    def get_alias(self, route: str, http_verb: str) -> Optional[str]:
        return self._aliases.get(_make_key(route, http_verb))

    def has_alias(self, route: str, http_verb: str) -> bool:
        return _make_key(route, http_verb) in self._aliases

    def set_alias(self, route: str, http_verb: str, alias: str) -> None:
        self._aliases[_make_key(route, http_verb)] = alias
        self.save()

    def clear_alias(self, route: str, http_verb: str) -> bool:
        removed = self._aliases.pop(_make_key(route, http_verb), None) is not None
        self.save()
        return removed

    def apply(self, routes: Iterable[RouteRecord]) -> list[RouteRecord]:
        """Copies of the routes with their alias attached (or cleared)."""
        return [r.with_alias(self.get_alias(r.route_path, r.http_verb)) for r in routes]
