from __future__ import annotations

import json
from pathlib import Path

from apinav.config import state_dir_for_workspace
from apinav.errors import StoreError
from apinav.logging import get_logger

logger = get_logger(__name__)

VARIABLES_FILE_NAME = "variables.json"

# Written by ensure_template so users see the expected shape.
TEMPLATE = {"version:apiversion": "1.0"}


class VariableStore:
    """
    Route variable values, e.g. ``{"version:apiversion": "2.0"}`` turns
    ``/api/v{version:apiversion}/orders`` into ``/api/v2.0/orders`` for display.
    """

    def __init__(self, workspace_root: Path):
        self.workspace_root = workspace_root
        self._values: dict[str, str] = {}

    @property
    def path(self) -> Path:
        return state_dir_for_workspace(self.workspace_root) / VARIABLES_FILE_NAME

    def load(self) -> None:
        self._values = {}
        if not self.path.is_file():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8-sig"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable variables file %s: %s", self.path, e)
            return
        if not isinstance(raw, dict):
            logger.warning("Ignoring variables file %s: expected a JSON object", self.path)
            return
        self._values = {str(k): str(v) for k, v in raw.items()}

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._values, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Cannot write {self.path}: {e}") from e

    def ensure_template(self) -> bool:
        """Create the file with an example entry if it does not exist yet."""
        if self.path.exists():
            return False
        self._values = dict(TEMPLATE)
        self.save()
        return True

    def get_all(self) -> dict[str, str]:
        return dict(self._values)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self.save()

    def remove(self, key: str) -> bool:
        removed = self._values.pop(key, None) is not None
        self.save()
        return removed

    def replace_route_variables(self, route: str) -> str:
        # literal "{key}" replacement, keys may contain ":" constraints
        for key, value in self._values.items():
            route = route.replace("{" + key + "}", value)
        return route
