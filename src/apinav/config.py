"""
Configuration for apinav.

Settings are read from ``<workspace>/.apinav/config.json`` when that file exists;
every key is optional and falls back to the defaults below.

Example ``config.json``::

    {
        "exclude_patterns": ["**/bin/**", "**/obj/**", "**/samples/**"],
        "sort_by": "controller",
        "infer_optional_parameters": true
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from apinav.logging import get_logger

logger = get_logger(__name__)

STATE_DIR_NAME = ".apinav"
CONFIG_FILE_NAME = "config.json"

DEFAULT_EXCLUDE_PATTERNS = [
    "**/bin/**",
    "**/obj/**",
    "**/node_modules/**",
    "**/.vs/**",
    "**/.git/**",
    "**/.github/**",
    "**/.idea/**",
    "**/.vscode/**",
    "**/dist/**",
    "**/out/**",
    "**/build/**",
    "**/wwwroot/lib/**",
]

SortKey = Literal["route", "controller", "httpVerb"]


class ExplorerConfig(BaseModel):
    """
    Settings for route discovery and presentation.

    Attributes:
        exclude_patterns: Glob patterns (workspace-relative) never enumerated
        source_extension: Extension of candidate source files
        controller_suffix: Naming convention suffix for controller classes
        project_extension: Extension of project descriptor files
        launch_settings_path: Launch profile file, relative to a project directory
        controller_window: Lines scanned above a controller for its [Route]
        action_window: Lines scanned above an action during workspace parsing
        detector_window: Lines scanned above an action by the endpoint detector
        signature_window: Lines joined above/below a declaration for its signature
        project_search_depth: Directory levels walked looking for a project file
        sort_by: Route ordering inside the tree (aliased routes always first)
        infer_optional_parameters: Mark nullable/defaulted parameters optional
    """

    exclude_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="Glob patterns to skip during enumeration",
    )
    source_extension: str = Field(default=".cs", description="Source file extension")
    controller_suffix: str = Field(default="Controller", description="Controller class suffix")
    project_extension: str = Field(default=".csproj", description="Project file extension")
    launch_settings_path: str = Field(
        default="Properties/launchSettings.json",
        description="Launch profile file relative to the project directory",
    )

    controller_window: int = Field(default=10, ge=1)
    action_window: int = Field(default=5, ge=1)
    detector_window: int = Field(default=10, ge=1)
    signature_window: int = Field(default=10, ge=1)
    project_search_depth: int = Field(default=10, ge=1)

    sort_by: SortKey = Field(default="route", description="route | controller | httpVerb")
    infer_optional_parameters: bool = Field(
        default=False,
        description="When false every parameter is reported as required",
    )

    @property
    def controller_file_suffix(self) -> str:
        # e.g. "Controller.cs"
        return f"{self.controller_suffix}{self.source_extension}"


def state_dir_for_workspace(workspace_root: Path) -> Path:
    return workspace_root / STATE_DIR_NAME


def load_config(workspace_root: Path) -> ExplorerConfig:
    """Load ``.apinav/config.json``; a missing or broken file gives defaults."""
    path = state_dir_for_workspace(workspace_root) / CONFIG_FILE_NAME
    if not path.is_file():
        return ExplorerConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8-sig"))
        return ExplorerConfig.model_validate(raw)
    except (OSError, ValueError, ValidationError) as e:
        logger.warning("Ignoring invalid config %s: %s", path, e)
        return ExplorerConfig()


_config: Optional[ExplorerConfig] = None


def get_config() -> ExplorerConfig:
    global _config
    if _config is None:
        _config = ExplorerConfig()
    return _config


def set_config(config: ExplorerConfig) -> None:
    global _config
    _config = config
