from __future__ import annotations


class ApiNavError(Exception):
    """Base class for errors surfaced to the caller."""


class WorkspaceScanError(ApiNavError):
    """The workspace could not be scanned at all (e.g. enumeration failed).

    Per-file problems never raise this; they degrade to "no routes from that file".
    """

    def __init__(self, workspace: str, reason: str):
        super().__init__(f"Failed to scan workspace {workspace}: {reason}")
        self.workspace = workspace
        self.reason = reason


class ScanCancelled(ApiNavError):
    """A workspace scan was aborted between files."""


class StoreError(ApiNavError):
    """An alias or variable file could not be written."""
