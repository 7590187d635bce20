from __future__ import annotations

import json
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from apinav.logging import get_logger

logger = get_logger(__name__)

RUN_PROJECT_COMMAND = "Project"

# Listen-on-everything hosts that a browser or HTTP client cannot connect to.
_WILDCARD_HOSTS = {"0.0.0.0", "*", "+", "::", "[::]"}


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith("\ufeff") else text


def find_project_profile(settings: Any) -> Optional[dict[str, Any]]:
    """First profile whose commandName runs the project itself."""
    if not isinstance(settings, dict):
        return None
    profiles = settings.get("profiles") or {}
    if not isinstance(profiles, dict):
        return None
    for profile in profiles.values():
        if isinstance(profile, dict) and profile.get("commandName") == RUN_PROJECT_COMMAND:
            return profile
    return None


def choose_application_url(raw: str) -> Optional[str]:
    """From a ';'-separated list prefer the first http:// URL, then https://."""
    urls = [u.strip() for u in raw.split(";") if u.strip()]
    for scheme in ("http://", "https://"):
        for u in urls:
            if u.lower().startswith(scheme):
                return u
    return None


def _split_authority(authority: str) -> tuple[str, str]:
    if authority.startswith("["):
        # IPv6 literal: [::1]:5000
        host, _, rest = authority.partition("]")
        return host + "]", rest[1:] if rest.startswith(":") else ""
    host, colon, port = authority.rpartition(":")
    if not colon:
        return authority, ""
    return host, port


def normalize_base_url(url: str) -> Optional[str]:
    """
    Rewrite wildcard/any-address hosts to ``localhost`` and drop one trailing
    slash. ``localhost``, real IPv4 addresses and named hosts are kept.
    """
    # urlsplit cannot parse "*" or "+" hosts with a port; swap them first
    scheme, sep, rest = url.partition("://")
    if not sep:
        return None
    authority, slash, path = rest.partition("/")
    host, port = _split_authority(authority)
    if host in _WILDCARD_HOSTS:
        authority = f"localhost:{port}" if port else "localhost"
        url = f"{scheme}://{authority}{slash}{path}"

    try:
        parts = urlsplit(url)
        parts.port  # validates the port number
    except ValueError:
        logger.debug("Unparseable application URL %r", url)
        return None
    if not parts.hostname:
        return None

    out = urlunsplit(parts)
    return out[:-1] if out.endswith("/") else out


def read_base_url(launch_settings_text: str) -> Optional[str]:
    """
    Base URL (scheme + host + port) of the run-the-project profile in a
    ``launchSettings.json`` document, or None when none can be determined.
    """
    try:
        settings = json.loads(strip_bom(launch_settings_text))
    except ValueError as e:
        logger.debug("Invalid launch settings JSON: %s", e)
        return None

    profile = find_project_profile(settings)
    if profile is None:
        return None

    raw = profile.get("applicationUrl")
    if not isinstance(raw, str) or not raw.strip():
        return None

    chosen = choose_application_url(raw)
    if chosen is None:
        return None
    return normalize_base_url(chosen)
