import re
from enum import StrEnum
from typing import Any, Mapping

_CLOUD_WEB = re.compile(r"^https?://(www\.)?bitbucket\.org", re.IGNORECASE)
_CLOUD_API = re.compile(r"^https?://api\.bitbucket\.org(/|$)", re.IGNORECASE)
_CLOUD_PATH = re.compile(r"^https?://[^/]+/2\.0(/|$)", re.IGNORECASE)
_REST_PATH = re.compile(r"/rest/api/", re.IGNORECASE)
_WORKSPACE = re.compile(r"^https?://(www\.)?bitbucket\.org/([^/]+)", re.IGNORECASE)

CLOUD_API_URL = "https://api.bitbucket.org/2.0"


class Platform(StrEnum):
    CLOUD = "cloud"
    DATACENTER = "datacenter"


def detect_platform(url: str) -> Platform:
    normalized = url.rstrip("/")
    if _CLOUD_WEB.match(normalized) or _CLOUD_API.match(normalized):
        return Platform.CLOUD
    # proxies and mock servers in front of the cloud API keep its /2.0 prefix
    if _CLOUD_PATH.match(normalized):
        return Platform.CLOUD
    return Platform.DATACENTER


def normalize_base_url(url: str) -> str:
    """Turn whatever the user configured into the REST API root.

    - ``https://bitbucket.org/workspace`` -> ``https://api.bitbucket.org/2.0``
    - ``https://api.bitbucket.org`` -> ``https://api.bitbucket.org/2.0``
    - self-hosted URLs get ``/rest/api/latest`` unless a REST path is present
    """
    normalized = url.rstrip("/")
    if _CLOUD_WEB.match(normalized):
        return CLOUD_API_URL
    if _CLOUD_API.match(normalized):
        return normalized if normalized.endswith("/2.0") else CLOUD_API_URL
    if _CLOUD_PATH.match(normalized):
        return normalized
    if not _REST_PATH.search(normalized):
        return f"{normalized}/rest/api/latest"
    return normalized


def extract_workspace_from_url(url: str) -> str | None:
    match = _WORKSPACE.match(url)
    if match is None:
        return None
    return match.group(2)


def clean_query(params: Mapping[str, Any] | None) -> dict[str, str | int | float]:
    """Drop unset values and render booleans the way Bitbucket expects them."""
    cleaned: dict[str, str | int | float] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        else:
            cleaned[key] = value
    return cleaned
