"""
Consistent Hashing for Identity and Change Detection

Provides deterministic hashing for:
- Stable post identity when a URL carries no content identifier
- Scraping config snapshots on run records
"""
import hashlib
import json
from typing import Any
from datetime import date, datetime
from urllib.parse import urlsplit, urlunsplit


def normalize_json_for_hash(data: Any) -> Any:
    """
    Normalize JSON data for consistent hashing.

    - Sorts dictionary keys
    - Converts dates to ISO strings
    - Removes None values
    - Normalizes whitespace
    - Sets become sorted lists
    """
    if data is None:
        return None

    if isinstance(data, dict):
        return {
            k: normalize_json_for_hash(v)
            for k, v in sorted(data.items())
            if v is not None
        }

    if isinstance(data, (set, frozenset)):
        return sorted(normalize_json_for_hash(item) for item in data)

    if isinstance(data, (list, tuple)):
        return [normalize_json_for_hash(item) for item in data]

    if isinstance(data, (datetime, date)):
        return data.isoformat()

    if isinstance(data, float):
        return round(data, 10)

    if isinstance(data, str):
        return " ".join(data.split())

    return data


def compute_json_hash(data: Any) -> str:
    """
    Compute SHA256 hash of JSON data, independent of key order and whitespace.

    Returns:
        64-character hex SHA256 hash
    """
    normalized = normalize_json_for_hash(data)
    json_str = json.dumps(normalized, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(json_str.encode("utf-8")).hexdigest()


def canonicalize_url(url: str) -> str:
    """
    Canonical form of a content URL for identity purposes.

    Lowercases scheme and host, drops query string, fragment and trailing
    slash. Tracking parameters vary between listings of the same post.
    """
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, "", ""))


def compute_url_hash(url: str, length: int = 16) -> str:
    """Short, stable hex digest of the canonical URL."""
    digest = hashlib.sha256(canonicalize_url(url).encode("utf-8")).hexdigest()
    return digest[:length]
