"""Scraper utility functions."""

from .hashing import compute_json_hash, compute_url_hash, canonicalize_url
from .urls import (
    resolve_url,
    is_absolute_http,
    is_image_url,
    is_video_url,
    classify_media_url,
    derive_post_id,
)
from .extraction import (
    first_text,
    first_attr,
    parse_number,
    parse_reading_time,
    parse_datetime,
    extract_tags,
    matches_keywords,
)

__all__ = [
    "compute_json_hash",
    "compute_url_hash",
    "canonicalize_url",
    "resolve_url",
    "is_absolute_http",
    "is_image_url",
    "is_video_url",
    "classify_media_url",
    "derive_post_id",
    "first_text",
    "first_attr",
    "parse_number",
    "parse_reading_time",
    "parse_datetime",
    "extract_tags",
    "matches_keywords",
]
