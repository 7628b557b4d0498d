"""URL resolution and media classification helpers."""
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

from .hashing import compute_url_hash

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg", ".avif")
VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".m4v", ".m3u8", ".avi")

IMAGE_HOSTS = ("miro.medium.com", "cdn-images-1.medium.com", "i.redd.it", "preview.redd.it",
               "pbs.twimg.com", "media.licdn.com")
VIDEO_HOSTS = ("v.redd.it", "video.twimg.com", "dms.licdn.com")

# Trailing segment that looks like a content identifier:
# hex hash (medium), numeric id (twitter/linkedin), base36 id (reddit)
_CONTENT_ID_PATTERNS = (
    re.compile(r"^[a-f0-9]{8,}$"),
    re.compile(r"^\d{6,}$"),
)


def is_absolute_http(url: Optional[str]) -> bool:
    if not url:
        return False
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def resolve_url(base_url: str, href: Optional[str]) -> Optional[str]:
    """
    Resolve a (possibly relative) href against a base URL.

    Returns:
        Absolute http(s) URL, or None if href is empty or not resolvable
        (javascript:, mailto:, bare fragments).
    """
    if not href:
        return None
    href = href.strip()
    if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
        return None
    resolved = urljoin(base_url.rstrip("/") + "/", href)
    return resolved if is_absolute_http(resolved) else None


def _path_and_host(url: str):
    parts = urlsplit(url)
    return parts.path.lower(), parts.netloc.lower()


def is_image_url(url: Optional[str]) -> bool:
    if not url:
        return False
    path, host = _path_and_host(url)
    return path.endswith(IMAGE_EXTENSIONS) or host in IMAGE_HOSTS


def is_video_url(url: Optional[str]) -> bool:
    if not url:
        return False
    path, host = _path_and_host(url)
    return path.endswith(VIDEO_EXTENSIONS) or host in VIDEO_HOSTS


def classify_media_url(url: Optional[str]) -> Optional[str]:
    """Return 'video', 'image' or None."""
    if is_video_url(url):
        return "video"
    if is_image_url(url):
        return "image"
    return None


def trailing_content_id(url: str) -> Optional[str]:
    """
    Content identifier from the URL's trailing path segment.

    Medium slugs end in '-<hex>', so the part after the last hyphen is
    checked as well as the whole segment.
    """
    path = urlsplit(url).path.rstrip("/")
    if not path:
        return None
    segment = path.rsplit("/", 1)[-1].lower()
    candidates = [segment]
    if "-" in segment:
        candidates.append(segment.rsplit("-", 1)[-1])
    for candidate in candidates:
        for pattern in _CONTENT_ID_PATTERNS:
            if pattern.match(candidate):
                return candidate
    return None


def derive_post_id(platform: str, url: str) -> str:
    """
    Deterministic post id: trailing content id when present, otherwise a
    hash of the canonical URL. Re-scrapes of the same URL get the same id.
    """
    content_id = trailing_content_id(url)
    if content_id:
        return f"{platform}_{content_id}"
    return f"{platform}_u{compute_url_hash(url)}"
