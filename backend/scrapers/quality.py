"""
Quality Scorer - bounded [0, 1] content richness signal.

Pure function of the candidate's own fields: content length, tag count,
media presence, title shape and a per-platform weight. Not a measure of
platform popularity, so engagement counters are ignored.
"""
from constants import DEFAULT_QUALITY_SCORE, Platform

# Below this many characters with no tags there is not enough signal
MIN_CONTENT_LENGTH = 50

CONTENT_TARGET_LENGTH = 1500
TAG_TARGET_COUNT = 5

BASE_SCORE = 0.1
CONTENT_WEIGHT = 0.45
TAG_WEIGHT = 0.2
MEDIA_WEIGHT = 0.1
TITLE_WEIGHT = 0.1
AUTHOR_WEIGHT = 0.05

PLATFORM_WEIGHTS = {
    Platform.MEDIUM.value: 1.0,
    Platform.LINKEDIN.value: 0.95,
    Platform.REDDIT.value: 0.9,
    Platform.TWITTER.value: 0.85,
}


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def compute_quality_score(
    platform: str,
    title: str,
    content: str,
    tags=(),
    has_media: bool = False,
    has_author: bool = False,
) -> float:
    """
    Score content richness.

    Returns:
        Float in [0, 1], rounded to 4 places; DEFAULT_QUALITY_SCORE when the
        content is very short and untagged
    """
    content = (content or "").strip()
    tag_count = len(set(tags or ()))

    if len(content) < MIN_CONTENT_LENGTH and tag_count == 0:
        return DEFAULT_QUALITY_SCORE

    score = BASE_SCORE
    score += CONTENT_WEIGHT * min(len(content) / CONTENT_TARGET_LENGTH, 1.0)
    score += TAG_WEIGHT * min(tag_count / TAG_TARGET_COUNT, 1.0)
    if has_media:
        score += MEDIA_WEIGHT
    title_length = len((title or "").strip())
    if 10 <= title_length <= 200:
        score += TITLE_WEIGHT
    if has_author:
        score += AUTHOR_WEIGHT

    score *= PLATFORM_WEIGHTS.get(platform, 0.8)
    return round(_clamp(score), 4)


def score_candidate(candidate) -> float:
    """Score a PostCandidate from its own fields."""
    return compute_quality_score(
        platform=candidate.platform,
        title=candidate.title,
        content=candidate.content,
        tags=candidate.scraping_metadata.tags,
        has_media=bool(candidate.thumbnail or candidate.media_urls),
        has_author=bool(candidate.scraping_metadata.original_author),
    )
