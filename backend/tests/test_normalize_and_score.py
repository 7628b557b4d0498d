"""
Tests for RawPost normalization and quality scoring.
"""

from datetime import datetime

import pytest

from constants import DEFAULT_QUALITY_SCORE, POST_STATUS_ACTIVE
from scrapers.base import RawPost
from scrapers.normalizer import normalize_raw_post
from scrapers.quality import compute_quality_score, score_candidate


def _raw_post(**overrides):
    fields = dict(
        id="medium_1a2b3c4d5e6f",
        title="Scaling a remote engineering team",
        content="A long-form account of how we hired, onboarded and kept people. " * 10,
        url="https://medium.com/@alice/scaling-1a2b3c4d5e6f",
        platform="medium",
        author="Alice",
        created_at=datetime(2024, 1, 5, 9, 30),
        likes=120,
        comments=None,
        shares=None,
        views=None,
        thumbnail="https://miro.medium.com/cover.png",
        media_urls=[{"type": "image", "url": "https://miro.medium.com/cover.png"}],
        tags=["leadership", "remote"],
        extra={"reading_time": 7},
    )
    fields.update(overrides)
    return RawPost(**fields)


# =============================================================================
# Normalizer
# =============================================================================

class TestNormalizeRawPost:
    """Tests for normalize_raw_post()"""

    def test_copies_content_and_context(self):
        scraped_at = datetime(2024, 6, 1, 12, 0)
        raw = _raw_post()
        candidate = normalize_raw_post(raw, community_id=7, owner_id=3, scraped_at=scraped_at)

        assert candidate.title == raw.title
        assert candidate.content == raw.content
        assert candidate.source_url == raw.url
        assert candidate.platform == "medium"
        assert candidate.original_id == raw.id
        assert candidate.community_id == 7
        assert candidate.owner_id == 3
        assert candidate.thumbnail == raw.thumbnail
        assert candidate.media_urls == raw.media_urls
        assert candidate.scraping_metadata.scraped_at == scraped_at
        assert candidate.scraping_metadata.original_author == "Alice"
        assert candidate.scraping_metadata.original_created_at == datetime(2024, 1, 5, 9, 30)
        assert candidate.scraping_metadata.tags == ["leadership", "remote"]

    def test_unknown_counts_become_zero(self):
        candidate = normalize_raw_post(_raw_post(), community_id=1, owner_id=1)
        assert candidate.engagement.to_dict() == {"likes": 120, "comments": 0, "shares": 0, "views": 0}

    def test_defaults_for_local_state(self):
        candidate = normalize_raw_post(_raw_post(), community_id=1, owner_id=1)
        assert candidate.local_engagement.to_dict() == {"likes": 0, "comments": 0, "bookmarks": 0}
        assert candidate.is_promoted is False
        assert candidate.status == POST_STATUS_ACTIVE
        assert candidate.scraping_metadata.quality_score == DEFAULT_QUALITY_SCORE

    def test_scraped_at_defaults_to_now(self):
        before = datetime.utcnow()
        candidate = normalize_raw_post(_raw_post(), community_id=1, owner_id=1)
        assert candidate.scraping_metadata.scraped_at >= before

    def test_does_not_share_lists_with_raw_post(self):
        raw = _raw_post()
        candidate = normalize_raw_post(raw, community_id=1, owner_id=1)
        candidate.scraping_metadata.tags.append("mutated")
        assert "mutated" not in raw.tags


# =============================================================================
# Quality scorer
# =============================================================================

class TestQualityScore:
    """Tests for compute_quality_score()"""

    def test_insufficient_signal_returns_default(self):
        assert compute_quality_score("reddit", "Hi", "short post", tags=[]) == DEFAULT_QUALITY_SCORE

    def test_short_content_with_tags_is_scored(self):
        score = compute_quality_score("reddit", "Hiring update", "short post", tags=["hiring"])
        assert score != DEFAULT_QUALITY_SCORE
        assert 0.0 <= score <= 1.0

    def test_richer_content_scores_higher(self):
        thin = compute_quality_score("medium", "A useful title", "x" * 80, tags=["one"])
        rich = compute_quality_score("medium", "A useful title", "x" * 1500, tags=["a", "b", "c", "d", "e"],
                                     has_media=True, has_author=True)
        assert rich > thin

    def test_platform_weight(self):
        args = dict(title="Same title here", content="y" * 600, tags=["a", "b"], has_media=True)
        assert compute_quality_score("medium", **args) > compute_quality_score("twitter", **args)

    @pytest.mark.parametrize("platform", ["medium", "linkedin", "reddit", "twitter", "unknown"])
    @pytest.mark.parametrize("length", [0, 49, 50, 500, 10000])
    @pytest.mark.parametrize("tag_count", [0, 1, 20])
    def test_always_within_bounds(self, platform, length, tag_count):
        score = compute_quality_score(
            platform,
            "T" * 50,
            "c" * length,
            tags=[f"t{i}" for i in range(tag_count)],
            has_media=True,
            has_author=True,
        )
        assert 0.0 <= score <= 1.0

    def test_deterministic(self):
        candidate = normalize_raw_post(_raw_post(), community_id=1, owner_id=1)
        assert score_candidate(candidate) == score_candidate(candidate)

    def test_ignores_engagement(self):
        low = normalize_raw_post(_raw_post(likes=0), community_id=1, owner_id=1)
        high = normalize_raw_post(_raw_post(likes=1_000_000), community_id=1, owner_id=1)
        assert score_candidate(low) == score_candidate(high)
