"""
Tests for the shared scraper pipeline (BaseScraper), exercised through
MediumScraper with mocked HTTP.

Tests:
- ScrapeConfig parsing
- Source resolution errors
- Page limits, max_posts truncation, empty-page stop
- Keyword filtering
- Pacing between fetches
- 429 backoff/retry and non-2xx handling
- Cancellation at page granularity
"""

import threading
from unittest.mock import patch

import pytest
import requests

from scrapers.base import ScrapeConfig
from scrapers.errors import ConfigError, ErrorKind, NetworkError, RateLimitError
from scrapers.platforms.medium import MediumScraper
from helpers import make_response, medium_page


SOURCE_URL = "https://medium.com/@alice"


@pytest.fixture
def scraper(scraper_kwargs):
    return MediumScraper(**scraper_kwargs)


# =============================================================================
# ScrapeConfig
# =============================================================================

class TestScrapeConfig:
    """Tests for ScrapeConfig.from_dict()"""

    def test_camel_case_keys(self):
        config = ScrapeConfig.from_dict({"sourceUrl": SOURCE_URL, "keywords": ["AI", " "], "maxPosts": 5})
        assert config.source_url == SOURCE_URL
        assert config.keywords == frozenset({"AI"})
        assert config.max_posts == 5

    def test_snake_case_keys_and_default_max_posts(self):
        config = ScrapeConfig.from_dict({"source_url": SOURCE_URL})
        assert config.max_posts == 50
        assert config.keywords == frozenset()

    def test_missing_source_url(self):
        with pytest.raises(ConfigError):
            ScrapeConfig.from_dict({"maxPosts": 5})

    def test_null_max_posts_uses_default(self):
        config = ScrapeConfig.from_dict({"sourceUrl": SOURCE_URL, "maxPosts": None, "keywords": None})
        assert config.max_posts == 50
        assert config.keywords == frozenset()

    def test_single_keyword_string(self):
        config = ScrapeConfig.from_dict({"sourceUrl": SOURCE_URL, "keywords": "growth"})
        assert config.keywords == frozenset({"growth"})

    @pytest.mark.parametrize("keywords", [5, {"growth": True}, 1.5])
    def test_invalid_keywords(self, keywords):
        with pytest.raises(ConfigError):
            ScrapeConfig.from_dict({"sourceUrl": SOURCE_URL, "keywords": keywords})

    @pytest.mark.parametrize("max_posts", [0, -3, "many"])
    def test_invalid_max_posts(self, max_posts):
        with pytest.raises(ConfigError):
            ScrapeConfig.from_dict({"sourceUrl": SOURCE_URL, "maxPosts": max_posts})


# =============================================================================
# Pagination and limits
# =============================================================================

class TestScrapeContent:
    """Tests for scrape_content() page loop"""

    def test_unrecognised_url_raises_config_error(self, scraper):
        with patch("requests.Session.get") as mock_get:
            with pytest.raises(ConfigError) as exc_info:
                scraper.scrape_content(ScrapeConfig(source_url="https://example.com/blog"))
        assert exc_info.value.kind == ErrorKind.CONFIG
        mock_get.assert_not_called()

    def test_truncates_to_max_posts(self, scraper):
        """max_posts 5 with an 8-item page: one fetch, five posts."""
        with patch("requests.Session.get", return_value=make_response(200, medium_page(range(1, 9)))) as mock_get:
            posts = scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=5))

        assert len(posts) == 5
        assert mock_get.call_count == 1
        assert [p.id for p in posts] == [f"medium_{i:012x}" for i in range(1, 6)]

    def test_page_count_bounded_by_estimate(self, scraper):
        """ceil(15 / 10) = 2 pages at most."""
        pages = [
            make_response(200, medium_page(range(1, 4))),
            make_response(200, medium_page(range(4, 7))),
            make_response(200, medium_page(range(7, 10))),
        ]
        with patch("requests.Session.get", side_effect=pages) as mock_get:
            posts = scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=15))

        assert mock_get.call_count == 2
        assert len(posts) == 6
        urls = [call.args[0] for call in mock_get.call_args_list]
        assert urls == [SOURCE_URL, f"{SOURCE_URL}?page=1"]

    def test_page_with_no_items_stops(self, scraper):
        pages = [
            make_response(200, medium_page(range(1, 4))),
            make_response(200, "<html><body><p>No stories</p></body></html>"),
        ]
        with patch("requests.Session.get", side_effect=pages) as mock_get:
            posts = scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=50))

        assert mock_get.call_count == 2
        assert len(posts) == 3

    def test_repeated_page_counts_as_empty(self, scraper):
        """A page of already-seen posts stops pagination and adds nothing."""
        same = medium_page(range(1, 4))
        with patch("requests.Session.get", side_effect=[make_response(200, same), make_response(200, same)]) as mock_get:
            posts = scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=50))

        assert mock_get.call_count == 2
        assert len(posts) == 3
        assert len({p.id for p in posts}) == 3

    def test_element_without_title_is_dropped_silently(self, scraper):
        body = (
            "<html><body>"
            "<article><p></p><img src='https://miro.medium.com/x.png'></article>"
            + medium_page([1])
            + "</body></html>"
        )
        with patch("requests.Session.get", return_value=make_response(200, body)):
            posts = scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=5))

        assert len(posts) == 1
        assert scraper.stats["items_dropped"] == 1


# =============================================================================
# Keyword filter
# =============================================================================

class TestKeywordFilter:
    """Keywords keep a post if title, content or a tag contains any of them"""

    def test_filters_by_title(self, scraper):
        body = (
            medium_page([1], title="Fundraising in a downturn")
            + medium_page([2], title="Hiring your first engineer")
        )
        with patch("requests.Session.get", return_value=make_response(200, body)):
            posts = scraper.scrape_content(
                ScrapeConfig(source_url=SOURCE_URL, keywords=frozenset({"FUNDRAISING"}), max_posts=5)
            )
        assert [p.title for p in posts] == ["Fundraising in a downturn"]

    def test_matches_tags(self, scraper):
        """Every fixture article carries the 'Startups' tag."""
        with patch("requests.Session.get", return_value=make_response(200, medium_page(range(1, 4)))):
            posts = scraper.scrape_content(
                ScrapeConfig(source_url=SOURCE_URL, keywords=frozenset({"startups"}), max_posts=5)
            )
        assert len(posts) == 3

    def test_no_match_returns_empty(self, scraper):
        with patch("requests.Session.get", return_value=make_response(200, medium_page(range(1, 4)))):
            posts = scraper.scrape_content(
                ScrapeConfig(source_url=SOURCE_URL, keywords=frozenset({"kubernetes"}), max_posts=5)
            )
        assert posts == []


# =============================================================================
# Pacing and HTTP errors
# =============================================================================

class TestFetchPage:
    """Tests for pacing, 429 backoff and error mapping"""

    def test_pacing_delay_between_pages(self, scraper, fake_clock):
        pages = [
            make_response(200, medium_page(range(1, 11))),
            make_response(200, medium_page(range(11, 21))),
        ]
        with patch("requests.Session.get", side_effect=pages):
            scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=20))

        # First fetch is immediate, second waits the 1s delay
        assert fake_clock.sleeps == [pytest.approx(1.0)]

    def test_reused_instance_paces_across_calls(self, scraper, fake_clock):
        """A second scrape on the same instance is spaced from the first one's last fetch."""
        with patch("requests.Session.get", return_value=make_response(200, medium_page(range(1, 4)))):
            scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=3))
            fake_clock.advance(0.25)
            scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=3))

        assert fake_clock.sleeps == [pytest.approx(0.75)]

    def test_429_then_200_retries_once(self, scraper, fake_clock):
        responses = [make_response(429), make_response(200, medium_page(range(1, 4)))]
        with patch("requests.Session.get", side_effect=responses) as mock_get:
            posts = scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=3))

        assert len(posts) == 3
        assert mock_get.call_count == 2
        # Same page retried after the 5s backoff
        assert mock_get.call_args_list[0].args[0] == mock_get.call_args_list[1].args[0]
        assert fake_clock.sleeps == [pytest.approx(5.0)]
        assert scraper.stats["rate_limit_retries"] == 1

    def test_persistent_429_raises_rate_limit_error(self, scraper):
        with patch("requests.Session.get", side_effect=[make_response(429), make_response(429)]) as mock_get:
            with pytest.raises(RateLimitError) as exc_info:
                scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=3))

        assert mock_get.call_count == 2
        assert exc_info.value.status_code == 429
        assert exc_info.value.kind == ErrorKind.RATE_LIMIT

    def test_server_error_raises_network_error(self, scraper):
        with patch("requests.Session.get", return_value=make_response(503)) as mock_get:
            with pytest.raises(NetworkError) as exc_info:
                scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL))

        assert mock_get.call_count == 1
        assert exc_info.value.status_code == 503
        assert not isinstance(exc_info.value, RateLimitError)

    def test_timeout_raises_network_error(self, scraper):
        with patch("requests.Session.get", side_effect=requests.exceptions.Timeout("read timed out")):
            with pytest.raises(NetworkError) as exc_info:
                scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL))
        assert exc_info.value.kind == ErrorKind.NETWORK

    def test_request_uses_timeout_and_browser_headers(self, scraper):
        with patch("requests.Session.get", return_value=make_response(200, medium_page([1]))) as mock_get:
            scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=1))

        assert mock_get.call_args.kwargs["timeout"] == 15
        assert "Mozilla" in scraper.session.headers["User-Agent"]


# =============================================================================
# Cancellation and estimates
# =============================================================================

class TestCancellation:
    def test_cancelled_scraper_fetches_nothing(self, scraper_kwargs):
        cancel_event = threading.Event()
        cancel_event.set()
        scraper = MediumScraper(cancel_event=cancel_event, **scraper_kwargs)

        with patch("requests.Session.get") as mock_get:
            posts = scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL))

        assert posts == []
        mock_get.assert_not_called()


class TestMissingMetrics:
    """Counts the platform does not expose"""

    def test_unknown_by_default(self, scraper):
        with patch("requests.Session.get", return_value=make_response(200, medium_page([1]))):
            post = scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=1))[0]
        assert post.likes == 1200
        assert post.comments is None
        assert post.views is None

    def test_estimates_are_reproducible_when_enabled(self, scraper_kwargs):
        results = []
        for _ in range(2):
            scraper = MediumScraper(estimate_missing_metrics=True, **scraper_kwargs)
            with patch("requests.Session.get", return_value=make_response(200, medium_page([1]))):
                results.append(scraper.scrape_content(ScrapeConfig(source_url=SOURCE_URL, max_posts=1))[0])

        assert results[0].views is not None
        assert 100 <= results[0].views <= 1100
        assert results[0].views == results[1].views
        assert results[0].comments == results[1].comments
