"""
Tests for the ingest CLI (click commands).
"""

import json
from unittest.mock import patch

from click.testing import CliRunner

from cli import cli
from helpers import make_response, medium_page


class TestScrapeUrl:
    """Dry-run scrape of a single source URL"""

    def test_prints_raw_posts_as_json(self):
        runner = CliRunner()
        with patch("requests.Session.get", return_value=make_response(200, medium_page(range(1, 6)))):
            result = runner.invoke(
                cli, ["scrape-url", "medium", "https://medium.com/@alice", "--max-posts", "3"]
            )

        assert result.exit_code == 0, result.output
        start = result.stdout.index("[")
        posts = json.loads(result.stdout[start:])
        assert len(posts) == 3
        assert posts[0]["platform"] == "medium"
        assert posts[0]["likes"] == 1200

    def test_unrecognised_source_exits_nonzero(self):
        runner = CliRunner()
        with patch("requests.Session.get") as mock_get:
            result = runner.invoke(cli, ["scrape-url", "reddit", "https://example.com/forum"])

        assert result.exit_code == 1
        assert "[config]" in result.output
        mock_get.assert_not_called()

    def test_invalid_max_posts_exits_with_usage_error(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["scrape-url", "medium", "https://medium.com/@alice", "--max-posts", "0"])
        assert result.exit_code == 2

    def test_unknown_platform_rejected(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["scrape-url", "myspace", "https://myspace.com/a"])
        assert result.exit_code == 2
