#!/usr/bin/env python3
"""
CLI for Community Content Ingestion

Commands:
    scrape          - Run the pipeline once for one community
    run-scheduler   - Run the cron scheduler in the foreground
    scrape-url      - Dry run: scrape one source URL and print RawPosts

Usage:
    python cli.py scrape 12
    python cli.py scrape 12 --json
    python cli.py run-scheduler
    python cli.py scrape-url medium https://medium.com/@someone --max-posts 5
    python cli.py scrape-url reddit https://www.reddit.com/r/startups -k growth -k funding
"""

import json
import sys
import time

import click

from constants import ALL_PLATFORMS, DEFAULT_MAX_POSTS


def get_app(start_scheduler=False):
    """Flask app for database access."""
    from app import configure_logging, create_app

    configure_logging()
    return create_app(start_scheduler=start_scheduler)


@click.group()
@click.version_option(version="1.0.0", prog_name="ingest-cli")
def cli():
    """Community Content Ingestion CLI."""
    pass


@cli.command("scrape")
@click.argument("community_id", type=int)
@click.option("--json", "output_json", is_flag=True, help="Output the run report as JSON")
def scrape(community_id, output_json):
    """
    Run the pipeline once for COMMUNITY_ID.

    Uses the scheduler's in-progress flag, so it will not overlap a cron run
    in the same process.
    """
    app = get_app()
    with app.app_context():
        scheduler = app.extensions['scrape_scheduler']
        report = scheduler.run_community_once(community_id, triggered_by="cli")

    if report is None:
        click.secho(f"Community {community_id} was not scraped (missing, inactive, busy or failed)", fg="red")
        sys.exit(1)

    if output_json:
        click.echo(json.dumps(report.to_dict(), indent=2, default=str))
        return

    click.echo("=" * 60)
    click.secho(f"SCRAPE RUN - community {community_id}", fg="cyan", bold=True)
    click.echo("=" * 60)
    status_color = {"succeeded": "green", "partial": "yellow", "failed": "red"}[report.status]
    click.secho(f"Status: {report.status}", fg=status_color)
    click.echo(
        f"Fetched: {report.fetched}  Created: {report.created}  "
        f"Updated: {report.updated}  Unchanged: {report.unchanged}"
    )
    click.echo()

    for result in report.platform_results:
        click.echo(
            f"  {result.platform:<10} fetched={result.fetched} created={result.created} "
            f"updated={result.updated} unchanged={result.unchanged}"
        )
        for error in result.errors:
            click.secho(f"      [{error.kind.value}] {error.message}", fg="red")
    for error in report.errors:
        click.secho(f"  [{error.kind.value}] {error.message}", fg="red")

    if report.status == "failed":
        sys.exit(1)


@cli.command("run-scheduler")
def run_scheduler():
    """Start the cron scheduler and block until interrupted."""
    app = get_app(start_scheduler=False)
    scheduler = app.extensions['scrape_scheduler']

    if not scheduler.start():
        click.secho("Scheduler not started (SCRAPER_ENABLED=false?)", fg="yellow")
        sys.exit(1)

    click.echo(f"Scheduler running with cron '{scheduler.cron}'. Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("Stopping scheduler...")
    finally:
        scheduler.shutdown(wait=True)


@cli.command("scrape-url")
@click.argument("platform", type=click.Choice(ALL_PLATFORMS + ["x"], case_sensitive=False))
@click.argument("source_url")
@click.option("--max-posts", type=int, default=DEFAULT_MAX_POSTS, show_default=True, help="Maximum posts")
@click.option("--keyword", "-k", "keywords", multiple=True, help="Keep posts matching any keyword")
@click.option("--estimate-metrics", is_flag=True, help="Estimate counts the platform does not expose")
def scrape_url(platform, source_url, max_posts, keywords, estimate_metrics):
    """
    Dry run: scrape SOURCE_URL on PLATFORM and print the RawPosts as JSON.

    Nothing is written to the database.
    """
    from app import configure_logging
    from config import Config
    from constants import Platform, parse_platform
    from scrapers import ScrapeConfig, ScraperError, get_scraper_class
    from scrapers.rate_limiter import ScraperRateLimiter

    configure_logging()

    try:
        config = ScrapeConfig.from_dict({
            "sourceUrl": source_url,
            "keywords": list(keywords),
            "maxPosts": max_posts,
        })
    except ScraperError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(2)

    platform = parse_platform(platform)
    kwargs = {
        "estimate_missing_metrics": estimate_metrics,
        "rate_limiter": ScraperRateLimiter(config_path=Config.SCRAPER_RATE_LIMITS_PATH),
    }
    if platform == Platform.TWITTER:
        kwargs["mirror_url"] = Config.TWITTER_MIRROR_URL
    scraper = get_scraper_class(platform)(**kwargs)

    try:
        posts = scraper.scrape_content(config)
    except ScraperError as e:
        click.secho(f"[{e.kind.value}] {e}", fg="red")
        sys.exit(1)

    click.echo(json.dumps([p.to_dict() for p in posts], indent=2, default=str))
    click.secho(f"{len(posts)} posts, stats={scraper.stats}", fg="cyan", err=True)


if __name__ == "__main__":
    cli()
