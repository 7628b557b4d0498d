import os
import sys
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse
from dotenv import load_dotenv

load_dotenv()


def _get_database_url():
    """
    Get and normalize DATABASE_URL.

    PostgreSQL is the production database. SQLite is accepted for local
    development and tests only.

    For cloud PostgreSQL, automatically adds sslmode=require if missing.
    """
    database_url = os.getenv('DATABASE_URL')

    if not database_url:
        print("WARNING: DATABASE_URL is not set, using local SQLite (development only)", file=sys.stderr)
        return 'sqlite:///community_ingest.db'

    if database_url.startswith('sqlite'):
        return database_url

    valid_prefixes = ('postgresql://', 'postgresql+psycopg2://', 'postgres://')
    if not database_url.startswith(valid_prefixes):
        raise RuntimeError(
            f"DATABASE_URL must be a PostgreSQL or SQLite URL, got: {database_url[:50]}..."
        )

    # Handle Render's postgres:// format (SQLAlchemy requires postgresql://)
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)

    # For cloud PostgreSQL (non-localhost), ensure SSL is enabled
    parsed = urlparse(database_url)
    is_localhost = parsed.hostname in ('localhost', '127.0.0.1', None)

    if not is_localhost:
        query_params = parse_qs(parsed.query)
        if 'sslmode' not in query_params:
            query_params['sslmode'] = ['require']
            new_query = urlencode(query_params, doseq=True)
            database_url = urlunparse((
                parsed.scheme, parsed.netloc, parsed.path,
                parsed.params, new_query, parsed.fragment
            ))

    return database_url


def _env_flag(name: str, default: str) -> bool:
    """Read a boolean flag. Accepts false/0/no/off/disabled as False."""
    value = os.getenv(name, default).strip().lower()
    return value not in ('false', '0', 'no', 'off', 'disabled', '')


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    DEBUG = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    SQLALCHEMY_DATABASE_URI = _get_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,      # Verify connection is alive before using
    }

    # Scraping pipeline
    SCRAPER_ENABLED = _env_flag('SCRAPER_ENABLED', 'true')  # Kill switch
    SCRAPE_CRON = os.getenv('SCRAPE_CRON', '0 */6 * * *')
    SCRAPE_SCHEDULER_ENABLED = _env_flag('SCRAPE_SCHEDULER_ENABLED', 'false')
    SCRAPE_MAX_CONCURRENT_COMMUNITIES = _env_int('SCRAPE_MAX_CONCURRENT_COMMUNITIES', 4)
    SCRAPE_PLATFORM_TIMEOUT_SECONDS = _env_int('SCRAPE_PLATFORM_TIMEOUT_SECONDS', 600)

    # User that scraped posts are attributed to when a community has no curator
    SCRAPER_OWNER_ID = _env_int('SCRAPER_OWNER_ID', 1)

    # Opt-in: fill platform counts that are not exposed with a reproducible estimate
    SCRAPER_ESTIMATE_MISSING_METRICS = _env_flag('SCRAPER_ESTIMATE_MISSING_METRICS', 'false')

    SCRAPER_RATE_LIMITS_PATH = os.getenv('SCRAPER_RATE_LIMITS_PATH')
    TWITTER_MIRROR_URL = os.getenv('TWITTER_MIRROR_URL', 'https://nitter.net')
