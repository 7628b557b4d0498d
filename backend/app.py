"""
Flask Application Factory - Community content ingestion service

Serves the operational scraping API and owns the background scrape
scheduler. Community and post CRUD live elsewhere; this app only ingests.
"""
import logging
import os
from functools import partial

from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy.orm import sessionmaker

from config import Config
from models.database import db

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def configure_logging(level=None):
    """Root logging setup shared by the app and the CLI."""
    level = level or os.getenv('LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # Quiet chatty libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def create_app(config_overrides=None, start_scheduler=None):
    """
    Build the Flask app.

    Args:
        config_overrides: Dict applied after Config (tests use this)
        start_scheduler: Start the cron scheduler (defaults to SCRAPE_SCHEDULER_ENABLED)
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    CORS(app,
         resources={r"/api/*": {"origins": "*"}},
         methods=["GET", "POST", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization"])

    from werkzeug.exceptions import HTTPException

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        """Preserve HTTP status codes in a JSON envelope."""
        response = jsonify({
            "error": {
                "code": error.name.upper().replace(' ', '_'),
                "message": error.description,
            }
        })
        response.status_code = error.code
        return response

    @app.errorhandler(Exception)
    def handle_exception(error):
        logger.exception(f"Unhandled error: {error}")
        response = jsonify({
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            }
        })
        response.status_code = 500
        return response

    db.init_app(app)

    from routes.scraping import scraping_bp
    app.register_blueprint(scraping_bp, url_prefix='/api/scraping')

    @app.route('/health')
    def health():
        return jsonify({"status": "ok"})

    with app.app_context():
        # Import all models before create_all so every table is registered
        from models import Community, Post, ScrapeRun  # noqa: F401

        env = (os.environ.get("ENV") or os.environ.get("FLASK_ENV") or "").lower()
        is_prod = env in {"prod", "production"}
        if app.config.get("TESTING") or not is_prod:
            db.create_all()
            logger.info("Database initialized")

        session_factory = sessionmaker(bind=db.engine)

    from scrapers.rate_limiter import ScraperRateLimiter
    from services.scrape_scheduler import build_orchestrator, init_scrape_scheduler

    orchestrator_factory = partial(
        build_orchestrator,
        rate_limiter=ScraperRateLimiter(config_path=app.config.get('SCRAPER_RATE_LIMITS_PATH')),
        owner_id=app.config.get('SCRAPER_OWNER_ID'),
        platform_timeout_seconds=app.config.get('SCRAPE_PLATFORM_TIMEOUT_SECONDS'),
        estimate_missing_metrics=app.config.get('SCRAPER_ESTIMATE_MISSING_METRICS'),
        twitter_mirror_url=app.config.get('TWITTER_MIRROR_URL'),
    )
    scheduler = init_scrape_scheduler(
        session_factory,
        orchestrator_factory=orchestrator_factory,
        cron=app.config.get('SCRAPE_CRON'),
        max_concurrent=app.config.get('SCRAPE_MAX_CONCURRENT_COMMUNITIES'),
        enabled=app.config.get('SCRAPER_ENABLED', True),
    )
    app.extensions['scrape_scheduler'] = scheduler

    if start_scheduler is None:
        start_scheduler = app.config.get('SCRAPE_SCHEDULER_ENABLED', False)
    if start_scheduler:
        scheduler.start()

    return app


if __name__ == '__main__':
    configure_logging()
    application = create_app()
    port = int(os.environ.get('PORT', 5000))
    application.run(host='0.0.0.0', port=port, debug=Config.DEBUG)
