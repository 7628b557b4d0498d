"""
Scraping API Routes

Operational endpoints for the ingestion pipeline:
- Scheduler status (in-progress communities, last reports)
- Manual trigger for one community
- Recent run reports
"""
import logging
import time

from flask import Blueprint, jsonify, request
from sqlalchemy import desc

from models.community import Community
from models.database import db
from models.scrape_run import ScrapeRun

logger = logging.getLogger(__name__)

scraping_bp = Blueprint('scraping', __name__)

MAX_RUNS_LIMIT = 200


@scraping_bp.route("/status", methods=["GET"])
def get_status():
    """
    Scheduler status.

    Returns:
        enabled/running flags, cron, in-progress communities and last reports
    """
    from services.scrape_scheduler import get_scrape_scheduler

    scheduler = get_scrape_scheduler()
    if scheduler is None:
        return jsonify({"enabled": False, "running": False, "reason": "Scheduler not initialized"})
    return jsonify(scheduler.get_status())


@scraping_bp.route("/communities/<int:community_id>/run", methods=["POST"])
def run_community(community_id: int):
    """
    Start a background scrape for one community.

    Honours the same in-progress flag as the cron job: a community that is
    already running is not started again.

    Returns:
        202 when started, 409 when already running, 404 for unknown communities
    """
    from services.scrape_scheduler import get_scrape_scheduler

    community = db.session.get(Community, community_id)
    if community is None:
        return jsonify({"error": f"Community {community_id} not found"}), 404
    if not community.is_active:
        return jsonify({"error": f"Community {community_id} is inactive"}), 409

    scheduler = get_scrape_scheduler()
    if scheduler is None or not scheduler.enabled:
        return jsonify({"started": False, "reason": "Scraping is disabled"}), 503

    started = scheduler.trigger_community(community_id, triggered_by="manual")
    logger.info(f"POST /api/scraping/communities/{community_id}/run started={started}")

    if not started:
        return jsonify({"started": False, "reason": "Scrape already in progress"}), 409
    return jsonify({"started": True, "community_id": community_id}), 202


@scraping_bp.route("/runs", methods=["GET"])
def get_runs():
    """
    Recent run reports, newest first.

    Query params:
        - community_id: Filter by community (optional)
        - limit: Max results (default 20)
    """
    start = time.time()

    community_id = request.args.get("community_id", type=int)
    limit = min(request.args.get("limit", 20, type=int) or 20, MAX_RUNS_LIMIT)

    query = db.session.query(ScrapeRun)
    if community_id is not None:
        query = query.filter(ScrapeRun.community_id == community_id)
    runs = query.order_by(desc(ScrapeRun.started_at)).limit(limit).all()

    elapsed = time.time() - start
    logger.debug(f"GET /api/scraping/runs took {elapsed:.4f}s (returned {len(runs)} runs)")

    return jsonify({
        "count": len(runs),
        "data": [r.to_dict() for r in runs],
    })
