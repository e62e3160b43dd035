"""
Social Feed API - HTTP facade

Flask app exposing one unified, paginated JSON feed per platform plus
single-video lookups, usage stats and a health check.

Run with: python -m web.app
Or: python main.py serve
"""

import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from src.config import DEBUG, PORT
from src.errors import FeedError, MethodNotAllowed, ValidationError
from src.log import get_logger
from src.services.platforms import FeedService, get_platform
from src.sources.tiktok import normalize_tiktok_url
from src.sources.youtube import extract_youtube_id

app = Flask(__name__)
app.json.sort_keys = False

logger = get_logger("web")

SERVICE_NAME = "social-feed-api"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Listing OPTIONS turns off Flask's automatic OPTIONS reply; views answer it themselves
METHODS = ["GET", "OPTIONS"]


# =============================================================================
# Service
# =============================================================================

_service: Optional[FeedService] = None
_service_lock = threading.Lock()


def get_service() -> FeedService:
    """Get the process-wide feed service, creating it on first use."""
    global _service
    with _service_lock:
        if _service is None:
            _service = FeedService()
        return _service


# =============================================================================
# Parameter Parsing
# =============================================================================

def _required(name: str) -> str:
    value = request.args.get(name, "").strip()
    if not value:
        raise ValidationError(f"Missing required parameter: {name}")
    return value


def _int_param(name: str, default: int) -> int:
    """Parse a positive integer query parameter."""
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"Invalid parameter: {name}") from None
    if value < 1:
        raise ValidationError(f"Invalid parameter: {name}")
    return value


def _links() -> List[str]:
    """Collect link values from repeated and/or comma-separated link params."""
    joined = ",".join(request.args.getlist("link"))
    links = [link.strip() for link in joined.split(",") if link.strip()]
    if not links:
        raise ValidationError("Missing required parameter: link")
    return links


# =============================================================================
# Responses
# =============================================================================

def _feed_response(platform: str, own: bool = False):
    if request.method == "OPTIONS":
        return "", 200

    settings = get_platform(platform)
    username = _required("username")
    page = _int_param("page", 1)
    per_page = _int_param("per-page", settings.default_per_page)
    count = _int_param("count", settings.default_count)

    response = get_service().fetch_feed(
        platform,
        username,
        page=page,
        per_page=per_page,
        count=count,
        own=own,
    )

    resp = jsonify(response.to_dict())
    if not response.is_partial:
        resp.headers["Cache-Control"] = f"s-maxage={settings.cache_ttl}"
    return resp


def _videos_response(videos: List[dict], total_requested: int):
    return jsonify({
        "data": videos,
        "meta": {
            "total_requested": total_requested,
            "total_found": len(videos),
        },
        "status": "success",
    })


# =============================================================================
# Feed Endpoints
# =============================================================================

@app.route("/api/twitter", methods=METHODS)
def api_twitter():
    """Tweets for a user: official API with key rotation, Nitter fallback."""
    return _feed_response("twitter")


@app.route("/api/tiktok", methods=METHODS)
def api_tiktok():
    """TikTok videos, newest first: parse.bot, page scraping fallback."""
    return _feed_response("tiktok")


@app.route("/api/youtube", methods=METHODS)
def api_youtube():
    """Channel uploads: Data API when keyed, ytInitialData scraping otherwise."""
    return _feed_response("youtube")


@app.route("/api/instagram", methods=METHODS)
def api_instagram():
    """Instagram posts; own=true reads the access token owner via Graph API."""
    own = request.args.get("own", "false").strip().lower() == "true"
    return _feed_response("instagram", own=own)


# =============================================================================
# Video Lookup Endpoints
# =============================================================================

@app.route("/api/tiktok/video", methods=METHODS)
def api_tiktok_video():
    if request.method == "OPTIONS":
        return "", 200

    links = [url for url in (normalize_tiktok_url(link) for link in _links()) if url]
    if not links:
        raise ValidationError("No valid links provided")

    logger.info(f"[tiktok] Fetching details for {len(links)} links")
    videos = get_service().fetch_tiktok_videos(links)
    return _videos_response(videos, len(links))


@app.route("/api/youtube/video", methods=METHODS)
def api_youtube_video():
    if request.method == "OPTIONS":
        return "", 200

    links = _links()
    video_ids = [vid for vid in (extract_youtube_id(link) for link in links) if vid]
    if not video_ids:
        raise ValidationError("No valid YouTube video IDs found in links")

    logger.info(f"[youtube] Fetching details for IDs: {', '.join(video_ids)}")
    videos = get_service().fetch_youtube_videos(video_ids)
    return _videos_response(videos, len(links))


# =============================================================================
# Operational Endpoints
# =============================================================================

@app.route("/api/stats", methods=METHODS)
def api_stats():
    """Twitter key usage and the method each platform is using."""
    if request.method == "OPTIONS":
        return "", 200
    return jsonify(get_service().usage_stats())


@app.route("/api/health", methods=METHODS)
def api_health():
    if request.method == "OPTIONS":
        return "", 200
    return jsonify({
        "status": "ok",
        "service": SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


# =============================================================================
# Errors and Headers
# =============================================================================

@app.errorhandler(FeedError)
def handle_feed_error(error: FeedError):
    if error.status_code >= 500:
        logger.error(f"[web] {request.path}: {error}")
    else:
        logger.info(f"[web] {request.path}: {error}")
    return jsonify(error.to_dict()), error.status_code


@app.errorhandler(405)
def handle_method_not_allowed(error):
    return jsonify(MethodNotAllowed().to_dict()), 405


@app.errorhandler(404)
def handle_not_found(error):
    return jsonify({"error": f"Not found: {request.path}", "status": "error"}), 404


@app.errorhandler(HTTPException)
def handle_http_exception(error: HTTPException):
    return jsonify({"error": error.description, "status": "error"}), error.code


@app.errorhandler(Exception)
def handle_unexpected(error: Exception):
    logger.exception(f"[web] Unhandled error on {request.path}")
    return jsonify({"error": str(error) or "Internal server error", "status": "error"}), 500


@app.before_request
def reject_other_methods():
    # Flask answers HEAD on every GET rule unless stopped here
    if request.method not in METHODS:
        raise MethodNotAllowed()


@app.after_request
def add_headers(response):
    for key, value in CORS_HEADERS.items():
        response.headers[key] = value
    response.headers["Content-Type"] = "application/json"
    logger.debug(f"[web] {request.method} {request.full_path} -> {response.status_code}")
    return response


if __name__ == "__main__":
    print("=" * 50)
    print("Social Feed API")
    print("=" * 50)
    print(f"Listening on http://localhost:{PORT}")
    print("Endpoints: /api/twitter, /api/tiktok, /api/youtube, /api/instagram")
    print("Press Ctrl+C to stop")
    print("=" * 50)
    app.run(debug=DEBUG, port=PORT, threaded=True)
