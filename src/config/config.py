"""
Configuration module for Social Feed API.

Loads environment variables from .env file and exposes them as typed configuration values.
Uses python-dotenv for loading and provides safe defaults where appropriate.

Missing platform credentials are never fatal: the affected source reports itself
as unavailable and the platform falls back to its next source.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
# The .env file should be in the root directory (parent of src/)
_project_root = Path(__file__).parent.parent.parent
_env_path = _project_root / ".env"
load_dotenv(_env_path)


def _split_list(value: str) -> list[str]:
    """Split a comma-separated env value into a list of non-empty entries."""
    return [part.strip() for part in value.split(",") if part.strip()]


# =============================================================================
# Application Environment
# =============================================================================

# Application environment: "development", "staging", or "production"
APP_ENV: str = os.getenv("APP_ENV", "development")

# Enable debug mode for verbose logging (only in development)
DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

# HTTP listen port for the Flask server
PORT: int = int(os.getenv("PORT", "4000"))


# =============================================================================
# HTTP Timeouts
# =============================================================================

# Default timeout for official API calls, in seconds
REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))

# Timeout for public mirror scraping (Nitter), in seconds
SCRAPE_TIMEOUT: int = int(os.getenv("SCRAPE_TIMEOUT", "15"))

# parse.bot runs a remote scraper per call and can take up to two minutes
PARSEBOT_TIMEOUT: int = int(os.getenv("PARSEBOT_TIMEOUT", "120"))


# =============================================================================
# Twitter / X
# =============================================================================

# Up to five interchangeable bearer tokens; each has its own monthly quota
TWITTER_BEARER_TOKENS: list[str] = [
    token
    for token in (os.getenv(f"TWITTER_BEARER_TOKEN_{i}", "") for i in range(1, 6))
    if token
]

# Free tier allows 100 post reads per token per month
TWITTER_MAX_PER_MONTH: int = int(os.getenv("TWITTER_MAX_PER_MONTH", "100"))

# Public Nitter mirrors tried in order when the official API is unusable
NITTER_INSTANCES: list[str] = _split_list(
    os.getenv(
        "NITTER_INSTANCES",
        "https://nitter.privacydev.net,https://nitter.poast.org,"
        "https://nitter.woodland.cafe,https://nitter.1d4.us",
    )
)


# =============================================================================
# TikTok (parse.bot scraping proxy)
# =============================================================================

PARSEBOT_API_KEY: str = os.getenv("PARSEBOT_API_KEY", "")

PARSEBOT_SCRAPER_ID: str = os.getenv(
    "PARSEBOT_SCRAPER_ID", "dc8d000f-49f1-4d97-b357-9b0c4e5c5c07"
)


# =============================================================================
# YouTube
# =============================================================================

# Data API v3 key; without it YouTube goes straight to page scraping
YOUTUBE_API_KEY: str = os.getenv("YOUTUBE_API_KEY", "")


# =============================================================================
# Instagram
# =============================================================================

# Long-lived Graph API token (only serves the token owner's own media)
INSTAGRAM_ACCESS_TOKEN: str = os.getenv("INSTAGRAM_ACCESS_TOKEN", "")

# Browser session cookie; public profiles often require a logged-in session
IG_SESSION_ID: str = os.getenv("IG_SESSION_ID", "")


# =============================================================================
# Batch Fan-out
# =============================================================================

# Number of single-video lookups issued concurrently
BATCH_SIZE: int = int(os.getenv("BATCH_SIZE", "5"))

# Pause between batches in seconds, to stay under upstream rate limits
BATCH_DELAY: float = float(os.getenv("BATCH_DELAY", "0.5"))


# =============================================================================
# Helper Functions
# =============================================================================

def is_production() -> bool:
    """Check if running in production environment."""
    return APP_ENV == "production"


def is_development() -> bool:
    """Check if running in development environment."""
    return APP_ENV == "development"


def validate_config() -> list[str]:
    """
    Validate configuration values.

    Missing credentials are reported as warnings only in production, since every
    platform can still fall back to scraping.

    Returns:
        List of missing or invalid configuration keys (empty if all valid).
    """
    errors = []

    if is_production():
        if not TWITTER_BEARER_TOKENS:
            errors.append("TWITTER_BEARER_TOKEN_1 is not set; Twitter will use Nitter only")
        if not PARSEBOT_API_KEY:
            errors.append("PARSEBOT_API_KEY is not set; TikTok will use page scraping only")

    if not (1 <= PORT <= 65535):
        errors.append("PORT must be between 1 and 65535")

    if REQUEST_TIMEOUT < 1:
        errors.append("REQUEST_TIMEOUT must be at least 1 second")

    if SCRAPE_TIMEOUT < 1:
        errors.append("SCRAPE_TIMEOUT must be at least 1 second")

    if TWITTER_MAX_PER_MONTH < 1:
        errors.append("TWITTER_MAX_PER_MONTH must be at least 1")

    if BATCH_SIZE < 1:
        errors.append("BATCH_SIZE must be at least 1")

    if BATCH_DELAY < 0:
        errors.append("BATCH_DELAY cannot be negative")

    return errors


def print_config_summary() -> None:
    """Print a summary of current configuration (safe for logs, no secrets)."""
    print(f"  APP_ENV: {APP_ENV}")
    print(f"  DEBUG: {DEBUG}")
    print(f"  PORT: {PORT}")
    print(f"  REQUEST_TIMEOUT: {REQUEST_TIMEOUT}s")
    print(f"  SCRAPE_TIMEOUT: {SCRAPE_TIMEOUT}s")
    print(f"  TWITTER_BEARER_TOKENS: {len(TWITTER_BEARER_TOKENS)} configured")
    print(f"  TWITTER_MAX_PER_MONTH: {TWITTER_MAX_PER_MONTH}")
    print(f"  NITTER_INSTANCES: {', '.join(NITTER_INSTANCES) or '(none)'}")
    print(f"  PARSEBOT_API_KEY: {'***' if PARSEBOT_API_KEY else '(not set)'}")
    print(f"  YOUTUBE_API_KEY: {'***' if YOUTUBE_API_KEY else '(not set)'}")
    print(f"  INSTAGRAM_ACCESS_TOKEN: {'***' if INSTAGRAM_ACCESS_TOKEN else '(not set)'}")
    print(f"  IG_SESSION_ID: {'***' if IG_SESSION_ID else '(not set)'}")
    print(f"  BATCH_SIZE: {BATCH_SIZE}")
    print(f"  BATCH_DELAY: {BATCH_DELAY}s")
