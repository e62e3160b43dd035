"""
Configuration module.

Handles environment variables, API keys, and application settings.
"""

from src.config.config import (
    APP_ENV,
    DEBUG,
    PORT,
    REQUEST_TIMEOUT,
    SCRAPE_TIMEOUT,
    PARSEBOT_TIMEOUT,
    TWITTER_BEARER_TOKENS,
    TWITTER_MAX_PER_MONTH,
    NITTER_INSTANCES,
    PARSEBOT_API_KEY,
    PARSEBOT_SCRAPER_ID,
    YOUTUBE_API_KEY,
    INSTAGRAM_ACCESS_TOKEN,
    IG_SESSION_ID,
    BATCH_SIZE,
    BATCH_DELAY,
    is_production,
    is_development,
    validate_config,
    print_config_summary,
)

__all__ = [
    "APP_ENV",
    "DEBUG",
    "PORT",
    "REQUEST_TIMEOUT",
    "SCRAPE_TIMEOUT",
    "PARSEBOT_TIMEOUT",
    "TWITTER_BEARER_TOKENS",
    "TWITTER_MAX_PER_MONTH",
    "NITTER_INSTANCES",
    "PARSEBOT_API_KEY",
    "PARSEBOT_SCRAPER_ID",
    "YOUTUBE_API_KEY",
    "INSTAGRAM_ACCESS_TOKEN",
    "IG_SESSION_ID",
    "BATCH_SIZE",
    "BATCH_DELAY",
    "is_production",
    "is_development",
    "validate_config",
    "print_config_summary",
]
