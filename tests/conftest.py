"""
Pytest Configuration and Fixtures

This module provides:
- Timestamped result file generation
- Shared fixtures for all tests
- Fake sources for exercising the fallback chain without network access
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest
import requests

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.errors import UpstreamUnavailable
from src.models.feed import RawFeed
from src.services.key_rotator import KeyRotator
from src.sources.base import Source

# Import test configuration
from tests.test_config import CONFIG, EXPECTED, MESSAGES, TEST_CATEGORIES, get_test_data


# =============================================================================
# TEST RESULT FILE CONFIGURATION
# =============================================================================

RESULTS_DIR = PROJECT_ROOT / "test_results"


class TestResultCollector:
    """Collects test outcomes per test module for the end-of-run report."""

    __test__ = False

    def __init__(self):
        self.start_time: Optional[datetime] = None
        self.categories: Dict[str, List[Dict[str, Any]]] = {}

    def add_result(self, nodeid: str, outcome: str, duration: float) -> None:
        category = nodeid.split("::")[0].split("/")[-1].replace("test_", "").replace(".py", "")
        name = nodeid.split("::")[-1].replace("test_", "").replace("_", " ")
        self.categories.setdefault(category, []).append(
            {"name": name, "outcome": outcome, "duration": duration}
        )

    def counts(self) -> Dict[str, int]:
        results = [r for rs in self.categories.values() for r in rs]
        return {
            "total": len(results),
            "passed": sum(1 for r in results if r["outcome"] == "passed"),
            "failed": sum(1 for r in results if r["outcome"] == "failed"),
            "skipped": sum(1 for r in results if r["outcome"] == "skipped"),
        }


_collector = TestResultCollector()


def pytest_configure(config):
    """Register custom markers and start the collector."""
    for marker, info in TEST_CATEGORIES.items():
        config.addinivalue_line("markers", f"{marker}: {info['description']}")
    _collector.start_time = datetime.now()


def pytest_runtest_logreport(report):
    if report.when == "call":
        _collector.add_result(report.nodeid, report.outcome, report.duration)


def pytest_sessionfinish(session, exitstatus):
    counts = _collector.counts()
    if not counts["total"]:
        return

    lines = [
        "=" * 80,
        "SOCIAL FEED API - TEST RESULTS REPORT",
        "=" * 80,
        f"Run Date: {_collector.start_time:%Y-%m-%d %H:%M:%S}",
        f"Total: {counts['total']} | Passed: {counts['passed']} | "
        f"Failed: {counts['failed']} | Skipped: {counts['skipped']}",
        "",
    ]
    for category, results in sorted(_collector.categories.items()):
        lines.append(f"[{category}]")
        for result in results:
            mark = {"passed": "✓", "failed": "✗"}.get(result["outcome"], "○")
            lines.append(f"  {mark} {result['name']:<60} ({result['duration'] * 1000:.0f}ms)")
        lines.append("")

    RESULTS_DIR.mkdir(exist_ok=True)
    filepath = RESULTS_DIR / f"test_results_{datetime.now():%Y%m%d_%H%M%S}.txt"
    filepath.write_text("\n".join(lines))
    print(f"\n📄 Test results saved to: {filepath}")


# =============================================================================
# FAKE SOURCES
# =============================================================================

class FakeSource(Source):
    """
    Source double with scripted behavior.

    Returns `feed` when given, raises `error` when given, or returns a feed
    of `items` tagged with `schema`. Records every call in `calls`.
    """

    def __init__(
        self,
        name: str,
        items: Optional[List[dict]] = None,
        schema: str = "nitter",
        error: Optional[Exception] = None,
        feed: Optional[RawFeed] = None,
        available: bool = True,
        reason: str = "not configured",
    ):
        self._name = name
        self._items = items or []
        self._schema = schema
        self._error = error
        self._feed = feed
        self._available = available
        self._reason = reason
        self.calls: List[tuple] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_available(self) -> bool:
        return self._available

    @property
    def unavailable_reason(self) -> str:
        return self._reason

    def fetch(self, handle: str, count: int) -> RawFeed:
        self.calls.append((handle, count))
        if self._error is not None:
            raise self._error
        if self._feed is not None:
            return self._feed
        return RawFeed(items=self._items[:count], source=self._name, schema=self._schema)


def failing_source(name: str, message: str = "Simulated failure") -> FakeSource:
    return FakeSource(name, error=UpstreamUnavailable(name, message))


def mock_response(
    json_data: Any = None,
    text: str = "",
    status_code: int = 200,
) -> Mock:
    """Build a requests.Response stand-in."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def test_config():
    """Provide access to test configuration."""
    return CONFIG


@pytest.fixture
def expected_values():
    """Provide access to expected values."""
    return EXPECTED


@pytest.fixture
def messages():
    return MESSAGES


@pytest.fixture
def request_time():
    return CONFIG["request_time"]


@pytest.fixture
def rotator():
    """Two-key pool with a quota of 2 uses each."""
    return KeyRotator.from_tokens(["token-a", "token-b"], max_per_period=2)


@pytest.fixture
def payload():
    """Fetch a fresh copy of an upstream payload fixture by key."""
    return get_test_data


@pytest.fixture
def offline_sources():
    """Every default source name mapped to a source that fails fast."""
    names = [
        "twitter_api", "nitter", "parsebot", "tiktok_web",
        "youtube_api", "youtube_web", "instagram_graph", "instagram_web",
    ]
    return {name: failing_source(name, f"{name} offline") for name in names}
