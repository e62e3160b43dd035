"""
Key Rotation Tests

Verifies that the credential pool hands out keys round-robin, respects
per-key quotas, and keeps rate-limited keys out of rotation.
"""

import threading

import pytest

from src.models.credential import Credential
from src.services.key_rotator import KeyRotator


@pytest.mark.key_rotator
class TestRotationOrder:
    """Tests for round-robin hand-out."""

    def test_from_tokens_names_keys_in_order(self):
        rotator = KeyRotator.from_tokens(["a", "b", "c"], max_per_period=5)

        assert [c.name for c in rotator.credentials] == ["key_1", "key_2", "key_3"]
        assert all(c.max_per_period == 5 for c in rotator.credentials)

    def test_next_cycles_through_pool(self, rotator):
        names = [rotator.next().name for _ in range(4)]

        assert names == ["key_1", "key_2", "key_1", "key_2"]

    def test_next_does_not_consume_quota(self, rotator):
        for _ in range(10):
            assert rotator.next() is not None

        assert all(c.usage_count == 0 for c in rotator.credentials)

    def test_empty_pool_returns_none(self):
        rotator = KeyRotator()

        assert len(rotator) == 0
        assert rotator.next() is None
        assert rotator.acquire() is None
        assert rotator.has_eligible is False


@pytest.mark.key_rotator
class TestQuota:
    """Tests for per-credential usage limits."""

    def test_acquire_increments_usage(self, rotator):
        credential = rotator.acquire()

        assert credential.name == "key_1"
        assert credential.usage_count == 1
        assert credential.remaining == 1

    def test_credentials_at_quota_are_skipped(self, rotator):
        acquired = [rotator.acquire() for _ in range(4)]

        assert [c.name for c in acquired] == ["key_1", "key_2", "key_1", "key_2"]
        assert rotator.acquire() is None
        assert rotator.has_eligible is False

    def test_usage_never_exceeds_max(self, rotator):
        for _ in range(20):
            rotator.acquire()

        for credential in rotator.credentials:
            assert credential.usage_count <= credential.max_per_period

    def test_release_returns_reservation(self, rotator):
        credential = rotator.acquire()
        rotator.release(credential)

        assert credential.usage_count == 0

    def test_release_never_goes_negative(self, rotator):
        credential = rotator.credentials[0]
        rotator.release(credential)

        assert credential.usage_count == 0

    def test_record_use_increments_by_exactly_one(self, rotator):
        credential = rotator.credentials[1]
        rotator.record_use(credential)

        assert credential.usage_count == 1


@pytest.mark.key_rotator
class TestExhaustion:
    """Tests for sticky exhaustion after rate limits."""

    def test_exhausted_key_is_skipped(self, rotator):
        first = rotator.credentials[0]
        rotator.mark_exhausted(first)

        names = {rotator.next().name for _ in range(5)}

        assert names == {"key_2"}

    def test_exhaustion_is_sticky(self, rotator):
        first = rotator.credentials[0]
        rotator.mark_exhausted(first)
        rotator.release(first)

        assert first.exhausted is True
        assert first.is_eligible is False

    def test_all_exhausted_returns_none(self, rotator):
        for credential in rotator.credentials:
            rotator.mark_exhausted(credential)

        assert rotator.next() is None


@pytest.mark.key_rotator
class TestUsageSnapshot:
    """Tests for the stats view of the pool."""

    def test_snapshot_shape(self, rotator):
        rotator.acquire()
        snapshot = rotator.usage_snapshot()

        assert snapshot[0] == {
            "name": "key_1",
            "used": 1,
            "max": 2,
            "remaining": 1,
            "exhausted": False,
        }
        assert snapshot[1]["used"] == 0

    def test_totals(self, rotator):
        rotator.acquire()

        assert rotator.total_max == 4
        assert rotator.total_remaining == 3

    def test_exhausted_key_reports_flag_and_unused_quota(self):
        rotator = KeyRotator([Credential(name="only", token="t", max_per_period=10)])
        rotator.mark_exhausted(rotator.credentials[0])

        entry = rotator.usage_snapshot()[0]
        assert entry["exhausted"] is True
        assert entry["remaining"] == 10
        assert "token" not in entry


@pytest.mark.key_rotator
class TestConcurrency:
    """Tests for atomic acquire under contention."""

    def test_concurrent_acquire_never_oversubscribes(self):
        rotator = KeyRotator.from_tokens(["a", "b", "c"], max_per_period=50)
        acquired = []
        lock = threading.Lock()

        def worker():
            for _ in range(40):
                credential = rotator.acquire()
                if credential is not None:
                    with lock:
                        acquired.append(credential.name)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(acquired) == 150
        assert sum(c.usage_count for c in rotator.credentials) == 150
        assert all(c.usage_count == 50 for c in rotator.credentials)
