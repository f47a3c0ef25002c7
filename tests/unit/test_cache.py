"""
Tests for the TTL text caches.
"""

import json

import pytest

from aoi_coverage.cache import FileCache, MemoryCache


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance_hours(self, hours: float) -> None:
        self.now += hours * 3600


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestMemoryCache:

    def test_miss(self, clock: FakeClock) -> None:
        assert MemoryCache(clock).get("k", ttl_hours=1) is None

    def test_hit_within_ttl(self, clock: FakeClock) -> None:
        cache = MemoryCache(clock)
        cache.put("k", "text")
        clock.advance_hours(0.5)
        assert cache.get("k", ttl_hours=1) == "text"

    def test_expired(self, clock: FakeClock) -> None:
        cache = MemoryCache(clock)
        cache.put("k", "text")
        clock.advance_hours(1)
        # age == ttl is already stale
        assert cache.get("k", ttl_hours=1) is None

    def test_put_refreshes_timestamp(self, clock: FakeClock) -> None:
        cache = MemoryCache(clock)
        cache.put("k", "old")
        clock.advance_hours(2)
        cache.put("k", "new")
        assert cache.get("k", ttl_hours=1) == "new"

    def test_lock_is_per_key(self, clock: FakeClock) -> None:
        cache = MemoryCache(clock)
        assert cache.lock_for("a") is cache.lock_for("a")
        assert cache.lock_for("a") is not cache.lock_for("b")


class TestFileCache:

    def test_persists_between_instances(self, tmp_path, clock: FakeClock) -> None:
        FileCache(tmp_path, clock).put("resource", "TLE TEXT")
        assert FileCache(tmp_path, clock).get("resource", ttl_hours=6) == "TLE TEXT"

    def test_expired(self, tmp_path, clock: FakeClock) -> None:
        cache = FileCache(tmp_path, clock)
        cache.put("resource", "TLE TEXT")
        clock.advance_hours(7)
        assert cache.get("resource", ttl_hours=6) is None

    def test_creates_directory(self, tmp_path, clock: FakeClock) -> None:
        directory = tmp_path / "nested" / "cache"
        FileCache(directory, clock).put("k", "v")
        assert directory.is_dir()

    def test_corrupt_file_is_a_miss(self, tmp_path, clock: FakeClock) -> None:
        cache = FileCache(tmp_path, clock)
        cache.put("k", "v")
        for path in tmp_path.glob("*.json"):
            path.write_text("{not json")
        assert cache.get("k", ttl_hours=6) is None

    def test_file_contents(self, tmp_path, clock: FakeClock) -> None:
        FileCache(tmp_path, clock).put("k", "v")
        files = list(tmp_path.glob("*.json"))
        assert len(files) == 1
        data = json.loads(files[0].read_text())
        assert data == {"key": "k", "storedAt": clock.now, "text": "v"}
