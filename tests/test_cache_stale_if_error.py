import threading

import pytest

from fitfeed.core.cache import FileCache


def test_file_cache_round_trip_respects_ttl(monkeypatch, tmp_path):
    cache = FileCache(tmp_path, enabled=True, default_ttl_seconds=60)

    monkeypatch.setattr("fitfeed.core.cache.time.time", lambda: 0)
    cache.set("interests", "u1", ["yoga"])
    assert cache.get("interests", "u1") == ["yoga"]

    monkeypatch.setattr("fitfeed.core.cache.time.time", lambda: 61)
    assert cache.get("interests", "u1") is None
    assert cache.get_stale("interests", "u1") == ["yoga"]


def test_disabled_cache_always_calls_builder(tmp_path):
    cache = FileCache(tmp_path, enabled=False)
    calls = []

    def builder():
        calls.append(1)
        return {"v": len(calls)}

    assert cache.get_or_set("ns", "k", builder) == {"v": 1}
    assert cache.get_or_set("ns", "k", builder) == {"v": 2}


def test_file_cache_stale_if_error_returns_expired_value(monkeypatch, tmp_path):
    cache = FileCache(tmp_path, enabled=True, default_ttl_seconds=1)

    monkeypatch.setattr("fitfeed.core.cache.time.time", lambda: 0)
    cache.set("feed", "home-feed", {"listings": []}, ttl_seconds=1)

    monkeypatch.setattr("fitfeed.core.cache.time.time", lambda: 100)

    def builder():
        raise RuntimeError("upstream down")

    val = cache.get_or_set(
        "feed",
        "home-feed",
        builder,
        ttl_seconds=1,
        stale_if_error=True,
        stale_predicate=lambda exc: isinstance(exc, RuntimeError),
    )
    assert val == {"listings": []}


def test_file_cache_stale_if_error_respects_predicate(monkeypatch, tmp_path):
    cache = FileCache(tmp_path, enabled=True, default_ttl_seconds=1)

    monkeypatch.setattr("fitfeed.core.cache.time.time", lambda: 0)
    cache.set("feed", "home-feed", {"listings": []}, ttl_seconds=1)

    monkeypatch.setattr("fitfeed.core.cache.time.time", lambda: 100)

    def builder():
        raise RuntimeError("upstream down")

    with pytest.raises(RuntimeError):
        cache.get_or_set(
            "feed",
            "home-feed",
            builder,
            ttl_seconds=1,
            stale_if_error=True,
            stale_predicate=lambda exc: isinstance(exc, ValueError),
        )


def test_concurrent_writes_to_one_key_do_not_collide(tmp_path):
    cache = FileCache(tmp_path, enabled=True, default_ttl_seconds=60)
    payload = {"listings": [{"id": "l1"}], "packages": []}
    errors: list[Exception] = []

    def writer():
        try:
            for _ in range(100):
                cache.set("feed", "home-feed", payload)
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=writer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert cache.get("feed", "home-feed") == payload
    assert not list((tmp_path / "feed").glob("*.tmp"))


def test_failed_cache_write_still_returns_built_value(monkeypatch, tmp_path):
    cache = FileCache(tmp_path, enabled=True)

    def broken_set(*_args, **_kwargs):
        raise PermissionError("read-only cache dir")

    monkeypatch.setattr(cache, "set", broken_set)

    assert cache.get_or_set("feed", "home-feed", lambda: {"listings": []}) == {"listings": []}
