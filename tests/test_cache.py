from __future__ import annotations

import threading

import pytest

from weather_service.core.abstractions import WeatherResult
from weather_service.core.cache import ResultCache, normalize_location


class TimeController:
    def __init__(self) -> None:
        self.now = 0.0

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


def make_result(temp: float = 20.0) -> WeatherResult:
    return WeatherResult(temperature=temp, conditions="Test", humidity=50.0, wind_speed=3.0)


def test_normalize_location() -> None:
    assert normalize_location("  Austin ") == "austin"
    assert normalize_location("LUBBOCK") == normalize_location("lubbock")
    assert normalize_location("   ") == ""


def test_entries_do_not_expire_by_default() -> None:
    controller = TimeController()
    cache = ResultCache(time_func=controller)
    cache.set("austin", make_result())

    controller.advance(10 ** 6)

    assert cache.get("austin") == make_result()


def test_stored_copy_is_never_flagged_cached() -> None:
    cache = ResultCache()
    cache.set("austin", make_result().as_cached())

    assert cache.get("austin").served_from_cache is False


def test_ttl_expiry() -> None:
    controller = TimeController()
    cache = ResultCache(ttl=60, time_func=controller)
    cache.set("austin", make_result())

    controller.advance(59)
    assert "austin" in cache

    controller.advance(2)
    assert cache.get("austin") is None
    assert len(cache) == 0


def test_max_entries_evicts_least_recently_used() -> None:
    cache = ResultCache(max_entries=2)
    cache.set("a", make_result(1))
    cache.set("b", make_result(2))
    cache.get("a")
    cache.set("c", make_result(3))

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache


def test_max_entries_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ResultCache(max_entries=0)


def test_concurrent_writers() -> None:
    cache = ResultCache()

    def writer(offset: int) -> None:
        for i in range(200):
            cache.set(f"loc-{offset}-{i}", make_result(i))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 800
