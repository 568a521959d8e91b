from pytest_mock import MockerFixture

from workbench.config import TestingConfig
from workbench.services.row_counts import (
    CachedCounter,
    CountCache,
    LocalRowCounter,
    RemoteRowCounter,
    make_counter,
)
from workbench.utils.filter_params import NO_FILTER, FilterDescriptor


def test_local_counter_matches_remote(api):
    local = make_counter({"COUNT_BACKEND": "local"}, api, "p1")
    remote = make_counter({"COUNT_BACKEND": "remote"}, api, "p1")
    assert isinstance(local.counter, LocalRowCounter)
    assert isinstance(remote.counter, RemoteRowCounter)

    d = FilterDescriptor().with_selection("city", ["Accra"]).with_range("age", 30, None)
    assert local.count(d) == remote.count(d) == 2
    assert local.count(NO_FILTER) == 6
    local.counter.close()


def test_local_counter_loads_rows_once(api, mocker: MockerFixture):
    spy = mocker.spy(api, "raw_data")
    counter = make_counter({"COUNT_BACKEND": "local"}, api, "p1")
    counter.count(FilterDescriptor().with_range("income", None, 2000))
    counter.count(FilterDescriptor().with_range("income", 2000, None))
    assert spy.call_count == 1


def test_cached_counter_reuses_answers(api):
    counter = CachedCounter(RemoteRowCounter(api, "p1"), CountCache(TestingConfig.COUNT_CACHE_SIZE))
    a = FilterDescriptor().with_selection("city", ["Accra"]).with_range("age", 1, 99)
    b = FilterDescriptor().with_range("age", 1, 99).with_selection("city", ["Accra"])
    assert counter.count(a) == counter.count(b)
    assert len(api.count_calls) == 1


def test_count_cache_is_lru():
    cache = CountCache(2)
    cache.put("a", 1)
    cache.put("b", 2)
    assert cache.get("a") == 1
    cache.put("c", 3)
    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert len(cache) == 2
