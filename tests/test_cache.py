from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from buildwatch.core.cache import DefinitionCache, make_cache_key


def test_make_cache_key_joins_url_and_filter():
    assert make_cache_key("https://ci.example/org/proj", "*") == "https://ci.example/org/proj|*"
    assert make_cache_key("https://ci.example/org/proj", None) == "https://ci.example/org/proj|"


def test_get_requires_exact_key():
    cache = DefinitionCache()
    cache.set("a|*", "1,2")

    assert cache.get("a|*") == "1,2"
    assert cache.get("a|other") is None
    assert cache.key == "a|*"


def test_set_overwrites_regardless_of_key():
    cache = DefinitionCache()
    cache.set("a|*", "1")
    cache.set("b|*", "2")

    assert cache.get("a|*") is None
    assert cache.get("b|*") == "2"


def test_take_or_clear_keeps_matching_entry_and_evicts_others():
    cache = DefinitionCache()
    cache.set("a|*", "1")

    assert cache.take_or_clear("a|*") == "1"
    assert cache.key == "a|*"

    assert cache.take_or_clear("b|*") is None
    assert cache.key is None
    assert cache.get("a|*") is None


def test_clear_empties_slot():
    cache = DefinitionCache()
    cache.set("a|*", "1")
    cache.clear()

    assert cache.key is None


def test_concurrent_writers_never_produce_torn_entries():
    cache = DefinitionCache()
    keys = [f"https://ci.example/project{index}|*" for index in range(8)]

    def worker(index: int) -> list[bool]:
        key = keys[index % len(keys)]
        observations = []
        for _ in range(200):
            cache.set(key, key.upper())
            for probe in keys:
                value = cache.get(probe)
                observations.append(value is None or value == probe.upper())
        return observations

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(worker, range(16)))

    assert all(all(batch) for batch in results)
