import threading

from brandpulse.core.cache import MentionCache

from helpers import make_mention


def test_fresh_get_within_ttl(cache, clock):
    data = [make_mention()]
    cache.put("Reddit", "Revlon", data, ttl=1.0)

    assert cache.get("Reddit", "Revlon") == data
    clock.advance(1.1)
    assert cache.get("Reddit", "Revlon") is None


def test_stale_fallback_within_max_age(cache, clock):
    data = [make_mention()]
    cache.put("Reddit", "Revlon", data, ttl=1.0)

    clock.advance(1.1)
    assert cache.get_stale("Reddit", "Revlon") == data

    clock.advance(25 * 60 * 60)
    assert cache.get_stale("Reddit", "Revlon") is None


def test_real_clock_expiry():
    cache = MentionCache(soft_ttl=0.0)
    cache.put("Reddit", "Revlon", [make_mention()])
    assert cache.get("Reddit", "Revlon") is None
    assert cache.get_stale("Reddit", "Revlon") is not None


def test_default_ttl_is_soft_ttl(cache, clock):
    cache.put("Reddit", "Revlon", [make_mention()])
    clock.advance(2 * 60 * 60 - 1)
    assert cache.get("Reddit", "Revlon") is not None
    clock.advance(2)
    assert cache.get("Reddit", "Revlon") is None


def test_missing_key():
    cache = MentionCache()
    assert cache.get("Reddit", "Revlon") is None
    assert cache.get_stale("Reddit", "Revlon") is None
    assert cache.has("Reddit", "Revlon") is False
    assert cache.format_age("Reddit", "Revlon") == "No cache"


def test_keys_are_case_insensitive(cache):
    cache.put("Reddit", "Revlon", [make_mention()])
    assert cache.get("reddit", "REVLON") is not None


def test_put_overwrites_and_resets_age(cache, clock):
    first = [make_mention()]
    second = [make_mention(), make_mention()]
    cache.put("Reddit", "Revlon", first, ttl=1.0)
    clock.advance(5)
    cache.put("Reddit", "Revlon", second, ttl=1.0)

    assert cache.get("Reddit", "Revlon") == second
    assert cache.age("Reddit", "Revlon") == 0


def test_keys_are_independent(cache):
    cache.put("Reddit", "Revlon", [make_mention(source="Reddit")])
    assert cache.get("Reddit", "NYX") is None
    assert cache.get("TikTok", "Revlon") is None


def test_returned_list_is_a_copy(cache):
    cache.put("Reddit", "Revlon", [make_mention()])
    cache.get("Reddit", "Revlon").clear()
    assert len(cache.get("Reddit", "Revlon")) == 1


def test_format_age(cache, clock):
    cache.put("Reddit", "Revlon", [])
    clock.advance(7 * 60 + 5)
    assert cache.format_age("Reddit", "Revlon") == "7m ago"
    clock.advance(2 * 60 * 60)
    assert cache.format_age("Reddit", "Revlon") == "2h 7m ago"


def test_stats_and_clear(cache):
    cache.put("Reddit", "Revlon", [])
    cache.put("TikTok", "Revlon", [])
    stats = cache.stats()
    assert stats["entries"] == 2
    assert sorted(stats["keys"]) == ["reddit_revlon", "tiktok_revlon"]

    cache.clear()
    assert cache.stats()["entries"] == 0


def test_concurrent_puts_on_independent_keys():
    cache = MentionCache()

    def writer(n):
        for i in range(200):
            cache.put(f"source-{n}", f"brand-{i}", [])

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cache.stats()["entries"] == 8 * 200


def test_hit_and_miss_counters_under_concurrent_reads():
    cache = MentionCache()
    cache.put("Reddit", "Revlon", [make_mention()])

    def reader():
        for _ in range(500):
            cache.get("Reddit", "Revlon")
            cache.get("Reddit", "NYX")

    threads = [threading.Thread(target=reader) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = cache.stats()
    assert stats["hits"] == 8 * 500
    assert stats["misses"] == 8 * 500
