from match_cache import MatchCache


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_get_returns_stored_result_until_expiry():
    clock = Clock()
    cache = MatchCache(ttl_seconds=60, clock=clock)
    cache.set(1, 2, {'summary': 'fits'})

    clock.now = 60
    assert cache.get(1, 2) == {'summary': 'fits'}

    clock.now = 61
    assert cache.get(1, 2) is None
    assert len(cache) == 0


def test_keys_are_per_designer_and_brief():
    cache = MatchCache()
    cache.set(1, 2, 'a')

    assert cache.cache_key(1, 2) == '1-2'
    assert cache.get(2, 1) is None
    assert cache.get(1, 2) == 'a'


def test_oldest_entry_is_evicted_when_full():
    clock = Clock()
    cache = MatchCache(max_size=2, clock=clock)
    cache.set(1, 1, 'first')
    clock.now = 1
    cache.set(2, 1, 'second')
    clock.now = 2
    cache.set(3, 1, 'third')

    assert len(cache) == 2
    assert cache.get(1, 1) is None
    assert cache.get(2, 1) == 'second'
    assert cache.get(3, 1) == 'third'


def test_overwriting_a_key_does_not_evict():
    cache = MatchCache(max_size=2)
    cache.set(1, 1, 'a')
    cache.set(2, 1, 'b')
    cache.set(1, 1, 'c')

    assert len(cache) == 2
    assert cache.get(1, 1) == 'c'
    assert cache.get(2, 1) == 'b'


def test_clear_expired_and_stats():
    clock = Clock()
    cache = MatchCache(ttl_seconds=10, clock=clock)
    cache.set(1, 1, 'old')
    clock.now = 8
    cache.set(2, 1, 'new')
    clock.now = 12

    assert cache.clear_expired() == 1
    assert cache.get(2, 1) == 'new'
    assert cache.get(9, 9) is None

    stats = cache.stats()
    assert stats['size'] == 1
    assert stats['hits'] == 1
    assert stats['misses'] == 1
    assert stats['hit_rate'] == 0.5
    assert stats['avg_age'] == 4.0


def test_clear_resets_counters():
    cache = MatchCache()
    cache.set(1, 1, 'a')
    cache.get(1, 1)
    cache.clear()

    assert len(cache) == 0
    assert cache.stats()['hits'] == 0
