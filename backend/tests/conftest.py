import pytest

from brandpulse.core.cache import MentionCache

from helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Cache with the default 2h/24h policy on a controllable clock."""
    return MentionCache(soft_ttl=2 * 60 * 60, max_stale_age=24 * 60 * 60, clock=clock)
