import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def _clear_cache():
    # Throttle history and request metrics live in the cache; SQLite reuses
    # user ids after rollback, so history would leak between tests.
    cache.clear()
    yield
    cache.clear()
