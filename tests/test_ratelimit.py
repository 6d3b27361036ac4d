import pytest

from timewise_auth.core.errors import RateLimitError
from timewise_auth.core.ratelimit import SlidingWindowLimiter


class Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_allows_up_to_limit_then_blocks():
    clock = Clock()
    limiter = SlidingWindowLimiter(3, 60, clock=clock)
    for _ in range(3):
        limiter.hit("a")

    with pytest.raises(RateLimitError) as exc:
        limiter.hit("a")

    assert exc.value.retry_after == 60
    assert exc.value.headers == {"Retry-After": "60"}


def test_window_slides():
    clock = Clock()
    limiter = SlidingWindowLimiter(2, 60, clock=clock)
    limiter.hit("a")
    clock.now += 30
    limiter.hit("a")

    clock.now += 31
    limiter.hit("a")

    with pytest.raises(RateLimitError) as exc:
        limiter.hit("a")
    assert exc.value.retry_after == 29


def test_keys_are_independent():
    limiter = SlidingWindowLimiter(1, 60, clock=Clock())
    limiter.hit("a")

    limiter.hit("b")


def test_zero_limit_disables():
    limiter = SlidingWindowLimiter(0, 60, clock=Clock())
    for _ in range(100):
        limiter.hit("a")


def test_cleanup_drops_idle_keys():
    clock = Clock()
    limiter = SlidingWindowLimiter(5, 60, clock=clock)
    limiter.hit("a")
    clock.now += 30
    limiter.hit("b")
    clock.now += 31

    assert limiter.cleanup() == 1
    limiter.hit("b")
    assert set(limiter._hits) == {"b"}
