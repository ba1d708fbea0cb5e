import time

from instasaver.core.rate_limiter import RateLimiter, get_rate_limiter


async def test_first_request_is_not_delayed():
    limiter = RateLimiter(delay=5, jitter=0)
    started = time.monotonic()
    await limiter.wait()
    assert time.monotonic() - started < 1


async def test_consecutive_requests_are_spaced():
    limiter = RateLimiter(delay=0.05, jitter=0)
    await limiter.wait()
    started = time.monotonic()
    await limiter.wait()
    assert time.monotonic() - started >= 0.04


def test_shared_limiter_is_reused():
    assert get_rate_limiter() is get_rate_limiter()
