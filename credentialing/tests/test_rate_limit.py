import pytest

from credentialing.app.audit.rate_limit import (
    SlidingWindowRateLimiter,
    retry_after_seconds,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_limiter_allows_up_to_max_per_window():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(window_ms=60_000, max_requests=2, clock=clock)

    assert limiter.hit("10.0.0.1") is True
    assert limiter.hit("10.0.0.1") is True
    assert limiter.hit("10.0.0.1") is False
    # Keys are independent
    assert limiter.hit("10.0.0.2") is True


def test_limiter_window_slides():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(window_ms=60_000, max_requests=1, clock=clock)

    assert limiter.hit("a") is True
    clock.now += 59
    assert limiter.hit("a") is False
    clock.now += 1
    assert limiter.hit("a") is True


def test_rejections_do_not_consume_capacity():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(window_ms=10_000, max_requests=1, clock=clock)

    limiter.hit("a")
    for _ in range(5):
        limiter.hit("a")
    clock.now += 10

    assert limiter.hit("a") is True


def test_reset():
    limiter = SlidingWindowRateLimiter(window_ms=60_000, max_requests=1)
    limiter.hit("a")

    limiter.reset("a")

    assert limiter.hit("a") is True


def test_prune_drops_clients_whose_window_has_passed():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(window_ms=10_000, max_requests=5, clock=clock)
    for n in range(3):
        limiter.hit(f"10.0.0.{n}")
    clock.now += 5
    limiter.hit("10.0.0.9")

    clock.now += 6

    assert limiter.prune() == 3
    assert len(limiter) == 1


def test_sweep_runs_periodically_during_hits():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(
        window_ms=1_000, max_requests=1, clock=clock, sweep_every=4
    )
    for n in range(3):
        limiter.hit(f"client-{n}")
    assert len(limiter) == 3

    clock.now += 2
    limiter.hit("client-late")

    assert len(limiter) == 1


def test_pruned_client_starts_a_fresh_window():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(window_ms=1_000, max_requests=1, clock=clock)
    limiter.hit("a")
    clock.now += 2
    limiter.prune()

    assert len(limiter) == 0
    assert limiter.hit("a") is True
    assert limiter.hit("a") is False


@pytest.mark.parametrize("window_ms", [0, -5])
def test_invalid_window(window_ms):
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(window_ms=window_ms, max_requests=1)


def test_retry_after_from_window():
    limiter = SlidingWindowRateLimiter(window_ms=60_000, max_requests=1)

    assert retry_after_seconds(limiter) == 60


def test_retry_after_rounds_up():
    limiter = SlidingWindowRateLimiter(window_ms=1_500, max_requests=1)

    assert retry_after_seconds(limiter) == 2


def test_retry_after_defaults_when_window_unknown():
    class OpaqueLimiter:
        def hit(self, key):
            return False

    assert retry_after_seconds(OpaqueLimiter()) == 900
    assert retry_after_seconds(OpaqueLimiter(), default_window_ms=30_000) == 30
