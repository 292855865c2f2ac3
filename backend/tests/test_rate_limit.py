from grocerpos.services.rate_limit import RateLimiter, RateLimitRule


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_limiter(clock, max_requests=3, window=60):
    return RateLimiter({"auth": RateLimitRule(max_requests, window)}, clock=clock)


def test_allows_up_to_limit_then_blocks():
    clock = FakeClock()
    limiter = make_limiter(clock)

    results = [limiter.check("auth", "10.0.0.1") for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[-1].retry_after(clock()) == 60


def test_window_resets_after_expiry():
    clock = FakeClock()
    limiter = make_limiter(clock, max_requests=1, window=10)

    assert limiter.check("auth", "ip").allowed
    assert not limiter.check("auth", "ip").allowed
    clock.now += 10
    assert limiter.check("auth", "ip").allowed


def test_identifiers_are_counted_separately():
    limiter = make_limiter(FakeClock(), max_requests=1)
    assert limiter.check("auth", "a").allowed
    assert limiter.check("auth", "b").allowed
    assert not limiter.check("auth", "a").allowed


def test_expired_windows_are_swept_lazily():
    clock = FakeClock()
    limiter = make_limiter(clock, max_requests=1, window=5)
    for i in range(RateLimiter.SWEEP_THRESHOLD):
        limiter.check("auth", f"ip-{i}")
    assert len(limiter._windows) == RateLimiter.SWEEP_THRESHOLD

    clock.now += 5
    limiter.check("auth", "fresh")
    assert len(limiter._windows) == 1


def test_reset_clears_counters():
    limiter = make_limiter(FakeClock(), max_requests=1)
    limiter.check("auth", "ip")
    limiter.reset()
    assert limiter.check("auth", "ip").allowed
