"""Tests for the directory API token cache."""

from datetime import datetime, timedelta, timezone

from merchant_directory.services.token_cache import AuthToken, TokenCache


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class CountingAuthenticator:
    def __init__(self, clock: FakeClock, lifetime=timedelta(hours=1), fail=False):
        self.clock = clock
        self.lifetime = lifetime
        self.fail = fail
        self.calls = 0

    def __call__(self) -> AuthToken | None:
        self.calls += 1
        if self.fail:
            return None
        return AuthToken(value=f"token-{self.calls}", expires_at=self.clock() + self.lifetime)


def make_cache(fail=False):
    clock = FakeClock(datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc))
    auth = CountingAuthenticator(clock, fail=fail)
    cache = TokenCache(authenticate=auth, drift_buffer=timedelta(seconds=60), clock=clock)
    return cache, auth, clock


def test_token_is_reused_while_fresh():
    cache, auth, clock = make_cache()
    first = cache.get_token()
    clock.advance(minutes=30)
    assert cache.get_token() is first
    assert auth.calls == 1


def test_token_is_refreshed_inside_drift_buffer():
    cache, auth, clock = make_cache()
    cache.get_token()
    # 59 minutes 30 seconds into a one-hour token: within the 60s margin
    clock.advance(minutes=59, seconds=30)
    token = cache.get_token()
    assert token.value == "token-2"
    assert auth.calls == 2


def test_invalidate_forces_fresh_authentication():
    cache, auth, _ = make_cache()
    cache.get_token()
    cache.invalidate()
    assert cache.get_token().value == "token-2"
    assert auth.calls == 2


def test_unavailable_credentials_return_none():
    cache, auth, _ = make_cache(fail=True)
    assert cache.get_token() is None
    # Not cached as a negative result: next call tries again
    assert cache.get_token() is None
    assert auth.calls == 2


def test_authenticate_exception_is_reported_as_unavailable():
    def explode():
        raise RuntimeError("directory down")

    cache = TokenCache(authenticate=explode)
    assert cache.get_token() is None
