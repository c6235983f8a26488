import pytest

from conftest import FakeIdentityProvider, make_session
from oxima.services.access_guard import AccessGuard, AccessVerdict
from oxima.services.session_mirror import SessionMirror


@pytest.mark.asyncio
async def test_verdict_follows_sign_in_and_sign_out():
    provider = FakeIdentityProvider()
    mirror = SessionMirror(provider)
    mirror.start()
    await mirror.wait_ready()
    guard = AccessGuard(mirror, sign_in_route="/login")

    assert guard.evaluate() == AccessVerdict(allowed=False, redirect_to="/login")

    provider.emit("SIGNED_IN", make_session())
    assert guard.evaluate() == AccessVerdict(allowed=True)

    provider.emit("SIGNED_OUT", None)
    assert guard.evaluate() == AccessVerdict.deny("/login")


def test_unstarted_mirror_denies():
    guard = AccessGuard(SessionMirror(FakeIdentityProvider(session=make_session())))
    verdict = guard.evaluate()
    assert verdict.allowed is False
    assert verdict.redirect_to == guard.sign_in_route


def test_allow_has_no_redirect():
    assert AccessVerdict.allow().redirect_to is None
