import asyncio
import json
from typing import Optional

import pytest

from oxima.core.models import Session, User


class FakeSubscription:
    def __init__(self, provider, callback):
        self._provider = provider
        self._callback = callback
        self.unsubscribed = False

    def unsubscribe(self) -> None:
        self.unsubscribed = True
        if self._callback in self._provider.callbacks:
            self._provider.callbacks.remove(self._callback)


class FakeIdentityProvider:
    """Identity provider test double that emits synthetic auth events on demand."""

    def __init__(self, session: Optional[Session] = None, error: Optional[Exception] = None, hold: bool = False):
        self.session = session
        self.error = error
        self.hold = hold
        self.query_calls = 0
        self.callbacks = []
        self.subscriptions = []
        self._released = asyncio.Event()

    async def get_session(self) -> Optional[Session]:
        self.query_calls += 1
        if self.hold:
            await self._released.wait()
        if self.error is not None:
            raise self.error
        return self.session

    def release_session_query(self) -> None:
        self._released.set()

    def on_auth_state_change(self, callback):
        self.callbacks.append(callback)
        subscription = FakeSubscription(self, callback)
        self.subscriptions.append(subscription)
        return subscription

    def emit(self, event: str, session: Optional[Session]) -> None:
        for callback in list(self.callbacks):
            callback(event, session)


class CountingFetcher:
    """Async document fetcher that counts calls and can be held open."""

    def __init__(self, document=None, error: Optional[Exception] = None, raw: Optional[bytes] = None):
        self.document = document if document is not None else {}
        self.error = error
        self.raw = raw
        self.calls = []
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self, source: str) -> bytes:
        self.calls.append(source)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.raw is not None:
            return self.raw
        return json.dumps(self.document).encode("utf-8")


def make_session(user_id: str = "user-a", email: str = "a@example.com", **profile) -> Session:
    return Session(user=User(id=user_id, email=email, **profile), access_token=f"token-{user_id}")


@pytest.fixture
def oxima_document():
    return {"app": {"name": "Oxima", "limit": 5}}


@pytest.fixture
def fetcher(oxima_document):
    return CountingFetcher(oxima_document)
