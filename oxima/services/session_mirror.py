import asyncio
import logging
from typing import Optional

from ..core.models import AuthEvent, Session, User
from ..core.ports import AuthSubscription, IdentityProvider
from ..core.reactive import ValueStream


logger = logging.getLogger(__name__)


class SessionMirror:
    """Keeps the latest known session of an identity provider.

    ``start`` registers for session-change events and queries the current
    session once. Values are applied in arrival order: when a change event
    lands while the startup query is still pending, the query result is
    discarded because it may predate that event.
    """

    def __init__(self, provider: IdentityProvider):
        self._provider = provider
        self._session: Optional[Session] = None
        self._users: ValueStream[Optional[User]] = ValueStream(None)
        self._event_count = 0
        self._subscription: Optional[AuthSubscription] = None
        self._seed_task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        """Subscribe to provider events and schedule the initial session query.

        Must be called from a running event loop. Calling it again returns the
        existing seed task.
        """
        if self._seed_task is not None:
            return self._seed_task
        self._subscription = self._provider.on_auth_state_change(self._on_auth_state_change)
        # Counted here rather than inside the task: events that arrive before
        # the task first runs must still invalidate the query result
        self._seed_task = asyncio.get_running_loop().create_task(self._seed(self._event_count))
        return self._seed_task

    async def wait_ready(self) -> Optional[User]:
        """Wait for the initial session query to finish, then return the current user."""
        if self._seed_task is None:
            raise RuntimeError("SessionMirror.start() has not been called")
        await asyncio.shield(self._seed_task)
        return self.current_user()

    async def _seed(self, events_before: int) -> None:
        try:
            session = await self._provider.get_session()
        except Exception as e:
            logger.warning(f"Initial session query failed, treating as signed out: {e}")
            return
        if self._event_count != events_before:
            logger.debug("Discarding initial session: a newer auth event already arrived")
            return
        self._apply(session)

    def _on_auth_state_change(self, event: str, session: Optional[Session]) -> None:
        self._event_count += 1
        try:
            kind = AuthEvent(event)
        except ValueError:
            logger.info(f"Auth state changed: unrecognized event {event!r}")
            self._apply(session)
            return
        logger.info(f"Auth state changed: {kind.value}")
        if kind is AuthEvent.SIGNED_OUT:
            session = None
        self._apply(session)

    def _apply(self, session: Optional[Session]) -> None:
        self._session = session
        self._users.emit(session.user if session is not None else None)

    def current_user(self) -> Optional[User]:
        return self._session.user if self._session is not None else None

    def current_session(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def changes(self) -> ValueStream[Optional[User]]:
        return self._users

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._seed_task is not None and not self._seed_task.done():
            self._seed_task.cancel()

    async def __aenter__(self) -> "SessionMirror":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False
