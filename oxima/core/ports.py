"""Ports (interfaces) between the session mirror and identity providers.

The mirror only needs a one-shot session query and a change subscription;
anything that offers those two capabilities can back it, including test fakes.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, runtime_checkable

from .models import Session


AuthStateCallback = Callable[[str, Optional[Session]], None]


@runtime_checkable
class AuthSubscription(Protocol):
    """Registration handle for session-change notifications."""

    def unsubscribe(self) -> None:
        """Stop delivering notifications."""


@runtime_checkable
class IdentityProvider(Protocol):
    """Source of the current session and its lifecycle events."""

    async def get_session(self) -> Optional[Session]:
        """Return the current session, or None when signed out."""

    def on_auth_state_change(self, callback: AuthStateCallback) -> AuthSubscription:
        """Invoke ``callback(event, session)`` for every session lifecycle event."""
