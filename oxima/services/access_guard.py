import logging
from dataclasses import dataclass
from typing import Optional

from ..core.config import Config
from .session_mirror import SessionMirror


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessVerdict:
    allowed: bool
    redirect_to: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessVerdict":
        return cls(allowed=True)

    @classmethod
    def deny(cls, redirect_to: str) -> "AccessVerdict":
        return cls(allowed=False, redirect_to=redirect_to)


class AccessGuard:
    """Allows access only while the session mirror reports a signed-in user.

    Evaluation reads the mirror synchronously and never performs I/O.
    """

    def __init__(self, mirror: SessionMirror, sign_in_route: Optional[str] = None):
        self._mirror = mirror
        self.sign_in_route = sign_in_route or Config.SIGN_IN_ROUTE

    def evaluate(self) -> AccessVerdict:
        if self._mirror.current_user() is not None:
            return AccessVerdict.allow()
        logger.debug(f"Access denied, redirecting to {self.sign_in_route}")
        return AccessVerdict.deny(self.sign_in_route)
