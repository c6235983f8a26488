import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from supabase import create_client, Client

from ..core.config import Config
from ..core.errors import AuthProviderError
from ..core.models import Session, User
from ..core.ports import AuthStateCallback, AuthSubscription


logger = logging.getLogger(__name__)

OAUTH_PROVIDERS = ("google", "github", "facebook")


def get_client() -> Client:
    Config.validate()
    return create_client(Config.SUPABASE_URL, Config.SUPABASE_ANON_KEY)


def _field(raw: Any, name: str, default: Any = None) -> Any:
    if isinstance(raw, dict):
        return raw.get(name, default)
    return getattr(raw, name, default)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable timestamp from Supabase: {value!r}")
        return None


def user_from_supabase(raw: Any) -> Optional[User]:
    if raw is None:
        return None
    metadata = dict(_field(raw, "user_metadata") or {})
    return User(
        id=str(_field(raw, "id")),
        email=_field(raw, "email") or "",
        first_name=metadata.pop("first_name", None),
        last_name=metadata.pop("last_name", None),
        role=metadata.pop("role", None) or "user",
        created_at=_parse_timestamp(_field(raw, "created_at")),
        updated_at=_parse_timestamp(_field(raw, "updated_at")),
        metadata=metadata,
    )


def session_from_supabase(raw: Any) -> Optional[Session]:
    if raw is None:
        return None
    user = user_from_supabase(_field(raw, "user"))
    if user is None:
        # A session without a user is not a usable session
        return None
    return Session(
        user=user,
        access_token=_field(raw, "access_token") or "",
        refresh_token=_field(raw, "refresh_token") or "",
        expires_at=_field(raw, "expires_at"),
    )


class SupabaseIdentityProvider:
    """Identity provider backed by the Supabase auth client.

    Blocking SDK calls are offloaded with ``asyncio.to_thread``. Auth state
    callbacks are posted back to the loop that registered them, in the order
    the SDK delivers them.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client or get_client()

    @property
    def client(self) -> Client:
        return self._client

    async def get_session(self) -> Optional[Session]:
        raw = await asyncio.to_thread(self._client.auth.get_session)
        return session_from_supabase(raw)

    def on_auth_state_change(self, callback: AuthStateCallback) -> AuthSubscription:
        try:
            loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        def _dispatch(event: Any, raw_session: Any) -> None:
            session = session_from_supabase(raw_session)
            event_name = str(getattr(event, "value", event))
            if loop is None or loop.is_closed():
                callback(event_name, session)
            else:
                loop.call_soon_threadsafe(callback, event_name, session)

        return self._client.auth.on_auth_state_change(_dispatch)

    async def _call(self, action: str, func: Callable, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except Exception as e:
            logger.error(f"Supabase {action} failed: {e}")
            raise AuthProviderError(f"Supabase {action} failed: {e}") from e

    async def sign_up(self, email: str, password: str) -> Any:
        return await self._call("sign up", self._client.auth.sign_up, {"email": email, "password": password})

    async def sign_in(self, email: str, password: str) -> Any:
        return await self._call(
            "sign in", self._client.auth.sign_in_with_password, {"email": email, "password": password}
        )

    async def sign_in_with_magic_link(self, email: str) -> Any:
        return await self._call("magic link sign in", self._client.auth.sign_in_with_otp, {"email": email})

    async def sign_in_with_provider(self, provider: str) -> Any:
        if provider not in OAUTH_PROVIDERS:
            raise ValueError(f"Unsupported OAuth provider: {provider}. Allowed: {', '.join(OAUTH_PROVIDERS)}")
        return await self._call("OAuth sign in", self._client.auth.sign_in_with_oauth, {"provider": provider})

    async def sign_out(self) -> None:
        await self._call("sign out", self._client.auth.sign_out)

    async def reset_password(self, email: str) -> Any:
        return await self._call("password reset", self._client.auth.reset_password_for_email, email)

    async def update_password(self, password: str) -> Any:
        return await self._call("password update", self._client.auth.update_user, {"password": password})
