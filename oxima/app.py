import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Config
from .core.errors import ConfigKeyNotFoundError, InvalidKeyPathError
from .core.middleware import global_exception_handler, log_requests
from .core.models import User
from .core.ports import IdentityProvider
from .services.access_guard import AccessGuard
from .services.config_store import ConfigStore
from .services.session_mirror import SessionMirror


logger = logging.getLogger(__name__)


def create_app(properties_path: Optional[str] = None, provider: Optional[IdentityProvider] = None) -> FastAPI:
    """Build the host application.

    Startup loads the properties document (failing startup if it cannot be
    loaded) and starts the session mirror against ``provider``, defaulting to
    Supabase.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = ConfigStore(properties_path)
        await store.load()

        if provider is None:
            from .services.supabase_service import SupabaseIdentityProvider

            identity_provider: IdentityProvider = SupabaseIdentityProvider()
        else:
            identity_provider = provider

        mirror = SessionMirror(identity_provider)
        mirror.start()
        try:
            await asyncio.wait_for(mirror.wait_ready(), timeout=Config.SESSION_SEED_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Initial session query still pending, serving as signed out")

        app.state.config_store = store
        app.state.session_mirror = mirror
        app.state.access_guard = AccessGuard(mirror)
        try:
            yield
        finally:
            mirror.close()

    app = FastAPI(title="Oxima API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _log_requests(request, call_next):
        return await log_requests(request, call_next)

    @app.exception_handler(Exception)
    async def _global_exception_handler(request, exc):
        return await global_exception_handler(request, exc)

    @app.get("/")
    async def root():
        """Return basic API information."""
        return {
            "service": "Oxima API",
            "version": "1.0",
            "endpoints": {
                "health": "/health",
                "me": "/me",
                "properties": "/properties",
            },
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/health")
    async def health_check(request: Request):
        store: ConfigStore = request.app.state.config_store
        mirror: SessionMirror = request.app.state.session_mirror
        return {
            "status": "healthy" if store.is_loaded else "unhealthy",
            "properties_loaded": store.is_loaded,
            "properties_source": store.source,
            "authenticated": mirror.is_authenticated,
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/me")
    async def me(user: User = Depends(require_user)):
        return user.to_dict()

    @app.get("/properties", dependencies=[Depends(require_user)])
    async def all_properties(request: Request):
        return request.app.state.config_store.all()

    @app.get("/properties/{key}", dependencies=[Depends(require_user)])
    async def property_value(key: str, request: Request):
        store: ConfigStore = request.app.state.config_store
        try:
            return {"key": key, "value": store.get(key)}
        except InvalidKeyPathError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ConfigKeyNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    return app


def require_user(request: Request) -> User:
    """Dependency for protected routes; redirects to sign-in when signed out."""
    verdict = request.app.state.access_guard.evaluate()
    if not verdict.allowed:
        raise HTTPException(status_code=303, detail="Sign in required", headers={"Location": verdict.redirect_to})
    return request.app.state.session_mirror.current_user()
