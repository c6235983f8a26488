import os
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables.

    Provides validated access to the Supabase settings and to the defaults
    used by the property store, session mirror and access guard.
    """

    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")

    PROPERTIES_PATH: str = os.getenv("PROPERTIES_PATH", "assets/properties.json")
    PROPERTIES_TIMEOUT_SECONDS: int = int(os.getenv("PROPERTIES_TIMEOUT_SECONDS", "30"))

    SIGN_IN_ROUTE: str = os.getenv("SIGN_IN_ROUTE", "/login")
    SESSION_SEED_TIMEOUT_SECONDS: float = float(os.getenv("SESSION_SEED_TIMEOUT_SECONDS", "5"))

    CORS_ALLOWED_ORIGINS_ENV: str = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:4200")

    @classmethod
    def allowed_origins(cls, extra_origins: List[str] | None = None) -> List[str]:
        merged = [o.strip() for o in cls.CORS_ALLOWED_ORIGINS_ENV.split(",") if o.strip()]
        if extra_origins:
            merged.extend(extra_origins)
        # Deduplicate while preserving order
        seen = set()
        result: List[str] = []
        for origin in merged:
            if origin not in seen:
                seen.add(origin)
                result.append(origin)
        return result

    @classmethod
    def validate(cls) -> None:
        if not cls.SUPABASE_URL:
            raise ValueError("SUPABASE_URL environment variable is required")
        if not cls.SUPABASE_ANON_KEY:
            raise ValueError("SUPABASE_ANON_KEY environment variable is required")
