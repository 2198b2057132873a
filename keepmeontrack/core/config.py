from pydantic_settings import BaseSettings
from pydantic import Field
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
from typing import List, Optional

# libpq options asyncpg refuses as connect kwargs
LIBPQ_ONLY_PARAMS = {"sslmode", "channel_binding"}


class Settings(BaseSettings):
    PROJECT_NAME: str = "Keep Me On Track"
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str = Field(..., env="DATABASE_URL")

    # Optional: without a key every suggestion is served from the template catalog
    GROQ_API_KEY: Optional[str] = Field(None, env="GROQ_API_KEY")
    AI_API_URL: str = "https://api.groq.com/openai/v1/chat/completions"
    AI_MODEL: str = "llama-3.3-70b-versatile"
    AI_TIMEOUT_SECONDS: float = 45.0

    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    GUEST_AI_QUERY_LIMIT: int = 1
    GUEST_SESSION_TTL_MINUTES: int = 120

    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    @property
    def async_database_url(self) -> str:
        """DATABASE_URL rewritten for the async drivers.

        Hosted Postgres URLs usually come as plain ``postgresql://`` with
        libpq query options attached; both need changing for asyncpg.
        """
        if self.DATABASE_URL.startswith("sqlite"):
            return self.DATABASE_URL

        url = self.DATABASE_URL
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                url = "postgresql+asyncpg://" + url[len(prefix):]
                break

        parts = urlsplit(url)
        query = [(k, v) for k, v in parse_qsl(parts.query) if k not in LIBPQ_ONLY_PARAMS]
        return urlunsplit(parts._replace(query=urlencode(query)))

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
