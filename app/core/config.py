from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")

    # Resolved teacher subjects are served from memory for at most this long.
    resolution_cache_ttl_seconds: float = Field(60, alias="RESOLUTION_CACHE_TTL_SECONDS", ge=1, le=3600)
    # Length of a freshly created dated assignment (start = now).
    dated_assignment_term_years: int = Field(1, alias="DATED_ASSIGNMENT_TERM_YEARS", ge=1)

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: str = Field("text", alias="LOG_FORMAT")  # text | json

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
