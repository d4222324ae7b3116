from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Penpal API", env="APP_NAME", description="Human readable service name")
    environment: str = Field(default="development", env="ENVIRONMENT", description="Deployment environment name")
    debug: bool = Field(default=True, env="DEBUG", description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:8081",
            "http://localhost:19006",
            "http://127.0.0.1",
        ],
        env="CORS_ORIGINS",
        description="List of allowed CORS origins",
    )

    database_user: str = Field(default="penpal", env="DB_USER")
    database_password: str = Field(default="penpal", env="DB_PASSWORD")
    database_host: str = Field(default="db", env="DB_HOST")
    database_port: int = Field(default=3306, env="DB_PORT")
    database_name: str = Field(default="penpal", env="DB_NAME")
    database_url_override: str | None = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="Full SQLAlchemy URL; takes precedence over the DB_* parts",
    )
    database_pool_size: int = Field(default=10, env="DB_POOL_SIZE")
    database_max_overflow: int = Field(default=20, env="DB_MAX_OVERFLOW")

    jwt_secret_key: str = Field(default="changeme", env="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", env="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24, env="ACCESS_TOKEN_EXPIRE_MINUTES")

    page_size_default: int = Field(default=20, env="PAGE_SIZE_DEFAULT")
    page_size_max: int = Field(default=100, env="PAGE_SIZE_MAX")
    post_max_length: int = Field(default=2000, env="POST_MAX_LENGTH")
    post_max_attachments: int = Field(default=3, env="POST_MAX_ATTACHMENTS")
    comment_max_length: int = Field(default=1000, env="COMMENT_MAX_LENGTH")
    message_max_length: int = Field(default=2000, env="MESSAGE_MAX_LENGTH")

    media_root: Path = Field(default=Path("uploads"), env="MEDIA_ROOT")
    media_base_url: str = Field(
        default="/api/media",
        env="MEDIA_BASE_URL",
        description="Base URL for signed/private media access",
    )
    public_media_base_url: str = Field(
        default="/api/media/public",
        env="PUBLIC_MEDIA_BASE_URL",
        description="Base URL for publicly cacheable media",
    )
    max_upload_size: int = Field(
        default=10 * 1024 * 1024, env="MAX_UPLOAD_SIZE", description="Maximum upload size in bytes"
    )

    default_locale: str = Field(default="en", env="DEFAULT_LOCALE")
    feed_trusted_author_ids: Annotated[List[int], NoDecode] = Field(
        default_factory=list,
        env="FEED_TRUSTED_AUTHOR_IDS",
        description="Authors whose posts anyone may view, react to and comment on.",
    )

    websocket_receive_timeout_seconds: int = Field(
        default=30, env="WEBSOCKET_RECEIVE_TIMEOUT_SECONDS"
    )

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("feed_trusted_author_ids", mode="before")
    @classmethod
    def parse_trusted_authors(cls, value: Any) -> list[Any]:
        if value in (None, "", Ellipsis):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return list(value)
        return [value]

    @field_validator("media_root", mode="before")
    @classmethod
    def resolve_media_root(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.resolve()
        return Path(value).resolve()


@lru_cache
def get_settings() -> Settings:
    return Settings()
