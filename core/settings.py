from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, PostgresDsn, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_KNOWLEDGE_PATH = (
    Path(__file__).resolve().parent.parent
    / "api"
    / "features"
    / "chat"
    / "data"
    / "store_faq.md"
)


class CustomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


class AppSettings(CustomSettings):
    ENVIRONMENT: Literal["local", "dev", "prod"] = Field(default="local")
    LOG_LEVEL: str = Field(default="INFO")
    JSON_LOGS: bool = Field(default=False)
    SERVICE_NAME: str = Field(default="Support Chat API")
    VERSION: str = Field(default="1.0.0")
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )


class PgDbSettings(CustomSettings):
    POSTGRES_ENGINE: str = Field(default="postgresql+asyncpg")
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: SecretStr = Field(default="postgres")
    POSTGRES_DB: str = Field(default="support_chat")
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)
    DATABASE_URL: PostgresDsn | str = Field(default="")
    # Create missing tables at startup (local development only)
    CREATE_SCHEMA: bool = Field(default=False)

    @model_validator(mode="before")
    def validate_postgres_dsn(cls, data: dict):
        if isinstance(data, dict) and not data.get("DATABASE_URL"):
            password = data.get("POSTGRES_PASSWORD", "postgres")
            if isinstance(password, SecretStr):
                password = password.get_secret_value()
            _built_uri = PostgresDsn.build(
                scheme=data.get("POSTGRES_ENGINE", "postgresql+asyncpg"),
                username=data.get("POSTGRES_USER", "postgres"),
                password=password,
                host=data.get("POSTGRES_HOST", "localhost"),
                port=int(data.get("POSTGRES_PORT", 5432)),
                path=data.get("POSTGRES_DB", "support_chat"),
            ).unicode_string()
            data["DATABASE_URL"] = _built_uri
        return data


class OpenAISettings(CustomSettings):
    """Reply provider configuration.

    Env vars:
    - OPENAI_API_KEY (required by the reply generator)
    - OPENAI_MODEL
    - OPENAI_BASE_URL
    - OPENAI_MAX_TOKENS
    - OPENAI_TEMPERATURE
    - OPENAI_TIMEOUT_SECONDS
    """

    OPENAI_API_KEY: SecretStr = Field(default="")
    OPENAI_MODEL: str = Field(default="gpt-3.5-turbo")
    OPENAI_BASE_URL: Optional[str] = Field(default=None)
    OPENAI_MAX_TOKENS: int = Field(default=500, ge=1)
    OPENAI_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    OPENAI_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)


class ChatSettings(CustomSettings):
    """Conversation core configuration.

    Env vars:
    - CHAT_CONTEXT_WINDOW
    - CHAT_MAX_MESSAGE_LENGTH
    - CHAT_STORAGE_TIMEOUT_SECONDS
    - CHAT_KNOWLEDGE_PATH
    - CHAT_STORE_NAME
    - CHAT_SERIALIZE_SESSIONS
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Server-wide ceiling on history sent to the provider; never taken per request
    CONTEXT_WINDOW: int = Field(default=10, ge=1, le=50)
    MAX_MESSAGE_LENGTH: int = Field(default=2000, ge=1)
    STORAGE_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)
    KNOWLEDGE_PATH: Path = Field(default=DEFAULT_KNOWLEDGE_PATH)
    STORE_NAME: str = Field(default="Spur Store")
    SERIALIZE_SESSIONS: bool = Field(default=False)


class Settings(BaseModel):
    APP: AppSettings = Field(default_factory=AppSettings)
    DATABASE: PgDbSettings = Field(default_factory=PgDbSettings)
    OPENAI: OpenAISettings = Field(default_factory=OpenAISettings)
    CHAT: ChatSettings = Field(default_factory=ChatSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()


SETTINGS = get_settings()
