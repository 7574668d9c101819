from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Public URL of this deployment: used to build invite links and as the
    # default base URL for the presentation layer's AI client.
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # Redis: optional relay for change events to other processes.
    # Set to empty string to disable (events stay in-process).
    REDIS_URL: str = ""
    REDIS_MAX_CONNECTIONS: int = 20

    # Completion service (OpenAI-compatible chat completions)
    # An empty key is treated as "not configured".
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = ""
    AI_TIMEOUT_SECONDS: float = 30.0
    TONE_MODEL: str = "gpt-3.5-turbo"
    REPLY_MODEL: str = "gpt-3.5-turbo"
    ORG_BRAIN_MODEL: str = "gpt-4o-mini"

    # Invites
    INVITE_TTL_DAYS: int = 7
    INVITE_USES: int = 5
    INVITE_CODE_LENGTH: int = 8

    # Org Brain: recent top-level messages fetched per channel
    ORG_CONTEXT_MESSAGE_LIMIT: int = 50

    # Composer: seconds of inactivity before tone analysis fires
    TONE_DEBOUNCE_SECONDS: float = 0.7

    model_config = {"env_file": ".env"}


settings = Settings()
