from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central settings object.
    Render will provide env vars; locally you can use backend/.env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API keys
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = ""
    SERPAPI_API_KEY: str = ""

    # Offer search
    SEARCH_GL: str = "us"
    SEARCH_HL: str = "en"
    SEARCH_RESULTS_PER_ITEM: int = 9      # 3 per tier
    SEARCH_CONCURRENCY: int = 8           # max in-flight provider calls per request
    SEARCH_TIMEOUT_SECONDS: float = 20.0  # per item
    SEARCH_QUERY_SUFFIX: str = "buy online"

    # Bundles
    MAX_BUNDLES: int = 5

    # Logging
    LOG_LEVEL: str = "INFO"

    # Versioning
    APP_VERSION: str = "0.1.0"
    BUILD_ID: str = "dev"


# ✅ MUST EXIST: other modules import this
settings = Settings()
