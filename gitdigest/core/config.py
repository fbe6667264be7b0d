from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "gitdigest-api"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    ACQUISITION_STRATEGY: str = "disk"  # disk | memory | api

    GITHUB_TOKEN: str | None = None
    GITHUB_API_BASE: str = "https://api.github.com"
    GITHUB_RAW_BASE: str = "https://raw.githubusercontent.com"
    CORS_PROXY_URL: str | None = None

    HTTP_TIMEOUT_SECONDS: float = 30
    INGEST_TIMEOUT_SECONDS: float = 60
    BLOB_FETCH_BATCH_SIZE: int = 5

    DEFAULT_SLIDER_POSITION: int = 243
    TOKENIZER_ENCODING: str = "o200k_base"
    TEMP_DIR_PREFIX: str = "gitdigest-"

    OAUTH_CONFIG_URL: str = "https://cors.abhigyantrips.workers.dev/config"

settings = Settings()
