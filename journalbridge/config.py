from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_JSON: bool = True
    # Transport selection: "memory" (dry run) or "inara"
    TRANSPORT: Literal["memory", "inara"] = "memory"
    # Batching
    FLUSH_THRESHOLD: int = Field(default=1, ge=1)
    RETENTION_DAYS: int = Field(default=30, ge=1)
    FLUSH_WORKERS: int = Field(default=4, ge=1)
    # INARA API
    INARA_API_URL: AnyUrl = AnyUrl("https://inara.cz/inapi/v1/")
    INARA_API_KEY: str = ""
    INARA_COMMANDER_NAME: str = ""
    APP_NAME: str = "JournalBridge"
    APP_VERSION: str = "0.1.0"
    IS_BEING_DEVELOPED: bool = False
    HTTP_TIMEOUT: float = 30.0

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
