from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./gymtracker.db"
    storage_backend: str = "sqlite"  # "sqlite" or "memory"
    session_window_hours: float = 3.0
    log_level: str = "INFO"
    weight_unit: str = "lbs"
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()
