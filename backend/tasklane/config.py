from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/tasklane.db"
    app_name: str = "TaskLane"
    log_level: str = "INFO"
    log_dir: str = "logs"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="TASKLANE_")


@lru_cache
def get_settings() -> Settings:
    return Settings()
