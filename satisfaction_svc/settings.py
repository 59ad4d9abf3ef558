from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------
# Settings
# ---------------------------
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')
    # Service
    SERVICE_NAME: str = 'satisfaction-svc'
    HOST: str = '0.0.0.0'
    PORT: int = 10000
    # Postgres
    DATABASE_URL: str
    DB_POOL_MIN: int = 1
    DB_POOL_MAX: int = 5
    # Frontend
    STATIC_DIR: str = 'public'
    ASSETS_DIR: str = 'assets'
    CORS_ORIGINS: List[str] = ['*']
    # Logging
    LOG_LEVEL: str = 'INFO'
    LOG_JSON: bool = False
