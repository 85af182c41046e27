from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    mongodb_uri: str = "mongodb://localhost:27017"
    database_name: str = "taru"
    jwt_secret: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    auth_cookie_name: str = "auth-token"
    token_ttl_days: int = 7
    cors_origins: List[str] = ["http://localhost:3000"]
    environment: str = "development"
    log_level: str = "INFO"
    navigation_history_limit: int = 50
    learning_path_webhook_url: Optional[str] = None
    webhook_timeout_seconds: int = 30

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
