from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    github_webhook_secret: str = ""
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    class Config:
        env_file = ".env"
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    return Settings()
