from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    database_url: str = "sqlite:///steprun.db"
    redis_url: str = "redis://localhost:6379/0"

    # Pipeline definitions (file or directory of *.yml)
    pipelines_path: str = ".steprun"
    workspace_root: str = "/tmp/steprun"

    # "inline" runs pipelines in the listener, "queue" hands them to the worker
    dispatch_mode: str = "inline"
    worker_concurrency: int = 4

    # Kubernetes settings
    k8s_namespace: str = "steprun"
    k8s_in_cluster: bool = False  # Set True when running inside K8s
    job_ttl_after_finished: int = 300  # Clean up jobs after 5 min

    # Coverage upload
    coverage_upload_url: str = "https://codecov.io/upload/v2"
    coverage_upload_token: Optional[str] = None

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    return Settings()
