from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_name: str = "pipeline-orchestrator"
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    log_level: str = "INFO"

    database_url: str = "sqlite:///./orchestrator.db"
    redis_url: str = "redis://localhost:6379/0"

    devops_url: str = "https://dev.azure.com/organization"
    devops_token: str | None = None
    devops_timeout: float = 60

    # Resilient call wrapper
    retry_attempts: int = 10
    retry_delay: int = 10000

    latest_build_top: int = 100

    # Run defaults, intervals in milliseconds
    update_interval: int = 5000
    stage_start_attempts: int = 12
    stage_start_interval: int = 5000
    approval_interval: int = 60000
    approval_attempts: int = 10
    cancel_failed_checkpoint: bool = False
    proceed_skipped_stages: bool = False
    skip_tracking: bool = False

settings = Settings()
