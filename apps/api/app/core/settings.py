from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # DB bootstrap (dev only)
    AUTO_DB_BOOTSTRAP: bool = False

    # SLA sweep: overdue tickets whose policy allows it are auto-closed.
    SLA_SWEEP_ENABLED: bool = False
    SLA_SWEEP_INTERVAL_SECONDS: int = 300
    SLA_SWEEP_BATCH_SIZE: int = 50

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
