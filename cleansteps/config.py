from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/cleansteps"
    recovery_api_key: str | None = None
    log_level: str = "INFO"

    create_tables_on_startup: bool = True

    # Echo SQL statements (debugging only)
    database_echo: bool = False

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
