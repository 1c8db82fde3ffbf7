from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://habits:habits@db:5432/habits"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # IANA zone used to resolve "today" when a caller does not send a day.
    DEFAULT_TIMEZONE: str = "UTC"

    # Widest window accepted by GET /progress/weekly.
    SUMMARY_MAX_DAYS: int = 366
    LOG_BATCH_MAX_ITEMS: int = 366

    # Idle lifetime of a front-end conversation session.
    SESSION_TTL_SECONDS: int = 900

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
