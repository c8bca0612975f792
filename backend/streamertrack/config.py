from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///./streamer.db"
    LOG_LEVEL: str = "INFO"
    # Users: USERNAME:PASSWORD:ROLE:VESSEL_TAG[:GLOBAL], comma-separated
    AUTH_USERS: str = ""
    # Vessel used for unrestricted callers when resolving the active project
    DEFAULT_VESSEL_TAG: str = "TTN"
    # Backups
    BACKUP_ENABLED: bool = True
    BACKUP_DIR: str = "backup"
    BACKUP_INTERVAL_HOURS: float = 12.0
    MAX_BACKUPS: int = 14  # 7 days at 12h intervals
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:3000"
    LOGIN_RATE_LIMIT: str = "10/minute"


settings = Settings()
