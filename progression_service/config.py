from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./progression.db"
    REDIS_URL: str = "redis://localhost:6379/3"
    SECRET_KEY: str = "dev-secret-progression"
    JWT_ALGORITHM: str = "HS256"
    LOG_LEVEL: str = "INFO"
    CACHE_TTL: int = 300  # 5 minutes
    CACHE_ENABLED: bool = True
    PROGRESS_SAVE_RETRIES: int = 3
    CERTIFICATE_NUMBER_PREFIX: str = "MIC"
    COMPANION_CERTIFICATE_TITLES: list[str] = []

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
