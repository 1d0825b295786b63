from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_csv(value: str) -> List[str]:
    """Parse a comma separated setting into a clean list"""
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "No Dues Certificate Service"
    DATABASE_URL: str = "sqlite:///./no_dues.db"

    # Auth
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Certificates
    REQUIRED_DEPARTMENTS: str = ""
    CERTIFICATE_NUMBER_PREFIX: str = "NDC"

    # Server
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    SEED_DEMO_DATA: bool = True

    @property
    def required_departments(self) -> List[str]:
        return [code.upper() for code in parse_csv(self.REQUIRED_DEPARTMENTS)]

    @property
    def cors_origins(self) -> List[str]:
        return parse_csv(self.CORS_ORIGINS)


settings = Settings()
