from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(
        default="sqlite:///./cashpot.db",
        validation_alias=AliasChoices("database_url", "mongodb_uri"),
    )
    port: int = 3001
    environment: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"
    version: str = "7.0.1"

    jwt_secret: str = "cashpot-v7-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24

    frontend_url: str = "http://localhost:5173"
    api_url: str = Field(
        default="http://localhost:3001/api",
        validation_alias=AliasChoices("api_url", "vite_api_url"),
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", case_sensitive=False, extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        return self.environment != "production"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.frontend_url.split(",") if origin.strip()]


settings = Settings()
