'''
Holds all the configurations
'''
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "pre-prod", "production"]


class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application Metadata
    APP_NAME: str = "TutorAid Backend"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Billing back-office API for the TutorAid tutoring platform."

    # Which data source the process talks to. Chosen once at startup.
    ENVIRONMENT: Environment = "development"

    # Database URL, one per environment
    DATABASE_URL_DEVELOPMENT: str = "sqlite+aiosqlite:///./tutoraid.db"
    DATABASE_URL_PRE_PROD: str = "sqlite+aiosqlite:///./tutoraid_pre_prod.db"
    DATABASE_URL_PRODUCTION: str = "sqlite+aiosqlite:///./tutoraid_prod.db"
    DATABASE_ECHO: bool = False

    @property
    def database_url(self) -> str:
        """
        Dynamically returns the correct database URL based on the ENVIRONMENT setting.
        """
        return self.database_url_for(self.ENVIRONMENT)

    def database_url_for(self, environment: Environment) -> str:
        urls = {
            "development": self.DATABASE_URL_DEVELOPMENT,
            "pre-prod": self.DATABASE_URL_PRE_PROD,
            "production": self.DATABASE_URL_PRODUCTION,
        }
        return urls[environment]

    # Web settings
    BACKEND_CORS_ORIGINS: list[str] = []


# Create a single, importable instance of the settings
settings = Settings()
