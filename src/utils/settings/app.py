from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DEBUG: bool = False
    ENVIRONMENT: str = "DEV"
    API_VERSION: str = "0.1.0"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
    ]

    # Shared secret for the billing-sync collaborator calling /internal routes
    INTERNAL_SERVICE_KEY: SecretStr = SecretStr("")

    # Level of the sqlalchemy.engine logger (INFO echoes SQL)
    SQL_LOG_LEVEL: str = "WARNING"

    def validate_prod(self) -> None:
        """Sanity checks for production environment."""
        if self.ENVIRONMENT.upper() == "PROD":
            if not self.CORS_ORIGINS:
                raise ValueError("CORS_ORIGINS must be set in production")
            if not self.INTERNAL_SERVICE_KEY.get_secret_value():
                raise ValueError("INTERNAL_SERVICE_KEY must be set in production")
