from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # HS256 secret shared with the identity provider that signs user tokens
    JWT_SECRET: str = ""
    JWT_AUDIENCE: str = "authenticated"
