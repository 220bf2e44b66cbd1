import os

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "lms"
    APP_VERSION: str = "1.0.0"
    ROOT_PATH: str = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    SECRET_KEY: str = "dev-secret-key-change-me"
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///lms.db"

    AUTH_COOKIE_NAME: str = "access_token"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    JWT_ALGORITHM: str = "HS256"
    SESSION_COOKIE_SAMESITE: str = "lax"
    SESSION_COOKIE_SECURE: bool = False

    # reCAPTCHA is only enforced on registration when a secret is configured
    RECAPTCHA_SECRET_KEY: str | None = None
    RECAPTCHA_VERIFY_URL: str = "https://www.google.com/recaptcha/api/siteverify"
    RECAPTCHA_TIMEOUT_SECONDS: float = 10.0

    LOG_LEVEL: str = "INFO"
    MAX_CODES_PER_REQUEST: int = 100


settings = Settings()
