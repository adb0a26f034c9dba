from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global configuration for the Dareon backend.
    Automatically loads values from environment variables and .env files.
    """

    # --------------------------------------------------
    # Application Metadata
    # --------------------------------------------------
    APP_NAME: str = "Dareon API"
    APP_VERSION: str = "2.0.0"
    ENVIRONMENT: str = "development"

    # --------------------------------------------------
    # Server Configuration
    # --------------------------------------------------
    HOST: str = "localhost"
    PORT: int = 5000
    CORS_ORIGINS: str = "http://localhost:3000"

    # --------------------------------------------------
    # Security Configuration
    # --------------------------------------------------
    JWT_SECRET: str = "CHANGE_ME_IN_PRODUCTION"
    JWT_EXPIRE_MINUTES: int = 30 * 24 * 60     # 30 days
    JWT_COOKIE_EXPIRE_DAYS: int = 30

    # --------------------------------------------------
    # Database Services
    # --------------------------------------------------
    MONGO_URI: str = "mongodb://localhost:27017/dareon"
    MONGO_DB_NAME: str = "dareon"
    REDIS_URL: str = "redis://localhost:6379/0"  # Rate limit counters

    # --------------------------------------------------
    # Email Service (SendGrid)
    # --------------------------------------------------
    SENDGRID_API_KEY: str = ""
    SENDER_EMAIL: str = "dev@example.com"

    # --------------------------------------------------
    # File Storage
    # --------------------------------------------------
    STORAGE_ROOT: str = "storage"
    MAX_UPLOAD_SIZE: int = 100 * 1024 * 1024   # 100MB per file
    MAX_UPLOAD_FILES: int = 10

    # --------------------------------------------------
    # Command Dispatcher
    # --------------------------------------------------
    COMMAND_RATE_LIMIT: int = 100
    COMMAND_RATE_WINDOW_SECONDS: int = 60
    HISTORY_LIMIT: int = 50
    FREE_TRIAL_DAYS: int = 14

    # --------------------------------------------------
    # Helper Properties
    # --------------------------------------------------
    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS_ORIGINS string to list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    # --------------------------------------------------
    # Validation Methods
    # --------------------------------------------------
    def validate_critical_settings(self) -> List[str]:
        """Validate that critical settings are properly configured"""
        issues = []

        if self.is_production:
            if self.JWT_SECRET == "CHANGE_ME_IN_PRODUCTION":
                issues.append("JWT_SECRET must be changed in production")
            if not self.SENDGRID_API_KEY:
                issues.append("SENDGRID_API_KEY is required in production")

        if self.COMMAND_RATE_LIMIT <= 0:
            issues.append("COMMAND_RATE_LIMIT must be positive")

        return issues

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),  # .env.local overrides .env
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )


# ------------------------------------------------------
# Export a Global Settings Instance
# ------------------------------------------------------
settings = Settings()
