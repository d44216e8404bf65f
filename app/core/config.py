# app/core/config.py - Centralized settings management using Pydantic
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing import Annotated, List, Optional


DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",  # Vite dev server
    "http://127.0.0.1:5173",
]


class Settings(BaseSettings):
    """Application settings with validation and type safety"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra environment variables
    )

    # Application Environment
    ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    DEBUG: bool = Field(default=False, description="Debug mode")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, ge=1, le=65535, description="API port")
    API_TITLE: str = Field(default="Student ID Card API", description="API title")
    API_VERSION: str = Field(default="1.0.0", description="API version")

    # Database Configuration
    DATABASE_URL: str = Field(..., description="Database connection URL")
    DATABASE_ECHO: bool = Field(default=False, description="Echo SQL queries")
    DATABASE_POOL_SIZE: int = Field(default=5, ge=1, le=100, description="Connection pool size")
    DATABASE_MAX_OVERFLOW: int = Field(default=10, ge=0, le=100, description="Max overflow connections")
    DATABASE_POOL_TIMEOUT: int = Field(default=30, ge=1, le=300, description="Pool timeout in seconds")
    DATABASE_POOL_RECYCLE: int = Field(default=3600, ge=300, description="Pool recycle time in seconds")

    # JWT Configuration (tokens are issued by the hosted auth service)
    JWT_SECRET: str = Field(..., min_length=32, description="JWT signing secret shared with the auth service")
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_AUDIENCE: str = Field(default="authenticated", description="JWT audience")
    JWT_ISSUER: Optional[str] = Field(default=None, description="JWT issuer, not checked when unset")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60, ge=1, le=10080, description="Access token expiry")

    # CORS Configuration
    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(default=DEFAULT_CORS_ORIGINS, description="CORS allowed origins")
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True, description="Allow CORS credentials")

    # Cloudinary Configuration (student photo storage)
    CLOUDINARY_CLOUD_NAME: Optional[str] = Field(default=None, description="Cloudinary cloud name")
    CLOUDINARY_API_KEY: Optional[str] = Field(default=None, description="Cloudinary API key")
    CLOUDINARY_API_SECRET: Optional[str] = Field(default=None, description="Cloudinary API secret")
    PHOTO_FOLDER: str = Field(default="student-photos", description="Folder holding student photos")
    PHOTO_DELIVERY_HOST: str = Field(default="res.cloudinary.com", description="Host serving stored photos; photo URLs must point here")
    PHOTO_FETCH_TIMEOUT_SECONDS: int = Field(default=10, ge=1, le=120, description="Timeout when fetching a photo for card rendering")

    # Photo upload limits
    MAX_PHOTO_SIZE_MB: int = Field(default=5, ge=1, le=50, description="Max photo size in MB")

    # Student record business rules
    STUDENT_MIN_AGE_YEARS: int = Field(default=3, ge=0, le=100, description="Youngest accepted student age")
    STUDENT_MAX_AGE_YEARS: int = Field(default=25, ge=1, le=120, description="Oldest accepted student age")
    ACADEMIC_YEAR_LABEL: str = Field(default="2024-25", description="Academic year printed on ID cards")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    @field_validator("ENV")
    @classmethod
    def validate_environment(cls, v):
        allowed_envs = ["dev", "development", "test", "staging", "prod", "production"]
        if v.lower() not in allowed_envs:
            raise ValueError(f"ENV must be one of: {allowed_envs}")
        return v.lower()

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v):
        if v == "change_me_now":
            raise ValueError("JWT_SECRET must be changed from the placeholder value")
        return v

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v):
        allowed_prefixes = (
            "postgresql://",
            "postgresql+psycopg://",
            "sqlite://",
        )
        if not v.startswith(allowed_prefixes):
            raise ValueError("DATABASE_URL must be a valid database connection string (postgresql, postgresql+psycopg or sqlite)")
        # Plain postgresql:// would select psycopg2; the installed driver is psycopg 3
        if v.startswith("postgresql://"):
            return "postgresql+psycopg://" + v[len("postgresql://"):]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed_levels}")
        return v.upper()

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            # Handle comma-separated string
            if v.strip():
                return [origin.strip() for origin in v.split(",") if origin.strip()]
            return list(DEFAULT_CORS_ORIGINS)
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.ENV in ["dev", "development"]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.ENV in ["prod", "production"]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def max_photo_size_bytes(self) -> int:
        """Get max photo size in bytes"""
        return self.MAX_PHOTO_SIZE_MB * 1024 * 1024

    @property
    def cloudinary_configured(self) -> bool:
        return all([self.CLOUDINARY_CLOUD_NAME, self.CLOUDINARY_API_KEY, self.CLOUDINARY_API_SECRET])


# Create settings instance with validation
try:
    settings = Settings()
except Exception as e:
    print(f"Configuration error: {e}")
    print("Please check your .env file and environment variables")
    raise


def validate_critical_settings():
    """Validate critical settings that must be present"""
    critical_errors = []

    if settings.STUDENT_MIN_AGE_YEARS >= settings.STUDENT_MAX_AGE_YEARS:
        critical_errors.append("STUDENT_MIN_AGE_YEARS must be lower than STUDENT_MAX_AGE_YEARS")

    if settings.is_production and settings.is_sqlite:
        critical_errors.append("SQLite is not supported in production, set DATABASE_URL to PostgreSQL")

    if not settings.cloudinary_configured:
        print("WARNING: Cloudinary is not configured. Photo uploads will fail until CLOUDINARY_* is set.")

    if critical_errors:
        error_msg = "Critical configuration errors:\n" + "\n".join(f"  - {error}" for error in critical_errors)
        raise ValueError(error_msg)


# Validate on import
validate_critical_settings()

# Export settings
__all__ = ["settings", "Settings"]
