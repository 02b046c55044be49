"""
Configuration management using Pydantic settings.
A single Settings instance is built at startup and passed to the components that need it.
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache


DEV_ACCESS_SECRET = "dev-access-secret-change-in-production"
DEV_REFRESH_SECRET = "dev-refresh-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""
    
    # Application configuration
    app_name: str = "Flat Listing API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    
    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/flat_listings"
    database_echo: bool = False
    
    # JWT configuration - access and refresh tokens use separate secrets
    jwt_access_secret: str = DEV_ACCESS_SECRET
    jwt_refresh_secret: str = DEV_REFRESH_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    
    # Upload configuration
    upload_dir: str = "./uploads"
    uploads_url_prefix: str = "/uploads"
    max_upload_size: int = 5 * 1024 * 1024  # 5MB
    max_images_per_request: int = 10
    
    # Image storage backend: "local" or "s3"
    image_storage_backend: str = "local"
    s3_bucket: Optional[str] = None
    s3_region: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_public_base_url: Optional[str] = None
    s3_key_prefix: str = "flats"
    
    # API configuration
    api_prefix: str = "/api"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8080"]
    
    # Pagination defaults
    default_page_size: int = 50
    max_page_size: int = 100
    
    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    
    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v and v.startswith("sqlite:///"):
            return v.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return v
    
    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v
    
    @field_validator("image_storage_backend")
    @classmethod
    def validate_storage_backend(cls, v):
        v = (v or "").strip().lower()
        if v not in ("local", "s3"):
            raise ValueError("IMAGE_STORAGE_BACKEND must be 'local' or 's3'")
        return v
    
    @model_validator(mode="after")
    def validate_secrets(self):
        """Reject weak or shared JWT secrets outside development and testing."""
        if self.environment in ("staging", "production"):
            for name in ("jwt_access_secret", "jwt_refresh_secret"):
                value = getattr(self, name)
                if value in (DEV_ACCESS_SECRET, DEV_REFRESH_SECRET) or len(value) < 32:
                    raise ValueError(f"{name.upper()} must be set to at least 32 characters")
            if self.jwt_access_secret == self.jwt_refresh_secret:
                raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        if self.image_storage_backend == "s3" and not self.s3_bucket:
            raise ValueError("S3_BUCKET is required when IMAGE_STORAGE_BACKEND is 's3'")
        return self
    
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"
    
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance for process entry points.
    Components receive settings explicitly instead of calling this.
    """
    return Settings()
