from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Optional
import logging
from dotenv import load_dotenv

# Explicitly load .env file to ensure environment variables are available
load_dotenv()


class Settings(BaseSettings):
    # Environment
    APP_ENV: Literal["development", "production", "test"] = Field(
        default="development",
        description="Deployment environment; production switches logging to JSON"
    )

    # Provider credentials (absence disables the provider, never fails startup)
    MAPBOX_ACCESS_TOKEN: Optional[str] = None
    GOOGLE_MAPS_API_KEY: Optional[str] = None

    # Nominatim (OpenStreetMap) - public usage policy is 1 request per second
    NOMINATIM_BASE_URL: str = Field(default="https://nominatim.openstreetmap.org/reverse")
    NOMINATIM_USER_AGENT: str = Field(
        default="AttendanceTracker/2.0 (Location Services)",
        description="Identifying User-Agent required by the Nominatim usage policy"
    )
    NOMINATIM_ACCEPT_LANGUAGE: str = Field(default="en,id;q=0.9")
    NOMINATIM_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    NOMINATIM_MIN_INTERVAL_SECONDS: float = Field(default=1.0, ge=0)
    NOMINATIM_PRIORITY: int = Field(default=1)

    # Mapbox - 600 requests per minute
    MAPBOX_BASE_URL: str = Field(default="https://api.mapbox.com/geocoding/v5/mapbox.places")
    MAPBOX_TIMEOUT_SECONDS: float = Field(default=8.0, gt=0)
    MAPBOX_MIN_INTERVAL_SECONDS: float = Field(default=0.1, ge=0)
    MAPBOX_PRIORITY: int = Field(default=2)

    # Google Maps Geocoding - 50 requests per minute
    GOOGLE_MAPS_BASE_URL: str = Field(default="https://maps.googleapis.com/maps/api/geocode/json")
    GOOGLE_MAPS_TIMEOUT_SECONDS: float = Field(default=8.0, gt=0)
    GOOGLE_MAPS_MIN_INTERVAL_SECONDS: float = Field(default=1.2, ge=0)
    GOOGLE_MAPS_PRIORITY: int = Field(default=3)

    PROVIDER_LANGUAGE: str = Field(default="en", description="Response language for Mapbox and Google")
    PROVIDER_RETRY_ATTEMPTS: int = Field(
        default=0, ge=0,
        description="Retries of transient provider errors inside a single resolve call"
    )
    PROVIDER_RETRY_BASE_DELAY: float = Field(default=0.5, ge=0)

    # Cache tiers: capacity and TTL
    PRECISE_CACHE_SIZE: int = Field(default=500, gt=0)
    PRECISE_CACHE_TTL_SECONDS: int = Field(default=6 * 60 * 60, gt=0)
    NEARBY_CACHE_SIZE: int = Field(default=1000, gt=0)
    NEARBY_CACHE_TTL_SECONDS: int = Field(default=24 * 60 * 60, gt=0)
    ADMIN_CACHE_SIZE: int = Field(default=200, gt=0)
    ADMIN_CACHE_TTL_SECONDS: int = Field(default=7 * 24 * 60 * 60, gt=0)
    NEARBY_CACHE_MIN_READ_QUALITY: int = Field(
        default=70, ge=0, le=100,
        description="Nearby-tier hits are served only above this quality score"
    )

    # Provider health (circuit breaking)
    HEALTH_INITIAL_SCORE: int = Field(default=100, ge=0, le=100)
    HEALTH_SUCCESS_INCREMENT: int = Field(default=1, ge=0)
    HEALTH_FAILURE_PENALTY: int = Field(default=5, ge=0)
    HEALTH_MIN_SCORE: int = Field(default=20, ge=0, le=100)

    # Consensus
    CONSENSUS_FAST_PATH_THRESHOLD: int = Field(default=50, ge=0, le=100)
    CONSENSUS_CANDIDATE_MIN_QUALITY: int = Field(default=30, ge=0, le=100)
    CONSENSUS_MAX_PARALLEL: int = Field(default=3, gt=0)
    CONSENSUS_AGREEMENT_BONUS: int = Field(default=10, ge=0)
    RESOLUTION_TIMEOUT_SECONDS: float = Field(
        default=15.0, gt=0,
        description="Overall budget for one name lookup before falling back"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    LOG_FORMAT: Literal["text", "json"] = Field(default="text")

    # Server settings
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8002, description="Port for the Uvicorn server")
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        extra="ignore"
    )

    @field_validator('MAPBOX_ACCESS_TOKEN', 'GOOGLE_MAPS_API_KEY', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty credential strings from the environment as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def use_json_logging(self) -> bool:
        return self.LOG_FORMAT == "json" or self.APP_ENV == "production"


def validate_environment_configuration(settings: Settings) -> None:
    """
    Validate configuration consistency.

    Missing provider credentials are warnings: the provider is skipped and the
    remaining providers (and the fallback) still answer.

    Raises:
        ValueError: For critical configuration errors that prevent startup
    """
    logger = logging.getLogger(__name__)

    critical_errors = []
    warnings = []

    if settings.CONSENSUS_CANDIDATE_MIN_QUALITY > settings.CONSENSUS_FAST_PATH_THRESHOLD:
        critical_errors.append(
            "CONSENSUS_CANDIDATE_MIN_QUALITY must not exceed CONSENSUS_FAST_PATH_THRESHOLD"
        )

    if settings.HEALTH_MIN_SCORE >= settings.HEALTH_INITIAL_SCORE:
        critical_errors.append(
            "HEALTH_MIN_SCORE must be below HEALTH_INITIAL_SCORE or every provider starts circuit-broken"
        )

    if not settings.MAPBOX_ACCESS_TOKEN:
        warnings.append("MAPBOX_ACCESS_TOKEN not set - Mapbox provider disabled")
    if not settings.GOOGLE_MAPS_API_KEY:
        warnings.append("GOOGLE_MAPS_API_KEY not set - Google Maps provider disabled")

    if settings.APP_ENV == "production" and "*" in settings.cors_origins_list:
        warnings.append("Wildcard CORS origin configured in production")

    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")

    if critical_errors:
        for error in critical_errors:
            logger.error(f"Configuration error: {error}")
        raise ValueError("; ".join(critical_errors))

    logger.info(
        "Configuration summary",
        extra={
            "app_env": settings.APP_ENV,
            "mapbox_enabled": bool(settings.MAPBOX_ACCESS_TOKEN),
            "google_enabled": bool(settings.GOOGLE_MAPS_API_KEY),
            "validation_status": "complete"
        }
    )


def get_settings() -> Settings:
    """Dependency for getting settings with validation."""
    settings = Settings()
    validate_environment_configuration(settings)
    return settings
