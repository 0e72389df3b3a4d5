"""
Dependency Injection Container for the location service.

One LocationService per process, constructed at startup and handed to request
handlers through FastAPI dependencies. Tests build their own container (or
override ``get_location_service``) to get fresh caches and health state.
"""
import logging
from typing import Optional

import httpx

from .config import Settings, get_settings
from .location_service import LocationService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Owns the process-lifetime LocationService and its shared HTTP client.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._client = client
        self._location_service: Optional[LocationService] = None

        logger.info(f"ServiceContainer initialized (env: {settings.APP_ENV})")

    @property
    def location_service(self) -> LocationService:
        """Get or create the LocationService instance."""
        if self._location_service is None:
            self._location_service = LocationService.from_settings(self.settings, client=self._client)
            logger.info("LocationService created and injected")
        return self._location_service

    async def close(self):
        """Close all managed services and clean up resources."""
        if self._location_service is not None:
            try:
                await self._location_service.close()
                logger.info("Closed location_service")
            except Exception as e:
                logger.warning(f"Error closing location_service: {e}")
            self._location_service = None

        logger.info("ServiceContainer closed all managed services")


# Global container instance (initialized at startup)
_service_container: Optional[ServiceContainer] = None


def get_service_container() -> ServiceContainer:
    """Get the global service container instance."""
    if _service_container is None:
        raise RuntimeError("Service container not initialized. Call init_service_container() first.")
    return _service_container


def init_service_container(
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None
) -> ServiceContainer:
    """Initialize the global service container."""
    global _service_container
    try:
        _service_container = ServiceContainer(settings or get_settings(), client=client)
        logger.info("Service container initialized successfully")
        return _service_container
    except Exception as e:
        logger.error(f"Failed to initialize service container: {e}")
        raise


async def close_service_container():
    """Close the global service container and clean up all resources."""
    global _service_container
    if _service_container:
        try:
            await _service_container.close()
            _service_container = None
            logger.info("Service container closed and reset")
        except Exception as e:
            logger.error(f"Error closing service container: {e}")
            raise


# FastAPI dependency functions
def get_location_service() -> LocationService:
    """FastAPI dependency to get the LocationService instance."""
    return get_service_container().location_service
