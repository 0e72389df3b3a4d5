"""
Reverse-geocoding providers.
"""
from .base_provider import BaseGeocodingProvider
from .fallback_provider import FallbackProvider
from .google_provider import GoogleMapsProvider
from .mapbox_provider import MapboxProvider
from .nominatim_provider import NominatimProvider

__all__ = [
    "BaseGeocodingProvider",
    "FallbackProvider",
    "GoogleMapsProvider",
    "MapboxProvider",
    "NominatimProvider",
]
