"""Models package for the attendance location resolver."""

from .location import (
    Confidence,
    Coordinates,
    LocationComponents,
    LocationResult,
    LocationSource,
    LocationType,
)

__all__ = [
    'Confidence',
    'Coordinates',
    'LocationComponents',
    'LocationResult',
    'LocationSource',
    'LocationType',
]
