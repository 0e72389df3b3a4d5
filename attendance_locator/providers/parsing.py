"""
Helpers shared by every provider parser: display name, confidence and
location type classification.
"""
from typing import Iterable, Optional, Tuple

from ..models.location import Confidence, LocationComponents, LocationType

# Checked in order; the first category with a keyword contained in any tag wins
LOCATION_TYPE_KEYWORDS: Tuple[Tuple[LocationType, Tuple[str, ...]], ...] = (
    (LocationType.RESIDENTIAL, ("house", "residential", "apartment", "premise", "building")),
    (LocationType.COMMERCIAL, ("commercial", "office", "shop", "retail", "store",
                               "establishment", "restaurant", "point_of_interest")),
    (LocationType.INDUSTRIAL, ("industrial", "warehouse", "factory")),
    (LocationType.LANDMARK, ("monument", "memorial", "attraction", "landmark", "tourism", "museum")),
)


def build_location_name(components: LocationComponents, formatted: Optional[str] = None) -> Optional[str]:
    """
    Join the most specific components, falling back to the provider's own
    formatted string when none were extracted.
    """
    if components.house_number and components.street:
        street = f"{components.house_number} {components.street}"
    else:
        street = components.street

    parts = [part for part in (street, components.neighborhood, components.city) if part]
    if parts:
        return ", ".join(parts)
    if formatted and formatted.strip():
        return formatted.strip()
    return None


def confidence_from_components(components: LocationComponents) -> Confidence:
    if components.street and components.city:
        return Confidence.HIGH
    if components.neighborhood or components.city:
        return Confidence.MEDIUM
    return Confidence.LOW


def classify_location_type(tags: Iterable[Optional[str]]) -> LocationType:
    normalized = [tag.lower() for tag in tags if tag]
    for location_type, keywords in LOCATION_TYPE_KEYWORDS:
        if any(keyword in tag for tag in normalized for keyword in keywords):
            return location_type
    return LocationType.UNKNOWN


def clean(value) -> Optional[str]:
    """Normalize an optional upstream string field; blanks become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
