"""Regions and zones of the Scaleway cloud."""

from typing import Dict, List

from scaleway_provider.utils.errors import ValidationError

# Ordered zones of every region
REGION_ZONES: Dict[str, List[str]] = {
    'fr-par': ['fr-par-1', 'fr-par-2', 'fr-par-3'],
    'nl-ams': ['nl-ams-1', 'nl-ams-2', 'nl-ams-3'],
    'pl-waw': ['pl-waw-1', 'pl-waw-2', 'pl-waw-3'],
}

ZONE_REGIONS: Dict[str, str] = {
    zone: region
    for region, zones in REGION_ZONES.items()
    for zone in zones
}

DEFAULT_REGION = 'fr-par'
DEFAULT_ZONE = 'fr-par-1'


def all_regions() -> List[str]:
    return list(REGION_ZONES)


def all_zones() -> List[str]:
    return [zone for zones in REGION_ZONES.values() for zone in zones]


def is_region(value: str) -> bool:
    return value.lower() in REGION_ZONES


def is_zone(value: str) -> bool:
    return value.lower() in ZONE_REGIONS


def parse_region(value: str) -> str:
    """Validate and canonicalize a region.

    Args:
        value: Region name, any case

    Returns:
        The lowercase region

    Raises:
        ValidationError: If the region is unknown
    """
    region = (value or '').strip().lower()
    if region not in REGION_ZONES:
        raise ValidationError(
            f"bad region format, available regions are: {', '.join(all_regions())}",
            suggestions=[f"Use one of {', '.join(all_regions())}"],
        )
    return region


def parse_zone(value: str) -> str:
    """Validate and canonicalize a zone.

    Args:
        value: Zone name, any case

    Returns:
        The lowercase zone

    Raises:
        ValidationError: If the zone is unknown
    """
    zone = (value or '').strip().lower()
    if zone not in ZONE_REGIONS:
        raise ValidationError(
            f"bad zone format, available zones are: {', '.join(all_zones())}",
            suggestions=[f"Use one of {', '.join(all_zones())}"],
        )
    return zone


def zone_to_region(zone: str) -> str:
    """Return the region a zone belongs to."""
    return ZONE_REGIONS[parse_zone(zone)]


def region_zones(region: str) -> List[str]:
    """Return the zones of a region, in order."""
    return list(REGION_ZONES[parse_region(region)])
