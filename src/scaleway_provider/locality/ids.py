"""Composite identifiers: `{locality}/{id}` and nested variants."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from scaleway_provider.locality.regions import parse_region, parse_zone
from scaleway_provider.utils.errors import ValidationError


def _parse_error(localized_id: str) -> ValidationError:
    return ValidationError(f"cant parse localized id: {localized_id}")


def parse_localized_id(localized_id: str) -> Tuple[str, str]:
    """Split `{locality}/{id}`.

    Args:
        localized_id: Composite identifier

    Returns:
        Tuple of (lowercase locality, id)

    Raises:
        ValidationError: If the value is not made of exactly two segments
    """
    parts = localized_id.split('/')
    if len(parts) != 2 or not parts[0]:
        raise _parse_error(localized_id)
    return parts[0].lower(), parts[1]


def parse_localized_nested_id(localized_id: str) -> Tuple[str, str, str]:
    """Split `{locality}/{parent}/{child}`; the child may contain slashes.

    Returns:
        Tuple of (lowercase locality, parent id, child id)

    Raises:
        ValidationError: If the value has fewer than three segments
    """
    parts = localized_id.split('/')
    if len(parts) < 3 or not parts[0]:
        raise _parse_error(localized_id)
    return parts[0].lower(), parts[1], '/'.join(parts[2:])


def parse_localized_nested_owner_id(localized_id: str) -> Tuple[str, str, str]:
    """Split an ID with an optional owner: `{locality}/{id}[/{owner}]`.

    Returns:
        Tuple of (lowercase locality, id, owner or empty string)
    """
    parts = localized_id.split('/')
    if len(parts) == 2:
        locality, inner = parse_localized_id(localized_id)
        return locality, inner, ''
    if len(parts) == 3:
        return parse_localized_nested_id(localized_id)
    raise _parse_error(localized_id)


def parse_regional_id(regional_id: str) -> Tuple[str, str]:
    """Split `{region}/{id}` and validate the region."""
    locality, inner = parse_localized_id(regional_id)
    return parse_region(locality), inner


def parse_zonal_id(zonal_id: str) -> Tuple[str, str]:
    """Split `{zone}/{id}` and validate the zone."""
    locality, inner = parse_localized_id(zonal_id)
    return parse_zone(locality), inner


def parse_regional_nested_id(regional_nested_id: str) -> Tuple[str, str, str]:
    """Split `{region}/{parent}/{child}` and validate the region."""
    locality, parent, child = parse_localized_nested_id(regional_nested_id)
    return parse_region(locality), parent, child


def parse_zonal_nested_id(zonal_nested_id: str) -> Tuple[str, str, str]:
    """Split `{zone}/{parent}/{child}` and validate the zone."""
    locality, parent, child = parse_localized_nested_id(zonal_nested_id)
    return parse_zone(locality), parent, child


def new_regional_id(region: str, inner_id: str) -> str:
    return f"{region}/{inner_id}"


def new_zonal_id(zone: str, inner_id: str) -> str:
    return f"{zone}/{inner_id}"


def new_regional_nested_id(region: str, parent_id: str, child_id: str) -> str:
    return f"{region}/{parent_id}/{child_id}"


def new_zonal_nested_id(zone: str, parent_id: str, child_id: str) -> str:
    return f"{zone}/{parent_id}/{child_id}"


@dataclass(frozen=True)
class RegionalID:
    """An ID linked with a region, eg fr-par/11111111-1111-1111-1111-111111111111."""
    id: str
    region: str = ''

    def __str__(self) -> str:
        return f"{self.region}/{self.id}"


@dataclass(frozen=True)
class ZonalID:
    """An ID linked with a zone, eg fr-par-1/11111111-1111-1111-1111-111111111111."""
    id: str
    zone: str = ''

    def __str__(self) -> str:
        return f"{self.zone}/{self.id}"


def expand_regional_id(value: str) -> RegionalID:
    """Parse a regional ID leniently; a bare ID gets an empty region."""
    parts = value.split('/')
    if len(parts) != 2:
        return RegionalID(id=value)
    return RegionalID(id=parts[1], region=parts[0].lower())


def expand_zonal_id(value: str) -> ZonalID:
    """Parse a zonal ID leniently; a bare ID gets an empty zone."""
    parts = value.split('/')
    if len(parts) != 2:
        return ZonalID(id=value)
    return ZonalID(id=parts[1], zone=parts[0].lower())


def expand_id(value: str) -> str:
    """Return the bare ID whether the value is localized or not."""
    try:
        _, inner = parse_localized_id(value)
    except ValidationError:
        return value
    return inner


def expand_localized(value: str, default_locality: str) -> Tuple[str, str]:
    """Split a possibly localized ID, falling back to a default locality.

    Args:
        value: `{locality}/{id}` or a bare ID
        default_locality: Locality used for bare IDs

    Returns:
        Tuple of (locality, id)
    """
    try:
        return parse_localized_id(value)
    except ValidationError:
        return default_locality, value


def datasource_new_regional_id(value: str, fallback_region: str) -> str:
    """Localize a user-supplied ID, keeping its own region when it has one."""
    try:
        region, inner = parse_regional_id(value)
    except ValidationError:
        region, inner = fallback_region, value
    return new_regional_id(region, inner)


def datasource_new_zonal_id(value: str, fallback_zone: str) -> str:
    """Localize a user-supplied ID, keeping its own zone when it has one."""
    try:
        zone, inner = parse_zonal_id(value)
    except ValidationError:
        zone, inner = fallback_zone, value
    return new_zonal_id(zone, inner)


def diff_suppress_locality(key: str, old: str, new: str, data: Any = None) -> bool:
    """Suppress the diff between an ID and its localized form.

    eg 2c1a1716-5570-4668-a50a-860c90beabf6 == fr-par-1/2c1a1716-5570-4668-a50a-860c90beabf6
    """
    return expand_id(old) == expand_id(new)


def compare_localities(first: str, second: str) -> bool:
    """Localities match when equal or when one is a zone of the other."""
    if first == second:
        return True
    return first.startswith(second) or second.startswith(first)


def check_ids_locality(resource_locality: Optional[str], ids: Dict[str, str]) -> None:
    """Reject referenced IDs that live in another locality than the resource.

    Bare IDs are accepted.

    Args:
        resource_locality: Zone or region of the resource
        ids: Attribute name to referenced ID

    Raises:
        ValidationError: On the first ID with a different locality
    """
    if not resource_locality:
        raise ValidationError('missing locality zone or region to check IDs')

    for attribute, value in ids.items():
        if not value:
            continue
        try:
            locality, _ = parse_localized_id(value)
        except ValidationError:
            continue
        if not compare_localities(locality, resource_locality):
            raise ValidationError(
                f"given {attribute} {value} has different locality than the resource \"{resource_locality}\"",
                attribute=attribute,
            )
