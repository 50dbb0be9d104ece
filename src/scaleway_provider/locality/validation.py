"""Validators and locality extraction from resource state."""

import re
from typing import Any, Optional

from scaleway_provider.locality.ids import parse_localized_id
from scaleway_provider.locality.regions import parse_region, parse_zone
from scaleway_provider.utils.errors import ValidationError

UUID_PATTERN = re.compile(r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$')


def is_uuid(value: str) -> bool:
    return bool(UUID_PATTERN.match(value or ''))


def validate_uuid(value: str) -> str:
    """Validate a UUID.

    Raises:
        ValidationError: If the value is not a UUID
    """
    if not is_uuid(value):
        raise ValidationError(f"'{value}' is not a UUID")
    return value


def validate_uuid_with_locality(value: str) -> str:
    """Validate a `{locality}/{uuid}` value."""
    try:
        _, inner = parse_localized_id(value)
    except ValidationError:
        raise ValidationError(f"'{value}' is not a UUID with locality") from None
    if not is_uuid(inner):
        raise ValidationError(f"'{value}' is not a UUID with locality")
    return value


def validate_uuid_or_uuid_with_locality(value: str) -> str:
    """Validate a bare UUID or a `{locality}/{uuid}` value."""
    if is_uuid(value):
        return value
    return validate_uuid_with_locality(value)


def extract_region(data: Any, meta: Any) -> str:
    """Find the region of a resource.

    Uses the `region` attribute when set, else the default region of the
    provider.

    Args:
        data: ResourceData of the resource
        meta: Provider Meta

    Returns:
        The region

    Raises:
        ValidationError: If no region can be found
    """
    value, ok = _get_ok(data, 'region')
    if ok:
        return parse_region(value)
    if meta is not None and meta.default_region:
        return meta.default_region
    raise ValidationError('region not found', attribute='region')


def extract_zone(data: Any, meta: Any) -> str:
    """Find the zone of a resource from its `zone` attribute or the default zone."""
    value, ok = _get_ok(data, 'zone')
    if ok:
        return parse_zone(value)
    if meta is not None and meta.default_zone:
        return meta.default_zone
    raise ValidationError('zone not found', attribute='zone')


def extract_region_with_default(data: Any, meta: Any, default_region: Optional[str]) -> str:
    """Like extract_region, with a caller-provided default before the provider's."""
    value, ok = _get_ok(data, 'region')
    if ok:
        return parse_region(value)
    if default_region:
        return default_region
    return extract_region(data, meta)


def _get_ok(data: Any, key: str):
    if data is None or not data.has_attribute(key):
        return None, False
    return data.get_ok(key)
