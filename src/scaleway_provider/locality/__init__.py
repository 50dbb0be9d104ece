"""Locality addressing: regions, zones and composite identifiers."""

from .regions import (
    DEFAULT_REGION,
    DEFAULT_ZONE,
    all_regions,
    all_zones,
    is_region,
    is_zone,
    parse_region,
    parse_zone,
    zone_to_region,
    region_zones,
)
from .ids import (
    RegionalID,
    ZonalID,
    parse_localized_id,
    parse_localized_nested_id,
    parse_localized_nested_owner_id,
    parse_regional_id,
    parse_zonal_id,
    parse_regional_nested_id,
    parse_zonal_nested_id,
    new_regional_id,
    new_zonal_id,
    new_regional_nested_id,
    new_zonal_nested_id,
    expand_regional_id,
    expand_zonal_id,
    expand_id,
    expand_localized,
    datasource_new_regional_id,
    datasource_new_zonal_id,
    diff_suppress_locality,
    compare_localities,
    check_ids_locality,
)
from .validation import (
    is_uuid,
    validate_uuid,
    validate_uuid_with_locality,
    validate_uuid_or_uuid_with_locality,
    extract_region,
    extract_zone,
    extract_region_with_default,
)

__all__ = [
    'DEFAULT_REGION',
    'DEFAULT_ZONE',
    'all_regions',
    'all_zones',
    'is_region',
    'is_zone',
    'parse_region',
    'parse_zone',
    'zone_to_region',
    'region_zones',
    'RegionalID',
    'ZonalID',
    'parse_localized_id',
    'parse_localized_nested_id',
    'parse_localized_nested_owner_id',
    'parse_regional_id',
    'parse_zonal_id',
    'parse_regional_nested_id',
    'parse_zonal_nested_id',
    'new_regional_id',
    'new_zonal_id',
    'new_regional_nested_id',
    'new_zonal_nested_id',
    'expand_regional_id',
    'expand_zonal_id',
    'expand_id',
    'expand_localized',
    'datasource_new_regional_id',
    'datasource_new_zonal_id',
    'diff_suppress_locality',
    'compare_localities',
    'check_ids_locality',
    'is_uuid',
    'validate_uuid',
    'validate_uuid_with_locality',
    'validate_uuid_or_uuid_with_locality',
    'extract_region',
    'extract_zone',
    'extract_region_with_default',
]
