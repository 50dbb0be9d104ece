"""Tests for regions, zones and composite identifiers."""

from typing import Annotated, Optional

import pytest

from scaleway_provider.locality import (
    RegionalID,
    all_regions,
    all_zones,
    check_ids_locality,
    datasource_new_regional_id,
    diff_suppress_locality,
    expand_id,
    expand_localized,
    expand_regional_id,
    extract_region,
    new_regional_id,
    new_regional_nested_id,
    parse_localized_nested_owner_id,
    parse_region,
    parse_regional_id,
    parse_regional_nested_id,
    parse_zonal_id,
    region_zones,
    validate_uuid_or_uuid_with_locality,
    zone_to_region,
)
from scaleway_provider.state import Attr, AttributeModel, ResourceData
from scaleway_provider.utils.errors import ValidationError, is_validation

UUID = "11111111-1111-1111-1111-111111111111"


class TestParse:
    def test_regional_id(self):
        assert parse_regional_id(f"fr-par/{UUID}") == ("fr-par", UUID)

    def test_zonal_id(self):
        assert parse_zonal_id("fr-par-1/abc") == ("fr-par-1", "abc")

    def test_bare_value_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_regional_id("xx")
        assert is_validation(exc_info.value)
        assert "cant parse localized id: xx" in exc_info.value.message

    def test_unknown_region_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_regional_id(f"xx-yyy/{UUID}")

    def test_locality_is_lower_cased(self):
        assert parse_regional_id(f"FR-PAR/{UUID}") == ("fr-par", UUID)

    def test_nested_child_keeps_slashes(self):
        assert parse_regional_nested_id("fr-par/bucket/dir/key.txt") == ("fr-par", "bucket", "dir/key.txt")

    def test_nested_owner_id(self):
        assert parse_localized_nested_owner_id("fr-par/bucket") == ("fr-par", "bucket", "")
        assert parse_localized_nested_owner_id(f"fr-par/{UUID}/bucket") == ("fr-par", UUID, "bucket")
        with pytest.raises(ValidationError):
            parse_localized_nested_owner_id("fr-par/a/b/c")

    @pytest.mark.parametrize("region", all_regions())
    def test_round_trip(self, region):
        encoded = new_regional_id(region, UUID)
        assert parse_regional_id(encoded) == (region, UUID)
        assert new_regional_id(*parse_regional_id(encoded)) == encoded

    def test_nested_round_trip(self):
        encoded = new_regional_nested_id("nl-ams", UUID, "db")
        assert new_regional_nested_id(*parse_regional_nested_id(encoded)) == encoded


class TestZonesAndRegions:
    @pytest.mark.parametrize("zone", all_zones())
    def test_zone_belongs_to_its_region(self, zone):
        region = zone_to_region(zone)
        assert region in all_regions()
        assert zone in region_zones(region)

    def test_parse_region_canonicalizes(self):
        assert parse_region(" NL-AMS ") == "nl-ams"

    def test_parse_region_rejects_zone(self):
        with pytest.raises(ValidationError):
            parse_region("fr-par-1")


class TestExpand:
    def test_expand_regional_id_without_region(self):
        assert expand_regional_id("my-bucket") == RegionalID(id="my-bucket")
        assert str(expand_regional_id("fr-par/my-bucket")) == "fr-par/my-bucket"

    def test_expand_id(self):
        assert expand_id(f"fr-par-1/{UUID}") == UUID
        assert expand_id(UUID) == UUID

    def test_expand_localized_falls_back_to_default(self):
        assert expand_localized(UUID, "pl-waw") == ("pl-waw", UUID)
        assert expand_localized(f"fr-par/{UUID}", "pl-waw") == ("fr-par", UUID)

    def test_datasource_id_keeps_own_region(self):
        assert datasource_new_regional_id(f"nl-ams/{UUID}", "fr-par") == f"nl-ams/{UUID}"
        assert datasource_new_regional_id(UUID, "fr-par") == f"fr-par/{UUID}"


class TestDiffSuppressLocality:
    def test_same_uuid(self):
        assert diff_suppress_locality("instance_id", UUID, f"fr-par-1/{UUID}")

    def test_different_uuid(self):
        other = "22222222-2222-2222-2222-222222222222"
        assert not diff_suppress_locality("instance_id", f"fr-par/{UUID}", f"fr-par/{other}")


class TestCheckIdsLocality:
    def test_zone_of_region_is_accepted(self):
        check_ids_locality("fr-par", {"server_id": f"fr-par-2/{UUID}", "bare": UUID})

    def test_other_region_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            check_ids_locality("fr-par", {"server_id": f"nl-ams-1/{UUID}"})
        assert exc_info.value.attribute == "server_id"

    def test_missing_locality(self):
        with pytest.raises(ValidationError):
            check_ids_locality("", {})


class TestValidation:
    def test_uuid_or_uuid_with_locality(self):
        assert validate_uuid_or_uuid_with_locality(UUID) == UUID
        assert validate_uuid_or_uuid_with_locality(f"fr-par/{UUID}") == f"fr-par/{UUID}"
        with pytest.raises(ValidationError):
            validate_uuid_or_uuid_with_locality("fr-par/not-a-uuid")


class _Regional(AttributeModel):
    region: Annotated[Optional[str], Attr(optional=True, computed=True)] = None


class TestExtractRegion:
    def test_field_wins_over_default(self, meta):
        data = ResourceData(_Regional, planned={"region": "nl-ams"})
        assert extract_region(data, meta) == "nl-ams"

    def test_default_region(self, meta):
        data = ResourceData(_Regional, planned={})
        assert extract_region(data, meta) == "fr-par"
