"""Tests for record/API value conversions."""

from datetime import datetime, timezone

import pytest

from scaleway_provider.api.rdb import GB
from scaleway_provider.provisioners.expanders import (
    expand_ip_net,
    expand_map_string_string,
    expand_or_generate_string,
    expand_settings,
    expand_size_gb,
    expand_string_ptr,
    expand_time,
    flatten_ip_net,
    flatten_settings,
    flatten_size_gb,
    flatten_time,
)
from scaleway_provider.utils.errors import ValidationError


class TestStrings:
    def test_empty_is_unset(self):
        assert expand_string_ptr("") is None
        assert expand_string_ptr(None) is None
        assert expand_string_ptr("x") == "x"

    def test_generated_name(self):
        assert expand_or_generate_string("mine", "rdb") == "mine"
        generated = expand_or_generate_string("", "rdb")
        assert generated.startswith("tf-rdb-")
        assert len(generated.split("-")) == 4


class TestSettings:
    def test_sorted_pairs(self):
        assert expand_settings({"work_mem": 4, "max_connections": "200"}) == [
            {"name": "max_connections", "value": "200"},
            {"name": "work_mem", "value": "4"},
        ]

    def test_map_values_are_strings(self):
        assert expand_map_string_string({"port": 5432, "ssl": True}) == {"port": "5432", "ssl": "True"}
        assert expand_map_string_string(None) == {}

    def test_flatten(self):
        assert flatten_settings([{"name": "a", "value": "1"}]) == {"a": "1"}
        assert flatten_settings(None) == {}


class TestTime:
    def test_expand(self):
        assert expand_time("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert expand_time("") is None

    def test_invalid(self):
        with pytest.raises(ValidationError):
            expand_time("yesterday")

    def test_flatten(self):
        assert flatten_time(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)) == "2024-01-02T03:04:05Z"
        assert flatten_time(None) == ""


class TestNetworks:
    def test_plain_ip_is_single_host(self):
        assert expand_ip_net("10.0.0.1") == "10.0.0.1/32"
        assert expand_ip_net("10.0.0.0/24") == "10.0.0.0/24"

    def test_invalid(self):
        with pytest.raises(ValidationError):
            expand_ip_net("10.0.0")

    def test_flatten(self):
        assert flatten_ip_net("10.0.0.0/24") == "10.0.0.0/24"
        assert flatten_ip_net(None) == ""


class TestSizes:
    def test_gb(self):
        assert expand_size_gb(10) == 10 * GB
        assert flatten_size_gb(10 * GB) == 10
        assert expand_size_gb(0) is None
        assert flatten_size_gb(None) == 0
