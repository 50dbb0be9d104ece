"""Tests for configuration loading and the Meta."""

import dataclasses

import pytest
import requests
import yaml

from scaleway_provider.meta import ConfigFile, MetaConfig, build_meta, customize_user_agent
from scaleway_provider.utils.errors import ConfigurationError

from .conftest import ACCESS_KEY, PROJECT_ID

OTHER_PROJECT_ID = "44444444-4444-4444-4444-444444444444"


def write_config(environ, content):
    with open(environ["SCW_CONFIG_PATH"], "w") as f:
        yaml.safe_dump(content, f)


def meta_from(environ, arguments=None, **kwargs):
    return build_meta(MetaConfig(
        provider_arguments=arguments,
        environ=environ,
        http_session=requests.Session(),
        **kwargs,
    ))


class TestPrecedence:
    def test_defaults(self, environ):
        meta = meta_from(environ)
        assert meta.default_region == "fr-par"
        assert meta.default_zone == "fr-par-1"
        assert meta.access_key == ACCESS_KEY
        assert meta.default_project_id == PROJECT_ID

    def test_arguments_win_over_environment(self, environ):
        environ["SCW_DEFAULT_REGION"] = "nl-ams"
        meta = meta_from(environ, {"region": "pl-waw", "project_id": OTHER_PROJECT_ID})
        assert meta.default_region == "pl-waw"
        assert meta.default_project_id == OTHER_PROJECT_ID

    def test_environment_wins_over_file(self, environ):
        write_config(environ, {"default_region": "pl-waw", "default_zone": "pl-waw-1"})
        environ["SCW_DEFAULT_REGION"] = "nl-ams"
        meta = meta_from(environ)
        assert meta.default_region == "nl-ams"
        assert meta.default_zone == "pl-waw-1"

    def test_zone_gives_region(self, environ):
        meta = meta_from(environ, {"zone": "nl-ams-2"})
        assert meta.default_zone == "nl-ams-2"
        assert meta.default_region == "nl-ams"

    def test_forced_zone(self, environ):
        meta = meta_from(environ, {"region": "fr-par"}, force_zone="pl-waw-2")
        assert meta.default_zone == "pl-waw-2"
        assert meta.default_region == "pl-waw"

    def test_unknown_values_are_ignored(self, environ):
        meta = meta_from(environ, {"project_id": "74D93920-ED26-11E3-AC10-0800200C9A66"})
        assert meta.default_project_id == PROJECT_ID


class TestConfigFile:
    def test_missing_file_is_empty(self, tmp_path):
        config = ConfigFile.load(tmp_path / "missing.yaml")
        assert config.data == {}

    def test_named_profile(self, environ):
        del environ["SCW_DEFAULT_PROJECT_ID"]
        write_config(environ, {
            "default_region": "fr-par",
            "profiles": {"prod": {"default_project_id": OTHER_PROJECT_ID, "default_region": "nl-ams"}},
        })
        meta = meta_from(environ, {"profile": "prod"})
        assert meta.default_project_id == OTHER_PROJECT_ID
        assert meta.default_region == "nl-ams"

    def test_active_profile(self, environ):
        write_config(environ, {
            "active_profile": "prod",
            "profiles": {"prod": {"default_zone": "pl-waw-3"}},
        })
        assert meta_from(environ).default_region == "pl-waw"

    def test_unknown_profile(self, environ):
        write_config(environ, {"profiles": {}})
        with pytest.raises(ConfigurationError):
            meta_from(environ, {"profile": "nope"})

    def test_invalid_yaml(self, environ):
        with open(environ["SCW_CONFIG_PATH"], "w") as f:
            f.write("default_region: [unclosed")
        with pytest.raises(ConfigurationError):
            meta_from(environ)


class TestArguments:
    @pytest.mark.parametrize("arguments,attribute", [
        ({"region": "mars-1"}, "region"),
        ({"zone": "fr-par-9"}, "zone"),
        ({"project_id": "not-a-uuid"}, "project_id"),
        ({"unexpected": "x"}, "unexpected"),
    ])
    def test_invalid_arguments(self, environ, arguments, attribute):
        with pytest.raises(ConfigurationError) as exc_info:
            meta_from(environ, arguments)
        assert exc_info.value.attribute == attribute

    def test_invalid_environment(self, environ):
        environ["SCW_DEFAULT_ZONE"] = "nowhere"
        with pytest.raises(ConfigurationError):
            meta_from(environ)


class TestMeta:
    def test_is_immutable(self, meta):
        with pytest.raises(dataclasses.FrozenInstanceError):
            meta.default_region = "nl-ams"

    def test_retry_interval(self, meta):
        assert meta.retry_interval(5.0) == 0.0
        assert dataclasses.replace(meta, wait_retry_interval=None).retry_interval(5.0) == 5.0

    def test_user_agent(self):
        user_agent = customize_user_agent("1.0.0", "1.5.0", {"TF_APPEND_USER_AGENT": "ci"})
        assert user_agent == "terraform-provider-scaleway-py/1.0.0 terraform/1.5.0 ci"
