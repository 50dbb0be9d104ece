"""Tests for the resource registry and the provider entry point."""

import pytest
import requests

from scaleway_provider.meta import MetaConfig
from scaleway_provider.provider import Provider, beta_enabled, build_registry
from scaleway_provider.provisioners import RdbInstanceProvisioner

from .conftest import PROJECT_ID

WEBSITE = "scaleway_object_bucket_website_configuration"


class TestRegistry:
    def test_beta_kinds_are_hidden_by_default(self):
        registry = build_registry(enable_beta=False)
        assert "scaleway_rdb_instance" in registry
        assert WEBSITE not in registry

    def test_beta_kinds(self):
        registry = build_registry(enable_beta=True)
        assert WEBSITE in registry
        assert len(registry) == 9

    @pytest.mark.parametrize("value,enabled", [("", False), ("0", False), ("false", False), ("1", True), ("true", True)])
    def test_beta_enabled(self, value, enabled):
        assert beta_enabled({"SCW_ENABLE_BETA": value}) == enabled

    def test_registry_is_read_only(self):
        registry = build_registry(enable_beta=False)
        with pytest.raises(TypeError):
            registry["scaleway_fake"] = RdbInstanceProvisioner


class TestProvider:
    def test_configure(self, environ):
        provider = Provider(registry=build_registry(enable_beta=False), http_session=requests.Session())
        assert provider.configure({"region": "nl-ams"}, "1.5.0", MetaConfig(environ=environ)) == []
        assert provider.meta.default_region == "nl-ams"
        assert provider.meta.default_project_id == PROJECT_ID
        assert provider.meta.user_agent.startswith("terraform-provider-scaleway-py/")
        assert "terraform/1.5.0" in provider.meta.user_agent

    def test_configure_error(self, environ):
        provider = Provider(registry=build_registry(enable_beta=False))
        diags = provider.configure({"zone": "fr-par-42"}, "", MetaConfig(environ=environ))
        assert diags[0].is_error
        assert diags[0].attribute_path == "zone"
        assert provider.meta is None

    def test_not_configured(self, ctx):
        provider = Provider(registry=build_registry(enable_beta=False))
        with pytest.raises(RuntimeError):
            provider.provisioner("scaleway_rdb_instance")
        assert provider.read("scaleway_rdb_instance", ctx, None)[0].summary == "provider is not configured"

    def test_unknown_kind(self, meta):
        provider = Provider(registry=build_registry(enable_beta=False), meta=meta)
        with pytest.raises(KeyError):
            provider.provisioner("scaleway_nope")

    def test_schemas(self, meta):
        provider = Provider(registry=build_registry(enable_beta=True), meta=meta)
        schemas = provider.resource_schemas()
        assert set(schemas) == set(provider.registry)
        assert schemas["scaleway_rdb_instance"]["password"].sensitive
        assert schemas["scaleway_domain_zone"]["domain"].force_new
        assert "project_id" in Provider.arguments_schema()

    def test_new_resource_data_uses_kind_timeouts(self, meta):
        provider = Provider(registry=build_registry(enable_beta=False), meta=meta)
        data = provider.new_resource_data("scaleway_rdb_instance", planned={"node_type": "DB-DEV-S"})
        assert data.model is RdbInstanceProvisioner.model
        assert data.timeout("create") == RdbInstanceProvisioner.default_timeouts.default

    def test_resource_schema(self):
        provider = Provider(registry=build_registry(enable_beta=False))
        schema = provider.resource_schema("scaleway_domain_zone")
        assert schema["ns"].computed
        with pytest.raises(KeyError):
            provider.resource_schema("scaleway_nope")
