"""Tests for the DNS zone provisioner."""

from scaleway_provider.provisioners import DomainZoneProvisioner
from scaleway_provider.provisioners.domain_zone import zone_name
from scaleway_provider.utils.errors import ConflictError, ForbiddenError, NotFoundError

from .conftest import PROJECT_ID


class FakeDomainAPI:
    """In-memory DNS zones keyed by name."""

    def __init__(self, *names):
        self.zones = {}
        self.calls = []
        self.delete_error = None
        self.create_error = None
        for name in names:
            subdomain, _, domain = name.partition(".")
            self.add(domain, subdomain)

    def add(self, domain, subdomain):
        self.zones[zone_name(subdomain, domain)] = {
            "domain": domain,
            "subdomain": subdomain,
            "ns": ["ns0.dom.scw.cloud"],
            "status": "active",
            "project_id": PROJECT_ID,
        }

    def list_dns_zones(self, dns_zone=None, project_id=None, ctx=None):
        self.calls.append("list")
        return [dict(zone) for name, zone in self.zones.items() if name == dns_zone]

    def create_dns_zone(self, domain, subdomain, project_id, ctx=None):
        self.calls.append("create")
        self.add(domain, subdomain)
        if self.create_error:
            raise self.create_error
        return dict(self.zones[zone_name(subdomain, domain)])

    def update_dns_zone(self, dns_zone, new_dns_zone, project_id, ctx=None):
        self.calls.append("update")
        zone = self.zones.pop(dns_zone)
        zone["subdomain"] = new_dns_zone.split(".", 1)[0]
        self.zones[new_dns_zone] = zone

    def wait_for_dns_zone(self, dns_zone, timeout, interval, ctx=None):
        self.calls.append("wait")
        if dns_zone not in self.zones:
            # The API answers 403 for zones it no longer knows
            raise ForbiddenError(f"permission denied on {dns_zone}")
        return self.zones[dns_zone]

    def delete_dns_zone(self, dns_zone, project_id, ctx=None):
        self.calls.append("delete")
        if self.delete_error:
            raise self.delete_error
        del self.zones[dns_zone]


class FakeDomainZoneProvisioner(DomainZoneProvisioner):
    def __init__(self, meta, api):
        super().__init__(meta)
        self.fake_api = api

    @property
    def api(self):
        return self.fake_api


def zone_data(provisioner, name="test.example.com", **kwargs):
    subdomain, _, domain = name.partition(".")
    state = {"domain": domain, "subdomain": subdomain}
    return provisioner.new_resource_data(prior=state, resource_id=name, **kwargs)


class TestDomainZoneDelete:
    def test_delete_existing_zone(self, meta, ctx):
        api = FakeDomainAPI("test.example.com")
        provisioner = FakeDomainZoneProvisioner(meta, api)
        data = zone_data(provisioner)

        assert provisioner.delete(ctx, data) == []
        assert api.calls == ["wait", "delete"]
        assert "test.example.com" not in api.zones

    def test_delete_twice(self, meta, ctx):
        api = FakeDomainAPI("test.example.com")
        provisioner = FakeDomainZoneProvisioner(meta, api)

        assert provisioner.delete(ctx, zone_data(provisioner)) == []
        assert provisioner.delete(ctx, zone_data(provisioner)) == []
        assert api.calls == ["wait", "delete", "wait"]

    def test_parent_removed_externally(self, meta, ctx):
        api = FakeDomainAPI("test.example.com")
        api.delete_error = ForbiddenError("parent subdomain is gone")
        provisioner = FakeDomainZoneProvisioner(meta, api)

        assert provisioner.delete(ctx, zone_data(provisioner)) == []

    def test_not_found_during_wait(self, meta, ctx):
        api = FakeDomainAPI()

        def wait_for_dns_zone(*args, **kwargs):
            raise NotFoundError("gone")

        api.wait_for_dns_zone = wait_for_dns_zone
        provisioner = FakeDomainZoneProvisioner(meta, api)

        assert provisioner.delete(ctx, zone_data(provisioner)) == []

    def test_conflict_is_reported(self, meta, ctx):
        api = FakeDomainAPI("test.example.com")
        api.delete_error = ConflictError("zone is being updated")
        provisioner = FakeDomainZoneProvisioner(meta, api)
        data = zone_data(provisioner)

        diags = provisioner.delete(ctx, data)
        assert len(diags) == 1 and diags[0].is_error
        assert data.id == "test.example.com"


class TestDomainZoneCreate:
    def test_create(self, meta, ctx):
        api = FakeDomainAPI()
        provisioner = FakeDomainZoneProvisioner(meta, api)
        data = provisioner.new_resource_data(planned={"domain": "Example.com", "subdomain": "Test"})

        assert provisioner.create(ctx, data) == []
        assert data.id == "test.example.com"
        assert data.get("ns") == ["ns0.dom.scw.cloud"]
        assert data.get("project_id") == PROJECT_ID

    def test_existing_zone_is_adopted(self, meta, ctx):
        api = FakeDomainAPI("test.example.com")
        provisioner = FakeDomainZoneProvisioner(meta, api)
        data = provisioner.new_resource_data(planned={"domain": "example.com", "subdomain": "test"})

        assert provisioner.create(ctx, data) == []
        assert "create" not in api.calls
        assert data.id == "test.example.com"

    def test_concurrent_create(self, meta, ctx):
        api = FakeDomainAPI()
        provisioner = FakeDomainZoneProvisioner(meta, api)
        # The zone shows up between the lookup and the create call
        api.create_error = ConflictError("zone already exists")
        data = provisioner.new_resource_data(planned={"domain": "example.com", "subdomain": "test"})

        assert provisioner.create(ctx, data) == []
        assert data.id == "test.example.com"


class TestDomainZoneRead:
    def test_missing_zone(self, meta, ctx):
        provisioner = FakeDomainZoneProvisioner(meta, FakeDomainAPI())
        diags = provisioner.read(ctx, zone_data(provisioner))
        assert "no zone found with the name test.example.com" in diags[0].summary

    def test_rename(self, meta, ctx):
        api = FakeDomainAPI("test.example.com")
        provisioner = FakeDomainZoneProvisioner(meta, api)
        data = provisioner.new_resource_data(
            prior={"domain": "example.com", "subdomain": "test"},
            planned={"domain": "example.com", "subdomain": "prod"},
            resource_id="test.example.com",
        )

        assert provisioner.update(ctx, data) == []
        assert data.id == "prod.example.com"
        assert data.get("subdomain") == "prod"
