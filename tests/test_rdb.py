"""Tests for the Managed Database provisioners."""

import copy

import pytest

from scaleway_provider.api.rdb import GB
from scaleway_provider.provisioners import RdbDatabaseProvisioner, RdbInstanceProvisioner
from scaleway_provider.utils.errors import ConflictError, NotFoundError

from .conftest import PROJECT_ID

INSTANCE_ID = "55555555-5555-5555-5555-555555555555"


class FakeRdbAPI:
    """In-memory RDB API recording the calls it receives."""

    def __init__(self, instance=None):
        self.instance = instance
        self.databases = {}
        self.calls = []
        self.conflicts = 0

    def get_instance(self, region, instance_id, ctx=None):
        self.calls.append("get")
        if self.instance is None:
            raise NotFoundError(f"instance {instance_id} not found")
        return copy.deepcopy(self.instance)

    def wait_for_instance(self, region, instance_id, timeout, interval=0, ctx=None, deleting=False):
        self.calls.append("wait")
        if self.instance is None:
            if deleting:
                return None
            raise NotFoundError(f"instance {instance_id} not found")
        return copy.deepcopy(self.instance)

    def create_instance(self, region, request, ctx=None):
        self.calls.append("create")
        self.instance = {
            "id": INSTANCE_ID,
            "status": "ready",
            "name": request["name"],
            "node_type": request["node_type"],
            "engine": request["engine"],
            "project_id": request["project_id"],
            "organization_id": "org",
            "tags": request.get("tags", []),
            "volume": {"type": request["volume_type"], "size": request.get("volume_size", 5 * GB)},
            "backup_schedule": {"disabled": request["disable_backup"], "frequency": 24, "retention": 7},
            "endpoint": {"ip": "1.2.3.4", "port": 5432},
        }
        return copy.deepcopy(self.instance)

    def update_instance(self, region, instance_id, request, ctx=None):
        self.calls.append("update")
        if "tags" in request:
            self.instance["tags"] = request["tags"]
        return copy.deepcopy(self.instance)

    def upgrade_instance(self, region, instance_id, request, ctx=None):
        (key,) = request
        self.calls.append(f"upgrade:{key}")
        if key == "volume_type":
            self.instance["volume"]["type"] = request[key]
        elif key == "volume_size":
            self.instance["volume"]["size"] = request[key]
        elif key == "node_type":
            self.instance["node_type"] = request[key]
        return copy.deepcopy(self.instance)

    def set_instance_settings(self, region, instance_id, settings, ctx=None):
        self.calls.append("settings")
        self.instance["settings"] = settings

    def delete_instance(self, region, instance_id, ctx=None):
        self.calls.append("delete")
        self.instance = None

    def get_instance_certificate(self, region, instance_id, ctx=None):
        self.calls.append("certificate")
        return "-----BEGIN CERTIFICATE-----"

    def list_users(self, region, instance_id, ctx=None):
        self.calls.append("users")
        return [{"name": "admin", "is_admin": True}]

    def update_user(self, region, instance_id, name, password, ctx=None):
        self.calls.append("password")

    def create_database(self, region, instance_id, name, ctx=None):
        self.calls.append("create_database")
        if self.conflicts:
            self.conflicts -= 1
            raise ConflictError("instance is in a transient state")
        self.databases[name] = {"name": name, "managed": True, "owner": "admin", "size": 2 * GB}
        return self.databases[name]

    def get_database(self, region, instance_id, name, ctx=None):
        self.calls.append("get_database")
        if name not in self.databases:
            raise NotFoundError(f"database {name} not found")
        return self.databases[name]

    def delete_database(self, region, instance_id, name, ctx=None):
        self.calls.append("delete_database")
        del self.databases[name]


class FakeRdbInstanceProvisioner(RdbInstanceProvisioner):
    def __init__(self, meta, api):
        super().__init__(meta)
        self.fake_api = api

    @property
    def api(self):
        return self.fake_api


class FakeRdbDatabaseProvisioner(RdbDatabaseProvisioner):
    def __init__(self, meta, api):
        super().__init__(meta)
        self.fake_api = api

    @property
    def api(self):
        return self.fake_api


def instance_state(**overrides):
    state = {
        "name": "tf-rdb-test",
        "node_type": "DB-DEV-S",
        "engine": "PostgreSQL-15",
        "user_name": "admin",
        "volume_type": "lssd",
        "region": "fr-par",
        "project_id": PROJECT_ID,
    }
    state.update(overrides)
    return state


def existing_instance(**overrides):
    instance = {
        "id": INSTANCE_ID,
        "status": "ready",
        "name": "tf-rdb-test",
        "node_type": "DB-DEV-S",
        "engine": "PostgreSQL-15",
        "project_id": PROJECT_ID,
        "volume": {"type": "lssd", "size": 5 * GB},
        "backup_schedule": {"disabled": False, "frequency": 24, "retention": 7},
    }
    instance.update(overrides)
    return instance


class TestRdbInstanceCreate:
    def test_create_sequence(self, meta, ctx):
        api = FakeRdbAPI()
        provisioner = FakeRdbInstanceProvisioner(meta, api)
        data = provisioner.new_resource_data(planned={"node_type": "DB-DEV-S", "engine": "PostgreSQL-15",
                                                      "user_name": "admin", "password": "Secret123!"})

        assert provisioner.create(ctx, data) == []
        assert data.id == f"fr-par/{INSTANCE_ID}"
        assert api.calls == ["create", "wait", "update", "wait", "certificate"]
        assert data.get("name").startswith("tf-rdb-")
        assert data.get("endpoint_ip") == "1.2.3.4"
        assert data.get("project_id") == PROJECT_ID

    def test_volume_size_rejected_on_local_volume(self, meta, ctx):
        api = FakeRdbAPI()
        provisioner = FakeRdbInstanceProvisioner(meta, api)
        data = provisioner.new_resource_data(planned={"node_type": "DB-DEV-S", "engine": "PostgreSQL-15",
                                                      "volume_size_in_gb": 10})

        diags = provisioner.create(ctx, data)
        assert diags[0].attribute_path == "volume_size_in_gb"
        assert api.calls == []

    def test_size_must_be_multiple_of_5(self, meta, ctx):
        provisioner = FakeRdbInstanceProvisioner(meta, FakeRdbAPI())
        data = provisioner.new_resource_data(planned={"node_type": "DB-DEV-S", "engine": "PostgreSQL-15",
                                                      "volume_type": "bssd", "volume_size_in_gb": 12})
        diags = provisioner.create(ctx, data)
        assert diags[0].attribute_path == "volume_size_in_gb"


class TestRdbInstanceUpdate:
    def test_volume_migration(self, meta, ctx):
        api = FakeRdbAPI(existing_instance())
        provisioner = FakeRdbInstanceProvisioner(meta, api)
        data = provisioner.new_resource_data(
            prior=instance_state(),
            planned=instance_state(volume_type="bssd", volume_size_in_gb=10),
            resource_id=f"fr-par/{INSTANCE_ID}",
        )

        assert provisioner.update(ctx, data) == []
        assert api.calls == [
            "get",
            "wait", "upgrade:volume_type",
            "wait", "upgrade:volume_size",
            "wait",
            "wait", "certificate",
        ]
        assert data.get("volume_type") == "bssd"
        assert data.get("volume_size_in_gb") == 10

    def test_size_cannot_decrease(self, meta, ctx):
        api = FakeRdbAPI(existing_instance(volume={"type": "bssd", "size": 20 * GB}))
        provisioner = FakeRdbInstanceProvisioner(meta, api)
        data = provisioner.new_resource_data(
            prior=instance_state(volume_type="bssd", volume_size_in_gb=20),
            planned=instance_state(volume_type="bssd", volume_size_in_gb=10),
            resource_id=f"fr-par/{INSTANCE_ID}",
        )

        diags = provisioner.update(ctx, data)
        assert diags[0].attribute_path == "volume_size_in_gb"
        assert "upgrade:volume_size" not in api.calls

    def test_node_type_forbidden_on_full_disk(self, meta, ctx):
        api = FakeRdbAPI(existing_instance(status="disk_full", volume={"type": "bssd", "size": 10 * GB}))
        provisioner = FakeRdbInstanceProvisioner(meta, api)
        data = provisioner.new_resource_data(
            prior=instance_state(volume_type="bssd", volume_size_in_gb=10),
            planned=instance_state(volume_type="bssd", volume_size_in_gb=10, node_type="DB-GP-XS"),
            resource_id=f"fr-par/{INSTANCE_ID}",
        )

        diags = provisioner.update(ctx, data)
        assert diags[0].attribute_path == "node_type"
        assert "disk is full" in diags[0].summary

    def test_tags_only(self, meta, ctx):
        api = FakeRdbAPI(existing_instance())
        provisioner = FakeRdbInstanceProvisioner(meta, api)
        data = provisioner.new_resource_data(
            prior=instance_state(),
            planned=instance_state(tags=["prod"]),
            resource_id=f"fr-par/{INSTANCE_ID}",
        )

        assert provisioner.update(ctx, data) == []
        assert "update" in api.calls
        assert not any(call.startswith("upgrade") for call in api.calls)
        assert data.get("tags") == ["prod"]


class TestRdbInstanceReadDelete:
    def test_read_gone_clears_id(self, meta, ctx):
        provisioner = FakeRdbInstanceProvisioner(meta, FakeRdbAPI())
        data = provisioner.new_resource_data(prior=instance_state(), resource_id=f"fr-par/{INSTANCE_ID}")
        assert provisioner.read(ctx, data) == []
        assert data.id == ""

    def test_read_finds_admin_user(self, meta, ctx):
        api = FakeRdbAPI(existing_instance())
        provisioner = FakeRdbInstanceProvisioner(meta, api)
        data = provisioner.new_resource_data(prior=instance_state(user_name=None), resource_id=f"fr-par/{INSTANCE_ID}")
        assert provisioner.read(ctx, data) == []
        assert data.get("user_name") == "admin"

    def test_delete(self, meta, ctx):
        api = FakeRdbAPI(existing_instance())
        provisioner = FakeRdbInstanceProvisioner(meta, api)
        data = provisioner.new_resource_data(prior=instance_state(), resource_id=f"fr-par/{INSTANCE_ID}")
        assert provisioner.delete(ctx, data) == []
        assert api.calls == ["wait", "delete", "wait"]
        assert data.id == ""

    def test_delete_twice(self, meta, ctx):
        provisioner = FakeRdbInstanceProvisioner(meta, FakeRdbAPI())
        data = provisioner.new_resource_data(prior=instance_state(), resource_id=f"fr-par/{INSTANCE_ID}")
        assert provisioner.delete(ctx, data) == []


class TestRdbDatabase:
    def test_create_retries_transient_state(self, meta, ctx):
        api = FakeRdbAPI(existing_instance())
        api.conflicts = 1
        provisioner = FakeRdbDatabaseProvisioner(meta, api)
        data = provisioner.new_resource_data(planned={"instance_id": f"fr-par/{INSTANCE_ID}", "name": "app"})

        assert provisioner.create(ctx, data) == []
        assert data.id == f"fr-par/{INSTANCE_ID}/app"
        assert api.calls.count("create_database") == 2
        assert data.get("size") == "2 GB"
        assert data.get("owner") == "admin"

    def test_reserved_name(self, meta, ctx):
        provisioner = FakeRdbDatabaseProvisioner(meta, FakeRdbAPI(existing_instance()))
        data = provisioner.new_resource_data(planned={"instance_id": INSTANCE_ID, "name": "postgres"})
        diags = provisioner.create(ctx, data)
        assert diags[0].attribute_path == "name"

    @pytest.mark.parametrize("name", ["", "a" * 64, "bad name"])
    def test_invalid_names(self, meta, ctx, name):
        provisioner = FakeRdbDatabaseProvisioner(meta, FakeRdbAPI(existing_instance()))
        data = provisioner.new_resource_data(planned={"instance_id": INSTANCE_ID, "name": name})
        assert provisioner.create(ctx, data)[0].attribute_path == "name"

    def test_delete_gone_database(self, meta, ctx):
        api = FakeRdbAPI()
        provisioner = FakeRdbDatabaseProvisioner(meta, api)
        data = provisioner.new_resource_data(prior={"instance_id": INSTANCE_ID, "name": "app"},
                                             resource_id=f"fr-par/{INSTANCE_ID}/app")
        assert provisioner.delete(ctx, data) == []
