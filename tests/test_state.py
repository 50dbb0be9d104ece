"""Tests for attribute records, ResourceData and the provisioner base."""

from typing import Annotated, Dict, List, Optional

import pytest
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from scaleway_provider.provisioners import BaseProvisioner
from scaleway_provider.state import (
    Attr,
    AttributeModel,
    ResourceData,
    Timeouts,
    schema_of,
    validate_attributes,
)
from scaleway_provider.utils.errors import ForbiddenError, NotFoundError, ValidationError


def validate_storage_class(value: str) -> str:
    if value not in ("STANDARD", "GLACIER"):
        raise ValidationError(f"unknown storage class {value}")
    return value


class TransitionModel(AttributeModel):
    days: Annotated[int, Attr(optional=True)] = 0
    storage_class: Annotated[Optional[str], Attr(required=True, validators=(validate_storage_class,))] = None


class RuleModel(AttributeModel):
    transition: Annotated[List[TransitionModel], Attr(optional=True)] = Field(default_factory=list)


class SampleModel(AttributeModel):
    name: Annotated[Optional[str], Attr(required=True, force_new=True, description="The name.")] = None
    size: Annotated[int, Attr(optional=True)] = 0
    enabled: Annotated[bool, Attr(optional=True)] = False
    password: Annotated[Optional[str], Attr(optional=True, sensitive=True)] = None
    tags: Annotated[List[str], Attr(optional=True)] = Field(default_factory=list)
    settings: Annotated[Dict[str, str], Attr(optional=True, computed=True)] = Field(default_factory=dict)
    rule: Annotated[List[RuleModel], Attr(optional=True)] = Field(default_factory=list)


class TestSchema:
    def test_types_and_flags(self):
        schema = schema_of(SampleModel)
        assert schema["name"].type == "string"
        assert schema["name"].required and schema["name"].force_new
        assert schema["name"].description == "The name."
        assert schema["size"].type == "int"
        assert schema["enabled"].type == "bool"
        assert schema["password"].sensitive
        assert schema["tags"].type == "list"
        assert schema["settings"].type == "map"
        assert schema["settings"].computed

    def test_nested_blocks(self):
        rule = schema_of(SampleModel)["rule"]
        assert rule.type == "list"
        assert rule.elem["transition"].elem["storage_class"].required


class TestValidateAttributes:
    def test_missing_required(self):
        diags = validate_attributes(SampleModel())
        assert [d.attribute_path for d in diags] == ["name"]

    def test_nested_path(self):
        record = SampleModel(
            name="x",
            rule=[{"transition": [{"storage_class": "STANDARD"}, {"storage_class": "COLD"}]}],
        )
        (diag,) = validate_attributes(record)
        assert diag.attribute_path == "rule.0.transition.1.storage_class"
        assert "unknown storage class COLD" in diag.summary

    def test_valid(self):
        assert validate_attributes(SampleModel(name="x", rule=[{"transition": [{"storage_class": "GLACIER"}]}])) == []


class TestResourceData:
    def test_new_resource_changes(self):
        data = ResourceData(SampleModel, planned={"name": "a", "size": 0})
        assert data.is_new_resource
        assert data.has_change("name")
        assert not data.has_change("size")

    def test_update_changes(self):
        data = ResourceData(SampleModel, planned={"name": "a", "size": 3}, prior={"name": "a", "size": 1})
        assert not data.is_new_resource
        assert data.has_change("size")
        assert not data.has_change("name")
        assert data.has_changes("name", "size")
        assert data.has_changes_except("name")
        assert not data.has_changes_except("size")
        assert data.get_change("size") == (1, 3)

    def test_get_ok(self):
        data = ResourceData(SampleModel, planned={"name": "a", "enabled": False})
        assert data.get_ok("name") == ("a", True)
        assert data.get_ok("enabled") == (False, False)
        assert data.get_ok("tags") == ([], False)

    def test_unknown_attribute(self):
        data = ResourceData(SampleModel, planned={})
        with pytest.raises(KeyError):
            data.get("nope")
        with pytest.raises(KeyError):
            data.set("nope", 1)
        with pytest.raises(KeyError):
            data.has_change("nope")

    def test_set_is_validated(self):
        data = ResourceData(SampleModel, planned={})
        data.set("size", "12")
        assert data.get("size") == 12
        with pytest.raises(PydanticValidationError):
            data.set("size", "twelve")

    def test_set_does_not_change_plan(self):
        data = ResourceData(SampleModel, planned={"name": "a"}, prior={"name": "a"})
        data.set("name", "b")
        assert not data.has_change("name")
        assert data.state()["name"] == "b"

    def test_timeouts(self):
        data = ResourceData(SampleModel, planned={}, timeouts=Timeouts(create=60, default=10))
        assert data.timeout("create") == 60
        assert data.timeout("delete") == 10
        with pytest.raises(KeyError):
            data.timeout("explode")


class FakeProvisioner(BaseProvisioner):
    type_name = "scaleway_fake"
    model = SampleModel

    def __init__(self, meta, error=None):
        super().__init__(meta)
        self.error = error
        self.calls = []

    def do_create(self, ctx, data):
        self.calls.append("create")
        data.set_id("fr-par/abc")
        return None

    def do_read(self, ctx, data):
        self.calls.append("read")
        if self.error:
            raise self.error
        return None

    def do_delete(self, ctx, data):
        self.calls.append("delete")
        if self.error:
            raise self.error
        return None


class TestBaseProvisioner:
    def test_create_validates_first(self, meta, ctx):
        provisioner = FakeProvisioner(meta)
        diags = provisioner.create(ctx, provisioner.new_resource_data(planned={}))
        assert diags[0].attribute_path == "name"
        assert provisioner.calls == []

    def test_read_not_found_clears_id(self, meta, ctx):
        provisioner = FakeProvisioner(meta, NotFoundError("gone"))
        data = provisioner.new_resource_data(planned={"name": "a"}, prior={"name": "a"}, resource_id="fr-par/abc")
        assert provisioner.read(ctx, data) == []
        assert data.id == ""

    def test_read_forbidden_is_reported(self, meta, ctx):
        provisioner = FakeProvisioner(meta, ForbiddenError("denied"))
        data = provisioner.new_resource_data(planned={"name": "a"}, prior={"name": "a"}, resource_id="fr-par/abc")
        diags = provisioner.read(ctx, data)
        assert len(diags) == 1 and diags[0].is_error
        assert data.id == "fr-par/abc"

    def test_delete_not_found_is_success(self, meta, ctx):
        provisioner = FakeProvisioner(meta, NotFoundError("gone"))
        data = provisioner.new_resource_data(prior={"name": "a"}, resource_id="fr-par/abc")
        assert provisioner.delete(ctx, data) == []
        assert data.id == ""

    def test_update_is_not_supported_by_default(self, meta, ctx):
        provisioner = FakeProvisioner(meta)
        data = provisioner.new_resource_data(planned={"name": "b"}, prior={"name": "a"}, resource_id="fr-par/abc")
        diags = provisioner.update(ctx, data)
        assert "does not support in-place updates" in diags[0].summary

    def test_import_reads(self, meta, ctx):
        provisioner = FakeProvisioner(meta)
        data = provisioner.new_resource_data(resource_id="fr-par/abc")
        assert provisioner.import_state(ctx, data) == []
        assert data.is_import
        assert provisioner.calls == ["read"]
