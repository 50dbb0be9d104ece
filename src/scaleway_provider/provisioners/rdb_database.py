"""Managed Database logical database provisioner."""

import re
from typing import Annotated, Optional

from scaleway_provider.api.rdb import DEFAULT_RDB_INSTANCE_TIMEOUT, DEFAULT_WAIT_RDB_RETRY_INTERVAL, RdbAPI
from scaleway_provider.locality import (
    expand_id,
    expand_localized,
    extract_region,
    new_regional_nested_id,
    parse_regional_nested_id,
    validate_uuid_or_uuid_with_locality,
)
from scaleway_provider.state import Attr, AttributeModel, ResourceData, Timeouts
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import ValidationError
from scaleway_provider.utils.retry import retry_on_transient_state

from .base import BaseProvisioner, Diagnostics
from .expanders import flatten_size_gb

DATABASE_NAME_PATTERN = re.compile(r"^[a-zA-Z\d_$-]*$")

RESERVED_DATABASE_NAMES = frozenset({
    "postgres", "rdb", "template0", "template1",
    "mysql", "information_schema", "performance_schema", "sys",
})


def validate_database_name(value: str) -> str:
    """Check a database name is accepted by the engines.

    Raises:
        ValidationError: If the name is too long, reserved or has invalid characters
    """
    if not 1 <= len(value) <= 63:
        raise ValidationError(f"expected length of name to be in the range (1 - 63), got {value}")
    if value in RESERVED_DATABASE_NAMES:
        raise ValidationError(f"{value} is a reserved name")
    if not DATABASE_NAME_PATTERN.match(value):
        raise ValidationError("must contain only alphanumeric characters, underscores and dashes")
    return value


class RdbDatabaseModel(AttributeModel):
    """Attributes of scaleway_rdb_database."""

    instance_id: Annotated[Optional[str], Attr(required=True, force_new=True,
                                               validators=(validate_uuid_or_uuid_with_locality,),
                                               description="Instance on which to create the database")] = None
    name: Annotated[Optional[str], Attr(required=True, force_new=True, validators=(validate_database_name,),
                                        description="Database name")] = None
    managed: Annotated[bool, Attr(computed=True, description="Whether or not the database is managed")] = False
    owner: Annotated[Optional[str], Attr(computed=True, description="User that owns the database")] = None
    size: Annotated[Optional[str], Attr(computed=True, description="Size of the database")] = None
    region: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True)] = None


class RdbDatabaseProvisioner(BaseProvisioner):
    """Provisioner for scaleway_rdb_database.

    The database has no status of its own: every mutation waits for the
    parent instance to be ready before and after the call.
    """

    type_name = "scaleway_rdb_database"
    model = RdbDatabaseModel
    default_timeouts = Timeouts(default=DEFAULT_RDB_INSTANCE_TIMEOUT)

    @property
    def api(self) -> RdbAPI:
        return RdbAPI(self.meta.client)

    @property
    def interval(self) -> float:
        return self.meta.retry_interval(DEFAULT_WAIT_RDB_RETRY_INTERVAL)

    def _wait_instance(self, ctx: Context, region: str, instance_id: str, timeout: float) -> None:
        self.api.wait_for_instance(region, instance_id, timeout, self.interval, ctx)

    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        region, instance_id = expand_localized(data.get("instance_id"), extract_region(data, self.meta))
        name = data.get("name")
        timeout = data.timeout("create")

        self._wait_instance(ctx, region, instance_id, timeout)
        retry_on_transient_state(
            lambda: self.api.create_database(region, instance_id, name, ctx=ctx),
            lambda: self._wait_instance(ctx, region, instance_id, timeout),
        )
        self._wait_instance(ctx, region, instance_id, timeout)

        data.set_id(new_regional_nested_id(region, instance_id, name))
        self.logger.info(f"Created database {data.id}")
        return self.do_read(ctx, data)

    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        region, instance_id, name = parse_regional_nested_id(data.id)

        self._wait_instance(ctx, region, instance_id, data.timeout("read"))
        database = self.api.get_database(region, instance_id, name, ctx=ctx)

        data.set("instance_id", f"{region}/{expand_id(instance_id)}")
        data.set("name", database.get("name"))
        data.set("managed", bool(database.get("managed")))
        data.set("owner", database.get("owner"))
        data.set("size", f"{flatten_size_gb(database.get('size'))} GB")
        data.set("region", region)
        return None

    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        region, instance_id, name = parse_regional_nested_id(data.id)
        timeout = data.timeout("delete")

        self._wait_instance(ctx, region, instance_id, timeout)
        retry_on_transient_state(
            lambda: self.api.delete_database(region, instance_id, name, ctx=ctx),
            lambda: self._wait_instance(ctx, region, instance_id, timeout),
        )
        self._wait_instance(ctx, region, instance_id, timeout)
        return None
