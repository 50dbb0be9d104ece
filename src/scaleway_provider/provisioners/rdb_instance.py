"""Managed Database instance provisioner."""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from scaleway_provider.api.rdb import (
    DEFAULT_RDB_INSTANCE_TIMEOUT,
    DEFAULT_WAIT_RDB_RETRY_INTERVAL,
    GB,
    RdbAPI,
    VOLUME_TYPE_BSSD,
    VOLUME_TYPE_LSSD,
    VOLUME_TYPE_SBS_5K,
    VOLUME_TYPES,
)
from scaleway_provider.locality import parse_region, validate_uuid
from scaleway_provider.state import Attr, AttributeModel, ResourceData, Timeouts, error
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import ValidationError

from .base import Diagnostics, RegionalProvisioner
from .expanders import (
    expand_or_generate_string,
    expand_settings,
    expand_size_gb,
    expand_string_ptr,
    expand_tags,
    expand_updated_tags,
    flatten_settings,
    flatten_size_gb,
)


def diff_suppress_ignore_case(key: str, old: str, new: str, data: Any = None) -> bool:
    return (old or "").lower() == (new or "").lower()


def validate_volume_type(value: str) -> str:
    if value not in VOLUME_TYPES:
        raise ValidationError(f"expected one of {', '.join(VOLUME_TYPES)}, got {value}")
    return value


def validate_multiple_of_5(value: int) -> int:
    if value % 5 != 0:
        raise ValidationError(f"expected to be divisible by 5, got: {value}")
    return value


class RdbInstanceModel(AttributeModel):
    """Attributes of scaleway_rdb_instance."""

    name: Annotated[Optional[str], Attr(optional=True, computed=True,
                                        description="Name of the database instance")] = None
    node_type: Annotated[Optional[str], Attr(required=True, diff_suppress=diff_suppress_ignore_case,
                                             description="The type of database instance you want to create")] = None
    engine: Annotated[Optional[str], Attr(required=True, force_new=True,
                                          description="Database's engine version id")] = None
    is_ha_cluster: Annotated[bool, Attr(optional=True,
                                        description="Enable or disable high availability for the database instance")] = False
    disable_backup: Annotated[bool, Attr(optional=True,
                                         description="Disable automated backup for the database instance")] = False
    backup_schedule_frequency: Annotated[Optional[int], Attr(optional=True, computed=True,
                                                             description="Backup schedule frequency in hours")] = None
    backup_schedule_retention: Annotated[Optional[int], Attr(optional=True, computed=True,
                                                             description="Backup schedule retention in days")] = None
    backup_same_region: Annotated[Optional[bool], Attr(optional=True, computed=True)] = None
    user_name: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True,
                                             description="Identifier for the first user of the database instance")] = None
    password: Annotated[Optional[str], Attr(optional=True, sensitive=True)] = None
    settings: Annotated[Dict[str, str], Attr(optional=True, computed=True,
                                             description="Map of engine settings to be set on a running instance.")] = Field(default_factory=dict)
    init_settings: Annotated[Dict[str, str], Attr(optional=True, force_new=True,
                                                  description="Map of engine settings to be set at database initialisation.")] = Field(default_factory=dict)
    tags: Annotated[List[str], Attr(optional=True)] = Field(default_factory=list)
    volume_type: Annotated[str, Attr(optional=True, validators=(validate_volume_type,),
                                     description="Type of volume where data are stored")] = VOLUME_TYPE_LSSD
    volume_size_in_gb: Annotated[Optional[int], Attr(optional=True, computed=True, validators=(validate_multiple_of_5,),
                                                     description="Volume size (in GB) when volume_type is not lssd")] = None
    endpoint_ip: Annotated[Optional[str], Attr(computed=True)] = None
    endpoint_port: Annotated[Optional[int], Attr(computed=True)] = None
    certificate: Annotated[Optional[str], Attr(computed=True)] = None
    region: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(parse_region,))] = None
    organization_id: Annotated[Optional[str], Attr(computed=True)] = None
    project_id: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(validate_uuid,))] = None


class RdbInstanceProvisioner(RegionalProvisioner):
    """Provisioner for scaleway_rdb_instance."""

    type_name = "scaleway_rdb_instance"
    model = RdbInstanceModel
    poll_interval = DEFAULT_WAIT_RDB_RETRY_INTERVAL
    default_timeouts = Timeouts(default=DEFAULT_RDB_INSTANCE_TIMEOUT)

    @property
    def api(self) -> RdbAPI:
        return RdbAPI(self.meta.client)

    def wait(self, ctx: Context, region: str, resource_id: str, timeout: float,
             deleting: bool = False) -> Optional[Dict[str, Any]]:
        return self.api.wait_for_instance(region, resource_id, timeout, self.interval, ctx, deleting=deleting)

    def api_create(self, ctx: Context, data: ResourceData, region: str) -> Dict[str, Any]:
        volume_type = data.get("volume_type")
        request = {
            "project_id": expand_string_ptr(data.get("project_id")) or self.meta.default_project_id,
            "name": expand_or_generate_string(data.get("name"), "rdb"),
            "node_type": data.get("node_type"),
            "engine": data.get("engine"),
            "is_ha_cluster": data.get("is_ha_cluster"),
            "disable_backup": data.get("disable_backup"),
            "user_name": data.get("user_name"),
            "password": data.get("password"),
            "volume_type": volume_type,
        }

        init_settings, ok = data.get_ok("init_settings")
        if ok:
            request["init_settings"] = expand_settings(init_settings)

        tags, ok = data.get_ok("tags")
        if ok:
            request["tags"] = expand_tags(tags)

        size, ok = data.get_ok("volume_size_in_gb")
        if ok:
            if volume_type == VOLUME_TYPE_LSSD:
                raise ValidationError(
                    f"volume_size_in_gb should not be used with volume_type {VOLUME_TYPE_LSSD}",
                    attribute="volume_size_in_gb",
                )
            request["volume_size"] = expand_size_gb(size)

        return self.api.create_instance(region, request, ctx=ctx)

    def api_delete(self, ctx: Context, region: str, resource_id: str) -> None:
        self.api.delete_instance(region, resource_id, ctx=ctx)

    def after_create(self, ctx: Context, data: ResourceData, region: str, resource_id: str) -> None:
        # Backup schedule can only be configured once the instance exists
        if not data.get("disable_backup"):
            request = {
                "backup_same_region": data.get("backup_same_region"),
                "is_backup_schedule_disabled": False,
            }
            frequency, ok = data.get_ok("backup_schedule_frequency")
            if ok:
                request["backup_schedule_frequency"] = frequency
            retention, ok = data.get_ok("backup_schedule_retention")
            if ok:
                request["backup_schedule_retention"] = retention
            self.api.update_instance(region, resource_id, request, ctx=ctx)

        settings, ok = data.get_ok("settings")
        if ok:
            self.wait(ctx, region, resource_id, data.timeout("create"))
            self.api.set_instance_settings(region, resource_id, expand_settings(settings), ctx=ctx)

    def flatten(self, ctx: Context, data: ResourceData, region: str, resource: Dict[str, Any]) -> Optional[Diagnostics]:
        backup = resource.get("backup_schedule") or {}
        data.set("name", resource.get("name"))
        data.set("node_type", resource.get("node_type"))
        data.set("engine", resource.get("engine"))
        data.set("is_ha_cluster", bool(resource.get("is_ha_cluster")))
        data.set("disable_backup", bool(backup.get("disabled")))
        data.set("backup_schedule_frequency", backup.get("frequency"))
        data.set("backup_schedule_retention", backup.get("retention"))
        data.set("backup_same_region", resource.get("backup_same_region"))
        data.set("tags", list(resource.get("tags") or []))

        endpoint = resource.get("endpoint")
        if endpoint:
            data.set("endpoint_ip", endpoint.get("ip") or "")
            data.set("endpoint_port", int(endpoint.get("port") or 0))
        else:
            data.set("endpoint_ip", "")
            data.set("endpoint_port", 0)

        volume = resource.get("volume")
        if volume:
            data.set("volume_type", volume.get("type"))
            data.set("volume_size_in_gb", flatten_size_gb(volume.get("size")))

        data.set("region", region)
        data.set("organization_id", resource.get("organization_id"))
        data.set("project_id", resource.get("project_id"))

        if not data.get("user_name"):
            for user in self.api.list_users(region, resource["id"], ctx=ctx):
                if user.get("is_admin"):
                    data.set("user_name", user.get("name"))
                    break

        data.set("certificate", self.api.get_instance_certificate(region, resource["id"], ctx=ctx))
        data.set("settings", flatten_settings(resource.get("settings")))
        data.set("init_settings", flatten_settings(resource.get("init_settings")))
        return None

    def _upgrade_requests(self, data: ResourceData, instance: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Upgrade requests in the order they must be applied.

        Raises:
            ValidationError: For changes the API forbids
        """
        requests = []
        volume_type = data.get("volume_type")
        disk_is_full = instance.get("status") == "disk_full"

        if data.has_changes("volume_type", "volume_size_in_gb"):
            if volume_type in (VOLUME_TYPE_BSSD, VOLUME_TYPE_SBS_5K):
                if data.has_change("volume_type"):
                    requests.append({"volume_type": volume_type})
                if data.has_change("volume_size_in_gb"):
                    old_size, new_size = data.get_change("volume_size_in_gb")
                    old_size, new_size = old_size or 0, new_size or 0
                    if new_size < old_size:
                        raise ValidationError("volume_size_in_gb cannot be decreased", attribute="volume_size_in_gb")
                    if new_size % 5 != 0:
                        raise ValidationError("volume_size_in_gb must be a multiple of 5", attribute="volume_size_in_gb")
                    requests.append({"volume_size": new_size * GB})
            elif volume_type == VOLUME_TYPE_LSSD:
                _, size_set = data.get_ok("volume_size_in_gb")
                if data.has_change("volume_size_in_gb") and size_set:
                    raise ValidationError(
                        f"volume_size_in_gb should be used with volume_type {VOLUME_TYPE_BSSD} only",
                        attribute="volume_size_in_gb",
                    )
                if data.has_change("volume_type"):
                    requests.append({"volume_type": volume_type})
            else:
                raise ValidationError(f"unknown volume_type {volume_type}", attribute="volume_type")

        if data.has_change("node_type"):
            # A full block volume must be grown before the node type can change
            if disk_is_full and volume_type != VOLUME_TYPE_LSSD and not requests:
                raise ValidationError(
                    "Node type upgrade forbidden when disk is full: you cannot upgrade the node_type of an "
                    "instance that is using bssd storage once it is in disk_full state. "
                    "Please increase the volume_size_in_gb first.",
                    attribute="node_type",
                )
            requests.append({"node_type": data.get("node_type")})

        if data.has_change("is_ha_cluster"):
            requests.append({"enable_ha": data.get("is_ha_cluster")})

        return requests

    def apply_updates(self, ctx: Context, data: ResourceData, region: str, resource_id: str) -> Optional[Diagnostics]:
        timeout = data.timeout("update")
        instance = self.api.get_instance(region, resource_id, ctx=ctx)

        try:
            upgrades = self._upgrade_requests(data, instance)
        except ValidationError as e:
            return [error(e.message, attribute_path=e.attribute)]

        if upgrades:
            self.wait(ctx, region, resource_id, timeout, deleting=True)
            for upgrade in upgrades:
                self.logger.info(f"Upgrading {data.id}: {', '.join(upgrade)}")
                self.api.upgrade_instance(region, resource_id, upgrade, ctx=ctx)
                self.wait(ctx, region, resource_id, timeout, deleting=True)

        request: Dict[str, Any] = {}
        if data.has_change("name"):
            request["name"] = expand_string_ptr(data.get("name"))
        if data.has_change("disable_backup"):
            request["is_backup_schedule_disabled"] = data.get("disable_backup")
        if data.has_change("backup_schedule_frequency"):
            request["backup_schedule_frequency"] = data.get("backup_schedule_frequency")
        if data.has_change("backup_schedule_retention"):
            request["backup_schedule_retention"] = data.get("backup_schedule_retention")
        if data.has_change("backup_same_region"):
            request["backup_same_region"] = data.get("backup_same_region")
        if data.has_change("tags"):
            request["tags"] = expand_updated_tags(data.get("tags"))
        request = {key: value for key, value in request.items() if value is not None or key == "tags"}

        if request:
            self.wait(ctx, region, resource_id, timeout)
            self.api.update_instance(region, resource_id, request, ctx=ctx)

        if data.has_change("settings"):
            self.wait(ctx, region, resource_id, timeout, deleting=True)
            self.api.set_instance_settings(region, resource_id, expand_settings(data.get("settings")), ctx=ctx)

        if data.has_change("password"):
            self.wait(ctx, region, resource_id, timeout)
            self.api.update_user(region, resource_id, data.get("user_name"), data.get("password"), ctx=ctx)

        return None
