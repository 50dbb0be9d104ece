"""DNS zone provisioner.

Zones are keyed by name (`{subdomain}.{domain}`), not by UUID, and creating a
zone that already exists adopts it.
"""

from typing import Annotated, List, Optional

from pydantic import Field

from scaleway_provider.api.domain import DEFAULT_DOMAIN_ZONE_TIMEOUT, DEFAULT_WAIT_DOMAIN_RETRY_INTERVAL, DomainAPI
from scaleway_provider.locality import validate_uuid
from scaleway_provider.state import Attr, AttributeModel, ResourceData, Timeouts
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import ErrorKind, FatalError, is_conflict, is_forbidden, is_not_found

from .base import BaseProvisioner, Diagnostics
from .expanders import expand_string_ptr


def zone_name(subdomain: str, domain: str) -> str:
    """Name of a zone; the apex zone of a domain has an empty subdomain."""
    if not subdomain:
        return domain
    return f"{subdomain}.{domain}"


class DomainZoneModel(AttributeModel):
    """Attributes of scaleway_domain_zone."""

    domain: Annotated[Optional[str], Attr(required=True, force_new=True,
                                          description="The domain where the DNS zone will be created.")] = None
    subdomain: Annotated[Optional[str], Attr(required=True,
                                             description="The subdomain of the DNS zone to create.")] = None
    ns: Annotated[List[str], Attr(computed=True, description="NameServer list for zone.")] = Field(default_factory=list)
    ns_default: Annotated[List[str], Attr(computed=True, description="NameServer default list for zone.")] = Field(default_factory=list)
    ns_master: Annotated[List[str], Attr(computed=True, description="NameServer master list for zone.")] = Field(default_factory=list)
    status: Annotated[Optional[str], Attr(computed=True, description="The domain zone status.")] = None
    message: Annotated[Optional[str], Attr(computed=True)] = None
    updated_at: Annotated[Optional[str], Attr(computed=True,
                                              description="The date and time of the last update of the DNS zone.")] = None
    project_id: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True,
                                              validators=(validate_uuid,))] = None


class DomainZoneProvisioner(BaseProvisioner):
    """Provisioner for scaleway_domain_zone."""

    type_name = "scaleway_domain_zone"
    model = DomainZoneModel
    default_timeouts = Timeouts(default=DEFAULT_DOMAIN_ZONE_TIMEOUT)
    # Deleting a zone whose parent subdomain is gone answers 403
    delete_swallow = frozenset({ErrorKind.NOT_FOUND, ErrorKind.FORBIDDEN})

    @property
    def api(self) -> DomainAPI:
        return DomainAPI(self.meta.client)

    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        domain = data.get("domain").lower()
        subdomain = (data.get("subdomain") or "").lower()
        name = zone_name(subdomain, domain)
        project_id = expand_string_ptr(data.get("project_id"))

        for zone in self.api.list_dns_zones(dns_zone=name, project_id=project_id, ctx=ctx):
            if zone.get("domain") == domain and zone.get("subdomain") == subdomain:
                self.logger.info(f"DNS zone {name} already exists, adopting it")
                data.set_id(name)
                return self.do_read(ctx, data)

        try:
            zone = self.api.create_dns_zone(domain, subdomain, project_id or self.meta.default_project_id, ctx=ctx)
        except Exception as e:
            if not is_conflict(e):
                raise
            self.logger.info(f"DNS zone {name} was created concurrently, reading it")
            data.set_id(name)
            return self.do_read(ctx, data)

        data.set_id(zone_name(zone.get("subdomain", subdomain), zone.get("domain", domain)))
        return self.do_read(ctx, data)

    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        zones = self.api.list_dns_zones(
            dns_zone=data.id,
            project_id=expand_string_ptr(data.get("project_id")),
            ctx=ctx,
        )
        if not zones:
            raise FatalError(f"no zone found with the name {data.id}")
        if len(zones) > 1:
            raise FatalError(f"{len(zones)} zone found with the same name {data.id}")

        zone = zones[0]
        data.set("subdomain", zone.get("subdomain"))
        data.set("domain", zone.get("domain"))
        data.set("ns", list(zone.get("ns") or []))
        data.set("ns_default", list(zone.get("ns_default") or []))
        data.set("ns_master", list(zone.get("ns_master") or []))
        data.set("status", zone.get("status"))
        data.set("message", zone.get("message") or "")
        data.set("updated_at", zone.get("updated_at") or "")
        data.set("project_id", zone.get("project_id"))
        return None

    def do_update(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        if data.has_change("subdomain"):
            new_name = zone_name(data.get("subdomain"), data.get("domain"))
            self.api.update_dns_zone(
                data.id,
                new_name,
                expand_string_ptr(data.get("project_id")),
                ctx=ctx,
            )
            data.set_id(new_name)
        return self.do_read(ctx, data)

    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        interval = self.meta.retry_interval(DEFAULT_WAIT_DOMAIN_RETRY_INTERVAL)
        # Not-found and forbidden are success here and around the delete call
        try:
            self.api.wait_for_dns_zone(data.id, data.timeout("delete"), interval, ctx)
        except Exception as e:
            if is_not_found(e) or is_forbidden(e):
                return None
            raise

        self.api.delete_dns_zone(data.id, expand_string_ptr(data.get("project_id")), ctx=ctx)
        self.logger.info(f"Deleted DNS zone {data.id}")
        return None
