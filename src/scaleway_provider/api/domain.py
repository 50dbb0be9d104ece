"""Domains and DNS API binding."""

from typing import Any, Dict, List, Optional

from scaleway_provider.api.client import ScalewayClient
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import NotFoundError
from scaleway_provider.utils.waiter import WaitDescriptor, wait_for

DEFAULT_WAIT_DOMAIN_RETRY_INTERVAL = 15.0
DEFAULT_DOMAIN_ZONE_TIMEOUT = 5 * 60.0

ZONE_SUCCESS_STATUSES = frozenset({'active'})
ZONE_FAILURE_STATUSES = frozenset({'error', 'locked'})

BASE_PATH = "/domain/v2beta1"


class DomainAPI:
    """Calls of the domain/v2beta1 API used by the DNS zone resource."""

    def __init__(self, client: ScalewayClient):
        self.client = client

    def list_dns_zones(
        self,
        dns_zone: Optional[str] = None,
        domain: Optional[str] = None,
        project_id: Optional[str] = None,
        ctx: Optional[Context] = None,
    ) -> List[Dict[str, Any]]:
        return self.client.list_all(
            f"{BASE_PATH}/dns-zones",
            'dns_zones',
            params={'dns_zone': dns_zone, 'domain': domain, 'project_id': project_id},
            ctx=ctx,
        )

    def create_dns_zone(self, domain: str, subdomain: str, project_id: Optional[str],
                        ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.post(
            f"{BASE_PATH}/dns-zones",
            {'domain': domain, 'subdomain': subdomain, 'project_id': project_id},
            ctx=ctx,
        )

    def update_dns_zone(self, dns_zone: str, new_dns_zone: str, project_id: Optional[str],
                        ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.patch(
            f"{BASE_PATH}/dns-zones/{dns_zone}",
            {'new_dns_zone': new_dns_zone, 'project_id': project_id},
            ctx=ctx,
        )

    def delete_dns_zone(self, dns_zone: str, project_id: Optional[str], ctx: Optional[Context] = None) -> None:
        self.client.delete(f"{BASE_PATH}/dns-zones/{dns_zone}", params={'project_id': project_id}, ctx=ctx)

    def get_dns_zone(self, dns_zone: str, ctx: Optional[Context] = None) -> Dict[str, Any]:
        """Return the zone with exactly that name.

        Raises:
            NotFoundError: If no zone has that name
        """
        for zone in self.list_dns_zones(dns_zone=dns_zone, ctx=ctx):
            if f"{zone.get('subdomain')}.{zone.get('domain')}".strip('.') == dns_zone:
                return zone
        raise NotFoundError(f"dns zone {dns_zone} not found")

    def wait_for_dns_zone(
        self,
        dns_zone: str,
        timeout: float,
        interval: float = DEFAULT_WAIT_DOMAIN_RETRY_INTERVAL,
        ctx: Optional[Context] = None,
    ) -> Dict[str, Any]:
        """Wait for a zone to become active."""
        descriptor = WaitDescriptor(
            fetch=lambda: self.get_dns_zone(dns_zone, ctx=ctx),
            status_of=lambda zone: zone.get('status', ''),
            success=ZONE_SUCCESS_STATUSES,
            failure=ZONE_FAILURE_STATUSES,
            name=f"dns zone {dns_zone}",
        )
        return wait_for(descriptor, timeout, interval, ctx)
