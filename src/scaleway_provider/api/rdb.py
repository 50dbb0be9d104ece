"""Managed Database (RDB) API binding."""

from typing import Any, Dict, List, Optional

from scaleway_provider.api.client import ScalewayClient
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import NotFoundError
from scaleway_provider.utils.waiter import WaitDescriptor, wait_for

GB = 1000 * 1000 * 1000

DEFAULT_WAIT_RDB_RETRY_INTERVAL = 15.0
DEFAULT_RDB_INSTANCE_TIMEOUT = 15 * 60.0

INSTANCE_SUCCESS_STATUSES = frozenset({'ready', 'disk_full', 'stopped'})
INSTANCE_FAILURE_STATUSES = frozenset({'error', 'locked'})

VOLUME_TYPE_LSSD = 'lssd'
VOLUME_TYPE_BSSD = 'bssd'
VOLUME_TYPE_SBS_5K = 'sbs_5k'
VOLUME_TYPES = (VOLUME_TYPE_LSSD, VOLUME_TYPE_BSSD, VOLUME_TYPE_SBS_5K)


class RdbAPI:
    """Calls of the rdb/v1 API used by the RDB resources."""

    def __init__(self, client: ScalewayClient):
        self.client = client

    @staticmethod
    def _base(region: str) -> str:
        return f"/rdb/v1/regions/{region}"

    def create_instance(self, region: str, request: Dict[str, Any], ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.post(f"{self._base(region)}/instances", request, ctx=ctx)

    def get_instance(self, region: str, instance_id: str, ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.get(f"{self._base(region)}/instances/{instance_id}", ctx=ctx)

    def list_instances(self, region: str, project_id: Optional[str] = None, name: Optional[str] = None,
                       ctx: Optional[Context] = None) -> List[Dict[str, Any]]:
        return self.client.list_all(
            f"{self._base(region)}/instances",
            'instances',
            params={'project_id': project_id, 'name': name},
            ctx=ctx,
        )

    def update_instance(self, region: str, instance_id: str, request: Dict[str, Any],
                        ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.patch(f"{self._base(region)}/instances/{instance_id}", request, ctx=ctx)

    def upgrade_instance(self, region: str, instance_id: str, request: Dict[str, Any],
                         ctx: Optional[Context] = None) -> Dict[str, Any]:
        """Upgrade one aspect of an instance.

        Exactly one of node_type, enable_ha, volume_size or volume_type must be
        set in the request.
        """
        return self.client.post(f"{self._base(region)}/instances/{instance_id}/upgrade", request, ctx=ctx)

    def set_instance_settings(self, region: str, instance_id: str, settings: List[Dict[str, str]],
                              ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.put(
            f"{self._base(region)}/instances/{instance_id}/settings",
            {'settings': settings},
            ctx=ctx,
        )

    def delete_instance(self, region: str, instance_id: str, ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.delete(f"{self._base(region)}/instances/{instance_id}", ctx=ctx)

    def get_instance_certificate(self, region: str, instance_id: str, ctx: Optional[Context] = None) -> str:
        answer = self.client.get(f"{self._base(region)}/instances/{instance_id}/certificate", ctx=ctx) or {}
        return answer.get('content', '')

    def list_users(self, region: str, instance_id: str, ctx: Optional[Context] = None) -> List[Dict[str, Any]]:
        return self.client.list_all(f"{self._base(region)}/instances/{instance_id}/users", 'users', ctx=ctx)

    def update_user(self, region: str, instance_id: str, name: str, password: str,
                    ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.patch(
            f"{self._base(region)}/instances/{instance_id}/users/{name}",
            {'password': password},
            ctx=ctx,
        )

    def create_database(self, region: str, instance_id: str, name: str, ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.post(f"{self._base(region)}/instances/{instance_id}/databases", {'name': name}, ctx=ctx)

    def get_database(self, region: str, instance_id: str, name: str, ctx: Optional[Context] = None) -> Dict[str, Any]:
        """Return a database by name.

        Raises:
            NotFoundError: If the instance has no database with that name
        """
        databases = self.client.list_all(
            f"{self._base(region)}/instances/{instance_id}/databases",
            'databases',
            params={'name': name},
            ctx=ctx,
        )
        for database in databases:
            if database.get('name') == name:
                return database
        raise NotFoundError(f"database {name} not found")

    def delete_database(self, region: str, instance_id: str, name: str, ctx: Optional[Context] = None) -> None:
        self.client.delete(f"{self._base(region)}/instances/{instance_id}/databases/{name}", ctx=ctx)

    def wait_for_instance(
        self,
        region: str,
        instance_id: str,
        timeout: float,
        interval: float = DEFAULT_WAIT_RDB_RETRY_INTERVAL,
        ctx: Optional[Context] = None,
        deleting: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Wait for an instance to reach a stable status.

        Args:
            region: Region of the instance
            instance_id: Instance UUID
            timeout: Wait budget in seconds
            interval: Poll interval in seconds
            ctx: Cancellation context
            deleting: Treat a not-found answer as success

        Returns:
            The instance, or None when it disappeared while deleting
        """
        descriptor = WaitDescriptor(
            fetch=lambda: self.get_instance(region, instance_id, ctx=ctx),
            status_of=lambda instance: instance.get('status', ''),
            success=INSTANCE_SUCCESS_STATUSES,
            failure=INSTANCE_FAILURE_STATUSES,
            deleting=deleting,
            name=f"rdb instance {region}/{instance_id}",
        )
        return wait_for(descriptor, timeout, interval, ctx)
