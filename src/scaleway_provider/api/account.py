"""Account (projects) API binding."""

from typing import Any, Dict, Optional

from scaleway_provider.api.client import ScalewayClient
from scaleway_provider.utils.context import Context

BASE_PATH = "/account/v3"


class ProjectAPI:
    """Calls of the account/v3 project API."""

    def __init__(self, client: ScalewayClient):
        self.client = client

    def create_project(self, name: str, organization_id: Optional[str] = None, description: str = '',
                       ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.post(
            f"{BASE_PATH}/projects",
            {
                'name': name,
                'organization_id': organization_id or self.client.default_organization_id,
                'description': description,
            },
            ctx=ctx,
        )

    def delete_project(self, project_id: str, ctx: Optional[Context] = None) -> None:
        self.client.delete(f"{BASE_PATH}/projects/{project_id}", ctx=ctx)
