"""IAM API binding: applications, policies and API keys."""

from typing import Any, Dict, List, Optional

from scaleway_provider.api.client import ScalewayClient
from scaleway_provider.utils.context import Context

BASE_PATH = "/iam/v1alpha1"


class IAMAPI:
    """Calls of the iam/v1alpha1 API."""

    def __init__(self, client: ScalewayClient):
        self.client = client

    def create_application(self, name: str, organization_id: Optional[str] = None,
                           ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.post(
            f"{BASE_PATH}/applications",
            {'name': name, 'organization_id': organization_id or self.client.default_organization_id},
            ctx=ctx,
        )

    def delete_application(self, application_id: str, ctx: Optional[Context] = None) -> None:
        self.client.delete(f"{BASE_PATH}/applications/{application_id}", ctx=ctx)

    def create_policy(self, name: str, application_id: str, rules: List[Dict[str, Any]],
                      organization_id: Optional[str] = None, ctx: Optional[Context] = None) -> Dict[str, Any]:
        """Create a policy granting permission sets to an application.

        Args:
            name: Policy name
            application_id: Application the policy applies to
            rules: Rule specs, eg {'project_ids': [...], 'permission_set_names': [...]}
            organization_id: Organization owning the policy
            ctx: Cancellation context
        """
        return self.client.post(
            f"{BASE_PATH}/policies",
            {
                'name': name,
                'application_id': application_id,
                'rules': rules,
                'organization_id': organization_id or self.client.default_organization_id,
            },
            ctx=ctx,
        )

    def delete_policy(self, policy_id: str, ctx: Optional[Context] = None) -> None:
        self.client.delete(f"{BASE_PATH}/policies/{policy_id}", ctx=ctx)

    def create_api_key(self, application_id: str, default_project_id: Optional[str] = None,
                       ctx: Optional[Context] = None) -> Dict[str, Any]:
        return self.client.post(
            f"{BASE_PATH}/api-keys",
            {'application_id': application_id, 'default_project_id': default_project_id},
            ctx=ctx,
        )

    def delete_api_key(self, access_key: str, ctx: Optional[Context] = None) -> None:
        self.client.delete(f"{BASE_PATH}/api-keys/{access_key}", ctx=ctx)
