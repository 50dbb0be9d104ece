"""Object Storage bucket ACL provisioner."""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from scaleway_provider.locality import (
    diff_suppress_locality,
    new_regional_id,
    new_regional_nested_id,
    parse_region,
    validate_uuid,
)
from scaleway_provider.objectstorage import (
    DEFAULT_OBJECT_BUCKET_TIMEOUT,
    build_bucket_owner_id,
    normalize_owner_id,
    s3_client_for_bucket,
    s3_client_with_region_with_name_acl,
)
from scaleway_provider.state import Attr, AttributeModel, ResourceData, Timeouts
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import ValidationError

from .base import BaseProvisioner, Diagnostics

BUCKET_ACLS = ("private", "public-read", "public-read-write", "authenticated-read")
PERMISSIONS = ("FULL_CONTROL", "WRITE", "WRITE_ACP", "READ", "READ_ACP")
GRANTEE_TYPES = ("CanonicalUser",)


def validate_acl(value: str) -> str:
    if value not in BUCKET_ACLS:
        raise ValidationError(f"expected one of {', '.join(BUCKET_ACLS)}, got {value}")
    return value


def validate_permission(value: str) -> str:
    if value not in PERMISSIONS:
        raise ValidationError(f"expected one of {', '.join(PERMISSIONS)}, got {value}")
    return value


def validate_grantee_type(value: str) -> str:
    if value not in GRANTEE_TYPES:
        raise ValidationError(f"expected one of {', '.join(GRANTEE_TYPES)}, got {value}")
    return value


class GranteeModel(AttributeModel):
    id: Annotated[Optional[str], Attr(optional=True, description="The project ID owner of the grantee.")] = None
    type: Annotated[str, Attr(required=True, validators=(validate_grantee_type,))] = "CanonicalUser"
    display_name: Annotated[Optional[str], Attr(computed=True)] = None


class GrantModel(AttributeModel):
    grantee: Annotated[List[GranteeModel], Attr(optional=True)] = Field(default_factory=list)
    permission: Annotated[Optional[str], Attr(required=True, validators=(validate_permission,))] = None


class OwnerModel(AttributeModel):
    id: Annotated[Optional[str], Attr(required=True, description="The ID of the project owner")] = None
    display_name: Annotated[Optional[str], Attr(optional=True, computed=True)] = None


class AccessControlPolicyModel(AttributeModel):
    grant: Annotated[List[GrantModel], Attr(optional=True)] = Field(default_factory=list)
    owner: Annotated[List[OwnerModel], Attr(required=True)] = Field(default_factory=list)


class ObjectBucketACLModel(AttributeModel):
    """Attributes of scaleway_object_bucket_acl."""

    bucket: Annotated[Optional[str], Attr(required=True, force_new=True, diff_suppress=diff_suppress_locality,
                                          description="The bucket's name or regional ID.")] = None
    acl: Annotated[Optional[str], Attr(optional=True, validators=(validate_acl,),
                                       description="ACL of the bucket: either 'private', 'public-read', 'public-read-write' or 'authenticated-read'.")] = None
    access_control_policy: Annotated[List[AccessControlPolicyModel], Attr(optional=True, computed=True)] = Field(default_factory=list)
    expected_bucket_owner: Annotated[Optional[str], Attr(optional=True, force_new=True, validators=(validate_uuid,),
                                                         description="The project ID as owner.")] = None
    region: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(parse_region,))] = None
    project_id: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(validate_uuid,))] = None


def expand_access_control_policy(policy: AccessControlPolicyModel) -> Dict[str, Any]:
    """Grant list and owner in the S3 shape; project IDs become `project:project`."""
    grants = []
    for grant in policy.grant:
        entry: Dict[str, Any] = {"Permission": grant.permission}
        if grant.grantee:
            grantee = grant.grantee[0]
            entry["Grantee"] = {"ID": build_bucket_owner_id(grantee.id), "Type": grantee.type}
        grants.append(entry)

    result: Dict[str, Any] = {"Grants": grants}
    if policy.owner:
        owner = policy.owner[0]
        result["Owner"] = {"ID": build_bucket_owner_id(owner.id)}
        if owner.display_name:
            result["Owner"]["DisplayName"] = owner.display_name
    return result


def flatten_access_control_policy(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    grants = []
    for grant in response.get("Grants") or []:
        grantee = grant.get("Grantee") or {}
        grants.append({
            "grantee": [{
                "id": normalize_owner_id(grantee.get("ID")),
                "type": grantee.get("Type", "CanonicalUser"),
                "display_name": grantee.get("DisplayName"),
            }] if grantee.get("ID") else [],
            "permission": grant.get("Permission"),
        })

    owner = response.get("Owner") or {}
    owners = [{"id": normalize_owner_id(owner.get("ID")), "display_name": owner.get("DisplayName")}] if owner else []
    return [{"grant": grants, "owner": owners}]


class ObjectBucketACLProvisioner(BaseProvisioner):
    """Provisioner for scaleway_object_bucket_acl.

    The ACL is either a canned ACL or an explicit access control policy.
    """

    type_name = "scaleway_object_bucket_acl"
    model = ObjectBucketACLModel
    default_timeouts = Timeouts(default=DEFAULT_OBJECT_BUCKET_TIMEOUT)

    def _put_acl(self, s3: Any, data: ResourceData, bucket: str) -> None:
        request: Dict[str, Any] = {"Bucket": bucket}
        acl, has_acl = data.get_ok("acl")
        # access_control_policy is computed from the canned ACL too, acl wins
        policies = data.get("access_control_policy")
        if has_acl:
            request["ACL"] = acl
        elif policies:
            request["AccessControlPolicy"] = expand_access_control_policy(policies[0])
        else:
            raise ValidationError("one of acl, access_control_policy must be set", attribute="acl")

        owner, ok = data.get_ok("expected_bucket_owner")
        if ok:
            request["ExpectedBucketOwner"] = owner
        s3.put_bucket_acl(**request)

    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket = s3_client_for_bucket(data, self.meta)

        self._put_acl(s3, data, bucket)

        owner, ok = data.get_ok("expected_bucket_owner")
        if ok:
            data.set_id(new_regional_nested_id(region, owner, bucket))
        else:
            data.set_id(new_regional_id(region, bucket))
        return self.do_read(ctx, data)

    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket, owner = s3_client_with_region_with_name_acl(data, self.meta, data.id)

        request: Dict[str, Any] = {"Bucket": bucket}
        if owner:
            request["ExpectedBucketOwner"] = owner
        response = s3.get_bucket_acl(**request)

        data.set("bucket", bucket)
        data.set("region", region)
        data.set("expected_bucket_owner", owner or None)
        data.set("access_control_policy", flatten_access_control_policy(response))
        owner_id = (response.get("Owner") or {}).get("ID")
        if owner_id:
            data.set("project_id", normalize_owner_id(owner_id))
        return None

    def do_update(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, bucket, _ = s3_client_with_region_with_name_acl(data, self.meta, data.id)
        if data.has_changes("acl", "access_control_policy"):
            self._put_acl(s3, data, bucket)
        return self.do_read(ctx, data)

    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        self.logger.warning(
            f"Cannot destroy Object Bucket ACL {data.id}. It is removed from the state, "
            f"however the ACL remains on the bucket."
        )
        return None
