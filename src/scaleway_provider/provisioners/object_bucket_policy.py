"""Object Storage bucket policy provisioner."""

from typing import Annotated, Optional

from scaleway_provider.locality import diff_suppress_locality, new_regional_id, parse_region, validate_uuid
from scaleway_provider.objectstorage import (
    DEFAULT_OBJECT_BUCKET_TIMEOUT,
    normalize_owner_id,
    normalize_policy,
    s3_client_for_bucket,
    s3_client_with_region_and_name,
    second_json_unless_equivalent,
    suppress_equivalent_policy_diffs,
)
from scaleway_provider.state import Attr, AttributeModel, ResourceData, Timeouts
from scaleway_provider.utils.context import Context

from .base import BaseProvisioner, Diagnostics


class ObjectBucketPolicyModel(AttributeModel):
    """Attributes of scaleway_object_bucket_policy."""

    bucket: Annotated[Optional[str], Attr(required=True, force_new=True, diff_suppress=diff_suppress_locality,
                                          description="The bucket's name or regional ID.")] = None
    policy: Annotated[Optional[str], Attr(required=True, validators=(normalize_policy,),
                                          diff_suppress=suppress_equivalent_policy_diffs,
                                          description="The text of the policy.")] = None
    region: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(parse_region,))] = None
    project_id: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(validate_uuid,))] = None


class ObjectBucketPolicyProvisioner(BaseProvisioner):
    """Provisioner for scaleway_object_bucket_policy."""

    type_name = "scaleway_object_bucket_policy"
    model = ObjectBucketPolicyModel
    default_timeouts = Timeouts(default=DEFAULT_OBJECT_BUCKET_TIMEOUT)

    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket = s3_client_for_bucket(data, self.meta)

        s3.put_bucket_policy(Bucket=bucket, Policy=data.get("policy"))
        self.logger.info(f"Put policy of bucket {bucket}")

        data.set_id(new_regional_id(region, bucket))
        return self.do_read(ctx, data)

    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket = s3_client_with_region_and_name(data, self.meta, data.id)

        response = s3.get_bucket_policy(Bucket=bucket)
        data.set("policy", second_json_unless_equivalent(data.get("policy"), response.get("Policy", "")))

        acl = s3.get_bucket_acl(Bucket=bucket)
        owner = (acl.get("Owner") or {}).get("ID")
        if owner:
            data.set("project_id", normalize_owner_id(owner))

        data.set("bucket", bucket)
        data.set("region", region)
        return None

    def do_update(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, bucket = s3_client_with_region_and_name(data, self.meta, data.id)
        if data.has_change("policy"):
            s3.put_bucket_policy(Bucket=bucket, Policy=data.get("policy"))
        return self.do_read(ctx, data)

    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, bucket = s3_client_with_region_and_name(data, self.meta, data.id)
        s3.delete_bucket_policy(Bucket=bucket)
        return None
