"""Object Storage bucket object-lock configuration provisioner."""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from scaleway_provider.locality import diff_suppress_locality, new_regional_id, parse_region, validate_uuid
from scaleway_provider.objectstorage import (
    DEFAULT_OBJECT_BUCKET_TIMEOUT,
    is_s3_err,
    normalize_owner_id,
    s3_client_for_bucket,
    s3_client_with_region_and_name,
)
from scaleway_provider.objectstorage.helpers import ERR_CODE_NO_SUCH_BUCKET
from scaleway_provider.state import Attr, AttributeModel, ResourceData, Timeouts
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import ValidationError

from .base import BaseProvisioner, Diagnostics

LOCK_MODES = ("GOVERNANCE", "COMPLIANCE")
OBJECT_LOCK_ENABLED = "Enabled"


def validate_lock_mode(value: str) -> str:
    if value not in LOCK_MODES:
        raise ValidationError(f"expected one of {', '.join(LOCK_MODES)}, got {value}")
    return value


class DefaultRetentionModel(AttributeModel):
    mode: Annotated[Optional[str], Attr(required=True, validators=(validate_lock_mode,),
                                        description="The default Object Lock retention mode")] = None
    days: Annotated[Optional[int], Attr(optional=True,
                                        description="The number of days for the default retention period")] = None
    years: Annotated[Optional[int], Attr(optional=True,
                                         description="The number of years for the default retention period")] = None


class LockRuleModel(AttributeModel):
    default_retention: Annotated[List[DefaultRetentionModel], Attr(required=True)] = Field(default_factory=list)


class ObjectBucketLockConfigurationModel(AttributeModel):
    """Attributes of scaleway_object_bucket_lock_configuration."""

    bucket: Annotated[Optional[str], Attr(required=True, force_new=True, diff_suppress=diff_suppress_locality,
                                          description="The bucket's name or regional ID.")] = None
    rule: Annotated[List[LockRuleModel], Attr(required=True,
                                              description="Specifies the Object Lock rule for the specified object.")] = Field(default_factory=list)
    region: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(parse_region,))] = None
    project_id: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(validate_uuid,))] = None


def expand_lock_rule(rules: List[LockRuleModel]) -> Dict[str, Any]:
    """Object-lock rule in the S3 shape; exactly one of days/years is set.

    Raises:
        ValidationError: If the retention sets both or neither of days and years
    """
    if not rules or not rules[0].default_retention:
        return {}
    retention = rules[0].default_retention[0]
    if bool(retention.days) == bool(retention.years):
        raise ValidationError("exactly one of days, years must be set", attribute="rule.0.default_retention.0")

    default_retention: Dict[str, Any] = {"Mode": retention.mode}
    if retention.days:
        default_retention["Days"] = retention.days
    else:
        default_retention["Years"] = retention.years
    return {"DefaultRetention": default_retention}


def flatten_lock_rule(rule: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    retention = (rule or {}).get("DefaultRetention")
    if not retention:
        return []
    return [{"default_retention": [{
        "mode": retention.get("Mode"),
        "days": retention.get("Days"),
        "years": retention.get("Years"),
    }]}]


class ObjectBucketLockConfigurationProvisioner(BaseProvisioner):
    """Provisioner for scaleway_object_bucket_lock_configuration.

    Object lock must have been enabled when the bucket was created; this
    resource only manages the default retention rule.
    """

    type_name = "scaleway_object_bucket_lock_configuration"
    model = ObjectBucketLockConfigurationModel
    default_timeouts = Timeouts(default=DEFAULT_OBJECT_BUCKET_TIMEOUT)

    def _put_configuration(self, s3: Any, data: ResourceData, bucket: str) -> None:
        s3.put_object_lock_configuration(
            Bucket=bucket,
            ObjectLockConfiguration={
                "ObjectLockEnabled": OBJECT_LOCK_ENABLED,
                "Rule": expand_lock_rule(data.get("rule")),
            },
        )

    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket = s3_client_for_bucket(data, self.meta)
        self._put_configuration(s3, data, bucket)

        data.set_id(new_regional_id(region, bucket))
        return self.do_read(ctx, data)

    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket = s3_client_with_region_and_name(data, self.meta, data.id)

        response = s3.get_object_lock_configuration(Bucket=bucket)
        configuration = response.get("ObjectLockConfiguration") or {}
        data.set("rule", flatten_lock_rule(configuration.get("Rule")))

        acl = s3.get_bucket_acl(Bucket=bucket)
        owner = (acl.get("Owner") or {}).get("ID")
        if owner:
            data.set("project_id", normalize_owner_id(owner))

        data.set("bucket", bucket)
        data.set("region", region)
        return None

    def do_update(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, bucket = s3_client_with_region_and_name(data, self.meta, data.id)
        if data.has_change("rule"):
            self._put_configuration(s3, data, bucket)
        return self.do_read(ctx, data)

    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, bucket = s3_client_with_region_and_name(data, self.meta, data.id)
        try:
            s3.put_object_lock_configuration(
                Bucket=bucket,
                ObjectLockConfiguration={"ObjectLockEnabled": OBJECT_LOCK_ENABLED},
            )
        except Exception as e:
            if not is_s3_err(e, ERR_CODE_NO_SUCH_BUCKET):
                raise
        return None
