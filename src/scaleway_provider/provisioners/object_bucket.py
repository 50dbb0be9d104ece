"""Object Storage bucket provisioner."""

from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple

from pydantic import Field

from scaleway_provider.locality import new_regional_id, parse_region, validate_uuid
from scaleway_provider.objectstorage import (
    DEFAULT_OBJECT_BUCKET_TIMEOUT,
    add_read_bucket_error_diagnostic,
    delete_object_versions,
    is_s3_err,
    normalize_owner_id,
    s3_client_with_region,
    s3_client_with_region_and_name,
)
from scaleway_provider.objectstorage.helpers import (
    ERR_CODE_LOCK_NOT_FOUND,
    ERR_CODE_NO_SUCH_BUCKET,
    ERR_CODE_NO_SUCH_CORS,
    ERR_CODE_NO_SUCH_LIFECYCLE,
    ERR_CODE_NO_SUCH_TAG_SET,
    TRANSITION_STORAGE_CLASSES,
    expand_bucket_cors,
    expand_lifecycle_rules,
    expand_object_bucket_tags,
    expand_object_bucket_versioning,
    flatten_bucket_cors,
    flatten_lifecycle_rules,
    flatten_object_bucket_tags,
    flatten_object_bucket_versioning,
    object_bucket_api_endpoint_url,
    object_bucket_endpoint_url,
)
from scaleway_provider.state import Attr, AttributeModel, ResourceData, Timeouts, has_error
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import ValidationError
from scaleway_provider.utils.retry import retry_when_s3_code_equals

from .base import BaseProvisioner, Diagnostics
from .expanders import expand_or_generate_string

ERR_CODE_BUCKET_NOT_EMPTY = "BucketNotEmpty"

# Poll interval while a new bucket is not yet visible
BUCKET_CREATE_RETRY_INTERVAL = 5.0

BUCKET_CANNED_ACLS = ("private", "public-read", "public-read-write", "authenticated-read")


def validate_bucket_acl(value: str) -> str:
    if value not in BUCKET_CANNED_ACLS:
        raise ValidationError(f"expected one of {', '.join(BUCKET_CANNED_ACLS)}, got {value}")
    return value


def validate_storage_class(value: str) -> str:
    if value not in TRANSITION_STORAGE_CLASSES:
        raise ValueError(f"expected one of {', '.join(TRANSITION_STORAGE_CLASSES)}, got {value}")
    return value


class VersioningModel(AttributeModel):
    enabled: Annotated[bool, Attr(optional=True, description="Enable versioning")] = False


class CorsRuleModel(AttributeModel):
    allowed_headers: Annotated[List[str], Attr(optional=True)] = Field(default_factory=list)
    allowed_methods: Annotated[List[str], Attr(required=True)] = Field(default_factory=list)
    allowed_origins: Annotated[List[str], Attr(required=True)] = Field(default_factory=list)
    expose_headers: Annotated[List[str], Attr(optional=True, computed=True)] = Field(default_factory=list)
    max_age_seconds: Annotated[Optional[int], Attr(optional=True)] = None


class ExpirationModel(AttributeModel):
    days: Annotated[int, Attr(required=True, description="Specifies the number of days after object creation when the specific rule action takes effect")] = 0


class TransitionModel(AttributeModel):
    days: Annotated[int, Attr(optional=True)] = 0
    storage_class: Annotated[str, Attr(required=True, validators=(validate_storage_class,))] = "STANDARD"


class LifecycleRuleModel(AttributeModel):
    id: Annotated[Optional[str], Attr(optional=True, computed=True, description="Unique identifier for the rule")] = None
    prefix: Annotated[Optional[str], Attr(optional=True, description="The prefix identifying one or more objects to which the rule applies")] = None
    tags: Annotated[Dict[str, str], Attr(optional=True)] = Field(default_factory=dict)
    enabled: Annotated[bool, Attr(required=True, description="Specifies if the configuration rule is Enabled or Disabled")] = False
    abort_incomplete_multipart_upload_days: Annotated[Optional[int], Attr(optional=True)] = None
    expiration: Annotated[List[ExpirationModel], Attr(optional=True)] = Field(default_factory=list)
    transition: Annotated[List[TransitionModel], Attr(optional=True)] = Field(default_factory=list)


class ObjectBucketModel(AttributeModel):
    """Attributes of scaleway_object_bucket."""

    name: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True,
                                        description="The name of the bucket")] = None
    object_lock_enabled: Annotated[bool, Attr(optional=True, force_new=True,
                                              description="Enable object lock")] = False
    acl: Annotated[str, Attr(optional=True, validators=(validate_bucket_acl,),
                             description="ACL of the bucket: either 'private', 'public-read', 'public-read-write' or 'authenticated-read'.")] = "private"
    tags: Annotated[Dict[str, str], Attr(optional=True, description="The tags associated with this bucket")] = Field(default_factory=dict)
    force_destroy: Annotated[bool, Attr(optional=True,
                                        description="Delete objects in bucket")] = False
    endpoint: Annotated[Optional[str], Attr(computed=True, description="Endpoint of the bucket")] = None
    api_endpoint: Annotated[Optional[str], Attr(computed=True, description="API URL of the bucket")] = None
    versioning: Annotated[List[VersioningModel], Attr(optional=True, computed=True)] = Field(default_factory=list)
    cors_rule: Annotated[List[CorsRuleModel], Attr(optional=True)] = Field(default_factory=list)
    lifecycle_rule: Annotated[List[LifecycleRuleModel], Attr(optional=True,
                                                             description="Lifecycle configuration is a set of rules that define actions that Scaleway Object Storage applies to a group of objects")] = Field(default_factory=list)
    region: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(parse_region,))] = None
    project_id: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(validate_uuid,))] = None


def _dump(items: List[AttributeModel]) -> List[Dict[str, Any]]:
    return [item.model_dump() for item in items or []]


class ObjectBucketProvisioner(BaseProvisioner):
    """Provisioner for scaleway_object_bucket.

    A bucket is made of several S3 sub-configurations, each read and written
    with its own call.
    """

    type_name = "scaleway_object_bucket"
    model = ObjectBucketModel
    default_timeouts = Timeouts(default=DEFAULT_OBJECT_BUCKET_TIMEOUT)

    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region = s3_client_with_region(data, self.meta)
        name = expand_or_generate_string(data.get("name"), "bucket")

        s3.create_bucket(
            Bucket=name,
            ObjectLockEnabledForBucket=data.get("object_lock_enabled"),
            ACL=data.get("acl"),
        )
        self.logger.info(f"Created bucket {name} in {region}")

        tags, ok = data.get_ok("tags")
        if ok:
            # A new bucket can answer NoSuchBucket for a short while
            retry_when_s3_code_equals(
                lambda: s3.put_bucket_tagging(Bucket=name, Tagging={"TagSet": expand_object_bucket_tags(tags)}),
                [ERR_CODE_NO_SUCH_BUCKET],
                data.timeout("create"),
                self.meta.retry_interval(BUCKET_CREATE_RETRY_INTERVAL),
                ctx,
            )

        data.set("name", name)
        data.set_id(new_regional_id(region, name))
        return self.do_update(ctx, data)

    def _read_sub_configuration(
        self,
        diags: Diagnostics,
        resource: str,
        not_found_code: str,
        call: Callable[[], Any],
    ) -> Tuple[bool, Optional[Any]]:
        """Read one sub-configuration.

        Returns:
            Tuple of (bucket_found, response); the response is None when the
            sub-configuration is unset or could not be read
        """
        try:
            return True, call()
        except Exception as e:
            bucket_found, _ = add_read_bucket_error_diagnostic(diags, e, resource, not_found_code)
            return bucket_found, None

    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, name = s3_client_with_region_and_name(data, self.meta, data.id)
        diags: Diagnostics = []

        # Raises a 404 when the bucket is gone
        s3.head_bucket(Bucket=name)

        data.set("name", name)
        data.set("region", region)
        data.set("endpoint", object_bucket_endpoint_url(name, region))
        data.set("api_endpoint", object_bucket_api_endpoint_url(region))

        reads = (
            ("acl", "", lambda: s3.get_bucket_acl(Bucket=name),
             lambda response: self._flatten_acl(data, response)),
            ("object lock configuration", ERR_CODE_LOCK_NOT_FOUND,
             lambda: s3.get_object_lock_configuration(Bucket=name),
             lambda response: self._flatten_lock(data, response)),
            ("tags", ERR_CODE_NO_SUCH_TAG_SET, lambda: s3.get_bucket_tagging(Bucket=name),
             lambda response: data.set("tags", flatten_object_bucket_tags(response.get("TagSet")))),
            ("CORS configuration", ERR_CODE_NO_SUCH_CORS, lambda: s3.get_bucket_cors(Bucket=name),
             lambda response: data.set("cors_rule", flatten_bucket_cors(response.get("CORSRules")))),
            ("versioning", "", lambda: s3.get_bucket_versioning(Bucket=name),
             lambda response: data.set("versioning", flatten_object_bucket_versioning(response))),
            ("lifecycle configuration", ERR_CODE_NO_SUCH_LIFECYCLE,
             lambda: s3.get_bucket_lifecycle_configuration(Bucket=name),
             lambda response: data.set("lifecycle_rule", flatten_lifecycle_rules(response.get("Rules")))),
        )

        unset = {
            "object lock configuration": lambda: data.set("object_lock_enabled", False),
            "tags": lambda: data.set("tags", {}),
            "CORS configuration": lambda: data.set("cors_rule", []),
            "lifecycle configuration": lambda: data.set("lifecycle_rule", []),
        }

        for resource, not_found_code, call, flatten in reads:
            count = len(diags)
            bucket_found, response = self._read_sub_configuration(diags, resource, not_found_code, call)
            if not bucket_found:
                data.set_id("")
                return diags
            if response is not None:
                flatten(response)
            elif len(diags) == count and resource in unset:
                unset[resource]()
            if has_error(diags):
                return diags

        return diags

    @staticmethod
    def _flatten_acl(data: ResourceData, response: Dict[str, Any]) -> None:
        owner = (response.get("Owner") or {}).get("ID")
        if owner:
            data.set("project_id", normalize_owner_id(owner))

    @staticmethod
    def _flatten_lock(data: ResourceData, response: Dict[str, Any]) -> None:
        configuration = response.get("ObjectLockConfiguration") or {}
        data.set("object_lock_enabled", configuration.get("ObjectLockEnabled") == "Enabled")

    def do_update(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, name = s3_client_with_region_and_name(data, self.meta, data.id)

        if not data.is_new_resource and data.has_change("acl"):
            s3.put_bucket_acl(Bucket=name, ACL=data.get("acl"))

        if data.has_change("versioning"):
            s3.put_bucket_versioning(
                Bucket=name,
                VersioningConfiguration=expand_object_bucket_versioning(_dump(data.get("versioning"))),
            )

        if not data.is_new_resource and data.has_change("tags"):
            tags = data.get("tags")
            if tags:
                s3.put_bucket_tagging(Bucket=name, Tagging={"TagSet": expand_object_bucket_tags(tags)})
            else:
                s3.delete_bucket_tagging(Bucket=name)

        if data.has_change("cors_rule"):
            rules = data.get("cors_rule")
            if rules:
                s3.put_bucket_cors(
                    Bucket=name,
                    CORSConfiguration={"CORSRules": expand_bucket_cors(_dump(rules), name)},
                )
            else:
                s3.delete_bucket_cors(Bucket=name)

        if data.has_change("lifecycle_rule"):
            rules = data.get("lifecycle_rule")
            if rules:
                s3.put_bucket_lifecycle_configuration(
                    Bucket=name,
                    LifecycleConfiguration={"Rules": expand_lifecycle_rules(_dump(rules))},
                )
            else:
                s3.delete_bucket_lifecycle(Bucket=name)

        return self.do_read(ctx, data)

    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, name = s3_client_with_region_and_name(data, self.meta, data.id)

        try:
            s3.delete_bucket(Bucket=name)
        except Exception as e:
            if not (is_s3_err(e, ERR_CODE_BUCKET_NOT_EMPTY) and data.get("force_destroy")):
                raise
            self.logger.info(f"Bucket {name} is not empty, deleting its objects")
            delete_object_versions(ctx, s3, name, True)
            s3.delete_bucket(Bucket=name)

        self.logger.info(f"Deleted bucket {name}")
        return None
