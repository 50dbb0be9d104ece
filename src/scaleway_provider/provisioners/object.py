"""Object Storage object provisioner."""

import base64
import binascii
from typing import Annotated, Any, Dict, Optional

from pydantic import Field

from scaleway_provider.locality import (
    diff_suppress_locality,
    expand_regional_id,
    new_regional_id,
    new_regional_nested_id,
    parse_region,
    validate_uuid,
)
from scaleway_provider.objectstorage import (
    DEFAULT_OBJECT_BUCKET_TIMEOUT,
    s3_client_for_bucket,
    s3_client_with_region_and_nested_name,
)
from scaleway_provider.objectstorage.helpers import (
    TRANSITION_STORAGE_CLASSES,
    expand_object_bucket_tags,
    flatten_object_bucket_tags,
    grants_public_read,
)
from scaleway_provider.state import Attr, AttributeModel, ResourceData, Timeouts
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import ValidationError

from .base import BaseProvisioner, Diagnostics
from .expanders import expand_map_string_string

VISIBILITY_PRIVATE = "private"
VISIBILITY_PUBLIC_READ = "public-read"

BODY_SOURCES = ("file", "content", "content_base64")


def validate_object_storage_class(value: str) -> str:
    if value not in TRANSITION_STORAGE_CLASSES:
        raise ValidationError(f"expected one of {', '.join(TRANSITION_STORAGE_CLASSES)}, got {value}")
    return value


def validate_visibility(value: str) -> str:
    if value not in (VISIBILITY_PRIVATE, VISIBILITY_PUBLIC_READ):
        raise ValidationError(f"expected {VISIBILITY_PRIVATE} or {VISIBILITY_PUBLIC_READ}, got {value}")
    return value


def validate_lower_case_keys(value: Dict[str, str]) -> Dict[str, str]:
    for key in value:
        if key != key.lower():
            raise ValidationError(f"{key} should be lower case")
    return value


class ObjectModel(AttributeModel):
    """Attributes of scaleway_object."""

    bucket: Annotated[Optional[str], Attr(required=True, diff_suppress=diff_suppress_locality,
                                          description="The bucket's name or regional ID.")] = None
    key: Annotated[Optional[str], Attr(required=True, description="Key of the object")] = None
    file: Annotated[Optional[str], Attr(optional=True,
                                        description="Path of the file to upload, defaults to an empty file")] = None
    content: Annotated[Optional[str], Attr(optional=True, description="Content of the file to upload")] = None
    content_base64: Annotated[Optional[str], Attr(optional=True,
                                                  description="Content of the file to upload, should be base64 encoded")] = None
    hash: Annotated[Optional[str], Attr(optional=True, description="File hash to trigger upload")] = None
    storage_class: Annotated[Optional[str], Attr(optional=True, validators=(validate_object_storage_class,))] = None
    metadata: Annotated[Dict[str, str], Attr(optional=True, validators=(validate_lower_case_keys,),
                                             description="Map of object's metadata, only lower case keys are allowed")] = Field(default_factory=dict)
    tags: Annotated[Dict[str, str], Attr(optional=True, description="Map of object's tags")] = Field(default_factory=dict)
    visibility: Annotated[Optional[str], Attr(optional=True, computed=True, validators=(validate_visibility,),
                                              description="Visibility of the object, public-read or private")] = None
    region: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(parse_region,))] = None
    project_id: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(validate_uuid,))] = None


def _compact(request: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset parameters, boto3 rejects None values."""
    return {key: value for key, value in request.items() if value not in (None, "", {})}


class ObjectProvisioner(BaseProvisioner):
    """Provisioner for scaleway_object."""

    type_name = "scaleway_object"
    model = ObjectModel
    default_timeouts = Timeouts(default=DEFAULT_OBJECT_BUCKET_TIMEOUT)

    def _put_object(self, s3: Any, data: ResourceData, bucket: str, key: str) -> None:
        """Upload the object from its single body source; no source uploads an empty object.

        Raises:
            ValidationError: If several sources are set or the base64 content is invalid
        """
        sources = [name for name in BODY_SOURCES if data.get_ok(name)[1]]
        if len(sources) > 1:
            raise ValidationError(f"only one of {', '.join(BODY_SOURCES)} can be set", attribute=sources[1])

        request = _compact({
            "ACL": data.get("visibility"),
            "Bucket": bucket,
            "Key": key,
            "StorageClass": data.get("storage_class"),
            "Metadata": expand_map_string_string(data.get("metadata")),
        })

        if sources == ["file"]:
            with open(data.get("file"), "rb") as body:
                s3.put_object(Body=body, **request)
            return

        if sources == ["content"]:
            body = data.get("content").encode()
        elif sources == ["content_base64"]:
            try:
                body = base64.b64decode(data.get("content_base64"), validate=True)
            except binascii.Error as e:
                raise ValidationError(f"invalid base64 content: {e}", attribute="content_base64") from None
        else:
            body = b""
        s3.put_object(Body=body, **request)

    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket = s3_client_for_bucket(data, self.meta)
        key = data.get("key")
        self._put_object(s3, data, bucket, key)

        tags, ok = data.get_ok("tags")
        if ok:
            s3.put_object_tagging(Bucket=bucket, Key=key, Tagging={"TagSet": expand_object_bucket_tags(tags)})

        data.set_id(new_regional_nested_id(region, bucket, key))
        return self.do_read(ctx, data)

    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket, key = s3_client_with_region_and_nested_name(data, self.meta, data.id)

        head = s3.head_object(Bucket=bucket, Key=key)

        data.set("region", region)
        data.set("bucket", new_regional_id(region, bucket))
        data.set("key", key)
        data.set("metadata", {k.lower(): v for k, v in (head.get("Metadata") or {}).items()})

        tagging = s3.get_object_tagging(Bucket=bucket, Key=key)
        data.set("tags", flatten_object_bucket_tags(tagging.get("TagSet")))

        acl = s3.get_object_acl(Bucket=bucket, Key=key)
        data.set("visibility", VISIBILITY_PUBLIC_READ if grants_public_read(acl.get("Grants")) else VISIBILITY_PRIVATE)
        return None

    def do_update(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket, key = s3_client_with_region_and_nested_name(data, self.meta, data.id)

        new_bucket = expand_regional_id(data.get("bucket")).id
        new_key = data.get("key")

        if data.has_changes("file", "hash", "content", "content_base64"):
            self._put_object(s3, data, new_bucket, new_key)
        else:
            s3.copy_object(**_compact({
                "Bucket": new_bucket,
                "Key": new_key,
                "CopySource": f"{bucket}/{key}",
                "StorageClass": data.get("storage_class"),
                "Metadata": expand_map_string_string(data.get("metadata")),
                "MetadataDirective": "REPLACE",
                "ACL": data.get("visibility"),
            }))

        if (new_bucket, new_key) != (bucket, key):
            s3.delete_object(Bucket=bucket, Key=key)

        if data.has_change("tags"):
            s3.put_object_tagging(
                Bucket=new_bucket,
                Key=new_key,
                Tagging={"TagSet": expand_object_bucket_tags(data.get("tags"))},
            )

        data.set_id(new_regional_nested_id(region, new_bucket, new_key))
        return self.do_read(ctx, data)

    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, bucket, key = s3_client_with_region_and_nested_name(data, self.meta, data.id)
        s3.delete_object(Bucket=bucket, Key=key)
        return None
