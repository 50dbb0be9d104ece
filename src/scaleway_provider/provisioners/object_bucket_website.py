"""Object Storage bucket website configuration provisioner."""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field

from scaleway_provider.locality import diff_suppress_locality, new_regional_id, parse_region, validate_uuid
from scaleway_provider.objectstorage import (
    DEFAULT_OBJECT_BUCKET_TIMEOUT,
    normalize_owner_id,
    s3_client_for_bucket,
    s3_client_with_region_and_name,
    website_endpoint,
)
from scaleway_provider.state import Attr, AttributeModel, ResourceData, Timeouts
from scaleway_provider.utils.context import Context

from .base import BaseProvisioner, Diagnostics


class IndexDocumentModel(AttributeModel):
    suffix: Annotated[Optional[str], Attr(required=True, description="The suffix of the index document")] = None


class ErrorDocumentModel(AttributeModel):
    key: Annotated[Optional[str], Attr(required=True, description="The key of the error document")] = None


class ObjectBucketWebsiteConfigurationModel(AttributeModel):
    """Attributes of scaleway_object_bucket_website_configuration."""

    bucket: Annotated[Optional[str], Attr(required=True, force_new=True, diff_suppress=diff_suppress_locality,
                                          description="The bucket's name or regional ID.")] = None
    index_document: Annotated[List[IndexDocumentModel], Attr(required=True)] = Field(default_factory=list)
    error_document: Annotated[List[ErrorDocumentModel], Attr(optional=True)] = Field(default_factory=list)
    website_endpoint: Annotated[Optional[str], Attr(computed=True, description="The website endpoint.")] = None
    website_domain: Annotated[Optional[str], Attr(computed=True,
                                                  description="The domain of the website endpoint.")] = None
    region: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(parse_region,))] = None
    project_id: Annotated[Optional[str], Attr(optional=True, computed=True, force_new=True, validators=(validate_uuid,))] = None


def expand_website_configuration(data: ResourceData) -> Dict[str, Any]:
    configuration: Dict[str, Any] = {}
    index_documents = data.get("index_document")
    if index_documents:
        configuration["IndexDocument"] = {"Suffix": index_documents[0].suffix}
    error_documents = data.get("error_document")
    if error_documents:
        configuration["ErrorDocument"] = {"Key": error_documents[0].key}
    return configuration


class ObjectBucketWebsiteConfigurationProvisioner(BaseProvisioner):
    """Provisioner for scaleway_object_bucket_website_configuration."""

    type_name = "scaleway_object_bucket_website_configuration"
    model = ObjectBucketWebsiteConfigurationModel
    beta = True
    default_timeouts = Timeouts(default=DEFAULT_OBJECT_BUCKET_TIMEOUT)

    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket = s3_client_for_bucket(data, self.meta)

        s3.put_bucket_website(Bucket=bucket, WebsiteConfiguration=expand_website_configuration(data))
        self.logger.info(f"Configured website of bucket {bucket}")

        data.set_id(new_regional_id(region, bucket))
        return self.do_read(ctx, data)

    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, region, bucket = s3_client_with_region_and_name(data, self.meta, data.id)

        response = s3.get_bucket_website(Bucket=bucket)
        index_document = response.get("IndexDocument")
        error_document = response.get("ErrorDocument")
        data.set("index_document", [{"suffix": index_document.get("Suffix")}] if index_document else [])
        data.set("error_document", [{"key": error_document.get("Key")}] if error_document else [])

        endpoint, domain = website_endpoint(bucket, region)
        data.set("website_endpoint", endpoint)
        data.set("website_domain", domain)

        acl = s3.get_bucket_acl(Bucket=bucket)
        owner = (acl.get("Owner") or {}).get("ID")
        if owner:
            data.set("project_id", normalize_owner_id(owner))

        data.set("bucket", bucket)
        data.set("region", region)
        return None

    def do_update(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, bucket = s3_client_with_region_and_name(data, self.meta, data.id)
        if data.has_changes("index_document", "error_document"):
            s3.put_bucket_website(Bucket=bucket, WebsiteConfiguration=expand_website_configuration(data))
        return self.do_read(ctx, data)

    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        s3, _, bucket = s3_client_with_region_and_name(data, self.meta, data.id)
        s3.delete_bucket_website(Bucket=bucket)
        return None
