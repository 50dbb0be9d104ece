"""S3 client construction for the Object Storage resources."""

import io
import os
from typing import Any, Mapping, Optional, Tuple

import boto3
import requests
from botocore.awsrequest import AWSResponse
from botocore.config import Config

from scaleway_provider.api.client import DEFAULT_REQUEST_TIMEOUT
from scaleway_provider.locality import (
    expand_regional_id,
    extract_region,
    parse_localized_nested_owner_id,
    parse_regional_id,
    parse_region,
    parse_regional_nested_id,
)
from scaleway_provider.meta import Meta
from scaleway_provider.utils.errors import ValidationError
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

S3_ENDPOINT_ENV = "SCW_S3_ENDPOINT"


class _ResponseBody(io.BytesIO):
    """Buffered body exposing the stream() method botocore reads responses with."""

    def stream(self, amt: int = 1024 * 64, **kwargs):
        chunk = self.read(amt)
        while chunk:
            yield chunk
            chunk = self.read(amt)


class SessionSender:
    """botocore before-send handler routing S3 requests through a requests session.

    Every S3 call then goes through the same transport (retries, recorder) as
    the Scaleway API calls.
    """

    def __init__(self, session: requests.Session):
        self.session = session

    def __call__(self, request, **kwargs) -> AWSResponse:
        body = request.body
        if hasattr(body, "read"):
            body = body.read()

        response = self.session.request(
            request.method,
            request.url,
            headers=dict(request.headers.items()),
            data=body,
            allow_redirects=False,
            timeout=DEFAULT_REQUEST_TIMEOUT,
        )
        logger.debug(f"S3 {request.method} {request.url} -> {response.status_code}")
        return AWSResponse(
            request.url,
            response.status_code,
            dict(response.headers),
            _ResponseBody(response.content),
        )


def s3_endpoint(region: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Endpoint of the S3 API of a region, SCW_S3_ENDPOINT when set."""
    environ = os.environ if environ is None else environ
    return environ.get(S3_ENDPOINT_ENV) or f"https://s3.{region}.scw.cloud"


def access_key_with_project_id(access_key: str, project_id: str) -> str:
    """Access key scoped to a project: `<access_key>@<project_id>`."""
    return f"{access_key}@{project_id}"


def new_s3_client(
    http_session: requests.Session,
    region: str,
    access_key: Optional[str],
    secret_key: Optional[str],
    environ: Optional[Mapping[str, str]] = None,
) -> Any:
    """Create a boto3 S3 client for a region.

    Args:
        http_session: Session every request is sent through
        region: Region of the buckets
        access_key: Access key, possibly project-scoped
        secret_key: Secret key
        environ: Environment, os.environ by default

    Returns:
        boto3 S3 client
    """
    config = Config(
        region_name=region,
        signature_version="s3v4",
        s3={"addressing_style": "virtual"},
        # The session transport already retries
        retries={"mode": "standard", "total_max_attempts": 1},
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
    )
    client = boto3.client(
        "s3",
        endpoint_url=s3_endpoint(region, environ),
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        config=config,
    )
    client.meta.events.register("before-send.s3", SessionSender(http_session))
    logger.debug(f"Created S3 client for {region}")
    return client


def _project_id(data: Any, meta: Meta) -> Optional[str]:
    if data is not None and data.has_attribute("project_id"):
        value, ok = data.get_ok("project_id")
        if ok:
            return value
    return meta.default_project_id


def _client(meta: Meta, region: str, project_id: Optional[str]) -> Any:
    access_key = meta.access_key or ""
    if project_id:
        access_key = access_key_with_project_id(access_key, project_id)
    return new_s3_client(meta.http_session, region, access_key, meta.secret_key)


def s3_client_with_region(data: Any, meta: Meta) -> Tuple[Any, str]:
    """S3 client for the region of a resource (its `region` or the default).

    Returns:
        Tuple of (client, region)
    """
    region = extract_region(data, meta)
    return _client(meta, region, _project_id(data, meta)), region


def s3_client_force_region(data: Any, meta: Meta, region: str) -> Any:
    """S3 client for an explicit region, keeping the project of the resource."""
    return _client(meta, region, _project_id(data, meta))


def s3_client_with_region_and_name(data: Any, meta: Meta, resource_id: str) -> Tuple[Any, str, str]:
    """S3 client for a `{region}/{bucket}[@{project_id}]` ID.

    The project suffix only exists in imported IDs; it is dropped from the ID
    of the resource and used to scope the access key.

    Returns:
        Tuple of (client, region, bucket name)

    Raises:
        ValidationError: If the ID is malformed
    """
    region, name = parse_regional_id(resource_id)
    parts = name.split("@")
    if len(parts) > 2:
        raise ValidationError(
            f"invalid ID {resource_id!r}: expected ID in format <region>/<name>[@<project_id>]"
        )
    name = parts[0]
    if data is not None:
        data.set_id(f"{region}/{name}")

    project_id = parts[1] if len(parts) == 2 else _project_id(data, meta)
    return _client(meta, region, project_id), region, name


def s3_client_with_region_and_nested_name(data: Any, meta: Meta, resource_id: str) -> Tuple[Any, str, str, str]:
    """S3 client for a `{region}/{bucket}/{key}` ID.

    Returns:
        Tuple of (client, region, bucket, key)
    """
    region, bucket, key = parse_regional_nested_id(resource_id)
    return _client(meta, region, _project_id(data, meta)), region, bucket, key


def s3_client_with_region_with_name_acl(data: Any, meta: Meta, resource_id: str) -> Tuple[Any, str, str, str]:
    """S3 client for a `{region}/{owner}/{bucket}` or `{region}/{bucket}` ID.

    Returns:
        Tuple of (client, region, bucket, owner); owner is empty when absent
    """
    region, first, second = parse_localized_nested_owner_id(resource_id)
    owner, bucket = (first, second) if second else ("", first)
    return _client(meta, region, _project_id(data, meta)), region, bucket, owner


def s3_client_for_bucket(data: Any, meta: Meta) -> Tuple[Any, str, str]:
    """S3 client for the `bucket` attribute of a resource.

    The attribute holds a bucket name or a `{region}/{name}` ID; the region of
    the ID wins over the region of the resource.

    Returns:
        Tuple of (client, region, bucket name)
    """
    s3, region = s3_client_with_region(data, meta)
    bucket_id = expand_regional_id(data.get("bucket"))
    if bucket_id.region and bucket_id.region != region:
        region = parse_region(bucket_id.region)
        s3 = s3_client_force_region(data, meta, region)
    return s3, region, bucket_id.id
