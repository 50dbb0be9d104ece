"""Object Storage (S3) clients and helpers."""

from .client import (
    access_key_with_project_id,
    new_s3_client,
    s3_client_for_bucket,
    s3_client_force_region,
    s3_client_with_region,
    s3_client_with_region_and_name,
    s3_client_with_region_and_nested_name,
    s3_client_with_region_with_name_acl,
    s3_endpoint,
)
from .helpers import (
    DEFAULT_OBJECT_BUCKET_TIMEOUT,
    add_read_bucket_error_diagnostic,
    build_bucket_owner_id,
    is_s3_err,
    is_s3_not_found,
    normalize_owner_id,
    website_endpoint,
)
from .policy import (
    normalize_policy,
    policies_are_equivalent,
    second_json_unless_equivalent,
    suppress_equivalent_policy_diffs,
)
from .versions import delete_object_versions

__all__ = [
    'access_key_with_project_id',
    'new_s3_client',
    's3_client_for_bucket',
    's3_client_force_region',
    's3_client_with_region',
    's3_client_with_region_and_name',
    's3_client_with_region_and_nested_name',
    's3_client_with_region_with_name_acl',
    's3_endpoint',
    'DEFAULT_OBJECT_BUCKET_TIMEOUT',
    'add_read_bucket_error_diagnostic',
    'build_bucket_owner_id',
    'is_s3_err',
    'is_s3_not_found',
    'normalize_owner_id',
    'website_endpoint',
    'normalize_policy',
    'policies_are_equivalent',
    'second_json_unless_equivalent',
    'suppress_equivalent_policy_diffs',
    'delete_object_versions',
]
