"""Conversions and error helpers shared by the Object Storage resources."""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from botocore.exceptions import ClientError

from scaleway_provider.state import Diagnostic, error, warning
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_OBJECT_BUCKET_TIMEOUT = 10 * 60.0

ERR_CODE_ACCESS_DENIED = "AccessDenied"
ERR_CODE_FORBIDDEN = "Forbidden"
ERR_CODE_NO_SUCH_BUCKET = "NoSuchBucket"
ERR_CODE_NO_SUCH_KEY = "NoSuchKey"
ERR_CODE_NO_SUCH_TAG_SET = "NoSuchTagSet"
ERR_CODE_NO_SUCH_CORS = "NoSuchCORSConfiguration"
ERR_CODE_NO_SUCH_LIFECYCLE = "NoSuchLifecycleConfiguration"
ERR_CODE_NO_SUCH_POLICY = "NoSuchBucketPolicy"
ERR_CODE_NO_SUCH_WEBSITE = "NoSuchWebsiteConfiguration"
ERR_CODE_LOCK_NOT_FOUND = "ObjectLockConfigurationNotFoundError"

TRANSITION_STORAGE_CLASSES = ("STANDARD", "GLACIER", "ONEZONE_IA")

ALL_USERS_GROUP_URI = "http://acs.amazonaws.com/groups/global/AllUsers"
PUBLIC_READ_PERMISSIONS = ("READ", "FULL_CONTROL")

# Sub-configuration read by the bucket resource -> attribute it fills
READ_BUCKET_ATTRIBUTES = {
    "acl": "acl",
    "object lock configuration": "object_lock_enabled",
    "objects": "",
    "tags": "tags",
    "CORS configuration": "cors_rule",
    "versioning": "versioning",
    "lifecycle configuration": "lifecycle_rule",
}


def is_s3_err(err: Optional[BaseException], code: str, message: str = "") -> bool:
    """True when err is an S3 error with that code and a message containing `message`."""
    if not isinstance(err, ClientError):
        return False
    details = err.response.get("Error", {})
    return details.get("Code") == code and message in (details.get("Message") or "")


def is_s3_not_found(err: Optional[BaseException]) -> bool:
    """HeadBucket/HeadObject answer a bare 404 without error body."""
    if not isinstance(err, ClientError):
        return False
    code = err.response.get("Error", {}).get("Code")
    return code in ("404", "NotFound", ERR_CODE_NO_SUCH_BUCKET, ERR_CODE_NO_SUCH_KEY)


def flatten_object_bucket_tags(tag_set: Optional[Iterable[Mapping[str, str]]]) -> Dict[str, str]:
    return {tag.get("Key", ""): tag.get("Value", "") for tag in tag_set or []}


def expand_object_bucket_tags(tags: Optional[Mapping[str, Any]]) -> List[Dict[str, str]]:
    return [{"Key": key, "Value": str(value)} for key, value in sorted((tags or {}).items())]


def object_bucket_endpoint_url(bucket: str, region: str) -> str:
    return f"https://{bucket}.s3.{region}.scw.cloud"


def object_bucket_api_endpoint_url(region: str) -> str:
    return f"https://s3.{region}.scw.cloud"


def website_domain_url(region: str) -> str:
    return f"s3-website.{region}.scw.cloud"


def website_endpoint(bucket: str, region: str) -> Tuple[str, str]:
    """Website endpoint and domain of a bucket.

    Returns:
        Tuple of (endpoint, domain)
    """
    domain = website_domain_url(region)
    return f"{bucket}.{domain}", domain


def build_bucket_owner_id(project_id: str) -> str:
    """Owner ID of a bucket as the S3 API expects it: `project:project`."""
    return f"{project_id}:{project_id}"


def normalize_owner_id(owner_id: Optional[str]) -> Optional[str]:
    """Project of an owner ID, the ID unchanged when it is not `a:b`."""
    if owner_id is None:
        return None
    parts = owner_id.split(":")
    if len(parts) != 2:
        return owner_id
    return parts[0]


def flatten_object_bucket_versioning(response: Mapping[str, Any]) -> List[Dict[str, bool]]:
    return [{"enabled": response.get("Status") == "Enabled"}]


def expand_object_bucket_versioning(versioning: Optional[List[Mapping[str, Any]]]) -> Dict[str, str]:
    """Versioning configuration; no block or a disabled one means Suspended."""
    status = "Suspended"
    if versioning and versioning[0].get("enabled"):
        status = "Enabled"
    return {"Status": status}


def flatten_bucket_cors(cors_rules: Optional[Iterable[Mapping[str, Any]]]) -> List[Dict[str, Any]]:
    rules = []
    for rule in cors_rules or []:
        flat = {
            "allowed_headers": list(rule.get("AllowedHeaders") or []),
            "allowed_methods": list(rule.get("AllowedMethods") or []),
            "allowed_origins": list(rule.get("AllowedOrigins") or []),
            "expose_headers": list(rule.get("ExposeHeaders") or []),
        }
        if rule.get("MaxAgeSeconds") is not None:
            flat["max_age_seconds"] = int(rule["MaxAgeSeconds"])
        rules.append(flat)
    return rules


def expand_bucket_cors(raw_cors: Optional[Iterable[Mapping[str, Any]]], bucket: str) -> List[Dict[str, Any]]:
    rules = []
    for cors in raw_cors or []:
        logger.debug(f"S3 bucket: {bucket}, put CORS: {dict(cors)}")
        rule: Dict[str, Any] = {}
        for key, field in (
            ("allowed_headers", "AllowedHeaders"),
            ("allowed_methods", "AllowedMethods"),
            ("allowed_origins", "AllowedOrigins"),
            ("expose_headers", "ExposeHeaders"),
        ):
            if cors.get(key):
                rule[field] = [str(v) for v in cors[key]]
        if cors.get("max_age_seconds"):
            rule["MaxAgeSeconds"] = int(cors["max_age_seconds"])
        rules.append(rule)
    return rules


def expand_lifecycle_rules(raw_rules: Optional[Iterable[Mapping[str, Any]]]) -> List[Dict[str, Any]]:
    """Lifecycle rules in the S3 shape.

    The filter combines the prefix and the tags: a single condition is sent
    as-is, several go under an `And` block.
    """
    rules = []
    for raw in raw_rules or []:
        rule: Dict[str, Any] = {
            "Status": "Enabled" if raw.get("enabled") else "Disabled",
        }
        if raw.get("id"):
            rule["ID"] = raw["id"]

        prefix = raw.get("prefix") or ""
        tags = expand_object_bucket_tags(raw.get("tags"))
        if tags and prefix:
            rule["Filter"] = {"And": {"Prefix": prefix, "Tags": tags}}
        elif len(tags) > 1:
            rule["Filter"] = {"And": {"Tags": tags}}
        elif tags:
            rule["Filter"] = {"Tag": tags[0]}
        else:
            rule["Filter"] = {"Prefix": prefix}

        if raw.get("abort_incomplete_multipart_upload_days"):
            rule["AbortIncompleteMultipartUpload"] = {
                "DaysAfterInitiation": int(raw["abort_incomplete_multipart_upload_days"]),
            }
        expiration = raw.get("expiration") or []
        if expiration:
            rule["Expiration"] = {"Days": int(expiration[0]["days"])}
        transitions = [
            {"Days": int(t.get("days") or 0), "StorageClass": t["storage_class"]}
            for t in raw.get("transition") or []
        ]
        if transitions:
            rule["Transitions"] = transitions
        rules.append(rule)
    return rules


def flatten_lifecycle_rules(rules: Optional[Iterable[Mapping[str, Any]]]) -> List[Dict[str, Any]]:
    flat_rules = []
    for rule in rules or []:
        flat: Dict[str, Any] = {
            "id": rule.get("ID", ""),
            "enabled": rule.get("Status") == "Enabled",
            "prefix": "",
            "tags": {},
            "abort_incomplete_multipart_upload_days": 0,
            "expiration": [],
            "transition": [],
        }
        rule_filter = rule.get("Filter") or {}
        if "And" in rule_filter:
            flat["prefix"] = rule_filter["And"].get("Prefix", "")
            flat["tags"] = flatten_object_bucket_tags(rule_filter["And"].get("Tags"))
        elif "Tag" in rule_filter:
            flat["tags"] = flatten_object_bucket_tags([rule_filter["Tag"]])
        else:
            flat["prefix"] = rule_filter.get("Prefix", rule.get("Prefix", ""))

        abort = rule.get("AbortIncompleteMultipartUpload")
        if abort:
            flat["abort_incomplete_multipart_upload_days"] = int(abort.get("DaysAfterInitiation", 0))
        expiration = rule.get("Expiration")
        if expiration and expiration.get("Days") is not None:
            flat["expiration"] = [{"days": int(expiration["Days"])}]
        flat["transition"] = [
            {"days": int(t.get("Days") or 0), "storage_class": t.get("StorageClass", "")}
            for t in rule.get("Transitions") or []
        ]
        flat_rules.append(flat)
    return flat_rules


def grants_public_read(grants: Optional[Iterable[Mapping[str, Any]]]) -> bool:
    """True when one of the grants lets the AllUsers group read."""
    for grant in grants or []:
        grantee = grant.get("Grantee") or {}
        if grantee.get("Type") != "Group" or grantee.get("URI") != ALL_USERS_GROUP_URI:
            continue
        if grant.get("Permission") in PUBLIC_READ_PERMISSIONS:
            return True
    return False


def add_read_bucket_error_diagnostic(
    diags: List[Diagnostic],
    err: BaseException,
    resource: str,
    not_found_code: str,
) -> Tuple[bool, bool]:
    """Record the failure to read one sub-configuration of a bucket.

    A missing bucket and a forbidden sub-configuration give warnings, any
    other error an error diagnostic.

    Args:
        diags: Diagnostics to append to
        err: Error raised by the S3 call
        resource: Sub-configuration being read, eg "CORS configuration"
        not_found_code: S3 code meaning the sub-configuration is not set

    Returns:
        Tuple of (bucket_found, resource_found)
    """
    if is_s3_err(err, ERR_CODE_NO_SUCH_BUCKET):
        diags.append(warning(
            "Bucket not found",
            "Got 404 error while reading bucket, removing from state",
        ))
        return False, False

    if is_s3_err(err, not_found_code):
        return True, False

    if is_s3_err(err, ERR_CODE_ACCESS_DENIED):
        attribute = READ_BUCKET_ATTRIBUTES.get(resource)
        diags.append(warning(
            f"Cannot read bucket {resource}: Forbidden",
            f"Got 403 error while reading bucket {resource}, please check your IAM permissions and your bucket policy",
            attribute_path=attribute or None,
        ))
        return True, True

    diags.append(error(f"couldn't read bucket {resource}: {err}"))
    return True, True
