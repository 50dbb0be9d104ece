"""Bulk deletion of every object version of a bucket."""

from typing import Any, Callable, Dict, List, Optional

from scaleway_provider.objectstorage.helpers import ERR_CODE_ACCESS_DENIED, is_s3_err
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import FatalError
from scaleway_provider.utils.logging import get_logger
from scaleway_provider.utils.workerpool import WorkerPool, default_pool_size

logger = get_logger(__name__)

MAX_OBJECT_VERSION_DELETION_WORKERS = 8

LEGAL_HOLD_ON = "ON"
LEGAL_HOLD_OFF = "OFF"


def delete_s3_object_version(s3: Any, bucket: str, key: str, version_id: Optional[str], force: bool) -> None:
    """Delete one version; governance retention is bypassed when forced."""
    request: Dict[str, Any] = {"Bucket": bucket, "Key": key}
    if version_id:
        request["VersionId"] = version_id
    if force:
        request["BypassGovernanceRetention"] = True
    s3.delete_object(**request)


def remove_s3_object_version_legal_hold(s3: Any, bucket: str, version: Dict[str, Any]) -> bool:
    """Turn off the legal hold of a version if it is on.

    Returns:
        True when a legal hold was removed

    Raises:
        FatalError: If the version metadata or the legal hold cannot be updated
    """
    try:
        head = s3.head_object(Bucket=bucket, Key=version["Key"], VersionId=version["VersionId"])
    except Exception as e:
        raise FatalError(f"failed to get S3 object meta data: {e}", cause=e)

    if head.get("ObjectLockLegalHoldStatus") != LEGAL_HOLD_ON:
        return False

    try:
        s3.put_object_legal_hold(
            Bucket=bucket,
            Key=version["Key"],
            VersionId=version["VersionId"],
            LegalHold={"Status": LEGAL_HOLD_OFF},
        )
    except Exception as e:
        raise FatalError(f"failed to put S3 object legal hold: {e}", cause=e)
    return True


def _delete_version_task(s3: Any, bucket: str, version: Dict[str, Any], force: bool) -> Callable[[], Optional[Exception]]:
    def task() -> Optional[Exception]:
        key = version.get("Key", "")
        version_id = version.get("VersionId")
        try:
            delete_s3_object_version(s3, bucket, key, version_id, force)
            return None
        except Exception as e:
            err: Exception = e

        if force and is_s3_err(err, ERR_CODE_ACCESS_DENIED):
            try:
                removed = remove_s3_object_version_legal_hold(s3, bucket, version)
            except FatalError as e:
                return FatalError(f"failed to remove legal hold: {e}", cause=e)
            if removed:
                logger.debug(f"Removed legal hold of {key}@{version_id}")
                try:
                    delete_s3_object_version(s3, bucket, key, version_id, force)
                    return None
                except Exception as e:
                    err = e

        return FatalError(f"failed to delete S3 object: {err}", cause=err)
    return task


def _delete_marker_task(s3: Any, bucket: str, marker: Dict[str, Any], force: bool) -> Callable[[], Optional[Exception]]:
    def task() -> Optional[Exception]:
        try:
            delete_s3_object_version(s3, bucket, marker.get("Key", ""), marker.get("VersionId"), force)
        except Exception as e:
            return FatalError(f"failed to delete S3 object delete marker: {e}", cause=e)
        return None
    return task


def _delete_pages(
    ctx: Context,
    s3: Any,
    bucket: str,
    page_key: str,
    new_task: Callable[[Dict[str, Any]], Callable[[], Optional[Exception]]],
) -> List[Exception]:
    """Delete the entries under page_key of every page, stopping at the first failing page."""
    workers = min(default_pool_size(), MAX_OBJECT_VERSION_DELETION_WORKERS)
    paginator = s3.get_paginator("list_object_versions")

    for page in paginator.paginate(Bucket=bucket):
        ctx.check()
        pool = WorkerPool(workers)
        for entry in page.get(page_key) or []:
            pool.add_task(new_task(entry))
        errors = pool.close_and_wait()
        if errors:
            return errors
    return []


def delete_object_versions(ctx: Optional[Context], s3: Any, bucket: str, force: bool) -> None:
    """Delete every version then every delete marker of a bucket.

    Versions are deleted first: deleting them does not create new markers,
    and markers listed before would otherwise be listed again. When forced,
    a version refused because of a legal hold gets its hold removed and is
    deleted once more.

    Args:
        ctx: Cancellation context
        s3: boto3 S3 client
        bucket: Bucket name
        force: Bypass governance retention and legal holds

    Raises:
        FatalError: Aggregating the errors of the first page that failed
    """
    ctx = ctx or Context.background()

    errors = _delete_pages(ctx, s3, bucket, "Versions",
                           lambda version: _delete_version_task(s3, bucket, version, force))
    if not errors:
        errors = _delete_pages(ctx, s3, bucket, "DeleteMarkers",
                               lambda marker: _delete_marker_task(s3, bucket, marker, force))

    if errors:
        message = "; ".join(str(e) for e in errors)
        raise FatalError(f"{len(errors)} error(s) deleting objects of bucket {bucket}: {message}", cause=errors[0])
    logger.debug(f"Deleted every object version of bucket {bucket}")
