"""Temporary side projects for tests needing a second project and API key."""

import random
from typing import Any, Callable, Dict, List, Optional, Tuple

from scaleway_provider.api import IAMAPI, ProjectAPI
from scaleway_provider.meta import Meta, MetaConfig, build_meta
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

TERRAFORM_TESTS_VERSION = "terraform-tests"

SIDE_PROJECT_PERMISSION_SETS = ["ObjectStorageReadOnly", "ObjectStorageObjectsRead", "ObjectStorageBucketsRead"]
IAM_MANAGER_PERMISSION_SETS = ["IAMManager"]

Terminate = Callable[[], None]


def random_with_prefix(prefix: str) -> str:
    """Test resource name: `{prefix}-{random number}`."""
    return f"{prefix}-{random.randint(0, 2 ** 63 - 1)}"


class CleanupStack:
    """Terminate functions run in reverse order of registration.

    Used to undo a multi-step setup: each created resource pushes the
    function deleting it, terminate() deletes them last-created first.
    """

    def __init__(self):
        self._entries: List[Tuple[int, Terminate]] = []
        self._next_token = 0

    def push(self, terminate: Terminate) -> int:
        """Register a terminate function.

        Returns:
            Token identifying the entry, for remove()
        """
        token = self._next_token
        self._next_token += 1
        self._entries.append((token, terminate))
        return token

    def remove(self, token: int) -> None:
        """Forget an entry without running it."""
        self._entries = [(t, f) for t, f in self._entries if t != token]

    def terminate(self) -> None:
        """Run the entries last-in first-out.

        Stops at the first failing entry; it and the entries pushed before it
        stay registered.
        """
        while self._entries:
            _, terminate = self._entries[-1]
            terminate()
            self._entries.pop()

    def __len__(self) -> int:
        return len(self._entries)

    def __call__(self) -> None:
        self.terminate()


def _create_project_with_api_key(
    meta: Meta,
    rules: Callable[[Dict[str, Any]], List[Dict[str, Any]]],
) -> Tuple[Dict[str, Any], Dict[str, Any], CleanupStack]:
    """Create project, IAM application, policy and API key, in that order.

    On failure the resources created so far are deleted and the error is
    raised.
    """
    cleanup = CleanupStack()
    project_api = ProjectAPI(meta.client)
    iam_api = IAMAPI(meta.client)

    try:
        project = project_api.create_project(random_with_prefix("test-acc-scaleway-project"))
        cleanup.push(lambda: project_api.delete_project(project["id"]))

        application = iam_api.create_application(random_with_prefix("test-acc-scaleway-iam-app"))
        cleanup.push(lambda: iam_api.delete_application(application["id"]))

        policy = iam_api.create_policy(
            random_with_prefix("test-acc-scaleway-iam-policy"),
            application["id"],
            rules(project),
        )
        cleanup.push(lambda: iam_api.delete_policy(policy["id"]))

        api_key = iam_api.create_api_key(application["id"], default_project_id=project["id"])
        cleanup.push(lambda: iam_api.delete_api_key(api_key["access_key"]))
    except Exception:
        logger.error("Side project setup failed, cleaning up")
        cleanup.terminate()
        raise

    logger.info(f"Created side project {project['id']}")
    return project, api_key, cleanup


def create_fake_side_project(meta: Meta) -> Tuple[Dict[str, Any], Dict[str, Any], CleanupStack]:
    """Temporary project with an API key allowed to read its object storage.

    Returns:
        Tuple of (project, api_key, cleanup); call cleanup.terminate() when done
    """
    return _create_project_with_api_key(
        meta,
        lambda project: [{"project_ids": [project["id"]], "permission_set_names": SIDE_PROJECT_PERMISSION_SETS}],
    )


def create_fake_iam_manager(meta: Meta) -> Tuple[Dict[str, Any], Dict[str, Any], CleanupStack]:
    """Temporary project with an API key managing IAM of the organization."""
    return _create_project_with_api_key(
        meta,
        lambda project: [{
            "organization_id": project.get("organization_id"),
            "permission_set_names": IAM_MANAGER_PERMISSION_SETS,
        }],
    )


def fake_side_project_meta(
    meta: Meta,
    project: Dict[str, Any],
    api_key: Dict[str, Any],
    wait_retry_interval: Optional[float] = None,
) -> Meta:
    """Meta using the side project and its API key as defaults.

    The HTTP session of the main Meta is reused, so the side requests go to
    the same cassette.
    """
    return build_meta(MetaConfig(
        terraform_version=TERRAFORM_TESTS_VERSION,
        http_session=meta.http_session,
        force_project_id=project["id"],
        force_organization_id=project.get("organization_id"),
        force_access_key=api_key["access_key"],
        force_secret_key=api_key.get("secret_key"),
        wait_retry_interval=wait_retry_interval if wait_retry_interval is not None else meta.wait_retry_interval,
    ))
