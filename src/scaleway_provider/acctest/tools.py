"""Per-test tooling: recorded Meta, provider and cleanup."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from scaleway_provider.acctest.recorder import new_http_recorder, update_cassettes
from scaleway_provider.acctest.side_project import TERRAFORM_TESTS_VERSION, fake_side_project_meta
from scaleway_provider.meta import Meta, MetaConfig, build_meta
from scaleway_provider.provider import Provider, build_registry
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)


class TestTools:
    """Meta and provider of one test, wired to the test's cassette.

    In replay mode waits do not sleep between polls.
    """

    __test__ = False

    def __init__(
        self,
        test_name: str,
        update: Optional[bool] = None,
        base_dir: Optional[Union[str, Path]] = None,
        environ: Optional[Dict[str, str]] = None,
        enable_beta: bool = True,
    ):
        """Initialize test tools.

        Args:
            test_name: Name of the test, gives the cassette file name
            update: Record mode, TF_UPDATE_CASSETTES by default
            base_dir: Directory holding testdata/
            environ: Environment used to build the Meta
            enable_beta: Register beta resource kinds
        """
        self.test_name = test_name
        self.update = update_cassettes() if update is None else update
        self.http_session, self._stop = new_http_recorder(test_name, self.update, base_dir)

        self.meta: Meta = build_meta(MetaConfig(
            terraform_version=TERRAFORM_TESTS_VERSION,
            http_session=self.http_session,
            wait_retry_interval=None if self.update else 0.0,
            environ=environ,
        ))
        self.provider = Provider(registry=build_registry(enable_beta), meta=self.meta)

    def side_provider(self, project: Dict[str, Any], api_key: Dict[str, Any]) -> Provider:
        """Provider acting in a side project, sharing the cassette."""
        return Provider(registry=self.provider.registry, meta=fake_side_project_meta(self.meta, project, api_key))

    def cleanup(self) -> None:
        """Save the cassette (record mode) and release the session."""
        logger.debug(f"Stopping recorder of {self.test_name}")
        self._stop()

    def __enter__(self) -> "TestTools":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
