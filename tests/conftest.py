"""Shared fixtures."""

from pathlib import Path

import pytest
import requests

from scaleway_provider.acctest.recorder import update_cassettes as update_cassettes_from_env
from scaleway_provider.meta import MetaConfig, build_meta
from scaleway_provider.utils.context import Context

TESTS_DIR = Path(__file__).parent

PROJECT_ID = "11111111-1111-1111-1111-111111111111"
ORGANIZATION_ID = "22222222-2222-2222-2222-222222222222"
ACCESS_KEY = "SCWXXXXXXXXXXXXXXXXX"
SECRET_KEY = "33333333-3333-3333-3333-333333333333"


def pytest_addoption(parser):
    parser.addoption(
        "--cassettes",
        action="store_true",
        default=False,
        help="Record cassettes against the real API instead of replaying them",
    )


@pytest.fixture
def update_cassettes(request):
    return request.config.getoption("--cassettes") or update_cassettes_from_env()


@pytest.fixture
def environ(tmp_path):
    """Environment with credentials and no config file."""
    return {
        "SCW_CONFIG_PATH": str(tmp_path / "config.yaml"),
        "SCW_ACCESS_KEY": ACCESS_KEY,
        "SCW_SECRET_KEY": SECRET_KEY,
        "SCW_DEFAULT_PROJECT_ID": PROJECT_ID,
        "SCW_DEFAULT_ORGANIZATION_ID": ORGANIZATION_ID,
    }


@pytest.fixture
def meta(environ):
    """Meta that never sleeps between polls."""
    return build_meta(MetaConfig(
        environ=environ,
        http_session=requests.Session(),
        wait_retry_interval=0.0,
    ))


@pytest.fixture
def ctx():
    return Context.background()
