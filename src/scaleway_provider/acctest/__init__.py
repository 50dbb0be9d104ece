"""Acceptance test tooling: cassette recorder, test tools, side projects and sweepers."""

from .recorder import (
    BODY_MATCHER_IGNORE,
    QUERY_MATCHER_IGNORE,
    SENSITIVE_FIELDS,
    UPDATE_CASSETTES_ENV,
    Cassette,
    CassetteNotFoundError,
    InteractionNotFoundError,
    RecorderAdapter,
    RecorderMode,
    cassette_matcher,
    get_test_file_path,
    new_http_recorder,
    update_cassettes,
)
from .side_project import CleanupStack, create_fake_iam_manager, create_fake_side_project, fake_side_project_meta
from .sweepers import Sweeper, build_sweepers, is_test_resource, run_sweepers
from .tools import TestTools

__all__ = [
    'BODY_MATCHER_IGNORE',
    'QUERY_MATCHER_IGNORE',
    'SENSITIVE_FIELDS',
    'UPDATE_CASSETTES_ENV',
    'Cassette',
    'CassetteNotFoundError',
    'InteractionNotFoundError',
    'RecorderAdapter',
    'RecorderMode',
    'cassette_matcher',
    'get_test_file_path',
    'new_http_recorder',
    'update_cassettes',
    'CleanupStack',
    'create_fake_iam_manager',
    'create_fake_side_project',
    'fake_side_project_meta',
    'Sweeper',
    'build_sweepers',
    'is_test_resource',
    'run_sweepers',
    'TestTools',
]
