"""Thin bindings of the Scaleway APIs used by the provider."""

from .client import ScalewayClient, DEFAULT_API_URL
from .transport import RetryableAdapter, new_retryable_session
from .rdb import RdbAPI
from .domain import DomainAPI
from .account import ProjectAPI
from .iam import IAMAPI

__all__ = [
    'ScalewayClient',
    'DEFAULT_API_URL',
    'RetryableAdapter',
    'new_retryable_session',
    'RdbAPI',
    'DomainAPI',
    'ProjectAPI',
    'IAMAPI',
]
