"""Provider entry point and resource registry."""

from .registry import ENABLE_BETA_ENV, ResourceRegistry, beta_enabled, build_registry
from .provider import Provider

__all__ = [
    'ENABLE_BETA_ENV',
    'ResourceRegistry',
    'beta_enabled',
    'build_registry',
    'Provider',
]
