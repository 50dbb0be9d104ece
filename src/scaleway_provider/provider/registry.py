"""Registry of the resource kinds served by the provider."""

import os
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple, Type

from scaleway_provider.provisioners import (
    BaseProvisioner,
    DomainZoneProvisioner,
    ObjectBucketACLProvisioner,
    ObjectBucketLockConfigurationProvisioner,
    ObjectBucketPolicyProvisioner,
    ObjectBucketProvisioner,
    ObjectBucketWebsiteConfigurationProvisioner,
    ObjectProvisioner,
    RdbDatabaseProvisioner,
    RdbInstanceProvisioner,
)
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

ENABLE_BETA_ENV = "SCW_ENABLE_BETA"

PROVISIONERS: Tuple[Type[BaseProvisioner], ...] = (
    RdbInstanceProvisioner,
    RdbDatabaseProvisioner,
    DomainZoneProvisioner,
    ObjectBucketProvisioner,
    ObjectProvisioner,
    ObjectBucketPolicyProvisioner,
    ObjectBucketACLProvisioner,
    ObjectBucketLockConfigurationProvisioner,
    ObjectBucketWebsiteConfigurationProvisioner,
)


def beta_enabled(environ: Optional[Mapping[str, str]] = None) -> bool:
    """True when SCW_ENABLE_BETA is set to a non-empty value."""
    environ = os.environ if environ is None else environ
    return environ.get(ENABLE_BETA_ENV, "") not in ("", "0", "false")


class ResourceRegistry(Mapping[str, Type[BaseProvisioner]]):
    """Immutable mapping of resource kind name to provisioner class."""

    def __init__(self, provisioners: Mapping[str, Type[BaseProvisioner]]):
        self._provisioners = MappingProxyType(dict(provisioners))

    def __getitem__(self, kind: str) -> Type[BaseProvisioner]:
        return self._provisioners[kind]

    def __iter__(self) -> Iterator[str]:
        return iter(self._provisioners)

    def __len__(self) -> int:
        return len(self._provisioners)

    def __repr__(self) -> str:
        return f"ResourceRegistry({sorted(self._provisioners)})"


def build_registry(enable_beta: Optional[bool] = None) -> ResourceRegistry:
    """Build the registry; beta kinds are merged only when enabled.

    Args:
        enable_beta: Include beta kinds, read from SCW_ENABLE_BETA when None

    Returns:
        The registry
    """
    if enable_beta is None:
        enable_beta = beta_enabled()

    provisioners: Dict[str, Type[BaseProvisioner]] = {}
    for provisioner in PROVISIONERS:
        if provisioner.beta and not enable_beta:
            continue
        provisioners[provisioner.type_name] = provisioner

    logger.debug(f"Registered {len(provisioners)} resource kinds (beta={'on' if enable_beta else 'off'})")
    return ResourceRegistry(provisioners)
