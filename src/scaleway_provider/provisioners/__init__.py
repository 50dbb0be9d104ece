"""Provisioners of the Scaleway resource kinds."""

from .base import BaseProvisioner, Diagnostics, Operation, RegionalProvisioner
from .rdb_instance import RdbInstanceProvisioner
from .rdb_database import RdbDatabaseProvisioner
from .domain_zone import DomainZoneProvisioner
from .object_bucket import ObjectBucketProvisioner
from .object import ObjectProvisioner
from .object_bucket_policy import ObjectBucketPolicyProvisioner
from .object_bucket_acl import ObjectBucketACLProvisioner
from .object_bucket_lock import ObjectBucketLockConfigurationProvisioner
from .object_bucket_website import ObjectBucketWebsiteConfigurationProvisioner

__all__ = [
    'BaseProvisioner',
    'Diagnostics',
    'Operation',
    'RegionalProvisioner',
    'RdbInstanceProvisioner',
    'RdbDatabaseProvisioner',
    'DomainZoneProvisioner',
    'ObjectBucketProvisioner',
    'ObjectProvisioner',
    'ObjectBucketPolicyProvisioner',
    'ObjectBucketACLProvisioner',
    'ObjectBucketLockConfigurationProvisioner',
    'ObjectBucketWebsiteConfigurationProvisioner',
]
