"""Provider configuration: profiles, arguments and the Meta."""

from .models import Profile, ProviderArguments, UNKNOWN_VALUE, merge_profiles
from .profile import ConfigFile, load_env_profile, default_config_path
from .meta import Meta, MetaConfig, build_meta, load_profile, customize_user_agent

__all__ = [
    'Profile',
    'ProviderArguments',
    'UNKNOWN_VALUE',
    'merge_profiles',
    'ConfigFile',
    'load_env_profile',
    'default_config_path',
    'Meta',
    'MetaConfig',
    'build_meta',
    'load_profile',
    'customize_user_agent',
]
