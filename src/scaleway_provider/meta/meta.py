"""Provider configuration shared by every resource callback."""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

import requests
from pydantic import ValidationError as PydanticValidationError

from scaleway_provider import __version__
from scaleway_provider.api.client import ScalewayClient
from scaleway_provider.api.transport import new_retryable_session
from scaleway_provider.locality.regions import (
    DEFAULT_REGION,
    DEFAULT_ZONE,
    parse_zone,
    zone_to_region,
)
from scaleway_provider.meta.models import Profile, ProviderArguments, merge_profiles
from scaleway_provider.meta.profile import ConfigFile, ENV_PROFILE, load_env_profile
from scaleway_provider.utils.errors import ConfigurationError
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

APPEND_USER_AGENT_ENV = "TF_APPEND_USER_AGENT"


@dataclass
class MetaConfig:
    """Inputs of build_meta().

    The force_* fields override every other source; they are used to build the
    side-project Meta of the acceptance tests.
    """
    provider_arguments: Optional[Union[ProviderArguments, Dict[str, Any]]] = None
    terraform_version: str = ""
    http_session: Optional[requests.Session] = None
    force_zone: Optional[str] = None
    force_project_id: Optional[str] = None
    force_organization_id: Optional[str] = None
    force_access_key: Optional[str] = None
    force_secret_key: Optional[str] = None
    wait_retry_interval: Optional[float] = None
    config_path: Optional[str] = None
    environ: Optional[Mapping[str, str]] = None


@dataclass(frozen=True)
class Meta:
    """Credentials, defaults and clients used by resources.

    Immutable once built; one per provider instance.
    """
    access_key: Optional[str]
    secret_key: Optional[str]
    default_project_id: Optional[str]
    default_organization_id: Optional[str]
    default_region: str
    default_zone: str
    api_url: Optional[str]
    http_session: requests.Session = field(repr=False)
    client: ScalewayClient = field(repr=False)
    user_agent: str = ""
    wait_retry_interval: Optional[float] = None

    def retry_interval(self, default: float) -> float:
        """Poll interval to use: the override when set, else the default."""
        if self.wait_retry_interval is not None:
            return self.wait_retry_interval
        return default


def customize_user_agent(provider_version: str, terraform_version: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """User agent sent with every request."""
    environ = os.environ if environ is None else environ
    user_agent = f"terraform-provider-scaleway-py/{provider_version} terraform/{terraform_version}"
    append = environ.get(APPEND_USER_AGENT_ENV)
    if append:
        user_agent += " " + append
    return user_agent


def parse_provider_arguments(arguments: Optional[Union[ProviderArguments, Dict[str, Any]]]) -> ProviderArguments:
    """Validate the provider block.

    Raises:
        ConfigurationError: If an argument is invalid
    """
    if arguments is None:
        return ProviderArguments()
    if isinstance(arguments, ProviderArguments):
        return arguments
    try:
        return ProviderArguments(**arguments)
    except PydanticValidationError as e:
        errors = e.errors()
        attribute = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else None
        details = "; ".join(f"{' -> '.join(str(l) for l in err['loc'])}: {err['msg']}" for err in errors)
        raise ConfigurationError(f"invalid provider configuration: {details}", cause=e, attribute=attribute)


def load_profile(
    arguments: ProviderArguments,
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Profile:
    """Merge every configuration source into one profile.

    Precedence, highest first: provider arguments, environment, named profile
    of the config file, built-in defaults. A zone without region gives its
    region.

    Args:
        arguments: Validated provider arguments
        config_path: Config file location override
        environ: Environment, os.environ by default

    Returns:
        The merged profile
    """
    environ = os.environ if environ is None else environ
    config = ConfigFile.load(config_path, environ)

    profile_name = arguments.profile or environ.get(ENV_PROFILE)
    file_profile = config.get_active_profile(profile_name)
    env_profile = load_env_profile(environ)

    profile = merge_profiles(file_profile, env_profile, arguments.to_profile())

    if profile.default_zone and not profile.default_region:
        logger.debug(f"guess region from {profile.default_zone} zone")
        profile = merge_profiles(profile, Profile(default_region=zone_to_region(profile.default_zone)))

    defaults = Profile(default_region=DEFAULT_REGION, default_zone=DEFAULT_ZONE)
    return merge_profiles(defaults, profile)


def build_meta(config: Optional[MetaConfig] = None) -> Meta:
    """Create the Meta of a provider instance.

    Args:
        config: Provider arguments, forced values and HTTP session

    Returns:
        Immutable Meta

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config = config or MetaConfig()
    arguments = parse_provider_arguments(config.provider_arguments)
    profile = load_profile(arguments, config.config_path, config.environ)

    forced: Dict[str, str] = {}
    if config.force_zone:
        zone = parse_zone(config.force_zone)
        forced["default_zone"] = zone
        forced["default_region"] = zone_to_region(zone)
    if config.force_project_id:
        forced["default_project_id"] = config.force_project_id
    if config.force_organization_id:
        forced["default_organization_id"] = config.force_organization_id
    if config.force_access_key:
        forced["access_key"] = config.force_access_key
    if config.force_secret_key:
        forced["secret_key"] = config.force_secret_key
    if forced:
        profile = merge_profiles(profile, Profile(**forced))

    user_agent = customize_user_agent(__version__, config.terraform_version, config.environ)
    session = config.http_session or new_retryable_session()

    client = ScalewayClient(
        session=session,
        access_key=profile.access_key,
        secret_key=profile.secret_key,
        api_url=profile.api_url,
        user_agent=user_agent,
        default_project_id=profile.default_project_id,
        default_organization_id=profile.default_organization_id,
        default_region=profile.default_region,
        default_zone=profile.default_zone,
    )

    logger.debug(
        f"Meta built: region={profile.default_region} zone={profile.default_zone} "
        f"project={profile.default_project_id}"
    )
    return Meta(
        access_key=profile.access_key,
        secret_key=profile.secret_key,
        default_project_id=profile.default_project_id,
        default_organization_id=profile.default_organization_id,
        default_region=profile.default_region,
        default_zone=profile.default_zone,
        api_url=profile.api_url,
        http_session=session,
        client=client,
        user_agent=user_agent,
        wait_retry_interval=config.wait_retry_interval,
    )
