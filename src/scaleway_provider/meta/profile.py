"""Scaleway config file and environment profiles."""

import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from scaleway_provider.meta.models import Profile
from scaleway_provider.utils.errors import ConfigurationError
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

ENV_CONFIG_PATH = "SCW_CONFIG_PATH"
ENV_PROFILE = "SCW_PROFILE"

# Environment variable to profile field
ENV_PROFILE_FIELDS = {
    "SCW_ACCESS_KEY": "access_key",
    "SCW_SECRET_KEY": "secret_key",
    "SCW_API_URL": "api_url",
    "SCW_DEFAULT_ORGANIZATION_ID": "default_organization_id",
    "SCW_DEFAULT_PROJECT_ID": "default_project_id",
    "SCW_DEFAULT_REGION": "default_region",
    "SCW_DEFAULT_ZONE": "default_zone",
}


def _format_errors(errors: List[Dict]) -> str:
    lines = []
    for error in errors:
        location = " -> ".join(str(loc) for loc in error.get("loc", []))
        lines.append(f"{location}: {error.get('msg', 'Unknown error')}")
    return "; ".join(lines)


def _build_profile(data: Mapping, source: str) -> Profile:
    try:
        return Profile(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"invalid profile in {source}: {_format_errors(e.errors())}", cause=e)


def default_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Location of the config file.

    SCW_CONFIG_PATH wins, then $XDG_CONFIG_HOME/scw/config.yaml, then
    ~/.config/scw/config.yaml.
    """
    environ = os.environ if environ is None else environ
    if environ.get(ENV_CONFIG_PATH):
        return Path(environ[ENV_CONFIG_PATH])
    if environ.get("XDG_CONFIG_HOME"):
        return Path(environ["XDG_CONFIG_HOME"]) / "scw" / "config.yaml"
    return Path.home() / ".config" / "scw" / "config.yaml"


class ConfigFile:
    """The Scaleway config file: a default profile plus named profiles."""

    def __init__(self, path: Optional[Path] = None, data: Optional[Dict] = None):
        """Initialize config file.

        Args:
            path: File the config was read from
            data: Parsed YAML content
        """
        self.path = path
        self.data: Dict = data or {}

    @classmethod
    def load(cls, path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> "ConfigFile":
        """Load the config file.

        A missing file is not an error: configuration may come from the
        environment or the provider arguments.

        Raises:
            ConfigurationError: If the file is not valid YAML
        """
        path = Path(path) if path else default_config_path(environ)
        if not path.exists():
            logger.debug(f"No config file at {path}")
            return cls(path=path)

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"failed to parse config file {path}: {e}", cause=e)

        if not isinstance(data, dict):
            raise ConfigurationError(f"config file {path} must contain a mapping")
        return cls(path=path, data=data)

    @property
    def active_profile_name(self) -> Optional[str]:
        return self.data.get("active_profile")

    def default_profile(self) -> Profile:
        """Profile made of the top-level keys."""
        return _build_profile({k: v for k, v in self.data.items() if k not in ("profiles", "active_profile")}, str(self.path))

    def get_profile(self, name: str) -> Profile:
        """Return a named profile merged over the default one.

        Raises:
            ConfigurationError: If the profile does not exist
        """
        profiles = self.data.get("profiles") or {}
        if name not in profiles:
            raise ConfigurationError(
                f"given profile {name} does not exist",
                suggestions=[f"Add a '{name}' entry under profiles in {self.path}"],
            )
        named = _build_profile(profiles[name] or {}, f"{self.path} (profile {name})")
        merged = self.default_profile().set_fields()
        merged.update(named.set_fields())
        return Profile(**merged)

    def get_active_profile(self, override: Optional[str] = None) -> Profile:
        """Return the active profile.

        Args:
            override: Profile name taking precedence over active_profile
        """
        name = override or self.active_profile_name
        if name:
            return self.get_profile(name)
        return self.default_profile()


def load_env_profile(environ: Optional[Mapping[str, str]] = None) -> Profile:
    """Profile made of the SCW_* environment variables."""
    environ = os.environ if environ is None else environ
    values = {field: environ[var] for var, field in ENV_PROFILE_FIELDS.items() if environ.get(var)}
    return _build_profile(values, "environment")
