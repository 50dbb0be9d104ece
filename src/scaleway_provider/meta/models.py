"""Pydantic models for profiles and provider arguments."""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from scaleway_provider.locality.regions import all_regions, all_zones, is_region, is_zone
from scaleway_provider.locality.validation import is_uuid

# Value the host passes for attributes unknown during plan
UNKNOWN_VALUE = "74D93920-ED26-11E3-AC10-0800200C9A66"

PROFILE_FIELDS = (
    "access_key",
    "secret_key",
    "api_url",
    "default_organization_id",
    "default_project_id",
    "default_region",
    "default_zone",
)


def _absent_to_none(value: Any) -> Any:
    if value == UNKNOWN_VALUE or value == "":
        return None
    return value


class Profile(BaseModel):
    """A set of credentials and defaults; unset fields are None."""

    model_config = ConfigDict(extra="ignore")

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    api_url: Optional[str] = None
    default_organization_id: Optional[str] = None
    default_project_id: Optional[str] = None
    default_region: Optional[str] = None
    default_zone: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def empty_is_unset(cls, v: Any) -> Any:
        """Treat empty strings as unset."""
        return _absent_to_none(v)

    @field_validator("default_region")
    @classmethod
    def validate_region(cls, v: Optional[str]) -> Optional[str]:
        """Validate region name."""
        if v is not None and not is_region(v):
            raise ValueError(f"invalid region '{v}', available regions are: {', '.join(all_regions())}")
        return v.lower() if v else v

    @field_validator("default_zone")
    @classmethod
    def validate_zone(cls, v: Optional[str]) -> Optional[str]:
        """Validate zone name."""
        if v is not None and not is_zone(v):
            raise ValueError(f"invalid zone '{v}', available zones are: {', '.join(all_zones())}")
        return v.lower() if v else v

    def set_fields(self) -> Dict[str, str]:
        """Fields holding a value."""
        return {name: value for name, value in self.model_dump().items() if value is not None}


def merge_profiles(*profiles: Optional[Profile]) -> Profile:
    """Merge profiles; a set field of a later profile wins.

    Args:
        *profiles: Profiles from lowest to highest precedence

    Returns:
        The merged profile
    """
    merged: Dict[str, str] = {}
    for profile in profiles:
        if profile is not None:
            merged.update(profile.set_fields())
    return Profile(**merged)


class ProviderArguments(BaseModel):
    """Arguments of the provider block, as sent by the host."""

    model_config = ConfigDict(extra="forbid")

    access_key: Optional[str] = Field(None, description="The Scaleway access key.")
    secret_key: Optional[str] = Field(None, description="The Scaleway secret Key.")
    profile: Optional[str] = Field(None, description="The Scaleway profile to use.")
    project_id: Optional[str] = Field(None, description="The Scaleway project ID.")
    organization_id: Optional[str] = Field(None, description="The Scaleway organization ID.")
    region: Optional[str] = Field(None, description="The region you want to attach the resource to")
    zone: Optional[str] = Field(None, description="The zone you want to attach the resource to")
    api_url: Optional[str] = Field(None, description="The Scaleway API URL to use.")

    @field_validator("*", mode="before")
    @classmethod
    def unknown_is_unset(cls, v: Any) -> Any:
        """Values unknown during plan are treated as absent."""
        return _absent_to_none(v)

    @field_validator("secret_key", "project_id", "organization_id")
    @classmethod
    def validate_uuid(cls, v: Optional[str]) -> Optional[str]:
        """Validate UUID arguments."""
        if v is not None and not is_uuid(v):
            raise ValueError(f"'{v}' is not a UUID")
        return v

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: Optional[str]) -> Optional[str]:
        """Validate region argument."""
        if v is not None and not is_region(v):
            raise ValueError(f"invalid region '{v}', available regions are: {', '.join(all_regions())}")
        return v.lower() if v else v

    @field_validator("zone")
    @classmethod
    def validate_zone(cls, v: Optional[str]) -> Optional[str]:
        """Validate zone argument."""
        if v is not None and not is_zone(v):
            raise ValueError(f"invalid zone '{v}', available zones are: {', '.join(all_zones())}")
        return v.lower() if v else v

    @model_validator(mode="after")
    def validate_api_url(self):
        """The API URL must be absolute."""
        if self.api_url and not self.api_url.startswith(("http://", "https://")):
            raise ValueError("api_url must start with http:// or https://")
        return self

    def to_profile(self) -> Profile:
        """Profile made of the explicit arguments (without the profile name)."""
        return Profile(
            access_key=self.access_key,
            secret_key=self.secret_key,
            api_url=self.api_url,
            default_organization_id=self.organization_id,
            default_project_id=self.project_id,
            default_region=self.region,
            default_zone=self.zone,
        )
