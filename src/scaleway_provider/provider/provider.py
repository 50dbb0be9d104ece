"""Host-facing provider: configuration and resource callbacks."""

from typing import Any, Dict, List, Optional, Type

import requests

from scaleway_provider.meta import Meta, MetaConfig, ProviderArguments, build_meta
from scaleway_provider.provider.registry import ResourceRegistry, build_registry
from scaleway_provider.provisioners import BaseProvisioner
from scaleway_provider.state import (
    AttributeSchema,
    Diagnostic,
    ResourceData,
    Timeouts,
    diagnostics_from_error,
    error,
    schema_of,
)
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import ProviderError
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)


class Provider:
    """Entry point of the host.

    configure() builds the Meta, then the resource callbacks are routed to the
    provisioner registered for the kind.
    """

    def __init__(
        self,
        registry: Optional[ResourceRegistry] = None,
        meta: Optional[Meta] = None,
        http_session: Optional[requests.Session] = None,
    ):
        """Initialize provider.

        Args:
            registry: Resource kinds, built from the environment by default
            meta: Already built Meta, eg for tests; configure() replaces it
            http_session: Session used by the clients built in configure()
        """
        self.registry = registry if registry is not None else build_registry()
        self.meta = meta
        self.http_session = http_session

    @staticmethod
    def arguments_schema() -> Dict[str, Dict[str, Any]]:
        """Arguments accepted in the provider block, all optional."""
        return {
            name: {"type": "string", "optional": True, "description": field.description or ""}
            for name, field in ProviderArguments.model_fields.items()
        }

    def configure(
        self,
        arguments: Optional[Dict[str, Any]] = None,
        host_version: str = "",
        config: Optional[MetaConfig] = None,
    ) -> List[Diagnostic]:
        """Build the Meta from the provider block.

        Args:
            arguments: Provider block values
            host_version: Version of the host, sent in the user agent
            config: Extra Meta inputs; arguments and host_version override its fields

        Returns:
            Diagnostics, empty on success
        """
        config = config or MetaConfig()
        config.provider_arguments = arguments
        config.terraform_version = host_version
        if config.http_session is None:
            config.http_session = self.http_session
        try:
            self.meta = build_meta(config)
        except ProviderError as e:
            logger.error(f"Provider configuration failed: {e.message}")
            return diagnostics_from_error(e)
        return []

    def _provisioner_class(self, kind: str) -> Type[BaseProvisioner]:
        try:
            return self.registry[kind]
        except KeyError:
            raise KeyError(f"unknown resource kind {kind}") from None

    def provisioner(self, kind: str) -> BaseProvisioner:
        """Provisioner of a resource kind, bound to the Meta.

        Raises:
            KeyError: If the kind is not registered
            RuntimeError: If the provider is not configured
        """
        provisioner_class = self._provisioner_class(kind)
        if self.meta is None:
            raise RuntimeError("provider is not configured")
        return provisioner_class(self.meta)

    def resource_schema(self, kind: str) -> Dict[str, AttributeSchema]:
        return schema_of(self._provisioner_class(kind).model)

    def resource_schemas(self) -> Dict[str, Dict[str, AttributeSchema]]:
        return {kind: schema_of(provisioner.model) for kind, provisioner in self.registry.items()}

    def new_resource_data(
        self,
        kind: str,
        planned: Optional[Dict[str, Any]] = None,
        prior: Optional[Dict[str, Any]] = None,
        resource_id: str = "",
        timeouts: Optional[Timeouts] = None,
    ) -> ResourceData:
        return self.provisioner(kind).new_resource_data(planned, prior, resource_id, timeouts)

    def _not_configured(self) -> List[Diagnostic]:
        return [error("provider is not configured", "configure() must succeed before resource callbacks")]

    def create(self, kind: str, ctx: Context, data: ResourceData) -> List[Diagnostic]:
        if self.meta is None:
            return self._not_configured()
        return self.provisioner(kind).create(ctx, data)

    def read(self, kind: str, ctx: Context, data: ResourceData) -> List[Diagnostic]:
        if self.meta is None:
            return self._not_configured()
        return self.provisioner(kind).read(ctx, data)

    def update(self, kind: str, ctx: Context, data: ResourceData) -> List[Diagnostic]:
        if self.meta is None:
            return self._not_configured()
        return self.provisioner(kind).update(ctx, data)

    def delete(self, kind: str, ctx: Context, data: ResourceData) -> List[Diagnostic]:
        if self.meta is None:
            return self._not_configured()
        return self.provisioner(kind).delete(ctx, data)

    def import_state(self, kind: str, ctx: Context, data: ResourceData) -> List[Diagnostic]:
        if self.meta is None:
            return self._not_configured()
        return self.provisioner(kind).import_state(ctx, data)
