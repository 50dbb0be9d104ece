"""Base provisioner interface and abstract classes."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Type

from scaleway_provider.locality import extract_region, new_regional_id, parse_regional_id
from scaleway_provider.meta import Meta
from scaleway_provider.state import (
    AttributeModel,
    Diagnostic,
    ResourceData,
    Timeouts,
    diagnostics_from_error,
    has_error,
    validate_attributes,
)
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import (
    ErrorContext,
    ErrorKind,
    FatalError,
    error_handler,
    kind_of,
)
from scaleway_provider.utils.logging import LogContext, get_logger
from scaleway_provider.utils.retry import retry

Diagnostics = List[Diagnostic]


class Operation(Enum):
    """Host callbacks."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"


class BaseProvisioner(ABC):
    """Base class for all resource provisioners.

    Subclasses implement do_create/do_read/do_update/do_delete and raise on
    failure. The host-facing methods turn errors into diagnostics and apply
    the swallow sets: a not-found error during read clears the ID, during
    delete it means success.
    """

    type_name: str = ""
    model: Type[AttributeModel] = AttributeModel
    beta: bool = False
    default_timeouts: Timeouts = Timeouts()
    read_swallow: FrozenSet[ErrorKind] = frozenset({ErrorKind.NOT_FOUND})
    delete_swallow: FrozenSet[ErrorKind] = frozenset({ErrorKind.NOT_FOUND})

    def __init__(self, meta: Meta):
        """Initialize provisioner with the provider Meta.

        Args:
            meta: Credentials, defaults and clients of the provider
        """
        self.meta = meta
        self.logger = get_logger(type(self).__module__)

    def new_resource_data(
        self,
        planned: Optional[Dict[str, Any]] = None,
        prior: Optional[Dict[str, Any]] = None,
        resource_id: str = "",
        timeouts: Optional[Timeouts] = None,
        is_import: bool = False,
    ) -> ResourceData:
        """Build the state object of a callback for this resource kind."""
        return ResourceData(
            self.model,
            planned=planned,
            prior=prior,
            resource_id=resource_id,
            timeouts=timeouts or Timeouts(**vars(self.default_timeouts)),
            is_import=is_import,
        )

    def create(self, ctx: Context, data: ResourceData) -> Diagnostics:
        diags = validate_attributes(data.record)
        if has_error(diags):
            return diags
        return self._run(Operation.CREATE, ctx, data, self.do_create)

    def read(self, ctx: Context, data: ResourceData) -> Diagnostics:
        return self._run(Operation.READ, ctx, data, self.do_read)

    def update(self, ctx: Context, data: ResourceData) -> Diagnostics:
        diags = validate_attributes(data.record)
        if has_error(diags):
            return diags
        return self._run(Operation.UPDATE, ctx, data, self.do_update)

    def delete(self, ctx: Context, data: ResourceData) -> Diagnostics:
        diags = self._run(Operation.DELETE, ctx, data, self.do_delete)
        if not has_error(diags):
            data.set_id("")
        return diags

    def import_state(self, ctx: Context, data: ResourceData) -> Diagnostics:
        """Import an existing resource: the ID is taken as-is, then read."""
        data.is_import = True
        return self._run(Operation.IMPORT, ctx, data, self.do_import)

    def do_import(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        return self.do_read(ctx, data)

    def _run(
        self,
        operation: Operation,
        ctx: Context,
        data: ResourceData,
        func: Callable[[Context, ResourceData], Optional[Diagnostics]],
    ) -> Diagnostics:
        """Invoke a callback and convert its outcome into diagnostics.

        Args:
            operation: Callback being run
            ctx: Cancellation context
            data: Resource state
            func: Resource-specific implementation

        Returns:
            Diagnostics for the host
        """
        with LogContext(self.logger, resource_type=self.type_name, resource_id=data.id or "<new>",
                        operation=operation.value):
            self.logger.debug(f"{operation.value} {self.type_name}")
            try:
                return list(func(ctx, data) or [])
            except Exception as e:
                kind = kind_of(e)
                if operation == Operation.READ and kind in self.read_swallow:
                    self.logger.info(f"{self.type_name} {data.id} is gone ({e}), removing it from state")
                    data.set_id("")
                    return []
                if operation == Operation.DELETE and kind in self.delete_swallow:
                    self.logger.info(f"{self.type_name} {data.id} already gone ({e})")
                    return []

                err = error_handler.handle_exception(
                    e,
                    ErrorContext(
                        resource_id=data.id or None,
                        resource_type=self.type_name,
                        operation=operation.value,
                    ),
                )
                error_handler.log_error(err)
                return diagnostics_from_error(err)

    @abstractmethod
    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        """Create the resource, set its ID and read it back."""
        pass

    @abstractmethod
    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        """Refresh the record from the cloud."""
        pass

    def do_update(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        """Apply planned changes; resources without update are replaced by the host."""
        raise FatalError(f"{self.type_name} does not support in-place updates")

    @abstractmethod
    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        """Delete the resource."""
        pass


class RegionalProvisioner(BaseProvisioner):
    """Regional resource with an asynchronous lifecycle.

    Implements the create/read/update/delete sequence shared by regional
    resources: resolve the region, call the API, set `{region}/{id}`, wait for
    a stable status, read back. Subclasses provide the API calls and the
    mapping between the record and the API objects.
    """

    poll_interval: float = 15.0

    @property
    def interval(self) -> float:
        return self.meta.retry_interval(self.poll_interval)

    @abstractmethod
    def api_create(self, ctx: Context, data: ResourceData, region: str) -> Dict[str, Any]:
        """Send the create request; returns the created object."""
        pass

    @abstractmethod
    def api_delete(self, ctx: Context, region: str, resource_id: str) -> None:
        pass

    @abstractmethod
    def wait(self, ctx: Context, region: str, resource_id: str, timeout: float,
             deleting: bool = False) -> Optional[Dict[str, Any]]:
        """Wait for a stable status; None when gone while deleting."""
        pass

    @abstractmethod
    def flatten(self, ctx: Context, data: ResourceData, region: str, resource: Dict[str, Any]) -> Optional[Diagnostics]:
        """Copy an API object into the record."""
        pass

    def after_create(self, ctx: Context, data: ResourceData, region: str, resource_id: str) -> None:
        """Configuration that can only be applied once the resource exists."""
        pass

    def apply_updates(self, ctx: Context, data: ResourceData, region: str, resource_id: str) -> Optional[Diagnostics]:
        """Send the requests matching the changed attributes."""
        raise FatalError(f"{self.type_name} does not support in-place updates")

    def do_create(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        region = extract_region(data, self.meta)
        timeout = data.timeout("create")

        resource = retry(lambda: self.api_create(ctx, data, region), timeout, self.interval, ctx)
        data.set_id(new_regional_id(region, resource["id"]))
        self.logger.info(f"Created {self.type_name} {data.id}")

        self.wait(ctx, region, resource["id"], timeout)
        self.after_create(ctx, data, region, resource["id"])
        return self.do_read(ctx, data)

    def do_read(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        region, resource_id = parse_regional_id(data.id)
        resource = self.wait(ctx, region, resource_id, data.timeout("read"))
        return self.flatten(ctx, data, region, resource)

    def do_update(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        region, resource_id = parse_regional_id(data.id)
        diags = list(self.apply_updates(ctx, data, region, resource_id) or [])
        if has_error(diags):
            return diags
        return diags + list(self.do_read(ctx, data) or [])

    def do_delete(self, ctx: Context, data: ResourceData) -> Optional[Diagnostics]:
        region, resource_id = parse_regional_id(data.id)
        timeout = data.timeout("delete")

        # A resource in a transient state cannot be deleted
        self.wait(ctx, region, resource_id, timeout)
        retry(lambda: self.api_delete(ctx, region, resource_id), timeout, self.interval, ctx)
        self.wait(ctx, region, resource_id, timeout, deleting=True)
        self.logger.info(f"Deleted {self.type_name} {data.id}")
        return None
