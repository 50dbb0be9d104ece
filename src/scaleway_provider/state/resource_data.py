"""Per-callback resource state handed over by the host."""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Tuple, Type, TypeVar

from scaleway_provider.state.schema import AttributeModel

M = TypeVar("M", bound=AttributeModel)

DEFAULT_TIMEOUT = 20 * 60.0

OPERATIONS = ("create", "read", "update", "delete")


@dataclass
class Timeouts:
    """Per-operation time budgets, in seconds."""
    create: Optional[float] = None
    read: Optional[float] = None
    update: Optional[float] = None
    delete: Optional[float] = None
    default: float = DEFAULT_TIMEOUT

    def get(self, operation: str) -> float:
        """Budget of an operation, falling back to the default."""
        if operation not in OPERATIONS:
            raise KeyError(f"unknown operation {operation}")
        value = getattr(self, operation)
        return self.default if value is None else value


def _is_zero(value: Any) -> bool:
    return value is None or value == "" or value is False or value == 0 or value == [] or value == {}


class ResourceData(Generic[M]):
    """Typed record of a resource plus the change predicates of the host.

    `prior` is the state recorded after the last apply (empty on create),
    `planned` the values the host wants. Reads and writes go to the working
    record, which starts as the planned values and becomes the new state.
    """

    def __init__(
        self,
        model: Type[M],
        planned: Optional[Dict[str, Any]] = None,
        prior: Optional[Dict[str, Any]] = None,
        resource_id: str = "",
        timeouts: Optional[Timeouts] = None,
        is_import: bool = False,
    ):
        """Initialize resource data.

        Args:
            model: Attribute record class of the resource kind
            planned: Planned attribute values
            prior: Attribute values of the previous state
            resource_id: Current ID, empty on create
            timeouts: Operation budgets
            is_import: True when the read is part of an import
        """
        self.model = model
        self._prior = model(**(prior or {})) if prior is not None else None
        self._planned = model(**(planned if planned is not None else (prior or {})))
        self.record: M = self._planned.model_copy(deep=True)
        self._id = resource_id
        self.timeouts = timeouts or Timeouts()
        self.is_import = is_import

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, value: str) -> None:
        """Set the ID; an empty ID tells the host the resource is gone."""
        self._id = value

    @property
    def is_new_resource(self) -> bool:
        return self._prior is None

    def has_attribute(self, key: str) -> bool:
        return key in self.model.model_fields

    def _check(self, key: str) -> None:
        if not self.has_attribute(key):
            raise KeyError(f"{self.model.__name__} has no attribute {key}")

    def get(self, key: str) -> Any:
        """Current value of an attribute.

        Raises:
            KeyError: If the attribute does not exist
        """
        self._check(key)
        return getattr(self.record, key)

    def get_ok(self, key: str) -> Tuple[Any, bool]:
        """Current value and whether it is set to a non-zero value."""
        value = self.get(key)
        return value, not _is_zero(value)

    def set(self, key: str, value: Any) -> None:
        """Write an attribute; the value is validated against its type.

        Raises:
            KeyError: If the attribute does not exist
        """
        self._check(key)
        setattr(self.record, key, value)

    def get_change(self, key: str) -> Tuple[Any, Any]:
        """Prior and planned values of an attribute."""
        self._check(key)
        old = getattr(self._prior, key) if self._prior is not None else None
        return old, getattr(self._planned, key)

    def has_change(self, key: str) -> bool:
        old, new = self.get_change(key)
        if self._prior is None:
            return not _is_zero(new)
        return old != new

    def has_changes(self, *keys: str) -> bool:
        return any(self.has_change(key) for key in keys)

    def has_changes_except(self, *keys: str) -> bool:
        """True when any attribute other than the given ones changed."""
        for key in keys:
            self._check(key)
        return any(self.has_change(key) for key in self.model.model_fields if key not in keys)

    def timeout(self, operation: str) -> float:
        return self.timeouts.get(operation)

    def state(self) -> Dict[str, Any]:
        """The new state, to hand back to the host."""
        return self.record.model_dump()
