"""Typed attribute records and the host-facing schema derived from them."""

import typing
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict

from scaleway_provider.state.diagnostics import Diagnostic, error
from scaleway_provider.utils.errors import ProviderError

DiffSuppressFunc = Callable[[str, str, str, Any], bool]


@dataclass(frozen=True)
class Attr:
    """Schema flags of one attribute, attached with typing.Annotated.

    Example:
        name: Annotated[Optional[str], Attr(optional=True, computed=True)] = None
    """
    required: bool = False
    optional: bool = False
    computed: bool = False
    force_new: bool = False
    sensitive: bool = False
    description: str = ""
    validators: Tuple[Callable[[Any], Any], ...] = ()
    diff_suppress: Optional[DiffSuppressFunc] = None


class AttributeModel(BaseModel):
    """Base of every resource attribute record.

    Assignments are validated and unknown attribute names are rejected.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")


@dataclass
class AttributeSchema:
    """Schema of one attribute as exposed to the host."""
    name: str
    type: str
    required: bool = False
    optional: bool = False
    computed: bool = False
    force_new: bool = False
    sensitive: bool = False
    description: str = ""
    default: Any = None
    elem: Optional[Dict[str, "AttributeSchema"]] = None
    diff_suppress: Optional[DiffSuppressFunc] = field(default=None, repr=False)


def attr_of(model: Type[AttributeModel], name: str) -> Attr:
    """Return the Attr metadata of a field, or an empty Attr."""
    for meta in model.model_fields[name].metadata:
        if isinstance(meta, Attr):
            return meta
    return Attr()


def _unwrap_optional(annotation: Any) -> Any:
    if typing.get_origin(annotation) is typing.Union:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _type_name(annotation: Any) -> Tuple[str, Optional[Dict[str, AttributeSchema]]]:
    annotation = _unwrap_optional(annotation)
    origin = typing.get_origin(annotation)
    if origin in (list, List):
        (elem,) = typing.get_args(annotation) or (str,)
        if isinstance(elem, type) and issubclass(elem, BaseModel):
            return "list", schema_of(elem)
        return "list", None
    if origin in (dict, Dict):
        return "map", None
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return "list", schema_of(annotation)
    if annotation is bool:
        return "bool", None
    if annotation is int:
        return "int", None
    if annotation is float:
        return "float", None
    return "string", None


def schema_of(model: Type[BaseModel]) -> Dict[str, AttributeSchema]:
    """Derive the host-facing schema of a record type.

    Args:
        model: Attribute record class

    Returns:
        Attribute name to schema
    """
    attributes = {}
    for name, info in model.model_fields.items():
        attr = Attr()
        for meta in info.metadata:
            if isinstance(meta, Attr):
                attr = meta
        type_name, elem = _type_name(info.annotation)
        default = None if info.is_required() else info.get_default(call_default_factory=True)
        attributes[name] = AttributeSchema(
            name=name,
            type=type_name,
            required=attr.required,
            optional=attr.optional,
            computed=attr.computed,
            force_new=attr.force_new,
            sensitive=attr.sensitive,
            description=attr.description or (info.description or ""),
            default=default,
            elem=elem,
            diff_suppress=attr.diff_suppress,
        )
    return attributes


def validate_attributes(record: AttributeModel, path: str = "") -> List[Diagnostic]:
    """Run the Attr validators and required checks of a record.

    Nested blocks are validated too, their errors carry the full attribute
    path (eg `lifecycle_rule.0.transition.1.storage_class`).

    Args:
        record: Attribute record holding the planned values
        path: Attribute path of the record, empty for the resource itself

    Returns:
        One error diagnostic per invalid attribute
    """
    diags = []
    model = type(record)
    for name in model.model_fields:
        attr = attr_of(model, name)
        value = getattr(record, name)
        attribute_path = f"{path}{name}"
        if attr.required and value in (None, ""):
            diags.append(error(f"{attribute_path} is required", attribute_path=attribute_path))
            continue
        if value in (None, ""):
            continue
        for validator in attr.validators:
            try:
                validator(value)
            except (ProviderError, ValueError) as e:
                message = e.message if isinstance(e, ProviderError) else str(e)
                diags.append(error(f"invalid {attribute_path}: {message}", attribute_path=attribute_path))
                break
        if isinstance(value, AttributeModel):
            diags.extend(validate_attributes(value, f"{attribute_path}."))
        elif isinstance(value, list):
            for i, item in enumerate(value):
                if isinstance(item, AttributeModel):
                    diags.extend(validate_attributes(item, f"{attribute_path}.{i}."))
    return diags
