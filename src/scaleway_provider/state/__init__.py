"""Resource state, attribute schemas and diagnostics."""

from .diagnostics import Diagnostic, Severity, diagnostics_from_error, has_error, error, warning
from .schema import Attr, AttributeModel, AttributeSchema, schema_of, validate_attributes
from .resource_data import ResourceData, Timeouts

__all__ = [
    'Diagnostic',
    'Severity',
    'diagnostics_from_error',
    'has_error',
    'error',
    'warning',
    'Attr',
    'AttributeModel',
    'AttributeSchema',
    'schema_of',
    'validate_attributes',
    'ResourceData',
    'Timeouts',
]
