"""Diagnostics returned to the host."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from scaleway_provider.utils.errors import ErrorSeverity, ProviderError, error_handler


class Severity(Enum):
    """Severity of a diagnostic."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """An error or warning reported to the host."""
    severity: Severity
    summary: str
    detail: str = ""
    attribute_path: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


def error(summary: str, detail: str = "", attribute_path: Optional[str] = None) -> Diagnostic:
    return Diagnostic(Severity.ERROR, summary, detail, attribute_path)


def warning(summary: str, detail: str = "", attribute_path: Optional[str] = None) -> Diagnostic:
    return Diagnostic(Severity.WARNING, summary, detail, attribute_path)


def diagnostics_from_error(err: BaseException) -> List[Diagnostic]:
    """Turn an error into a one-element diagnostic list.

    Args:
        err: Any exception

    Returns:
        A single diagnostic carrying the message, suggestions and attribute path
    """
    provider_error = err if isinstance(err, ProviderError) else error_handler.handle_exception(err)
    severity = Severity.WARNING if provider_error.severity == ErrorSeverity.WARNING else Severity.ERROR

    detail = ""
    if provider_error.suggestions:
        detail = "\n".join(provider_error.suggestions)

    return [Diagnostic(severity, str(provider_error), detail, provider_error.attribute)]


def has_error(diags: Iterable[Diagnostic]) -> bool:
    return any(d.is_error for d in diags)
