"""Utility modules for logging, errors, retries, waiters and worker pools."""

from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import (
    ErrorKind,
    ErrorSeverity,
    ErrorContext,
    ProviderError,
    NotFoundError,
    ForbiddenError,
    ConflictError,
    PreconditionError,
    TransientError,
    QuotaExceededError,
    ValidationError,
    FatalError,
    CancelledError,
    ConfigurationError,
    CredentialError,
    ResponseError,
    ErrorHandler,
    error_handler,
    kind_of,
    is_not_found,
    is_forbidden,
    is_conflict,
    is_precondition,
    is_transient,
    is_quota_exceeded,
    is_validation,
    is_fatal,
)
from scaleway_provider.utils.logging import get_logger, setup_logging, LogContext
from scaleway_provider.utils.retry import RetryStrategy, retry, retry_when, retry_on_transient_state
from scaleway_provider.utils.waiter import WaitDescriptor, wait_for
from scaleway_provider.utils.workerpool import WorkerPool

__all__ = [
    'Context',

    # Errors
    'ErrorKind',
    'ErrorSeverity',
    'ErrorContext',
    'ProviderError',
    'NotFoundError',
    'ForbiddenError',
    'ConflictError',
    'PreconditionError',
    'TransientError',
    'QuotaExceededError',
    'ValidationError',
    'FatalError',
    'CancelledError',
    'ConfigurationError',
    'CredentialError',
    'ResponseError',
    'ErrorHandler',
    'error_handler',
    'kind_of',
    'is_not_found',
    'is_forbidden',
    'is_conflict',
    'is_precondition',
    'is_transient',
    'is_quota_exceeded',
    'is_validation',
    'is_fatal',

    # Logging
    'get_logger',
    'setup_logging',
    'LogContext',

    # Retry and wait
    'RetryStrategy',
    'retry',
    'retry_when',
    'retry_on_transient_state',
    'WaitDescriptor',
    'wait_for',
    'WorkerPool',
]
