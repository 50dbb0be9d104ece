"""Error handling framework for provider operations."""

from typing import Optional, Dict, Any, List
from enum import Enum
from dataclasses import dataclass

import requests
from botocore.exceptions import (
    ClientError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)


class ErrorKind(Enum):
    """Closed set of error kinds every failure is classified into."""
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    PRECONDITION = "precondition"
    TRANSIENT = "transient"
    QUOTA_EXCEEDED = "quota_exceeded"
    VALIDATION = "validation"
    FATAL = "fatal"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    ERROR = "error"  # The operation failed
    WARNING = "warning"  # Reported to the host, the operation continues


@dataclass
class ErrorContext:
    """Context information for an error."""
    resource_id: Optional[str] = None
    resource_type: Optional[str] = None
    operation: Optional[str] = None
    locality: Optional[str] = None
    request_id: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None


class ProviderError(Exception):
    """Base exception for provider errors."""

    default_kind = ErrorKind.FATAL

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        suggestions: Optional[List[str]] = None,
        attribute: Optional[str] = None
    ):
        """Initialize provider error.

        Args:
            message: Human-readable error message
            kind: Error kind, defaults to the class default
            severity: Error severity
            context: Additional context about the error
            cause: Original exception that caused this error
            suggestions: List of suggested fixes
            attribute: Attribute path the error is about, if a single field
        """
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.severity = severity
        self.context = context or ErrorContext()
        self.cause = cause
        self.suggestions = suggestions or []
        self.attribute = attribute

    def to_user_message(self) -> str:
        """Convert error to user-friendly message.

        Returns:
            Formatted error message for display to user
        """
        lines = [self.message]

        if self.context.resource_id:
            lines.append(f"  Resource: {self.context.resource_id}")
        if self.context.operation:
            lines.append(f"  Operation: {self.context.operation}")

        if self.cause is not None and str(self.cause) not in self.message:
            lines.append(f"  Cause: {self.cause}")

        if self.suggestions:
            lines.append("Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"  {i}. {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error
        """
        return {
            'message': self.message,
            'kind': self.kind.value,
            'severity': self.severity.value,
            'attribute': self.attribute,
            'context': {
                'resource_id': self.context.resource_id,
                'resource_type': self.context.resource_type,
                'operation': self.context.operation,
                'locality': self.context.locality,
                'request_id': self.context.request_id,
                'additional_info': self.context.additional_info
            },
            'cause': str(self.cause) if self.cause else None,
            'suggestions': self.suggestions
        }


class NotFoundError(ProviderError):
    """The resource does not exist (or no longer exists)."""
    default_kind = ErrorKind.NOT_FOUND


class ForbiddenError(ProviderError):
    """The credentials are not allowed to perform the operation."""
    default_kind = ErrorKind.FORBIDDEN


class ConflictError(ProviderError):
    """The resource is in a transient state and cannot be mutated yet."""
    default_kind = ErrorKind.CONFLICT


class PreconditionError(ProviderError):
    """A precondition of the request did not hold."""
    default_kind = ErrorKind.PRECONDITION


class TransientError(ProviderError):
    """Temporary failure: throttling, server error, network or timeout."""
    default_kind = ErrorKind.TRANSIENT


class QuotaExceededError(ProviderError):
    """A quota of the account was reached."""
    default_kind = ErrorKind.QUOTA_EXCEEDED


class ValidationError(ProviderError):
    """Invalid input, caught locally or reported by the API."""
    default_kind = ErrorKind.VALIDATION


class FatalError(ProviderError):
    """Unrecoverable failure."""
    default_kind = ErrorKind.FATAL


class CancelledError(FatalError):
    """The operation was cancelled by the host."""

    def __init__(self, message: str = 'operation cancelled', **kwargs):
        super().__init__(message, **kwargs)


class ConfigurationError(ValidationError):
    """Error in provider arguments, profiles or the config file."""


class CredentialError(ValidationError):
    """Missing or incomplete credentials."""


# Scaleway API error types, checked before the HTTP status
RESPONSE_TYPE_KINDS = {
    'not_found': ErrorKind.NOT_FOUND,
    'unknown_resource': ErrorKind.NOT_FOUND,
    'resource_expired': ErrorKind.NOT_FOUND,
    'permissions_denied': ErrorKind.FORBIDDEN,
    'denied_authentication': ErrorKind.FORBIDDEN,
    'quotas_exceeded': ErrorKind.QUOTA_EXCEEDED,
    'transient_state': ErrorKind.CONFLICT,
    'precondition_failed': ErrorKind.PRECONDITION,
    'invalid_arguments': ErrorKind.VALIDATION,
    'invalid_request_error': ErrorKind.VALIDATION,
    'out_of_stock': ErrorKind.FATAL,
    'resource_locked': ErrorKind.FATAL,
}

# S3 error codes, checked before the HTTP status
S3_CODE_KINDS = {
    'NoSuchBucket': ErrorKind.NOT_FOUND,
    'NoSuchKey': ErrorKind.NOT_FOUND,
    'NotFound': ErrorKind.NOT_FOUND,
    'NoSuchBucketPolicy': ErrorKind.NOT_FOUND,
    'NoSuchCORSConfiguration': ErrorKind.NOT_FOUND,
    'NoSuchLifecycleConfiguration': ErrorKind.NOT_FOUND,
    'NoSuchWebsiteConfiguration': ErrorKind.NOT_FOUND,
    'NoSuchTagSet': ErrorKind.NOT_FOUND,
    'ObjectLockConfigurationNotFoundError': ErrorKind.NOT_FOUND,
    'AccessDenied': ErrorKind.FORBIDDEN,
    'Forbidden': ErrorKind.FORBIDDEN,
    'OperationAborted': ErrorKind.CONFLICT,
    'BucketNotEmpty': ErrorKind.CONFLICT,
    'PreconditionFailed': ErrorKind.PRECONDITION,
    'SlowDown': ErrorKind.TRANSIENT,
    'ServiceUnavailable': ErrorKind.TRANSIENT,
    'InternalError': ErrorKind.TRANSIENT,
    'RequestTimeout': ErrorKind.TRANSIENT,
    'TooManyBuckets': ErrorKind.QUOTA_EXCEEDED,
    'QuotaExceeded': ErrorKind.QUOTA_EXCEEDED,
    'InvalidArgument': ErrorKind.VALIDATION,
    'InvalidBucketName': ErrorKind.VALIDATION,
    'MalformedXML': ErrorKind.VALIDATION,
    'MalformedPolicy': ErrorKind.VALIDATION,
}


def kind_from_status(status_code: Optional[int], retry_after: Optional[str] = None) -> ErrorKind:
    """Classify an HTTP status code.

    A response carrying a Retry-After header asks to be retried, whatever its
    status.

    Args:
        status_code: HTTP status of the failed response
        retry_after: Value of its Retry-After header, if any

    Returns:
        The error kind for that status
    """
    if retry_after:
        return ErrorKind.TRANSIENT
    if status_code in (404, 410):
        return ErrorKind.NOT_FOUND
    if status_code in (401, 403):
        return ErrorKind.FORBIDDEN
    if status_code == 409:
        return ErrorKind.CONFLICT
    if status_code == 412:
        return ErrorKind.PRECONDITION
    if status_code == 429 or (status_code is not None and status_code >= 500):
        return ErrorKind.TRANSIENT
    if status_code in (400, 422):
        return ErrorKind.VALIDATION
    return ErrorKind.FATAL


class ResponseError(ProviderError):
    """Error response returned by the Scaleway API."""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_type: Optional[str] = None,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[Any] = None,
        retry_after: Optional[str] = None,
        **kwargs
    ):
        """Initialize response error.

        Args:
            status_code: HTTP status code
            message: Message returned by the API
            error_type: Scaleway error type (e.g. transient_state)
            resource: Resource type named by the API
            resource_id: Resource ID named by the API
            details: Extra details returned by the API
            retry_after: Retry-After header of the response
        """
        kind = RESPONSE_TYPE_KINDS.get(error_type) or kind_from_status(status_code, retry_after)
        super().__init__(message, kind=kind, **kwargs)
        self.status_code = status_code
        self.error_type = error_type
        self.resource = resource
        self.resource_id = resource_id
        self.details = details
        self.retry_after = retry_after

    def __str__(self) -> str:
        label = f"{self.status_code}"
        if self.error_type:
            label = f"{label} {self.error_type}"
        return f"scaleway-sdk-go: http error {label}: {self.message}"

    @classmethod
    def from_response(cls, response: requests.Response) -> 'ResponseError':
        """Build an error from a failed HTTP response.

        Args:
            response: The failed response

        Returns:
            ResponseError with the decoded body
        """
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = body.get('message') or response.reason or 'unknown error'
        return cls(
            status_code=response.status_code,
            message=message,
            error_type=body.get('type'),
            resource=body.get('resource'),
            resource_id=body.get('resource_id'),
            details=body.get('details') or body.get('fields'),
            retry_after=response.headers.get('Retry-After'),
            context=ErrorContext(request_id=response.headers.get('X-Request-Id')),
        )


def s3_error_code(error: Exception) -> Optional[str]:
    """Return the S3 error code of a botocore ClientError."""
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code')
    return None


def kind_of(error: Optional[BaseException]) -> Optional[ErrorKind]:
    """Classify any error raised while talking to the cloud.

    Explicit error types are checked first, then a Retry-After header, then
    the HTTP status. Anything not recognized is fatal.

    Args:
        error: The error to classify

    Returns:
        The error kind, or None when there is no error
    """
    if error is None:
        return None

    if isinstance(error, ProviderError):
        return error.kind

    if isinstance(error, ClientError):
        code = s3_error_code(error)
        if code in S3_CODE_KINDS:
            return S3_CODE_KINDS[code]
        metadata = error.response.get('ResponseMetadata', {})
        # botocore lower-cases header names
        retry_after = (metadata.get('HTTPHeaders') or {}).get('retry-after')
        return kind_from_status(metadata.get('HTTPStatusCode'), retry_after)

    if isinstance(error, requests.HTTPError) and error.response is not None:
        return kind_from_status(error.response.status_code, error.response.headers.get('Retry-After'))

    if isinstance(error, (
        requests.ConnectionError,
        requests.Timeout,
        BotoConnectionError,
        HTTPClientError,
        ConnectionError,
        TimeoutError,
    )):
        return ErrorKind.TRANSIENT

    return ErrorKind.FATAL


def is_not_found(error: Optional[BaseException]) -> bool:
    return kind_of(error) == ErrorKind.NOT_FOUND


def is_forbidden(error: Optional[BaseException]) -> bool:
    return kind_of(error) == ErrorKind.FORBIDDEN


def is_conflict(error: Optional[BaseException]) -> bool:
    return kind_of(error) == ErrorKind.CONFLICT


def is_precondition(error: Optional[BaseException]) -> bool:
    return kind_of(error) == ErrorKind.PRECONDITION


def is_transient(error: Optional[BaseException]) -> bool:
    return kind_of(error) == ErrorKind.TRANSIENT


def is_quota_exceeded(error: Optional[BaseException]) -> bool:
    return kind_of(error) == ErrorKind.QUOTA_EXCEEDED


def is_validation(error: Optional[BaseException]) -> bool:
    return kind_of(error) == ErrorKind.VALIDATION


def is_fatal(error: Optional[BaseException]) -> bool:
    return kind_of(error) == ErrorKind.FATAL


class ErrorHandler:
    """Normalizes errors from the API, S3 and the network into ProviderError."""

    KIND_MAPPING = {
        ErrorKind.NOT_FOUND: {
            'message': 'Resource not found',
            'suggestions': [
                'Check that the resource was not deleted outside of the configuration',
                'Verify the resource ID and its region or zone',
            ]
        },
        ErrorKind.FORBIDDEN: {
            'message': 'Permission denied',
            'suggestions': [
                'Check the IAM policies attached to the API key',
                'Verify the project the API key is scoped to',
            ]
        },
        ErrorKind.CONFLICT: {
            'message': 'Resource is in a transient state',
            'suggestions': [
                'Wait for the resource to reach a stable state and retry',
                'Increase the operation timeout',
            ]
        },
        ErrorKind.PRECONDITION: {
            'message': 'Precondition failed',
            'suggestions': [
                'Refresh the state and retry',
            ]
        },
        ErrorKind.TRANSIENT: {
            'message': 'Temporary failure',
            'suggestions': [
                'Retry the operation',
                'Check the Scaleway status page',
            ]
        },
        ErrorKind.QUOTA_EXCEEDED: {
            'message': 'Quota exceeded',
            'suggestions': [
                'Clean up unused resources',
                'Request a quota increase from the console',
            ]
        },
        ErrorKind.VALIDATION: {
            'message': 'Invalid argument',
            'suggestions': [
                'Review the attribute values of the resource',
            ]
        },
    }

    ERROR_CLASSES = {
        ErrorKind.NOT_FOUND: NotFoundError,
        ErrorKind.FORBIDDEN: ForbiddenError,
        ErrorKind.CONFLICT: ConflictError,
        ErrorKind.PRECONDITION: PreconditionError,
        ErrorKind.TRANSIENT: TransientError,
        ErrorKind.QUOTA_EXCEEDED: QuotaExceededError,
        ErrorKind.VALIDATION: ValidationError,
        ErrorKind.FATAL: FatalError,
    }

    def __init__(self):
        """Initialize error handler."""
        self.logger = get_logger(__name__)

    def handle_exception(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None
    ) -> ProviderError:
        """Handle an exception and convert to ProviderError.

        Args:
            error: The exception to handle
            context: Additional context about where the error occurred

        Returns:
            ProviderError with its kind and suggestions
        """
        context = context or ErrorContext()

        if isinstance(error, ProviderError):
            if context.resource_id and not error.context.resource_id:
                error.context.resource_id = context.resource_id
                error.context.resource_type = context.resource_type
                error.context.operation = context.operation
            return error

        if isinstance(error, ClientError):
            return self._handle_s3_error(error, context)

        if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
            return CredentialError(
                message=f'Object storage credentials are missing: {error}',
                context=context,
                cause=error,
                suggestions=[
                    'Set access_key and secret_key in the provider block',
                    'Or export SCW_ACCESS_KEY and SCW_SECRET_KEY',
                ]
            )

        kind = kind_of(error)
        info = self.KIND_MAPPING.get(kind, {})
        error_class = self.ERROR_CLASSES[kind]
        message = f"{info['message']}: {error}" if info else str(error)
        return error_class(
            message=message,
            context=context,
            cause=error,
            suggestions=list(info.get('suggestions', [])),
        )

    def _handle_s3_error(
        self,
        error: ClientError,
        context: ErrorContext
    ) -> ProviderError:
        """Handle S3 ClientError.

        Args:
            error: The ClientError
            context: Error context

        Returns:
            Classified ProviderError
        """
        error_code = error.response.get('Error', {}).get('Code', 'Unknown')
        error_message = error.response.get('Error', {}).get('Message', str(error))
        context.request_id = error.response.get('ResponseMetadata', {}).get('RequestId')

        kind = kind_of(error)
        info = self.KIND_MAPPING.get(kind, {})
        return self.ERROR_CLASSES[kind](
            message=f"S3 error ({error_code}): {error_message}",
            context=context,
            cause=error,
            suggestions=list(info.get('suggestions', [])),
        )

    def log_error(self, error: ProviderError) -> None:
        """Log a provider error with its structured fields.

        Args:
            error: The error to log
        """
        if error.severity == ErrorSeverity.WARNING:
            self.logger.warning(f"{error.kind.value}: {error.to_user_message()}")
        else:
            self.logger.error(f"{error.kind.value}: {error.to_user_message()}")
        self.logger.debug(f"Error details: {error.to_dict()}")


# Global error handler instance
error_handler = ErrorHandler()
