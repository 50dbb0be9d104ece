"""Polling waiter for asynchronous resources."""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Optional

from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import (
    ErrorKind,
    FatalError,
    TransientError,
    kind_of,
)
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class WaitDescriptor:
    """Describes how to poll a resource until it settles.

    Attributes:
        fetch: Zero-argument callable returning the current resource
        status_of: Extracts the status string from the fetched resource
        success: Statuses that end the wait successfully
        failure: Statuses that end the wait with an error
        deleting: When True, a not-found answer means success
        name: Human-readable name used in logs and errors
    """
    fetch: Callable[[], Any]
    status_of: Callable[[Any], str]
    success: FrozenSet[str]
    failure: FrozenSet[str] = field(default_factory=frozenset)
    deleting: bool = False
    name: str = 'resource'


def wait_for(
    descriptor: WaitDescriptor,
    timeout: float,
    interval: float,
    ctx: Optional[Context] = None
) -> Any:
    """Poll until the resource reaches a terminal status.

    Transient and conflict errors raised while fetching keep the poll going.

    Args:
        descriptor: What to poll and how to read it
        timeout: Overall budget in seconds
        interval: Delay between polls in seconds
        ctx: Cancellation context

    Returns:
        The fetched resource in a success status, or None when it
        disappeared while deleting

    Raises:
        FatalError: If a failure status is observed
        TransientError: If the timeout elapses first
        CancelledError: If the context is cancelled
    """
    ctx = ctx or Context.background()
    deadline = time.monotonic() + timeout
    if ctx.deadline is not None:
        deadline = min(deadline, ctx.deadline)

    last_status = None
    while True:
        ctx.check()
        try:
            resource = descriptor.fetch()
        except Exception as e:
            kind = kind_of(e)
            if kind == ErrorKind.NOT_FOUND and descriptor.deleting:
                logger.debug(f"{descriptor.name} is gone")
                return None
            if kind not in (ErrorKind.TRANSIENT, ErrorKind.CONFLICT):
                raise
            logger.debug(f"Polling {descriptor.name} failed ({e}), polling again")
        else:
            status = descriptor.status_of(resource)
            if status != last_status:
                logger.debug(f"{descriptor.name} status is {status}")
                last_status = status
            if status in descriptor.success:
                return resource
            if status in descriptor.failure:
                raise FatalError(
                    f"{descriptor.name} reached failure status: {status}",
                    suggestions=['Check the resource in the Scaleway console'],
                )

        if time.monotonic() + interval > deadline:
            raise TransientError(
                f"timeout after {timeout}s waiting for {descriptor.name} "
                f"(last status: {last_status})"
            )
        ctx.sleep(interval)
