"""Deadline-bound execution of Azure SDK calls.

The Azure SDK for Python is synchronous: gets return the resource and
mutations return an LROPoller. The executor runs both in the default thread
pool and bounds every wait with the caller's phase deadline, translating the
outcome into exactly one of SUCCEEDED, NOT_FOUND or FAILED.

No retries happen here. Whatever the transport pipeline retries is all the
retrying a call gets.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from azure.core.exceptions import AzureError, HttpResponseError, ResourceNotFoundError
from azure.core.polling import LROPoller

from .errors import OperationTimeoutError

logger = logging.getLogger(__name__)


class Deadline:
    """Absolute point in time by which a lifecycle phase must finish."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        self._expires_at = time.monotonic() + timeout_seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0


class OperationStatus(str, Enum):
    """Terminal status of a remote call."""

    SUCCEEDED = "Succeeded"
    NOT_FOUND = "NotFound"
    FAILED = "Failed"


@dataclass
class OperationOutcome:
    """Result of one remote call.

    `result` holds the fetched resource (fetch), the poller (begin) or the
    final resource (wait). `error` is set for NOT_FOUND and FAILED.
    """

    status: OperationStatus
    result: Any = None
    error: AzureError | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == OperationStatus.SUCCEEDED

    @property
    def not_found(self) -> bool:
        return self.status == OperationStatus.NOT_FOUND


def is_not_found(error: BaseException) -> bool:
    if isinstance(error, ResourceNotFoundError):
        return True
    return isinstance(error, HttpResponseError) and error.status_code == 404


class OperationExecutor:
    """Issues remote calls and blocks until they reach a terminal state."""

    async def fetch(
        self,
        call: Callable[[], Any],
        *,
        operation_name: str,
        deadline: Deadline,
    ) -> OperationOutcome:
        """Run a get-style call."""
        return await self._run(call, operation_name=operation_name, deadline=deadline)

    async def begin(
        self,
        call: Callable[[], LROPoller[Any]],
        *,
        operation_name: str,
        deadline: Deadline,
    ) -> OperationOutcome:
        """Issue a long-running operation. On success, `result` is the poller."""
        outcome = await self._run(call, operation_name=operation_name, deadline=deadline)
        if outcome.succeeded:
            logger.info("Started %s", operation_name, extra={"operation": operation_name})
        return outcome

    async def wait(
        self,
        poller: LROPoller[Any],
        *,
        operation_name: str,
        deadline: Deadline,
    ) -> OperationOutcome:
        """Block until `poller` reports a terminal state or the deadline elapses."""
        started = time.monotonic()

        # The worker thread gives up at the deadline as well as the event loop
        def result() -> Any:
            value = poller.result(timeout=deadline.remaining())
            if not poller.done():
                raise TimeoutError(f"{operation_name} still in progress")
            return value

        outcome = await self._run(result, operation_name=operation_name, deadline=deadline)
        logger.info(
            "Finished %s",
            operation_name,
            extra={
                "operation": operation_name,
                "status": outcome.status.value,
                "duration_seconds": round(time.monotonic() - started, 3),
            },
        )
        return outcome

    async def execute(
        self,
        call: Callable[[], LROPoller[Any]],
        *,
        operation_name: str,
        deadline: Deadline,
    ) -> OperationOutcome:
        """Issue a long-running operation and wait for it."""
        outcome = await self.begin(call, operation_name=operation_name, deadline=deadline)
        if not outcome.succeeded:
            return outcome
        return await self.wait(outcome.result, operation_name=operation_name, deadline=deadline)

    async def _run(
        self,
        call: Callable[[], Any],
        *,
        operation_name: str,
        deadline: Deadline,
    ) -> OperationOutcome:
        if deadline.expired:
            raise OperationTimeoutError(operation_name, deadline.timeout_seconds)

        loop = asyncio.get_running_loop()
        try:
            result = await asyncio.wait_for(
                loop.run_in_executor(None, call),
                timeout=deadline.remaining(),
            )
        except TimeoutError as e:
            logger.error(
                f"{operation_name} timed out",
                extra={"operation": operation_name, "timeout_seconds": deadline.timeout_seconds},
            )
            raise OperationTimeoutError(operation_name, deadline.timeout_seconds) from e
        except AzureError as e:
            if is_not_found(e):
                logger.debug("%s: not found", operation_name)
                return OperationOutcome(OperationStatus.NOT_FOUND, error=e)
            logger.warning(
                f"{operation_name} failed",
                extra={
                    "operation": operation_name,
                    "error": str(e),
                    "status_code": getattr(e, "status_code", None),
                },
            )
            return OperationOutcome(OperationStatus.FAILED, error=e)

        return OperationOutcome(OperationStatus.SUCCEEDED, result=result)
