"""
Retry wrapper for single upstream HTTP calls.

Classifies each response into success, retryable failure (transport error,
5xx) or terminal failure (4xx, malformed body), retries with exponential
backoff plus jitter, and reports operations that still fail.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from catalog_service import metrics
from catalog_service.domain.exceptions import (
    ClientError,
    NetworkError,
    ServerError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

RequestFactory = Callable[[], Awaitable[httpx.Response]]

MAX_ATTEMPTS = 3
BASE_DELAY_SECONDS = 1.0
MAX_JITTER_SECONDS = 1.0


class ErrorReporter(Protocol):
    """Observability sink for operations that failed for good."""

    def report(self, error: UpstreamError, operation: str, attempts: int) -> None:
        ...


class LoggingErrorReporter:
    """Reports failures to the log and Prometheus."""

    def report(self, error: UpstreamError, operation: str, attempts: int) -> None:
        metrics.track_upstream_failure(operation, type(error).__name__)
        logger.error(
            f"Upstream operation '{operation}' failed after {attempts} attempt(s): {error.reason}",
            extra={
                "extra_fields": {
                    "operation": operation,
                    "attempts": attempts,
                    "error_type": type(error).__name__,
                    "status_code": error.status_code,
                }
            },
        )


def parse_error_body(response: httpx.Response) -> tuple[Optional[Any], str]:
    """Extract the parsed body and the upstream error message of a failed response."""
    try:
        body = response.json()
    except ValueError:
        return None, response.reason_phrase or f"HTTP {response.status_code}"

    reason = response.reason_phrase or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            reason = errors[0].get("detail") or reason
        elif isinstance(body.get("error"), str):
            reason = body["error"]
    return body, reason


class RetryingClient:
    """
    Executes upstream requests with bounded retries.

    Attributes:
        max_attempts: Attempts per operation, first try included
        base_delay: Backoff base in seconds (delay = base * 2^(attempt-1) + jitter)
        max_jitter: Upper bound of the uniform jitter in seconds
        reporter: Sink for operations that ultimately fail
    """

    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_DELAY_SECONDS,
        max_jitter: float = MAX_JITTER_SECONDS,
        reporter: Optional[ErrorReporter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_jitter = max_jitter
        self.reporter = reporter or LoggingErrorReporter()
        self._sleep = sleep

    async def execute(
        self,
        request_factory: RequestFactory,
        operation_name: str,
        expected_fields: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """
        Run one upstream operation.

        Args:
            request_factory: Creates and sends a fresh request per attempt
            operation_name: Name used in logs, metrics and error reports
            expected_fields: Top-level fields the response body must contain

        Returns:
            Parsed JSON body

        Raises:
            NetworkError: Transport failure on every attempt
            ServerError: 5xx on every attempt
            ClientError: 4xx (never retried)
            ValidationError: Malformed body or missing field (never retried)
        """
        start_time = time.perf_counter()
        attempts = 0
        result: Dict[str, Any] = {}

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, min=0)
            + wait_random(0, self.max_jitter),
            retry=retry_if_exception_type((NetworkError, ServerError)),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    result = await self._attempt(request_factory, operation_name, expected_fields)
        except UpstreamError as error:
            duration = time.perf_counter() - start_time
            error.tag(attempts=attempts)
            metrics.track_upstream_call(operation_name, False, duration)
            self.reporter.report(error, operation_name, attempts)
            raise

        duration = time.perf_counter() - start_time
        metrics.track_upstream_call(operation_name, True, duration)
        logger.debug(
            f"Upstream operation '{operation_name}' succeeded",
            extra={"extra_fields": {"attempts": attempts, "duration_ms": duration * 1000}},
        )
        return result

    async def _attempt(
        self,
        request_factory: RequestFactory,
        operation_name: str,
        expected_fields: Optional[Sequence[str]],
    ) -> Dict[str, Any]:
        try:
            response = await request_factory()
        except (httpx.TransportError, TimeoutError, OSError) as e:
            raise NetworkError(operation_name, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            body, reason = parse_error_body(response)
            if 400 <= response.status_code < 500:
                error: UpstreamError = ClientError(operation_name, response.status_code, reason)
            else:
                error = ServerError(operation_name, response.status_code, reason)
            error.details["body"] = body
            raise error

        try:
            data = response.json()
        except ValueError as e:
            raise ValidationError(operation_name, f"Invalid response: body is not JSON ({e})") from e

        if expected_fields:
            self._validate(data, expected_fields, operation_name)

        return data

    @staticmethod
    def _validate(data: Any, expected_fields: Sequence[str], operation_name: str) -> None:
        if not data or not isinstance(data, dict):
            raise ValidationError(operation_name, "Invalid response: empty response")

        for field in expected_fields:
            if field not in data:
                raise ValidationError(
                    operation_name,
                    f"Invalid response: missing required field '{field}'",
                    missing_field=field,
                )

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        operation = getattr(error, "operation", "unknown")
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        metrics.track_upstream_retry(operation)
        logger.warning(
            f"Retrying '{operation}' after attempt {retry_state.attempt_number} "
            f"failed: {error}",
            extra={
                "extra_fields": {
                    "operation": operation,
                    "attempt": retry_state.attempt_number,
                    "delay_seconds": round(delay, 3),
                }
            },
        )
