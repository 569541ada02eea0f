"""Retry wrapper shared by every outbound model call."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from services.errors import RunCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 503})
RETRYABLE_MESSAGE_MARKERS = (
    "429",
    "503",
    "overloaded",
    "resource exhausted",
    "resource_exhausted",
    "quota",
)


def _status_code(error: BaseException) -> Optional[int]:
    for attr in ("code", "status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def is_retryable_error(error: BaseException) -> bool:
    """True for rate limiting and overload signals, by status code or message."""
    if _status_code(error) in RETRYABLE_STATUS_CODES:
        return True
    message = str(error).lower()
    return any(marker in message for marker in RETRYABLE_MESSAGE_MARKERS)


async def invoke_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    initial_delay_ms: int = 2000,
    label: str = "model call",
    cancel_event: Optional[asyncio.Event] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run `operation` up to `max_attempts` times.

    Only retryable failures are retried, waiting ``initial_delay_ms * 2**i``
    after failed attempt ``i``. Anything else, or the last failure, propagates
    unchanged. A set `cancel_event` stops the loop before the next attempt.
    """
    attempts = max(1, max_attempts)
    for attempt in range(attempts):
        if cancel_event is not None and cancel_event.is_set():
            raise RunCancelled(f"{label} cancelled")
        try:
            return await operation()
        except RunCancelled:
            raise
        except Exception as e:
            if attempt >= attempts - 1 or not is_retryable_error(e):
                raise
            delay_ms = initial_delay_ms * (2**attempt)
            logger.warning(
                "%s failed with retryable error (attempt %s/%s), retrying in %sms: %s",
                label,
                attempt + 1,
                attempts,
                delay_ms,
                e,
            )
            await sleep(delay_ms / 1000)
    # Unreachable: the loop either returns or raises
    raise RuntimeError(f"{label} exhausted retries")
