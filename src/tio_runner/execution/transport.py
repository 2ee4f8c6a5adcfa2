from __future__ import annotations

import asyncio
import logging
import secrets

import aiohttp

from ..errors import CancellationError, TransportError
from ..settings import DEFAULT_BASE_URL
from .cancellation import AbortContext, AbortReason, CancelSignal

logger = logging.getLogger(__name__)


def execution_url(base_url: str, endpoint: str) -> str:
    """Build the cache-busted POST URL for an execution endpoint.

    Example:
        ```python
        url = execution_url("https://tio.run", "abc123")
        ```
    """
    return f"{base_url}/cgi-bin/static/{endpoint}/{secrets.token_hex(16)}"


async def _post(session: aiohttp.ClientSession, url: str, body: bytes) -> bytes:
    """POST the compressed body and return the raw response bytes.

    Example:
        ```python
        raw = await _post(session, url, body)
        ```
    """
    async with session.post(url, data=body) as response:
        if not 200 <= response.status < 300:
            raise TransportError(
                f"tio.run responded with {response.status} {response.reason or ''}".rstrip(),
                status=response.status,
            )
        return await response.read()


async def execute(
    session: aiohttp.ClientSession,
    endpoint: str,
    body: bytes,
    *,
    timeout_ms: int,
    cancel_signal: CancelSignal | None = None,
    base_url: str = DEFAULT_BASE_URL,
) -> bytes | None:
    """POST an encoded request, racing an internal timer against the cancel signal.

    Returns the raw response bytes, or None when the internal timer fired first.
    Raises CancellationError when the caller's signal fired first.

    Example:
        ```python
        raw = await execute(session, "abc123", body, timeout_ms=2000)
        ```
    """
    if cancel_signal is not None and cancel_signal.cancelled:
        raise CancellationError()

    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(_post(session, execution_url(base_url, endpoint), body))
    context = AbortContext(task)
    timer = loop.call_later(timeout_ms / 1000, context.abort, AbortReason.TIMED_OUT)

    def _on_cancel() -> None:
        """Record cancellation as the abort reason when the signal fires.

        Example:
            ```python
            cancel_signal.add_listener(_on_cancel)
            ```
        """
        context.abort(AbortReason.CANCELLED)

    if cancel_signal is not None:
        cancel_signal.add_listener(_on_cancel)

    try:
        return await task
    except asyncio.CancelledError:
        if context.reason is AbortReason.TIMED_OUT:
            logger.warning("tio.run request timed out after %dms", timeout_ms)
            return None
        if context.reason is AbortReason.CANCELLED:
            raise CancellationError() from None
        raise
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise TransportError(f"tio.run request failed: {exc}") from exc
    finally:
        timer.cancel()
        if cancel_signal is not None:
            cancel_signal.remove_listener(_on_cancel)
        if not task.done():
            task.cancel()
