"""
HTTP execution layer shared by every HTTP-based adapter.

Provides a configured httpx.AsyncClient and a retrying executor that
classifies every outcome into the integration error taxonomy.

Logging Guidelines:
- Logs method + URL (never headers, tokens or passwords)
- On errors: status code + truncated response (max 500 chars)

Retry Strategy:
- Default: max 3 retries (4 attempts)
- Exponential backoff before each retry: 0.5s, 1s, 2s
- Retries on: timeouts, connection errors, 408, 5xx
- No retry on: 401/403, other 4xx, one-shot streaming bodies
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from opsflow.integrations.errors import (
    ConfigError,
    IntegrationError,
    NetworkError,
    status_to_error,
    transport_to_error,
    truncate,
)

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_REQUEST_TIMEOUT = 30.0
MAX_RETRIES = 3
INITIAL_DELAY = 0.5

# Transport failures worth another attempt
RETRYABLE_TRANSPORT_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def create_http_client(
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    **kwargs,
) -> httpx.AsyncClient:
    """
    Create a configured HTTP client for integration API calls.

    Configuration:
    - Connect timeout: 10 seconds
    - Overall timeout: 30 seconds
    - Redirects followed (http -> https, context-path redirects)
    """
    try:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            follow_redirects=True,
            **kwargs,
        )
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to create HTTP client: {e}")
        raise ConfigError(f"Failed to initialize HTTP client: {e}")


def backoff_delay(retry: int, base_delay: float = INITIAL_DELAY) -> float:
    """Delay before the given retry (1-based): base, 2*base, 4*base, ..."""
    return base_delay * (2 ** (retry - 1))


def is_replayable(request: httpx.Request) -> bool:
    """Only fully buffered bodies can be sent again; generators are consumed by the first send."""
    return isinstance(request.stream, httpx.ByteStream)


def _response_error(response: httpx.Response, label: str) -> IntegrationError:
    body = truncate(response.text.strip()) if response.content else ""
    message = f"{label}: {response.status_code}"
    if body:
        message = f"{message} - {body}"
    return status_to_error(response.status_code, message)


def _send(client: httpx.AsyncClient, request: httpx.Request, auth: Optional[httpx.Auth]):
    if auth is None:
        return client.send(request)
    return client.send(request, auth=auth)


async def _send_once(
    client: httpx.AsyncClient, request: httpx.Request, auth: Optional[httpx.Auth]
) -> httpx.Response:
    try:
        response = await _send(client, request, auth)
    except httpx.HTTPError as e:
        logger.error(f"HTTP request error for {request.method} {request.url}: {e}")
        raise transport_to_error(e)
    if response.is_success:
        return response
    raise _response_error(response, "HTTP error")


async def execute_with_retry(
    client: httpx.AsyncClient,
    request: httpx.Request,
    max_retries: int = MAX_RETRIES,
    base_delay: float = INITIAL_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    auth: Optional[httpx.Auth] = None,
) -> httpx.Response:
    """
    Execute an HTTP request with retry logic.

    Args:
        client: The HTTP client to send with
        request: A prepared request (client.build_request)
        max_retries: Retries after the first attempt; 0 sends exactly once
        base_delay: Backoff base in seconds, doubled on each retry
        sleep: Awaitable used for backoff
        auth: Per-request auth (e.g. httpx.BasicAuth); the client default otherwise

    Returns:
        The successful (2xx) response

    Raises:
        IntegrationError: classified failure; after exhausting retries the
        last classified error is raised
    """
    if not is_replayable(request):
        # Streaming body cannot be replayed - execute once
        return await _send_once(client, request, auth)

    last_error: Optional[IntegrationError] = None

    for attempt in range(max_retries + 1):
        if attempt > 0:
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                f"Retrying {request.method} {request.url} in {delay}s "
                f"(attempt {attempt + 1}/{max_retries + 1}): {last_error}"
            )
            await sleep(delay)

        try:
            response = await _send(client, request, auth)
        except RETRYABLE_TRANSPORT_ERRORS as e:
            logger.warning(f"Network error on attempt {attempt + 1}: {e}")
            last_error = transport_to_error(e)
            continue
        except httpx.HTTPError as e:
            # Non-retryable errors (unsupported protocol, proxy errors, ...)
            logger.error(f"HTTP request error for {request.method} {request.url}: {e}")
            raise transport_to_error(e)

        status = response.status_code

        if response.is_success:
            return response

        # Don't retry on authentication errors
        if status in (401, 403):
            raise _response_error(response, "Authentication failed")

        # Request timeout is retried like a network error
        if status == 408 or response.is_server_error:
            logger.warning(f"Server error {status} on attempt {attempt + 1}, will retry")
            last_error = _response_error(
                response, "Server error" if response.is_server_error else "Request timeout"
            )
            await response.aclose()
            continue

        if response.is_client_error:
            raise _response_error(response, "Client error")

        raise _response_error(response, "HTTP error")

    # All retries exhausted
    raise last_error or NetworkError("Request failed after retries")
