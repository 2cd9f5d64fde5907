"""
Low-level HTTP request library for 42 Intra API communication.
This module handles all HTTP requests with automatic retry logic and error classification.
"""
import asyncio
import logging
import aiohttp

from .api.errors import (
    ApiResponseError,
    ForbiddenError,
    NotFoundError,
    TransientNetworkError,
    UnauthorizedError,
)
from .const import REQUEST_ATTEMPTS, REQUEST_TIMEOUT, RETRY_BACKOFF

_LOGGER = logging.getLogger(__name__)

# Failures worth another attempt; everything else (4xx included) surfaces immediately
_RETRYABLE = (asyncio.TimeoutError, TimeoutError, aiohttp.ClientConnectionError, TransientNetworkError)


async def make_request(
    method: str,
    url: str,
    headers: dict,
    payload: dict = None,
    params: dict = None,
    data: dict = None,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
    backoff: float = RETRY_BACKOFF,
):
    """
    Make an HTTP request with bounded exponential backoff on transient failures.

    Args:
        method: HTTP method (GET, POST, DELETE)
        url: Target URL for the request
        headers: HTTP headers dictionary
        payload: JSON body (optional)
        params: URL query parameters (optional)
        data: form-encoded body (optional, used by the OAuth endpoints)
        timeout: Base timeout in seconds (multiplied by attempt number for each retry)
        max_attempts: Maximum number of attempts
        backoff: Delay before the second attempt, doubled for each further one

    Returns:
        Parsed JSON response (None for an empty success response)

    Raises:
        TransientNetworkError: If every attempt timed out, failed to connect or got a 5xx
        UnauthorizedError / ForbiddenError / NotFoundError: On 401 / 403 / 404
        ApiResponseError: For other error statuses or an unexpected content type
    """
    method = method.upper()

    for attempt in range(max_attempts):
        try:
            # Create session with timeout that increases with each attempt
            timeout_config = aiohttp.ClientTimeout(total=timeout * (attempt + 1))
            session = aiohttp.ClientSession(timeout=timeout_config)

            try:
                if method == "GET":
                    response = await session.get(url, headers=headers, params=params)
                elif method == "POST":
                    response = await session.post(url, headers=headers, json=payload, data=data, params=params)
                elif method == "DELETE":
                    response = await session.delete(url, headers=headers, params=params)
                else:
                    raise ValueError(f"Unsupported HTTP method: {method}")

                return await _process_response(response, url)

            finally:
                await session.close()

        except _RETRYABLE as e:
            if attempt < max_attempts - 1:
                delay = backoff * (2 ** attempt)
                _LOGGER.debug(
                    "%s request to %s failed (%s), retrying in %.1fs",
                    method, url, str(e) or type(e).__name__, delay
                )
                await asyncio.sleep(delay)
                continue

            _LOGGER.warning(
                "%s request to %s failed after %s attempts: %s",
                method, url, max_attempts, str(e) or type(e).__name__
            )
            if isinstance(e, TransientNetworkError):
                raise
            raise TransientNetworkError(
                f"{method} {url} failed after {max_attempts} attempts: {str(e) or type(e).__name__}"
            ) from e

    raise ValueError("max_attempts must be at least 1")


async def _read_error_message(response, content_type: str) -> str:
    """Best-effort human readable message from an error response body."""
    if 'application/json' in content_type:
        try:
            error_json = await response.json()
        except (aiohttp.ContentTypeError, ValueError):
            return f"HTTP {response.status}"
        if isinstance(error_json, dict):
            for key in ("error_description", "message", "error"):
                if error_json.get(key):
                    return str(error_json[key])
        return f"HTTP {response.status}"
    text = await response.text()
    return f"HTTP {response.status}: {text[:200]}"


async def _process_response(response, url: str):
    """
    Classify the HTTP response and extract JSON data.

    Args:
        response: aiohttp response object
        url: Request URL (for logging)

    Returns:
        Parsed JSON response
    """
    status = response.status
    content_type = response.headers.get('Content-Type', '')

    # Handle successful response
    if 200 <= status < 300:
        if status == 204:
            return None
        if 'application/json' in content_type:
            try:
                return await response.json()
            except (aiohttp.ContentTypeError, ValueError) as e:
                _LOGGER.warning("Malformed JSON in successful response from %s: %s", url, e)
                raise ApiResponseError({"error": "Malformed JSON", "detail": str(e)}, status) from e
        _LOGGER.warning(
            "Unexpected content type in successful response: %s (status %s) from %s",
            content_type, status, url
        )
        text = await response.text()
        raise ApiResponseError({"error": f"Expected JSON but got {content_type}", "body": text[:200]}, status)

    message = await _read_error_message(response, content_type)

    if status == 401:
        raise UnauthorizedError(f"Unauthorized: {message}", status)
    if status == 403:
        raise ForbiddenError(f"Forbidden: {message}", status)
    if status == 404:
        raise NotFoundError(f"Not found: {message}", status)
    if status >= 500:
        raise TransientNetworkError(f"Server error {status} from {url}: {message}", status)

    _LOGGER.debug("Error response from %s: status %s, %s", url, status, message)
    raise ApiResponseError({"error": message}, status)
