"""
Integration error taxonomy.

Every failure raised by an adapter is exactly one of five variants:

- NetworkError: timeouts, refused connections, DNS failures
- AuthError: HTTP 401/403, invalid or insufficient credentials
- ApiError: any other non-success HTTP status (carries the status code)
- ConfigError: missing settings, bad base URLs, unparseable responses
- NotFound: the requested resource does not exist

Each variant serializes to a tagged union with a ``type`` discriminator:

    {"type": "ApiError", "status": 503, "message": "Server error: 503"}

Never include secrets or tokens in error messages.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import httpx
from pydantic import ValidationError

# Maximum response text length to include in error messages
MAX_ERROR_RESPONSE_LENGTH = 500


class IntegrationError(Exception):
    """
    Base exception for all integration-related errors.

    Only the five subclasses below are ever raised; catch this class to
    handle any adapter failure with a single except clause.
    """

    message: str = ""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """Tagged-union representation for crossing the API boundary"""
        return {"type": self.type, "message": self.message}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IntegrationError):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.to_dict().items())))


class NetworkError(IntegrationError):
    """Connection failures, timeouts and other transport problems. Retryable."""

    def __str__(self) -> str:
        return f"Network error: {self.message}"


class AuthError(IntegrationError):
    """Invalid token, expired credentials or insufficient permissions. Never retried."""

    def __str__(self) -> str:
        return f"Authentication error: {self.message}"


class ApiError(IntegrationError):
    """Non-success HTTP response other than 401/403/404."""

    def __init__(self, status: int, message: str = ""):
        super().__init__(message)
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "status": self.status, "message": self.message}

    def __str__(self) -> str:
        return f"API error (status {self.status}): {self.message}"


class ConfigError(IntegrationError):
    """Missing credentials, bad URLs, or a response that is not what the adapter expects."""

    def __str__(self) -> str:
        return f"Configuration error: {self.message}"


class NotFound(IntegrationError):
    """Resource not found. Carries no payload."""

    def __init__(self, message: str = ""):
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type}

    def __str__(self) -> str:
        return "Resource not found"


def status_to_error(status: int, message: Optional[str] = None) -> IntegrationError:
    """
    Classify an HTTP status code.

    - 401/403 -> AuthError
    - 404 -> NotFound
    - everything else -> ApiError carrying the status

    Args:
        status: HTTP status code
        message: Optional message; defaults to "HTTP <status>"
    """
    error_message = message if message is not None else f"HTTP {status}"

    if status in (401, 403):
        return AuthError(error_message)
    if status == 404:
        return NotFound()
    return ApiError(status, error_message)


def transport_to_error(exc: httpx.HTTPError) -> NetworkError:
    """Map an httpx transport failure to NetworkError with a message naming the failure kind."""
    if isinstance(exc, httpx.TimeoutException):
        return NetworkError("Request timed out")
    if isinstance(exc, httpx.ConnectError):
        return NetworkError("Failed to connect to server")
    return NetworkError(f"Network error: {exc}")


def truncate(text: str, limit: int = MAX_ERROR_RESPONSE_LENGTH) -> str:
    """Truncate response text for error messages."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def parse_error(exc: Exception, snippet: str = "") -> ConfigError:
    """A body that failed to deserialize means the caller and the service disagree on the API."""
    message = f"Failed to parse response: {exc}"
    if snippet:
        message += f" (response starts with: {truncate(snippet, 200)!r})"
    return ConfigError(message)


@contextmanager
def malformed_response(kind: str) -> Iterator[None]:
    """
    Classify a response item that does not fit the model built from it.

    Missing keys, values of the wrong type and non-object items all mean the
    service answered with a shape we do not understand: ConfigError.
    """
    try:
        yield
    except KeyError as e:
        raise ConfigError(f"Invalid {kind} format: missing {e}") from e
    except ValidationError as e:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in e.errors())
        raise ConfigError(f"Invalid {kind} format: invalid {fields}") from e
    except (TypeError, AttributeError, ValueError) as e:
        raise ConfigError(f"Invalid {kind} format: {e}") from e
