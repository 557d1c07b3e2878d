"""Upstream error hierarchy and response classification."""

import logging

logger = logging.getLogger(__name__)


# ── Exception Hierarchy ──────────────────────────────────────────────────────


class APIError(Exception):
    """Base class for all Meitre API errors."""


class UpstreamAuthError(APIError):
    """Login against ``/login_check`` was rejected."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Meitre login failed: {status_code}")
        self.status_code = status_code


class UpstreamError(APIError):
    """Non-2xx response from an authenticated call. Never retried."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Meitre API error: {status_code} {body}".rstrip())
        self.status_code = status_code
        self.body = body


class UnauthorizedError(UpstreamError):
    """The upstream rejected the bearer token (401)."""


class SchemaChangeError(APIError):
    """Remote API response shape changed unexpectedly."""


class RestaurantResolutionError(APIError):
    """No restaurant scope could be chosen for the account."""


class NoRestaurantError(RestaurantResolutionError):
    def __init__(self) -> None:
        super().__init__("No restaurants found for this account")


class AmbiguousRestaurantError(RestaurantResolutionError):
    def __init__(self, count: int) -> None:
        super().__init__(
            "Multiple restaurants found for this account. Use the list_restaurants "
            'tool to see them, then set the "restaurant" header.'
        )
        self.count = count


# ── Response Classification ──────────────────────────────────────────────────


def classify_response(response: object) -> None:
    """Raise an appropriate error based on HTTP status code.

    Args:
        response: An object with ``status_code`` and ``text`` attributes
            (e.g. httpx.Response).

    Raises:
        UnauthorizedError: On 401.
        UpstreamError: On any other non-2xx status.
    """
    status = getattr(response, "status_code", None)
    if status is None or 200 <= status < 300:
        return

    body = getattr(response, "text", "")
    logger.warning("Meitre request failed (HTTP %d): %s", status, body)
    if status == 401:
        raise UnauthorizedError(status, body)
    raise UpstreamError(status, body)


def require_keys(data: object, *path: str) -> object:
    """Walk *path* through nested dicts in an upstream payload.

    Raises:
        SchemaChangeError: If a level is not a dict or a key is missing.
    """
    current = data
    for depth, key in enumerate(path):
        if not isinstance(current, dict) or key not in current:
            where = ".".join(path[: depth + 1])
            raise SchemaChangeError(f"Missing key '{where}' in Meitre response")
        current = current[key]
    return current
