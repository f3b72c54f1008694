"""Exception types shared by the wiki gateway, registry client and sync engine.

All errors derive from ``WikiSyncError`` so callers at the per-page and
per-pass boundaries can catch the whole family in one place.
"""

# Wiki API error codes meaning the session or CSRF token is no longer valid.
AUTH_EXPIRED_CODES = frozenset(
    {"badtoken", "notoken", "assertuserfailed", "assertbotfailed"}
)


class WikiSyncError(Exception):
    """Base class for all wiki sync errors."""


class NotFoundError(WikiSyncError):
    """The requested page (or its content) does not exist."""

    def __init__(self, title: str):
        super().__init__(f"page does not exist: {title}")
        self.title = title


class TransportError(WikiSyncError):
    """Network or HTTP level failure."""


class MalformedResponseError(WikiSyncError):
    """The response did not have the expected shape."""


class ApiError(WikiSyncError):
    """The wiki API returned an ``error`` envelope."""

    def __init__(self, code: str, info: str):
        super().__init__(f"API error: {code} - {info}")
        self.code = code
        self.info = info


class AuthExpiredError(ApiError):
    """The wiki rejected the token used for a request."""


class LoginError(WikiSyncError):
    """Credentials were rejected by the wiki."""


class InvalidVersionError(WikiSyncError, ValueError):
    """Text could not be parsed as a semantic version."""


def api_error(code: str, info: str) -> ApiError:
    """Build the most specific ``ApiError`` for an error envelope."""
    if code.lower() in AUTH_EXPIRED_CODES:
        return AuthExpiredError(code, info)
    return ApiError(code, info)
