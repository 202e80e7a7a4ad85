"""Exception hierarchy for arcauth.

All exceptions inherit from :class:`ArcAuthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`arcauth.exit_codes`.
The command-line entry point in :func:`arcauth.app.main` catches
``ArcAuthError`` and exits with the appropriate code.

:class:`AuthenticationError` is the closed taxonomy of authentication
failures. Any foreign exception that crosses the
:class:`~arcauth.auth.manager.AuthenticationManager` boundary is converted
with :func:`wrap_error` into :class:`UnknownError`, so callers above the
manager only ever observe members of this tree.

Subclass hierarchy::

    ArcAuthError                      (exit 1)
    +-- ConfigError                   (exit 2)
    +-- AuthenticationError
        +-- ProviderError             (exit 3)
        |   +-- ProviderNotRegisteredError
        |   +-- ProviderFailureError
        |   +-- UserCancelledError    (exit 4)
        |   +-- InvalidCredentialsError
        +-- TokenError                (exit 5)
        |   +-- InvalidIdentityTokenError
        |   +-- TokenExpiredError
        |   +-- TokenRefreshFailedError
        +-- StorageError              (exit 6)
        |   +-- StorageSaveFailedError
        |   +-- StorageReadFailedError
        |   +-- StorageDeleteFailedError
        +-- TransportError            (exit 7)
        |   +-- NetworkError
        |   +-- ServerError
        +-- SessionError              (exit 5)
            +-- NoActiveSessionError
            +-- CredentialRevokedError
            +-- UnknownError          (exit 1)

Equality between taxonomy members ignores wrapped causes: two
``NetworkError`` instances compare equal whatever they wrap. Only
:class:`ProviderNotRegisteredError` (provider id) and :class:`ServerError`
(status code and message) compare their payload.
"""

from __future__ import annotations

from typing import Hashable, Optional

from arcauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_ERROR,
    EXIT_SESSION_ERROR,
    EXIT_STORAGE_ERROR,
)


class ArcAuthError(Exception):
    """Base exception for all arcauth errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`arcauth.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(ArcAuthError):
    """Raised for configuration problems (unreadable or invalid config file)."""

    exit_code = EXIT_INVALID_USAGE


def _describe(error: Optional[BaseException]) -> str:
    if error is None:
        return "Unknown error"
    return str(error) or type(error).__name__


class AuthenticationError(ArcAuthError):
    """Base class of the closed authentication error taxonomy.

    Subclasses override :attr:`description` and, where the user can do
    something about the failure, :attr:`recovery_suggestion`.

    Args:
        underlying: The wrapped cause, for members that carry one.
    """

    def __init__(self, underlying: Optional[BaseException] = None) -> None:
        self.underlying = underlying
        super().__init__(self.description)

    @property
    def description(self) -> str:
        """Human-readable description of the failure."""
        return "Authentication failed"

    @property
    def recovery_suggestion(self) -> Optional[str]:
        """A hint the UI can show next to the error, or ``None``."""
        return None

    def _identity(self) -> tuple[Hashable, ...]:
        """Payload that takes part in equality. Causes never do."""
        return ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthenticationError):
            return NotImplemented
        return type(self) is type(other) and self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash((type(self), self._identity()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.description!r})"


# --- Provider errors ---


class ProviderError(AuthenticationError):
    """Failures raised by or about an identity provider."""

    exit_code = EXIT_AUTH_FAILURE


class ProviderNotRegisteredError(ProviderError):
    """No provider is registered under the requested identifier."""

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__()

    @property
    def description(self) -> str:
        return f"Authentication provider '{self.provider_id}' is not registered"

    def _identity(self) -> tuple[Hashable, ...]:
        return (self.provider_id,)


class ProviderFailureError(ProviderError):
    """The provider's external flow failed (e.g. Sign in with Apple failed)."""

    @property
    def description(self) -> str:
        return f"Apple Sign In failed: {_describe(self.underlying)}"


class UserCancelledError(ProviderError):
    """The user dismissed the provider's consent UI."""

    exit_code = EXIT_CANCELLED

    @property
    def description(self) -> str:
        return "Authentication was cancelled by the user"

    @property
    def recovery_suggestion(self) -> Optional[str]:
        return "Try signing in again"


class InvalidCredentialsError(ProviderError):
    @property
    def description(self) -> str:
        return "The provided credentials are invalid"


# --- Token errors ---


class TokenError(AuthenticationError):
    """Failures concerning provider or server tokens."""

    exit_code = EXIT_SESSION_ERROR


class InvalidIdentityTokenError(TokenError):
    @property
    def description(self) -> str:
        return "The identity token is invalid or corrupted"


class TokenExpiredError(TokenError):
    @property
    def description(self) -> str:
        return "The access token has expired"

    @property
    def recovery_suggestion(self) -> Optional[str]:
        return "Please sign in again"


class TokenRefreshFailedError(TokenError):
    @property
    def description(self) -> str:
        return f"Failed to refresh token: {_describe(self.underlying)}"

    @property
    def recovery_suggestion(self) -> Optional[str]:
        return "Please sign in again"


# --- Storage errors ---


class StorageError(AuthenticationError):
    """Failures of the secure credential store."""

    exit_code = EXIT_STORAGE_ERROR


class StorageSaveFailedError(StorageError):
    @property
    def description(self) -> str:
        return f"Failed to save credentials: {_describe(self.underlying)}"


class StorageReadFailedError(StorageError):
    @property
    def description(self) -> str:
        return f"Failed to read credentials: {_describe(self.underlying)}"


class StorageDeleteFailedError(StorageError):
    @property
    def description(self) -> str:
        return f"Failed to delete credentials: {_describe(self.underlying)}"


# --- Network errors ---


class TransportError(AuthenticationError):
    """Failures talking to the authentication backend."""

    exit_code = EXIT_NETWORK_ERROR


class NetworkError(TransportError):
    @property
    def description(self) -> str:
        return f"Network error: {_describe(self.underlying)}"

    @property
    def recovery_suggestion(self) -> Optional[str]:
        return "Check your internet connection and try again"


class ServerError(TransportError):
    """The backend answered with an unexpected HTTP status.

    Args:
        status_code: The HTTP status code returned by the server.
        message: The raw response body text, if any.
    """

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__()

    @property
    def description(self) -> str:
        return f"Server error ({self.status_code}): {self.message or 'Unknown error'}"

    def _identity(self) -> tuple[Hashable, ...]:
        return (self.status_code, self.message)


# --- State errors ---


class SessionError(AuthenticationError):
    """Failures concerning the local session."""

    exit_code = EXIT_SESSION_ERROR


class NoActiveSessionError(SessionError):
    @property
    def description(self) -> str:
        return "No active authentication session"


class CredentialRevokedError(SessionError):
    @property
    def description(self) -> str:
        return "Apple ID credentials have been revoked"

    @property
    def recovery_suggestion(self) -> Optional[str]:
        return "Please sign in with Apple again to restore access"


class UnknownError(SessionError):
    """A foreign exception wrapped into the taxonomy."""

    exit_code = EXIT_GENERIC_FAILURE

    @property
    def description(self) -> str:
        return f"Unknown error: {_describe(self.underlying)}"


def wrap_error(error: BaseException) -> AuthenticationError:
    """Return *error* unchanged if it belongs to the taxonomy, else wrap it.

    Args:
        error: Any exception caught at a manager boundary.

    Returns:
        An :class:`AuthenticationError`; foreign errors become
        :class:`UnknownError` with *error* as the underlying cause.
    """
    if isinstance(error, AuthenticationError):
        return error
    return UnknownError(error)
