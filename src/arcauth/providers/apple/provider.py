"""Sign in with Apple identity provider.

This module provides :class:`AppleAuthProvider`, which implements the
``apple`` provider. The cryptographic flow and the consent sheet belong to
the platform; this provider talks to them through an injected
:class:`AppleAuthorizationController` and turns the controller's delegate
callbacks into a coroutine:

1. Generates a random nonce and sends its SHA-256 digest with the request.
2. Asks the controller to present the Apple ID consent UI, requesting the
   ``fullName`` and ``email`` scopes.
3. Suspends on an :class:`asyncio.Future` until the controller reports
   success or failure through the delegate. The future resolves exactly
   once per request; late or duplicate callbacks are ignored.
4. Converts the Apple ID credential into an
   :class:`~arcauth.models.AuthCredential`, or maps the platform error onto
   the :mod:`arcauth.exceptions` taxonomy.

Email and full name are only delivered on the first sign-in for a given
Apple ID. The identity token is a JWT that must be verified server-side,
and the authorization code expires after five minutes.

See Also:
    :class:`arcauth.auth.base.AuthenticationProvider` for the base interface.
"""

from __future__ import annotations

import asyncio
import enum
import hashlib
import logging
import secrets
import string
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from arcauth.auth.base import AuthenticationProvider, RevocationCheckingProvider
from arcauth.constants import APPLE_DEFAULT_SCOPES
from arcauth.exceptions import (
    AuthenticationError,
    InvalidCredentialsError,
    ProviderFailureError,
    UnknownError,
    UserCancelledError,
)
from arcauth.models import (
    AppleAuthPayload,
    AuthCredential,
    AuthProvider,
    CredentialState,
    FullName,
    RealUserStatus,
)

logger = logging.getLogger(__name__)

_NONCE_CHARSET = string.digits + string.ascii_letters + "-._"


def generate_nonce(length: int = 32) -> str:
    """Return a random nonce of *length* characters from an URL-safe charset.

    Raises:
        ValueError: If *length* is not positive.
    """
    if length <= 0:
        raise ValueError("Nonce length must be positive")
    return "".join(secrets.choice(_NONCE_CHARSET) for _ in range(length))


def sha256_hex(value: str) -> str:
    """Return the lowercase hex SHA-256 digest of *value* (UTF-8)."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


# --- Platform collaborator types ---


class AppleAuthorizationErrorCode(str, enum.Enum):
    """Failure codes reported by the platform authorization controller."""

    CANCELED = "canceled"
    INVALID_RESPONSE = "invalid_response"
    NOT_HANDLED = "not_handled"
    FAILED = "failed"
    NOT_INTERACTIVE = "not_interactive"
    MATCHED_EXCLUDED_CREDENTIAL = "matched_excluded_credential"
    UNKNOWN = "unknown"


class AppleAuthorizationFailure(Exception):
    """Error the controller reports when an authorization request fails.

    Args:
        code: The platform failure code.
        message: Optional platform-supplied detail.
    """

    def __init__(self, code: AppleAuthorizationErrorCode, message: str = "") -> None:
        self.code = code
        super().__init__(message or code.value)


@dataclass(frozen=True)
class AppleIDRequest:
    """Authorization request handed to the controller."""

    requested_scopes: tuple[str, ...]
    nonce: str


@dataclass(frozen=True)
class AppleIDCredential:
    """Apple ID credential delivered by the controller on success."""

    user: str
    email: Optional[str] = None
    full_name: Optional[FullName] = None
    identity_token: Optional[bytes] = None
    authorization_code: Optional[bytes] = None
    real_user_status: RealUserStatus = RealUserStatus.UNKNOWN


class AppleAuthorizationDelegate(ABC):
    """Callbacks the controller invokes once a request completes.

    Controllers may call these from any thread.
    """

    @abstractmethod
    def did_complete_with_authorization(self, credential: Any) -> None: ...

    @abstractmethod
    def did_complete_with_error(self, error: BaseException) -> None: ...


class AppleAuthorizationController(ABC):
    """Bridge to the platform's Sign in with Apple implementation."""

    @abstractmethod
    def perform_request(
        self, request: AppleIDRequest, delegate: AppleAuthorizationDelegate
    ) -> None:
        """Present the consent UI for *request* and report to *delegate*.

        Must return promptly; the outcome is delivered later through the
        delegate.
        """
        ...

    @abstractmethod
    def get_credential_state(
        self, user_id: str, completion: Callable[[CredentialState], None]
    ) -> None:
        """Look up *user_id*'s credential state and pass it to *completion*."""
        ...


def map_authorization_error(error: BaseException) -> AuthenticationError:
    """Translate a controller failure into the authentication error taxonomy."""
    if isinstance(error, AuthenticationError):
        return error
    if not isinstance(error, AppleAuthorizationFailure):
        return UnknownError(error)
    code = error.code
    if code == AppleAuthorizationErrorCode.CANCELED:
        return UserCancelledError()
    if code == AppleAuthorizationErrorCode.INVALID_RESPONSE:
        return InvalidCredentialsError()
    if code in (
        AppleAuthorizationErrorCode.NOT_HANDLED,
        AppleAuthorizationErrorCode.FAILED,
        AppleAuthorizationErrorCode.NOT_INTERACTIVE,
        AppleAuthorizationErrorCode.MATCHED_EXCLUDED_CREDENTIAL,
    ):
        return ProviderFailureError(error)
    return UnknownError(error)


def _resolve_once(future: asyncio.Future[Any], result: Any = None, error: Optional[BaseException] = None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


class _PendingAuthorization(AppleAuthorizationDelegate):
    """One-shot delegate that resolves a future on the provider's event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self.future: asyncio.Future[AppleIDCredential] = loop.create_future()

    def did_complete_with_authorization(self, credential: Any) -> None:
        if isinstance(credential, AppleIDCredential):
            self._loop.call_soon_threadsafe(_resolve_once, self.future, credential)
        else:
            self._loop.call_soon_threadsafe(
                _resolve_once, self.future, None, InvalidCredentialsError()
            )

    def did_complete_with_error(self, error: BaseException) -> None:
        self._loop.call_soon_threadsafe(
            _resolve_once, self.future, None, map_authorization_error(error)
        )


class AppleAuthProvider(AuthenticationProvider, RevocationCheckingProvider):
    """Authenticate via Sign in with Apple.

    Args:
        controller: The platform bridge presenting the consent UI. Without
            one the provider reports itself unavailable and
            :meth:`authenticate` fails with ``ProviderFailureError``.

    Example::

        provider = AppleAuthProvider(controller=my_controller)
        credential = await provider.authenticate()
    """

    def __init__(self, controller: Optional[AppleAuthorizationController] = None) -> None:
        self._controller = controller
        self._pending: Optional[_PendingAuthorization] = None
        self._current_nonce: Optional[str] = None
        self._last_authorization: Optional[AppleIDCredential] = None

    @property
    def provider_id(self) -> str:
        return AuthProvider.APPLE.value

    @property
    def display_name(self) -> str:
        return "Apple"

    @property
    def is_available(self) -> bool:
        return self._controller is not None

    @property
    def current_nonce(self) -> Optional[str]:
        """Raw nonce of the most recent request (its hash went to Apple)."""
        return self._current_nonce

    async def authenticate(self) -> AuthCredential:
        """Present the Apple ID consent UI and wait for the outcome.

        Returns:
            The resulting :class:`~arcauth.models.AuthCredential`.

        Raises:
            UserCancelledError: The user dismissed the consent UI.
            InvalidCredentialsError: The platform returned an invalid
                response or a non-Apple-ID credential.
            ProviderFailureError: The request failed, could not be
                presented, no controller is configured, or another request
                is already in progress.
            UnknownError: Any other failure.
        """
        if self._controller is None:
            raise ProviderFailureError(RuntimeError("No Apple authorization controller configured"))
        if self._pending is not None:
            raise ProviderFailureError(
                RuntimeError("A Sign in with Apple request is already in progress")
            )

        nonce = generate_nonce()
        self._current_nonce = nonce
        request = AppleIDRequest(requested_scopes=APPLE_DEFAULT_SCOPES, nonce=sha256_hex(nonce))

        pending = _PendingAuthorization(asyncio.get_running_loop())
        self._pending = pending
        try:
            try:
                self._controller.perform_request(request, pending)
            except Exception as exc:
                raise ProviderFailureError(exc) from exc
            apple_credential = await pending.future
        finally:
            self._pending = None

        self._last_authorization = apple_credential
        logger.debug("Received Apple ID credential for user %s", apple_credential.user)
        return AuthCredential(
            user_id=apple_credential.user,
            email=apple_credential.email,
            display_name=apple_credential.full_name.formatted if apple_credential.full_name else None,
            provider=AuthProvider.APPLE,
            identity_token=apple_credential.identity_token,
            authorization_code=apple_credential.authorization_code,
        )

    async def sign_out(self) -> None:
        # Apple has no explicit sign-out; dropping the stored credential is enough.
        self._last_authorization = None

    async def check_credential_state(self) -> CredentialState:
        """Check the user from the last successful sign-in, if any."""
        if self._last_authorization is None:
            return CredentialState.NOT_FOUND
        return await self.check_credential_state_for(self._last_authorization.user)

    async def check_credential_state_for(self, user_id: str) -> CredentialState:
        """Ask the platform whether *user_id*'s Apple ID credential is still valid.

        Unrecognised platform states are reported as ``NOT_FOUND``.
        """
        if self._controller is None:
            return CredentialState.NOT_FOUND

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def completion(state: Any) -> None:
            loop.call_soon_threadsafe(_resolve_once, future, state)

        self._controller.get_credential_state(user_id, completion)
        state = await future
        try:
            return CredentialState(state)
        except ValueError:
            return CredentialState.NOT_FOUND

    def backend_payload(self) -> Optional[AppleAuthPayload]:
        """Build the backend verification payload for the last sign-in.

        Returns:
            An :class:`~arcauth.models.AppleAuthPayload`, or ``None`` when
            nobody has signed in through this provider yet.

        Raises:
            InvalidIdentityTokenError: If the last credential lacks tokens.
        """
        authorization = self._last_authorization
        if authorization is None:
            return None
        credential = AuthCredential(
            user_id=authorization.user,
            email=authorization.email,
            provider=AuthProvider.APPLE,
            identity_token=authorization.identity_token,
            authorization_code=authorization.authorization_code,
        )
        return AppleAuthPayload.from_credential(
            credential,
            full_name=authorization.full_name,
            real_user_status=authorization.real_user_status,
        )
