"""Abstract base classes for identity providers.

This module defines the contract every identity provider implements:

- :class:`AuthenticationProvider` -- the capability set the
  :class:`~arcauth.auth.manager.AuthenticationManager` dispatches to:
  authenticate, sign out, and report the credential state.
- :class:`RevocationCheckingProvider` -- an optional capability for
  providers that can tell whether a *given* user's credential is still
  valid. The manager uses it when restoring a session.

To implement a new provider, subclass :class:`AuthenticationProvider`, set
the :attr:`~AuthenticationProvider.provider_id` property, and implement
:meth:`~AuthenticationProvider.authenticate` and
:meth:`~AuthenticationProvider.check_credential_state`.

Implementations run on the manager's event loop and must not block it
while the user interacts with an external consent UI; await an event
(future, callback bridge) instead of computing locally.

See Also:
    :mod:`arcauth.auth.manager` for provider registration and dispatch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from arcauth.models import AuthCredential, CredentialState


class AuthenticationProvider(ABC):
    """Abstract base class for identity providers.

    Every concrete provider (Apple, Google, email/password) must subclass
    this and provide:

    1. A :attr:`provider_id` property returning a unique, stable string
       (e.g. ``"apple"``). It should match an
       :class:`~arcauth.models.AuthProvider` value so that stored
       credentials can be routed back to their provider.
    2. An :meth:`authenticate` coroutine that suspends until the user
       completes or abandons the external flow.
    3. A :meth:`check_credential_state` coroutine.

    Example::

        class EmailProvider(AuthenticationProvider):
            @property
            def provider_id(self) -> str:
                return "email"

            async def authenticate(self) -> AuthCredential:
                ...

            async def check_credential_state(self) -> CredentialState:
                return CredentialState.NOT_FOUND
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Return the unique identifier this provider is registered under."""
        ...

    @property
    def display_name(self) -> str:
        """Name to show in UI. Defaults to the capitalised :attr:`provider_id`."""
        return self.provider_id.capitalize()

    @property
    def is_available(self) -> bool:
        """Whether the provider can be used on this device. Defaults to ``True``."""
        return True

    @abstractmethod
    async def authenticate(self) -> AuthCredential:
        """Run the provider's authentication flow.

        Returns:
            The :class:`~arcauth.models.AuthCredential` of the signed-in user.

        Raises:
            AuthenticationError: If the user cancels (``UserCancelledError``)
                or the flow fails.
        """
        ...

    async def sign_out(self) -> None:
        """Sign out from the provider.

        The default is a no-op; most providers need no explicit sign-out.
        Override it when the provider requires server-side revocation.
        """

    @abstractmethod
    async def check_credential_state(self) -> CredentialState:
        """Report the state of whatever identity the provider can introspect."""
        ...


class RevocationCheckingProvider(ABC):
    """Optional capability: check a specific user's credential state.

    Providers that mix this in are consulted by
    :meth:`~arcauth.auth.manager.AuthenticationManager.restore_session`
    before a stored credential is trusted.
    """

    @abstractmethod
    async def check_credential_state_for(self, user_id: str) -> CredentialState:
        """Return the provider-side state of *user_id*'s credential."""
        ...
