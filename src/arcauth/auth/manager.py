"""Authentication manager -- registry, dispatcher and session coordinator.

The :class:`AuthenticationManager` is the single authority between identity
providers, credential storage and the observable
:class:`~arcauth.state.AuthenticationState`. It maintains a mapping from
provider identifiers (``"apple"``, ``"google"``, ...) to concrete
:class:`~arcauth.auth.base.AuthenticationProvider` instances and exposes
coroutines to sign in, sign out, and restore a persisted session.

Control flow for a sign-in::

    UI -> manager.authenticate("apple")
       -> provider.authenticate()        (suspends on the consent UI)
       -> storage.save_credential(...)
       -> state becomes authenticated    (subscribers re-render)

For most applications, call :func:`create_default_manager` to get a manager
with the Apple provider registered, then ``await manager.restore_session()``
once at startup.

The manager is not thread-safe and does not serialise concurrent calls:
callers should not start a second ``authenticate`` while
``state.is_loading`` is ``True``.

See Also:
    :class:`~arcauth.auth.base.AuthenticationProvider` -- the provider interface.
    :class:`~arcauth.auth.storage.AuthStorage` -- the storage interface.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from arcauth.auth.base import AuthenticationProvider, RevocationCheckingProvider
from arcauth.auth.storage import AuthStorage, FileCredentialStore
from arcauth.constants import DISPLAY_NAME_KEY
from arcauth.exceptions import ProviderNotRegisteredError, wrap_error
from arcauth.models import AuthCredential, AuthenticationConfiguration, CredentialState
from arcauth.preferences import PreferenceStore
from arcauth.state import AuthenticationState

if TYPE_CHECKING:
    from arcauth.providers.apple import AppleAuthorizationController

logger = logging.getLogger(__name__)


class AuthenticationManager:
    """Registry of identity providers and owner of the authentication state.

    Providers are registered by their
    :attr:`~arcauth.auth.base.AuthenticationProvider.provider_id`. The
    manager is the only writer of :attr:`state`; every failure it
    surfaces is a member of the
    :class:`~arcauth.exceptions.AuthenticationError` taxonomy.

    Args:
        storage: Credential persistence. Defaults to
            :class:`~arcauth.auth.storage.FileCredentialStore`.
        configuration: Manager settings. Defaults to
            :class:`~arcauth.models.AuthenticationConfiguration`.
        preferences: Best-effort store for the display name. Defaults to
            :class:`~arcauth.preferences.PreferenceStore`.

    Example::

        manager = AuthenticationManager()
        manager.register(AppleAuthProvider(controller))
        await manager.restore_session()
        if not manager.state.is_authenticated:
            await manager.authenticate("apple")
    """

    def __init__(
        self,
        storage: Optional[AuthStorage] = None,
        configuration: Optional[AuthenticationConfiguration] = None,
        preferences: Optional[PreferenceStore] = None,
    ) -> None:
        self._providers: dict[str, AuthenticationProvider] = {}
        self._storage = storage if storage is not None else FileCredentialStore()
        self._configuration = configuration or AuthenticationConfiguration()
        self._preferences = preferences if preferences is not None else PreferenceStore()
        self._state = AuthenticationState()

    @property
    def state(self) -> AuthenticationState:
        """The observable authentication state (read-only for callers)."""
        return self._state

    @property
    def configuration(self) -> AuthenticationConfiguration:
        return self._configuration

    # ------------------------------------------------------------------ #
    # Provider registry
    # ------------------------------------------------------------------ #

    def register(self, provider: AuthenticationProvider) -> None:
        """Register a provider, keyed by its ``provider_id``.

        If a provider with the same id is already registered it is
        replaced.

        Args:
            provider: The provider instance to register.
        """
        self._providers[provider.provider_id] = provider
        logger.info("Registered provider: %s", provider.provider_id)

    def get_provider(self, provider_id: str) -> Optional[AuthenticationProvider]:
        """Return the provider registered under *provider_id*, or ``None``."""
        return self._providers.get(provider_id)

    @property
    def available_providers(self) -> list[AuthenticationProvider]:
        """Registered providers that report themselves usable on this device."""
        return [p for p in self._providers.values() if p.is_available]

    def list_provider_ids(self) -> list[str]:
        """Return the identifiers of all registered providers, sorted."""
        return sorted(self._providers)

    # ------------------------------------------------------------------ #
    # Authentication
    # ------------------------------------------------------------------ #

    async def authenticate(self, provider_id: str) -> None:
        """Sign in with the provider registered under *provider_id*.

        On success the credential is persisted, the display name is
        remembered (best-effort, when configured) and the state becomes
        authenticated.

        Args:
            provider_id: Identifier of a registered provider (e.g. ``"apple"``).

        Raises:
            ProviderNotRegisteredError: If no provider has that id. The
                state is left untouched in this case.
            AuthenticationError: If the provider or the storage fails. The
                error is recorded in ``state.last_error`` before being
                re-raised; foreign errors are wrapped as ``UnknownError``.
        """
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ProviderNotRegisteredError(provider_id)

        self._state._set_loading(True)
        logger.info("Starting authentication with provider: %s", provider_id)

        try:
            credential = await provider.authenticate()
            await self._storage.save_credential(credential)
        except asyncio.CancelledError:
            self._state._set_loading(False)
            raise
        except Exception as exc:
            auth_error = wrap_error(exc)
            self._state._set_error(auth_error)
            logger.error("Authentication failed: %s", auth_error.description)
            if auth_error is exc:
                raise
            raise auth_error from exc

        if self._configuration.persist_display_name_in_preferences and credential.display_name:
            self._remember_display_name(credential.display_name)

        self._state._set_authenticated(credential)
        logger.info("Authentication successful for provider: %s", provider_id)

    async def sign_out(self) -> None:
        """Close the current session.

        When no registered provider matches the current session (including
        when there is no session at all), the stored credential is removed
        best-effort and the state is forced to unauthenticated; this path
        never raises.

        Raises:
            AuthenticationError: If the provider's sign-out or the
                credential deletion fails. The error is recorded in
                ``state.last_error`` and the state is *not* forced to
                unauthenticated.
        """
        current = self._state.current_provider
        provider = self._providers.get(current.value) if current is not None else None

        if provider is None:
            self._state._set_unauthenticated()
            try:
                await self._storage.delete_credential()
            except Exception as exc:
                logger.warning("Could not clear stored credential: %s", exc)
            return

        self._state._set_loading(True)

        try:
            await provider.sign_out()
            await self._storage.delete_credential()
        except asyncio.CancelledError:
            self._state._set_loading(False)
            raise
        except Exception as exc:
            auth_error = wrap_error(exc)
            self._state._set_error(auth_error)
            logger.error("Sign out failed: %s", auth_error.description)
            if auth_error is exc:
                raise
            raise auth_error from exc

        self._forget_display_name()
        self._state._set_unauthenticated()
        logger.info("Sign out successful")

    async def restore_session(self) -> None:
        """Re-establish the authenticated state from storage.

        Call once at startup. When configured, a provider that can check
        revocation is asked whether the stored credential is still
        authorized; anything other than ``AUTHORIZED`` deletes the record.
        If that provider is unregistered or unavailable the check is
        skipped and the credential is trusted.

        This coroutine never raises: every failure is logged and resolves
        to the unauthenticated state.
        """
        logger.info("Attempting to restore session")

        try:
            credential = await self._storage.get_credential()
            if credential is None:
                logger.info("No stored session found")
                self._state._set_unauthenticated()
                return

            if self._configuration.verify_apple_credentials_on_restore:
                credential_state = await self._verify_stored_credential(credential)
                if credential_state is not None and credential_state != CredentialState.AUTHORIZED:
                    logger.warning(
                        "Stored %s credential is %s; discarding it",
                        credential.provider.value,
                        credential_state.value,
                    )
                    await self._storage.delete_credential()
                    self._state._set_unauthenticated()
                    return

            self._state._set_authenticated(credential)
            logger.info("Session restored successfully")
        except Exception as exc:
            logger.error("Failed to restore session: %s", exc)
            self._state._set_unauthenticated()

    async def check_credential_state(self) -> CredentialState:
        """Ask the current session's provider for its credential state.

        Returns:
            The provider-reported :class:`~arcauth.models.CredentialState`,
            or ``NOT_FOUND`` when there is no session or its provider is
            not registered. The state is never modified.

        Raises:
            AuthenticationError: If the provider check fails; foreign
                errors are wrapped as ``UnknownError``.
        """
        credential = self._state.current_credential
        if credential is None:
            return CredentialState.NOT_FOUND
        provider = self._providers.get(credential.provider.value)
        if provider is None:
            return CredentialState.NOT_FOUND
        try:
            return await provider.check_credential_state()
        except Exception as exc:
            auth_error = wrap_error(exc)
            if auth_error is exc:
                raise
            raise auth_error from exc

    @property
    def saved_display_name(self) -> Optional[str]:
        """The remembered display name, even when no session is active."""
        try:
            return self._preferences.get_string(DISPLAY_NAME_KEY)
        except Exception as exc:
            logger.warning("Could not read saved display name: %s", exc)
            return None

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _verify_stored_credential(
        self, credential: AuthCredential
    ) -> Optional[CredentialState]:
        """Run the provider's revocation check, or return ``None`` to skip it."""
        provider = self._providers.get(credential.provider.value)
        if not isinstance(provider, RevocationCheckingProvider):
            return None
        if not provider.is_available:
            logger.info(
                "Provider %s unavailable; skipping revocation check",
                provider.provider_id,
            )
            return None
        return await provider.check_credential_state_for(credential.user_id)

    def _remember_display_name(self, display_name: str) -> None:
        # Not part of the credential save: failures are logged only.
        try:
            self._preferences.set_string(DISPLAY_NAME_KEY, display_name)
        except Exception as exc:
            logger.warning("Could not persist display name: %s", exc)

    def _forget_display_name(self) -> None:
        try:
            self._preferences.remove(DISPLAY_NAME_KEY)
        except Exception as exc:
            logger.warning("Could not clear display name: %s", exc)


def create_default_manager(
    configuration: Optional[AuthenticationConfiguration] = None,
    storage: Optional[AuthStorage] = None,
    preferences: Optional[PreferenceStore] = None,
    apple_controller: Optional[AppleAuthorizationController] = None,
) -> AuthenticationManager:
    """Create an :class:`AuthenticationManager` with the built-in providers.

    The following providers are registered:

    - ``apple`` -- Sign in with Apple, driven by *apple_controller*. Without
      a controller the provider is registered but reports itself
      unavailable.

    Returns:
        A fully initialised :class:`AuthenticationManager`.
    """
    from arcauth.providers.apple import AppleAuthProvider

    manager = AuthenticationManager(
        storage=storage, configuration=configuration, preferences=preferences
    )
    manager.register(AppleAuthProvider(controller=apple_controller))
    return manager
