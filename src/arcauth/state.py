"""Observable authentication state.

:class:`AuthenticationState` is the snapshot a UI layer renders from. It
is owned by :class:`~arcauth.auth.manager.AuthenticationManager`, which is
the only writer: the ``_set_*`` mutators are internal to the package.
Everyone else reads the public properties or subscribes to change
notifications::

    unsubscribe = manager.state.subscribe(lambda state: render(state))
    ...
    unsubscribe()

The state is not thread-safe. Reads, writes and listener callbacks all
happen on the manager's execution context (normally one asyncio event
loop).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from arcauth.exceptions import AuthenticationError
from arcauth.models import AuthCredential, AuthProvider

logger = logging.getLogger(__name__)

StateListener = Callable[["AuthenticationState"], None]


class AuthenticationState:
    """Current authentication snapshot with change notifications.

    Invariant: :attr:`is_authenticated` is ``True`` exactly when
    :attr:`current_credential` is set. Entering the loading state clears
    :attr:`last_error`; any terminal transition clears :attr:`is_loading`.
    """

    def __init__(self) -> None:
        self._is_authenticated = False
        self._current_credential: Optional[AuthCredential] = None
        self._is_loading = False
        self._last_error: Optional[AuthenticationError] = None
        self._listeners: list[StateListener] = []

    # ------------------------------------------------------------------ #
    # Read-only view
    # ------------------------------------------------------------------ #

    @property
    def is_authenticated(self) -> bool:
        return self._is_authenticated

    @property
    def current_credential(self) -> Optional[AuthCredential]:
        return self._current_credential

    @property
    def current_provider(self) -> Optional[AuthProvider]:
        """Provider of the current credential, if any."""
        if self._current_credential is None:
            return None
        return self._current_credential.provider

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def last_error(self) -> Optional[AuthenticationError]:
        return self._last_error

    def snapshot(self) -> dict[str, Any]:
        """Return the current fields as a plain, JSON-friendly dict."""
        credential = self._current_credential
        return {
            "is_authenticated": self._is_authenticated,
            "is_loading": self._is_loading,
            "current_provider": self.current_provider.value if self.current_provider else None,
            "user_id": credential.user_id if credential else None,
            "email": credential.email if credential else None,
            "display_name": credential.display_name if credential else None,
            "last_error": self._last_error.description if self._last_error else None,
        }

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* to be called with this state after every change.

        Args:
            listener: Callable receiving the :class:`AuthenticationState`.

        Returns:
            A callable that removes the subscription. Calling it twice is
            harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                # A broken subscriber must not break the auth flow.
                logger.exception("Authentication state listener %r failed", listener)

    # ------------------------------------------------------------------ #
    # Mutators (manager only)
    # ------------------------------------------------------------------ #

    def _set_loading(self, loading: bool) -> None:
        self._is_loading = loading
        if loading:
            self._last_error = None
        self._notify()

    def _set_authenticated(self, credential: AuthCredential) -> None:
        self._current_credential = credential
        self._is_authenticated = True
        self._is_loading = False
        self._last_error = None
        self._notify()

    def _set_unauthenticated(self) -> None:
        self._current_credential = None
        self._is_authenticated = False
        self._is_loading = False
        self._notify()

    def _set_error(self, error: AuthenticationError) -> None:
        self._last_error = error
        self._is_loading = False
        self._notify()

    def _clear_error(self) -> None:
        self._last_error = None
        self._notify()

    def __repr__(self) -> str:
        return (
            f"AuthenticationState(is_authenticated={self._is_authenticated}, "
            f"is_loading={self._is_loading}, provider={self.current_provider}, "
            f"last_error={self._last_error!r})"
        )
