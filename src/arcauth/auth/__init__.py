"""Authentication manager, provider interface and credential storage.

The main entry points are:

- :class:`AuthenticationProvider` -- abstract base class for identity providers.
- :class:`AuthenticationManager` -- registry of providers and owner of the
  observable :class:`~arcauth.state.AuthenticationState`.
- :func:`create_default_manager` -- factory returning a manager with the
  built-in providers registered.
- :class:`AuthStorage` / :class:`FileCredentialStore` -- persistence of the
  single current credential.
"""

from arcauth.auth.base import AuthenticationProvider, RevocationCheckingProvider
from arcauth.auth.manager import AuthenticationManager, create_default_manager
from arcauth.auth.storage import AuthStorage, FileCredentialStore

__all__ = [
    "AuthenticationProvider",
    "RevocationCheckingProvider",
    "AuthenticationManager",
    "AuthStorage",
    "FileCredentialStore",
    "create_default_manager",
]
