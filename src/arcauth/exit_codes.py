"""Numeric process exit codes used by the ``arcauth`` command line.

Each constant maps to a failure group of the error taxonomy and is
referenced by the corresponding :class:`~arcauth.exceptions.ArcAuthError`
subclass, so shell wrappers can tell a cancelled sign-in from a storage
or network failure without parsing stderr.

Example::

    $ arcauth login apple
    $ echo $?
    4   # EXIT_CANCELLED -- the user dismissed the consent dialog
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or configuration."""

EXIT_AUTH_FAILURE = 3
"""The identity provider rejected or could not complete authentication."""

EXIT_CANCELLED = 4
"""The user cancelled the authentication flow."""

EXIT_SESSION_ERROR = 5
"""There is no usable session (none active, revoked, or tokens expired)."""

EXIT_STORAGE_ERROR = 6
"""The credential could not be saved, read, or deleted."""

EXIT_NETWORK_ERROR = 7
"""A network-level error occurred or the backend returned an error status."""
