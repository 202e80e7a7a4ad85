"""Session commands -- sign in, sign out and inspect the current session.

Every command builds an :class:`~arcauth.auth.manager.AuthenticationManager`
from the saved configuration, restores the persisted session where it
needs one, and reports through :mod:`arcauth.output`.

Typical workflow::

    arcauth providers        # what can I sign in with?
    arcauth login apple      # sign in
    arcauth status           # who is signed in?
    arcauth logout
"""

from __future__ import annotations

import asyncio

import typer

from arcauth.auth.manager import AuthenticationManager, create_default_manager
from arcauth.config import load_configuration
from arcauth.exceptions import ArcAuthError, AuthenticationError
from arcauth.exit_codes import EXIT_SESSION_ERROR
from arcauth.models import CredentialState
from arcauth.output import error, info, print_record, print_table, success, suggest, warning


def _build_manager() -> AuthenticationManager:
    return create_default_manager(configuration=load_configuration())


def _fail(exc: ArcAuthError) -> typer.Exit:
    """Report *exc* on stderr and return the ``typer.Exit`` to raise."""
    error(str(exc))
    if isinstance(exc, AuthenticationError) and exc.recovery_suggestion:
        suggest(exc.recovery_suggestion)
    return typer.Exit(code=exc.exit_code)


def status_command() -> None:
    """Restore the saved session and print the authentication state.

    Example::

        arcauth status
        arcauth --json status
    """

    async def _run() -> AuthenticationManager:
        manager = _build_manager()
        await manager.restore_session()
        return manager

    try:
        manager = asyncio.run(_run())
    except ArcAuthError as exc:
        raise _fail(exc) from None

    print_record(manager.state.snapshot(), title="Session")
    if not manager.state.is_authenticated:
        suggest("Sign in: arcauth login apple")


def login_command(
    provider_id: str = typer.Argument(help="Identifier of the provider, e.g. 'apple'."),
) -> None:
    """Sign in with a registered provider and persist the credential.

    The command line has no platform authorization controller, so the
    Apple provider is registered but unavailable and ``login apple`` fails
    with a provider error. Embedding applications pass their controller to
    :func:`~arcauth.auth.manager.create_default_manager`.

    Example::

        arcauth login apple
    """

    async def _run() -> AuthenticationManager:
        manager = _build_manager()
        await manager.authenticate(provider_id)
        return manager

    try:
        manager = asyncio.run(_run())
    except ArcAuthError as exc:
        raise _fail(exc) from None

    credential = manager.state.current_credential
    name = (credential.display_name or credential.email or credential.user_id) if credential else provider_id
    success(f"Signed in as {name}.")


def logout_command() -> None:
    """Sign out of the current session and delete the stored credential."""

    async def _run() -> None:
        manager = _build_manager()
        await manager.restore_session()
        await manager.sign_out()

    try:
        asyncio.run(_run())
    except ArcAuthError as exc:
        raise _fail(exc) from None

    success("Signed out.")


def providers_command() -> None:
    """List the registered providers and whether they can be used here."""
    try:
        manager = _build_manager()
    except ArcAuthError as exc:
        raise _fail(exc) from None

    rows = []
    for provider_id in manager.list_provider_ids():
        provider = manager.get_provider(provider_id)
        if provider is None:
            continue
        rows.append([provider_id, provider.display_name, "yes" if provider.is_available else "no"])

    if not rows:
        info("No providers registered.")
        return
    print_table(["Provider", "Name", "Available"], rows, title="Providers")
    if not manager.available_providers:
        suggest("No platform authorization controller is configured; sign-in is unavailable here.")


def check_command() -> None:
    """Ask the provider of the restored session whether it is still authorized.

    Exits with the session error code when the provider reports the
    credential revoked or transferred.
    """

    async def _run() -> tuple[AuthenticationManager, CredentialState]:
        manager = _build_manager()
        await manager.restore_session()
        return manager, await manager.check_credential_state()

    try:
        manager, credential_state = asyncio.run(_run())
    except ArcAuthError as exc:
        raise _fail(exc) from None

    provider = manager.state.current_provider
    print_record(
        {
            "provider": provider.value if provider else None,
            "credential_state": credential_state.value,
        },
        title="Credential",
    )
    if not manager.state.is_authenticated:
        info("No active session.")
        return
    if credential_state in (CredentialState.REVOKED, CredentialState.TRANSFERRED):
        warning(f"Credential is {credential_state.value}.")
        raise typer.Exit(code=EXIT_SESSION_ERROR)


def whoami_command() -> None:
    """Print the display name remembered from the last sign-in."""
    try:
        manager = _build_manager()
    except ArcAuthError as exc:
        raise _fail(exc) from None

    name = manager.saved_display_name
    if name is None:
        info("No saved display name.")
        return
    typer.echo(name)
