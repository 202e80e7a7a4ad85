"""arcauth -- provider-agnostic authentication client.

This package coordinates sign-in with third-party identity providers (Sign
in with Apple today; Google and email/password are reserved), persists the
resulting credential locally, and exposes an observable session state that
a UI layer renders from.

Typical usage::

    from arcauth.auth import create_default_manager

    manager = create_default_manager(apple_controller=controller)
    await manager.restore_session()
    if not manager.state.is_authenticated:
        await manager.authenticate("apple")

Modules:
    app: Typer application and ``arcauth`` console entry point.
    models: Pydantic credential, token and backend DTO models.
    state: Observable authentication state.
    config: XDG-aware configuration loading and atomic file writes.
    exceptions: Authentication error taxonomy with exit-code mapping.
    exit_codes: Numeric exit codes for the command line.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
