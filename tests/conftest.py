"""Shared test fixtures for arcauth.

Provides in-memory test doubles for the storage and provider interfaces,
an isolated XDG environment, and output/CLI helpers. These fixtures are
discovered automatically by pytest.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from arcauth.auth.base import AuthenticationProvider, RevocationCheckingProvider
from arcauth.auth.manager import AuthenticationManager
from arcauth.auth.storage import AuthStorage
from arcauth.models import AuthCredential, AuthenticationConfiguration, AuthProvider, CredentialState
from arcauth.output import OutputFormat, OutputManager, reset_output, set_output
from arcauth.preferences import PreferenceStore


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class MockAuthStorage(AuthStorage):
    """In-memory storage that counts calls and can be told to fail."""

    def __init__(self, credential: Optional[AuthCredential] = None) -> None:
        self.stored_credential = credential
        self.save_error: Optional[Exception] = None
        self.get_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.save_call_count = 0
        self.get_call_count = 0
        self.delete_call_count = 0

    async def save_credential(self, credential: AuthCredential) -> None:
        self.save_call_count += 1
        if self.save_error is not None:
            raise self.save_error
        self.stored_credential = credential

    async def get_credential(self) -> Optional[AuthCredential]:
        self.get_call_count += 1
        if self.get_error is not None:
            raise self.get_error
        return self.stored_credential

    async def delete_credential(self) -> None:
        self.delete_call_count += 1
        if self.delete_error is not None:
            raise self.delete_error
        self.stored_credential = None

    async def has_stored_credential(self) -> bool:
        return self.stored_credential is not None


class MockAuthenticationProvider(AuthenticationProvider):
    """Provider returning a configurable credential or error."""

    def __init__(self, provider_id: str = "mock", display_name: str = "Mock") -> None:
        self._provider_id = provider_id
        self._display_name = display_name
        self.available = True
        self.authenticate_result: AuthCredential | Exception = AuthCredential(
            user_id="mock_user", provider=AuthProvider.APPLE
        )
        self.authenticate_call_count = 0
        self.sign_out_error: Optional[Exception] = None
        self.sign_out_call_count = 0
        self.credential_state = CredentialState.AUTHORIZED

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def is_available(self) -> bool:
        return self.available

    async def authenticate(self) -> AuthCredential:
        self.authenticate_call_count += 1
        if isinstance(self.authenticate_result, Exception):
            raise self.authenticate_result
        return self.authenticate_result

    async def sign_out(self) -> None:
        self.sign_out_call_count += 1
        if self.sign_out_error is not None:
            raise self.sign_out_error

    async def check_credential_state(self) -> CredentialState:
        return self.credential_state


class MockRevocationProvider(MockAuthenticationProvider, RevocationCheckingProvider):
    """Mock provider that also answers per-user revocation checks."""

    def __init__(self, provider_id: str = "apple", display_name: str = "Apple") -> None:
        super().__init__(provider_id, display_name)
        self.checked_user_ids: list[str] = []
        self.check_error: Optional[Exception] = None

    async def check_credential_state_for(self, user_id: str) -> CredentialState:
        self.checked_user_ids.append(user_id)
        if self.check_error is not None:
            raise self.check_error
        return self.credential_state


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    CliRunner swaps sys.stdout/sys.stderr; a cached manager would keep
    references to the closed streams.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear ARCAUTH_* variables.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setattr("arcauth.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "ARCAUTH_SERVER_BASE_URL",
        "ARCAUTH_VERIFY_ON_RESTORE",
        "ARCAUTH_PERSIST_DISPLAY_NAME",
    ]:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


# ---------------------------------------------------------------------------
# Manager fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage() -> MockAuthStorage:
    return MockAuthStorage()


@pytest.fixture
def preferences(tmp_path: Path) -> PreferenceStore:
    return PreferenceStore(tmp_path / "preferences.json")


@pytest.fixture
def provider() -> MockAuthenticationProvider:
    return MockAuthenticationProvider()


@pytest.fixture
def manager(
    storage: MockAuthStorage,
    preferences: PreferenceStore,
    provider: MockAuthenticationProvider,
) -> AuthenticationManager:
    """Manager wired to the mock storage with the mock provider registered."""
    mgr = AuthenticationManager(
        storage=storage,
        configuration=AuthenticationConfiguration(),
        preferences=preferences,
    )
    mgr.register(provider)
    return mgr


# ---------------------------------------------------------------------------
# Output / CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
