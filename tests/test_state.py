"""Tests for the observable authentication state."""

from __future__ import annotations

from arcauth.exceptions import NetworkError, UserCancelledError
from arcauth.models import AuthCredential, AuthProvider
from arcauth.state import AuthenticationState


def _credential() -> AuthCredential:
    return AuthCredential(user_id="user_1", email="jane@example.com", provider=AuthProvider.APPLE)


class TestTransitions:
    def test_authenticated_iff_credential(self) -> None:
        state = AuthenticationState()
        state._set_authenticated(_credential())
        assert state.is_authenticated is True
        assert state.current_credential is not None
        assert state.current_provider == AuthProvider.APPLE

        state._set_unauthenticated()
        assert state.is_authenticated is False
        assert state.current_credential is None
        assert state.current_provider is None

    def test_loading_clears_previous_error(self) -> None:
        state = AuthenticationState()
        state._set_error(UserCancelledError())
        assert state.last_error == UserCancelledError()

        state._set_loading(True)
        assert state.is_loading is True
        assert state.last_error is None

    def test_error_ends_loading(self) -> None:
        state = AuthenticationState()
        state._set_loading(True)
        state._set_error(NetworkError())
        assert state.is_loading is False
        assert state.last_error == NetworkError()

    def test_authenticated_ends_loading_and_clears_error(self) -> None:
        state = AuthenticationState()
        state._set_error(NetworkError())
        state._set_loading(True)
        state._set_authenticated(_credential())
        assert state.is_loading is False
        assert state.last_error is None

    def test_clear_error(self) -> None:
        state = AuthenticationState()
        state._set_error(NetworkError())
        state._clear_error()
        assert state.last_error is None


class TestSubscriptions:
    def test_listener_called_after_each_change(self) -> None:
        state = AuthenticationState()
        seen: list[bool] = []
        state.subscribe(lambda s: seen.append(s.is_authenticated))

        state._set_loading(True)
        state._set_authenticated(_credential())
        state._set_unauthenticated()

        assert seen == [False, True, False]

    def test_unsubscribe(self) -> None:
        state = AuthenticationState()
        calls: list[AuthenticationState] = []
        unsubscribe = state.subscribe(calls.append)

        unsubscribe()
        unsubscribe()
        state._set_loading(True)

        assert calls == []

    def test_failing_listener_does_not_block_others(self) -> None:
        state = AuthenticationState()
        seen: list[bool] = []

        def broken(_: AuthenticationState) -> None:
            raise RuntimeError("render failed")

        state.subscribe(broken)
        state.subscribe(lambda s: seen.append(s.is_loading))

        state._set_loading(True)

        assert seen == [True]
        assert state.is_loading is True


class TestSnapshot:
    def test_empty_snapshot(self) -> None:
        snapshot = AuthenticationState().snapshot()
        assert snapshot == {
            "is_authenticated": False,
            "is_loading": False,
            "current_provider": None,
            "user_id": None,
            "email": None,
            "display_name": None,
            "last_error": None,
        }

    def test_authenticated_snapshot(self) -> None:
        state = AuthenticationState()
        state._set_authenticated(_credential())
        snapshot = state.snapshot()
        assert snapshot["is_authenticated"] is True
        assert snapshot["current_provider"] == "apple"
        assert snapshot["user_id"] == "user_1"
        assert snapshot["email"] == "jane@example.com"

    def test_error_snapshot_uses_description(self) -> None:
        state = AuthenticationState()
        state._set_error(UserCancelledError())
        assert state.snapshot()["last_error"] == "Authentication was cancelled by the user"
