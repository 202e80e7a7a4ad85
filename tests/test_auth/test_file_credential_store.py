"""Tests for the file-backed credential store."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest

from arcauth.auth.storage import FileCredentialStore
from arcauth.constants import CREDENTIAL_SERVICE
from arcauth.exceptions import StorageDeleteFailedError, StorageSaveFailedError
from arcauth.models import AuthCredential, AuthProvider


@pytest.fixture()
def store(tmp_path: Path) -> FileCredentialStore:
    return FileCredentialStore(path=tmp_path / "credential.json")


def _credential(user_id: str = "user_1") -> AuthCredential:
    return AuthCredential(
        user_id=user_id,
        email="jane@example.com",
        provider=AuthProvider.APPLE,
        identity_token=b"header.payload.signature",
        authorization_code=b"code",
    )


class TestFileCredentialStore:
    @pytest.mark.asyncio
    async def test_empty_store(self, store: FileCredentialStore) -> None:
        assert await store.get_credential() is None
        assert await store.has_stored_credential() is False

    @pytest.mark.asyncio
    async def test_save_and_get(self, store: FileCredentialStore) -> None:
        credential = _credential()
        await store.save_credential(credential)

        assert await store.has_stored_credential() is True
        assert await store.get_credential() == credential

    @pytest.mark.asyncio
    async def test_save_replaces_previous(self, store: FileCredentialStore) -> None:
        await store.save_credential(_credential("first"))
        await store.save_credential(_credential("second"))

        restored = await store.get_credential()
        assert restored is not None
        assert restored.user_id == "second"
        assert [p.name for p in store.path.parent.iterdir()] == ["credential.json"]

    @pytest.mark.asyncio
    async def test_record_uses_wire_format(self, store: FileCredentialStore) -> None:
        await store.save_credential(_credential())
        data = json.loads(store.path.read_text())
        assert data["userID"] == "user_1"
        assert data["provider"] == "apple"

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    @pytest.mark.asyncio
    async def test_file_is_private(self, store: FileCredentialStore) -> None:
        await store.save_credential(_credential())
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    @pytest.mark.asyncio
    async def test_corrupt_record_reads_as_none(self, store: FileCredentialStore) -> None:
        store.path.write_text("{not json")
        assert await store.get_credential() is None

    @pytest.mark.asyncio
    async def test_delete(self, store: FileCredentialStore) -> None:
        await store.save_credential(_credential())
        await store.delete_credential()
        assert await store.get_credential() is None
        assert not store.path.exists()

    @pytest.mark.asyncio
    async def test_delete_when_empty_succeeds(self, store: FileCredentialStore) -> None:
        await store.delete_credential()
        assert await store.has_stored_credential() is False

    @pytest.mark.asyncio
    async def test_save_failure(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = FileCredentialStore(path=blocker / "credential.json")

        with pytest.raises(StorageSaveFailedError):
            await store.save_credential(_credential())

    @pytest.mark.asyncio
    async def test_delete_failure(self, store: FileCredentialStore, monkeypatch) -> None:
        def fail() -> None:
            raise PermissionError("read-only filesystem")

        monkeypatch.setattr(store, "_delete", fail)

        with pytest.raises(StorageDeleteFailedError):
            await store.delete_credential()

    def test_default_path(self, isolated_config: Path) -> None:
        store = FileCredentialStore()
        expected = isolated_config / "data" / "arcauth" / "credentials" / f"{CREDENTIAL_SERVICE}.json"
        assert store.path == expected
