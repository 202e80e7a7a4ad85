"""Credential storage contract and the default file-backed store.

:class:`AuthStorage` is the manager's only persistence dependency. It
holds exactly one "current" credential:

- :meth:`~AuthStorage.save_credential` replaces any stored credential;
  two credentials never coexist.
- :meth:`~AuthStorage.get_credential` returns ``None`` rather than
  raising when nothing is stored or the store is unreadable.
- :meth:`~AuthStorage.delete_credential` raises
  :class:`~arcauth.exceptions.StorageDeleteFailedError` when removal
  cannot be confirmed. Deleting when nothing is stored succeeds.
- :meth:`~AuthStorage.has_stored_credential` is a cheap existence probe.

:class:`FileCredentialStore` is the default implementation. It keeps the
record in ``~/.local/share/arcauth/credentials/<service>.json`` (XDG) or
the platform-equivalent directory, written atomically with ``0o600``
permissions so the secret is readable only by the current user and never
leaves this machine.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from arcauth.config import atomic_write, get_data_dir
from arcauth.constants import CREDENTIAL_SERVICE
from arcauth.exceptions import StorageDeleteFailedError, StorageSaveFailedError
from arcauth.models import AuthCredential

logger = logging.getLogger(__name__)


class AuthStorage(ABC):
    """Abstract persistence for the single current credential."""

    @abstractmethod
    async def save_credential(self, credential: AuthCredential) -> None:
        """Persist *credential*, replacing any stored one.

        Raises:
            StorageSaveFailedError: If the credential could not be written.
        """
        ...

    @abstractmethod
    async def get_credential(self) -> Optional[AuthCredential]:
        """Return the stored credential, or ``None``."""
        ...

    @abstractmethod
    async def delete_credential(self) -> None:
        """Remove the stored credential.

        Raises:
            StorageDeleteFailedError: If removal could not be confirmed.
        """
        ...

    @abstractmethod
    async def has_stored_credential(self) -> bool:
        """Return whether a credential appears to be stored."""
        ...


def _credentials_dir() -> Path:
    """Return the credentials directory, creating it if needed."""
    path = get_data_dir() / "credentials"
    path.mkdir(parents=True, exist_ok=True)
    return path


class FileCredentialStore(AuthStorage):
    """Store the current credential as a single JSON file.

    Writes go to a temporary file in the same directory that is fsynced
    and renamed over the record, so a save either fully replaces the
    previous credential or leaves it untouched.

    Args:
        service: Identifier the record is keyed by; becomes the file stem.
        path: Optional explicit file path, overriding *service*.

    Example::

        store = FileCredentialStore()
        await store.save_credential(credential)
        assert await store.get_credential() == credential
    """

    def __init__(
        self,
        service: str = CREDENTIAL_SERVICE,
        path: Optional[Path] = None,
    ) -> None:
        self._service = service
        self._path = path

    @property
    def path(self) -> Path:
        """The filesystem path of the credential record."""
        if self._path is None:
            self._path = _credentials_dir() / f"{self._service}.json"
        return self._path

    # ------------------------------------------------------------------ #
    # Blocking helpers (run in a worker thread)
    # ------------------------------------------------------------------ #

    def _save(self, credential: AuthCredential) -> None:
        text = credential.model_dump_json(by_alias=True, indent=2) + "\n"
        atomic_write(self.path, text, mode=0o600)

    def _load(self) -> Optional[AuthCredential]:
        try:
            if not self.path.is_file():
                return None
            text = self.path.read_text(encoding="utf-8")
            return AuthCredential.model_validate_json(text)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable credential record: %s", exc)
            return None

    def _delete(self) -> None:
        self.path.unlink(missing_ok=True)

    # ------------------------------------------------------------------ #
    # AuthStorage
    # ------------------------------------------------------------------ #

    async def save_credential(self, credential: AuthCredential) -> None:
        try:
            await asyncio.to_thread(self._save, credential)
        except OSError as exc:
            raise StorageSaveFailedError(exc) from exc

    async def get_credential(self) -> Optional[AuthCredential]:
        return await asyncio.to_thread(self._load)

    async def delete_credential(self) -> None:
        try:
            await asyncio.to_thread(self._delete)
        except OSError as exc:
            raise StorageDeleteFailedError(exc) from exc

    async def has_stored_credential(self) -> bool:
        try:
            return await asyncio.to_thread(self.path.is_file)
        except OSError:
            return False
