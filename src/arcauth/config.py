"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent state locations for arcauth:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.arcauth/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Configuration** -- A single
  :class:`~arcauth.models.AuthenticationConfiguration` JSON file. See
  :func:`load_configuration` and :func:`save_configuration`.
* **Precedence resolution** -- environment variables override the config
  file, which overrides the model defaults.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so that a crash never leaves a half-written
credential or configuration file behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from arcauth.exceptions import ConfigError
from arcauth.models import AuthenticationConfiguration

_APP_NAME = "arcauth"
_CONFIG_FILENAME = "config.json"

ENV_SERVER_BASE_URL = "ARCAUTH_SERVER_BASE_URL"
ENV_VERIFY_ON_RESTORE = "ARCAUTH_VERIFY_ON_RESTORE"
ENV_PERSIST_DISPLAY_NAME = "ARCAUTH_PERSIST_DISPLAY_NAME"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/arcauth/`` (default ``~/.config/arcauth/``).
    On macOS/Windows: ``~/.arcauth/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (credentials, preferences), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/arcauth/`` (default ``~/.local/share/arcauth/``).
    On macOS/Windows: ``~/.arcauth/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.

    Args:
        path: Destination file.
        data: Text content to write (UTF-8).
        mode: Optional permission bits applied to the temp file before any
            content is written (e.g. ``0o600`` for secrets).
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Configuration ---


def _config_path() -> Path:
    """Path to the configuration file."""
    return get_config_dir() / _CONFIG_FILENAME


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Environment variable {name} must be a boolean, got '{value}'")


def _env_overrides() -> dict[str, Any]:
    """Collect configuration overrides from ``ARCAUTH_*`` environment variables."""
    overrides: dict[str, Any] = {}
    base_url = os.environ.get(ENV_SERVER_BASE_URL)
    if base_url:
        overrides["server_base_url"] = base_url
    verify = os.environ.get(ENV_VERIFY_ON_RESTORE)
    if verify:
        overrides["verify_apple_credentials_on_restore"] = _parse_bool(
            ENV_VERIFY_ON_RESTORE, verify
        )
    persist = os.environ.get(ENV_PERSIST_DISPLAY_NAME)
    if persist:
        overrides["persist_display_name_in_preferences"] = _parse_bool(
            ENV_PERSIST_DISPLAY_NAME, persist
        )
    return overrides


def load_configuration(path: Optional[Path] = None) -> AuthenticationConfiguration:
    """Load the effective configuration.

    Precedence (high to low):
        1. Environment variables (``ARCAUTH_SERVER_BASE_URL``,
           ``ARCAUTH_VERIFY_ON_RESTORE``, ``ARCAUTH_PERSIST_DISPLAY_NAME``)
        2. Config file (``~/.config/arcauth/config.json``)
        3. Defaults

    Args:
        path: Optional explicit config file path.

    Returns:
        The resolved :class:`~arcauth.models.AuthenticationConfiguration`.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            validation, or an environment override is malformed.
    """
    path = path or _config_path()
    data: dict[str, Any] = {}
    if path.is_file():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            raise ConfigError(f"Invalid configuration at {path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"Invalid configuration at {path}: expected a JSON object")
        data.update(loaded)

    data.update(_env_overrides())
    try:
        return AuthenticationConfiguration.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration at {path}: {exc}") from exc


def save_configuration(
    config: AuthenticationConfiguration, path: Optional[Path] = None
) -> None:
    """Persist the configuration atomically to disk.

    Args:
        config: The configuration to save.
        path: Optional explicit config file path.
    """
    data = config.model_dump(mode="json")
    atomic_write(path or _config_path(), json.dumps(data, indent=2) + "\n")
