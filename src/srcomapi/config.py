"""Configuration management with XDG paths, atomic writes, and env overrides.

This module handles all persistent configuration for srcomapi:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.srcomapi/`` on macOS and Windows.  See :func:`get_config_dir` and
  :func:`get_cache_dir`.
* **Client config** -- a single :class:`~srcomapi.models.ClientConfig`
  JSON file, managed by :func:`load_client_config` and
  :func:`save_client_config`.
* **Environment overrides** -- ``SRCOMAPI_API_KEY``,
  ``SRCOMAPI_USER_AGENT`` and ``SRCOMAPI_CACHE_FILE`` take precedence over
  the file, see :func:`resolve_client_config`.

All file writes, including the response cache flush, go through
:func:`atomic_write` so a crash never leaves a half-written file behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import SecretStr, ValidationError

from srcomapi.exceptions import ConfigError
from srcomapi.models import ClientConfig

_APP_NAME = "srcomapi"
_CONFIG_FILENAME = "config.json"
_CACHE_FILENAME = "responses.json"

ENV_API_KEY = "SRCOMAPI_API_KEY"
ENV_USER_AGENT = "SRCOMAPI_USER_AGENT"
ENV_CACHE_FILE = "SRCOMAPI_CACHE_FILE"


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/srcomapi/`` (default ``~/.config/srcomapi/``).
    On macOS/Windows: ``~/.srcomapi/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the persisted response cache.  Its contents can be deleted at
    any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/srcomapi/`` (default ``~/.cache/srcomapi/``).
    On macOS/Windows: ``~/.srcomapi/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_cache_path() -> Path:
    """Location of the response cache file used by the CLI."""
    return get_cache_dir() / _CACHE_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure the
    temp file is cleaned up and the original exception re-raised.
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
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Client config ---


def _config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_client_config(path: Optional[Path] = None) -> ClientConfig:
    """Load the client configuration.

    Args:
        path: Config file to read.  Defaults to ``config.json`` in
            :func:`get_config_dir`.

    Returns:
        The deserialised :class:`~srcomapi.models.ClientConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = path or _config_path()
    if not path.is_file():
        return ClientConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ClientConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_client_config(config: ClientConfig, path: Optional[Path] = None) -> None:
    """Persist the client configuration atomically.

    The API key is never written; supply it through ``SRCOMAPI_API_KEY``.
    """
    data = config.model_dump(mode="json", exclude={"api_key"})
    atomic_write(path or _config_path(), json.dumps(data, indent=2) + "\n")


def resolve_client_config(
    base: Optional[ClientConfig] = None,
    api_key: Optional[str] = None,
) -> ClientConfig:
    """Apply environment and explicit overrides on top of *base*.

    Precedence, highest first: the *api_key* argument, environment
    variables, then *base* (by default the config file).

    Raises:
        ConfigError: If an override produces an invalid configuration.
    """
    config = base if base is not None else load_client_config()
    data = config.model_dump()

    key = api_key or os.environ.get(ENV_API_KEY)
    if key:
        data["api_key"] = SecretStr(key)

    user_agent = os.environ.get(ENV_USER_AGENT)
    if user_agent:
        data["request"]["user_agent"] = user_agent

    cache_file = os.environ.get(ENV_CACHE_FILE)
    if cache_file:
        data["cache"]["path"] = Path(cache_file)

    try:
        return ClientConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration override: {exc}") from exc
