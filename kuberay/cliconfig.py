"""Command-line settings stored in a YAML file, and the command-line error types."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

import yaml

DEFAULT_RPC_ADDRESS = "127.0.0.1"
DEFAULT_RPC_PORT = "8887"
CONFIG_FILE_NAME = ".kuberay.yaml"
SUPPORTED_KEYS = frozenset({"endpoint"})


class FlagError(Exception):
    """An error raised while processing command-line flags."""

    def __init__(self, err: BaseException):
        super().__init__(str(err))
        self.err = err
        self.__cause__ = err

    def __str__(self) -> str:
        return str(self.err)


class SilentError(Exception):
    """An error that ends the command with status 1 and prints nothing."""

    def __init__(self, message: str = "SilentError"):
        super().__init__(message)


class UnsupportedKeyError(ValueError):
    """A settings key that the command line does not know."""

    def __init__(self, key: str):
        supported = " ".join(sorted(SUPPORTED_KEYS))
        super().__init__(f"key {key} is not supported, supported keys are: [{supported}]")
        self.key = key


def default_endpoint() -> str:
    """The address of the API server used when none is configured."""
    return f"{DEFAULT_RPC_ADDRESS}:{DEFAULT_RPC_PORT}"


def default_config_path() -> Path:
    """The settings file in the user's home directory."""
    return Path.home() / CONFIG_FILE_NAME


def validate_key(key: str) -> None:
    """Raise UnsupportedKeyError unless ``key`` is a known setting."""
    if key not in SUPPORTED_KEYS:
        raise UnsupportedKeyError(key)


class ConfigStore:
    """Settings read from a YAML file, overridable by upper-case environment variables."""

    def __init__(self, path: str | os.PathLike[str] | None = None, environ: Mapping[str, str] | None = None):
        self.path = Path(path) if path is not None else default_config_path()
        self._environ = os.environ if environ is None else environ
        self._defaults: dict[str, str] = {"endpoint": default_endpoint()}
        self._overrides: dict[str, str] = {}
        self._data = self._load()

    def _load(self) -> dict[str, object]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError:
            return {}
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError:
            return {}
        if not isinstance(loaded, dict):
            return {}
        return {str(key).lower(): value for key, value in loaded.items()}

    def _settings(self) -> dict[str, object]:
        return {**self._defaults, **self._data, **self._overrides}

    def _write(self) -> None:
        try:
            self.path.write_text(
                yaml.safe_dump(self._settings(), default_flow_style=False), encoding="utf-8"
            )
        except OSError as err:
            raise OSError(f"Not able to write to config file {self.path}: {err}") from err

    def get(self, key: str) -> str:
        """Return the value of a setting, or an empty string if it has none."""
        validate_key(key)
        if key in self._overrides:
            return self._overrides[key]
        env_value = self._environ.get(key.upper())
        if env_value is not None:
            return env_value
        value = self._data.get(key, self._defaults.get(key))
        return "" if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        """Store a setting and write the file."""
        validate_key(key)
        self._overrides[key] = value
        self._write()

    def reset(self) -> None:
        """Restore the default endpoint and write the file."""
        self._overrides["endpoint"] = default_endpoint()
        self._write()

    def safe_write(self) -> bool:
        """Write the file only if it does not exist yet; return whether it was written."""
        if self.path.exists():
            return False
        self._write()
        return True