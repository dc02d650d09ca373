"""
Credential storage backends.

A credential store is synchronous named key/value storage holding strings
and lists of strings. The key ledger reads it fresh on every lookup so
operator edits take effect immediately.
"""

from __future__ import annotations

import abc
import json
import logging
import os
from pathlib import Path
from typing import Any

from llm_gateway.core.exceptions import StorageError

_logger = logging.getLogger(__name__)

FILE_PERMISSIONS = 0o600


class CredentialStore(abc.ABC):
    """Abstract named value storage for API keys."""

    @abc.abstractmethod
    def get_string(self, name: str) -> str:
        """Return the stored string, or "" when unset."""

    @abc.abstractmethod
    def set_string(self, name: str, value: str) -> None:
        """Store a string value."""

    @abc.abstractmethod
    def get_list(self, name: str) -> list[str]:
        """Return the stored list, or [] when unset or unreadable."""

    @abc.abstractmethod
    def set_list(self, name: str, values: list[str]) -> None:
        """Store a list of strings."""


class InMemoryCredentialStore(CredentialStore):
    """In-memory storage for tests and ephemeral sessions."""

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    def get_string(self, name: str) -> str:
        value = self._values.get(name)
        return value if isinstance(value, str) else ""

    def set_string(self, name: str, value: str) -> None:
        self._values[name] = value

    def get_list(self, name: str) -> list[str]:
        value = self._values.get(name)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    def set_list(self, name: str, values: list[str]) -> None:
        self._values[name] = list(values)

    def __repr__(self) -> str:
        return f"InMemoryCredentialStore(names={sorted(self._values)})"


class EnvCredentialStore(CredentialStore):
    """Reads credentials from environment variables.

    List values are JSON arrays (``["k1", "k2"]``); whitespace-separated
    values are accepted as well. Writes update ``os.environ`` for the
    current process only.
    """

    def get_string(self, name: str) -> str:
        return os.environ.get(name, "")

    def set_string(self, name: str, value: str) -> None:
        os.environ[name] = value

    def get_list(self, name: str) -> list[str]:
        raw = os.environ.get(name, "").strip()
        if not raw:
            return []
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except ValueError as e:
                _logger.warning("Failed to parse %s as a JSON list: %s", name, e)
                return []
            if not isinstance(parsed, list):
                return []
            return [item for item in parsed if isinstance(item, str)]
        return raw.split()

    def set_list(self, name: str, values: list[str]) -> None:
        os.environ[name] = json.dumps(list(values))


class JsonFileCredentialStore(CredentialStore):
    """File-based credential storage.

    All values live in one JSON object. The file is created with mode 0600
    on Unix systems. A missing file reads as empty; a corrupted one raises
    StorageError.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except ValueError as e:
            _logger.error("Corrupted credentials file %s: %s", self.path, e)
            raise StorageError(f"Invalid credentials data in {self.path}: {e}") from e
        except OSError as e:
            _logger.error("Failed to read credentials file %s: %s", self.path, e)
            raise StorageError(f"Cannot read credentials file: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Invalid credentials data in {self.path}: expected an object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                if hasattr(os, "fchmod"):
                    os.fchmod(f.fileno(), FILE_PERMISSIONS)
                json.dump(data, f, indent=2)
        except OSError as e:
            _logger.error("Failed to write credentials file %s: %s", self.path, e)
            raise StorageError(f"Cannot write credentials file: {e}") from e

    def get_string(self, name: str) -> str:
        value = self._read().get(name)
        return value if isinstance(value, str) else ""

    def set_string(self, name: str, value: str) -> None:
        data = self._read()
        data[name] = value
        self._write(data)

    def get_list(self, name: str) -> list[str]:
        value = self._read().get(name)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    def set_list(self, name: str, values: list[str]) -> None:
        data = self._read()
        data[name] = list(values)
        self._write(data)


__all__ = [
    "CredentialStore",
    "InMemoryCredentialStore",
    "EnvCredentialStore",
    "JsonFileCredentialStore",
]
