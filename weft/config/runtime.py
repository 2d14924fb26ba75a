"""
Runtime Settings Access.

Settings is an attribute proxy over a validated settings table. Writes are
validated against the schema and, when the proxy is bound to a file, flushed
to that file immediately.
"""

import threading
from pathlib import Path
from typing import Any

from weft.config.schema import ConfigField, complete_section, defaults
from weft.config.toml_handler import read_toml, update_section


class SettingsError(Exception):
    """Raised when settings cannot be loaded or flushed."""

    pass


class Settings:
    """
    Attribute proxy for weft settings.

    Example:
        settings = Settings("weft", SCHEMA, Path("config/weft.toml"))
        settings.mode                     # Read
        settings.mode = "persistent"      # Write (validated, flushed)
    """

    def __init__(
        self,
        section: str,
        schema: dict[str, ConfigField],
        config_file: Path | None = None,
    ):
        """
        Args:
            section: TOML table holding the settings
            schema: Field definitions
            config_file: File to load from and flush to; None keeps settings
                in memory only
        """
        # Bypass our __setattr__ for internal state
        object.__setattr__(self, "_section", section)
        object.__setattr__(self, "_schema", schema)
        object.__setattr__(self, "_config_file", config_file)
        object.__setattr__(self, "_lock", threading.Lock())
        object.__setattr__(self, "_values", defaults(schema))

        self._load()

    def _load(self) -> None:
        """Load the section from the bound file, filling gaps with defaults."""
        if self._config_file is None or not self._config_file.exists():
            return
        try:
            data = read_toml(self._config_file)
            values = complete_section(data.get(self._section, {}), self._schema)
        except Exception as e:
            raise SettingsError(
                f"Failed to load settings from {self._config_file}: {e}"
            ) from e
        object.__setattr__(self, "_values", values)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)

        if name not in self._schema:
            raise AttributeError(
                f"Setting '{name}' not found in schema for [{self._section}]"
            )
        return self._values[name]

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return

        if name not in self._schema:
            raise AttributeError(
                f"Setting '{name}' not found in schema for [{self._section}]"
            )

        self._schema[name].validate(value)

        with self._lock:
            self._values[name] = value
            self._flush()

    def _flush(self) -> None:
        """Write the section to the bound file, if any."""
        if self._config_file is None:
            return
        try:
            update_section(self._config_file, self._section, self._values)
        except Exception as e:
            raise SettingsError(
                f"Failed to flush settings to {self._config_file}: {e}"
            ) from e

    def as_dict(self) -> dict[str, Any]:
        """Snapshot of the current values."""
        return dict(self._values)

    def __repr__(self) -> str:
        return f"Settings([{self._section}], {self._values})"
