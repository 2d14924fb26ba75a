"""
weft Configuration - TOML-backed settings.

Settings live in the ``[weft]`` table of ``config/weft.toml`` by default.
A missing file or table means defaults; a partial table is completed with
defaults.

Example usage:
    import weft.config

    weft.config.get().mode                          # "in_place"
    weft.config.configure(mode="persistent")        # validated override
    weft.config.load(Path("settings/weft.toml"))    # bind to another file
"""

from pathlib import Path
from typing import Any

from weft.config.runtime import Settings, SettingsError
from weft.config.schema import ConfigField, SchemaError, ValidationError
from weft.config.toml_handler import TOMLError, generate_toml_from_schema

SECTION = "weft"

# Default config file path
DEFAULT_CONFIG_FILE = Path("config/weft.toml")


class ConfigError(Exception):
    """Base exception for config API errors."""

    pass


def field(
    type_: type,
    default: Any,
    description: str = "",
    choices: list[Any] | None = None,
) -> ConfigField:
    """
    Helper to create a ConfigField.

    Example:
        field(str, "in_place", "Application mode", choices=["in_place", "persistent"])
    """
    return ConfigField(
        type_=type_,
        default=default,
        description=description,
        choices=tuple(choices) if choices is not None else None,
    )


SCHEMA: dict[str, ConfigField] = {
    "mode": field(
        str,
        "in_place",
        "Default application mode: mutate the target class or derive a subclass",
        choices=["in_place", "persistent"],
    ),
    "warn_on_reapply": field(
        bool,
        True,
        "Emit a RuntimeWarning when a trait is applied twice to the same class",
    ),
    "include_object_members": field(
        bool,
        False,
        "Make names defined only on object (__repr__, __eq__, ...) block define traits",
    ),
}

_settings: Settings | None = None


def load(config_file: Path | None) -> Settings:
    """
    Load settings from a file and make them current.

    Args:
        config_file: TOML file to read and flush to; None for in-memory settings

    Returns:
        The new current Settings

    Raises:
        SettingsError: If the file exists but is invalid
    """
    global _settings
    _settings = Settings(SECTION, SCHEMA, config_file)
    return _settings


def get() -> Settings:
    """
    Return the current settings.

    On first use the default file is loaded if it exists; otherwise settings
    stay in memory and writes are not flushed anywhere.
    """
    if _settings is None:
        return load(DEFAULT_CONFIG_FILE if DEFAULT_CONFIG_FILE.exists() else None)
    return _settings


def configure(**overrides: Any) -> Settings:
    """
    Update current settings.

    Raises:
        ConfigError: If a name is not a known setting
        ValidationError: If a value fails validation
    """
    settings = get()
    unknown = [name for name in overrides if name not in SCHEMA]
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
    for name, value in overrides.items():
        setattr(settings, name, value)
    return settings


def reset() -> None:
    """Drop current settings; the next get() reloads the default file."""
    global _settings
    _settings = None


def generate_default(config_file: Path, overwrite: bool = False) -> Path:
    """
    Write a commented settings file holding the defaults.

    Raises:
        ConfigError: If the file exists and overwrite is False
    """
    if config_file.exists() and not overwrite:
        raise ConfigError(f"Config file already exists: {config_file}")
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(
        generate_toml_from_schema(SECTION, SCHEMA, {}), encoding="utf-8"
    )
    return config_file


__all__ = [
    "ConfigError",
    "ConfigField",
    "SchemaError",
    "Settings",
    "SettingsError",
    "TOMLError",
    "ValidationError",
    "configure",
    "field",
    "generate_default",
    "get",
    "load",
    "reset",
]
