"""
TOML File I/O.

Reads settings files with tomllib and writes them with tomlkit, which keeps
comments and layout intact.
"""

import tomllib
from pathlib import Path
from typing import Any

import tomlkit

from weft.config.schema import ConfigField


class TOMLError(Exception):
    """Base exception for TOML-related errors."""

    pass


def read_toml(file_path: Path) -> dict[str, Any]:
    """
    Read and parse a TOML file.

    Raises:
        TOMLError: If the file is missing, unreadable or malformed
    """
    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise TOMLError(f"TOML file not found: {file_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise TOMLError(f"Failed to parse TOML file {file_path}: {e}") from e
    except OSError as e:
        raise TOMLError(f"Failed to read TOML file {file_path}: {e}") from e


def update_section(file_path: Path, section: str, values: dict[str, Any]) -> None:
    """
    Replace the values of one table in a TOML file, keeping everything else.

    The file is created if it does not exist. Comments elsewhere in the
    document survive because the document is round-tripped through tomlkit.

    Raises:
        TOMLError: If the file cannot be read or written
    """
    try:
        if file_path.exists():
            doc = tomlkit.parse(file_path.read_text(encoding="utf-8"))
        else:
            doc = tomlkit.document()

        if section in doc:
            table = doc[section]
            for key, value in values.items():
                table[key] = value
        else:
            table = tomlkit.table()
            for key, value in values.items():
                table.add(key, value)
            doc.add(section, table)

        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(tomlkit.dumps(doc), encoding="utf-8")
    except Exception as e:
        raise TOMLError(f"Failed to write TOML file {file_path}: {e}") from e


def generate_toml_from_schema(
    section: str, schema: dict[str, ConfigField], values: dict[str, Any]
) -> str:
    """
    Render a settings table with each field's description and allowed
    values as comments.

    Args:
        section: Table name
        schema: Field definitions
        values: Values to write; fields not present use their default

    Returns:
        TOML document text
    """
    doc = tomlkit.document()
    doc.add(tomlkit.comment(f"Settings for {section}"))
    doc.add(tomlkit.nl())

    table = tomlkit.table()
    for name, field in schema.items():
        if field.description:
            table.add(tomlkit.comment(field.description))
        if field.choices is not None:
            allowed = " | ".join(str(choice) for choice in field.choices)
            table.add(tomlkit.comment(f"One of: {allowed}"))
        table.add(name, values.get(name, field.default))
        table.add(tomlkit.nl())

    doc.add(section, table)
    return tomlkit.dumps(doc)
