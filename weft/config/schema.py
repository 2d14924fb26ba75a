"""
Settings Schema.

Declares the settings weft understands and checks values against them.
Settings are TOML scalars, optionally restricted to a set of choices.
"""

from dataclasses import dataclass
from typing import Any


class SchemaError(Exception):
    """Raised when a field is declared inconsistently."""

    pass


class ValidationError(SchemaError):
    """Raised when a setting value fails validation."""

    pass


@dataclass(frozen=True)
class ConfigField:
    """
    One setting: its type, default and allowed values.

    Attributes:
        type_: Expected type of the value (str, bool, int or float)
        default: Value used when the file does not set one
        description: Written as a comment into generated files
        choices: Allowed values, if restricted
    """

    type_: type
    default: Any
    description: str = ""
    choices: tuple[Any, ...] | None = None

    def __post_init__(self):
        if self.type_ not in (str, bool, int, float):
            raise SchemaError(f"Unsupported setting type {self.type_.__name__}")

        self._check_type(self.default, SchemaError, "Default value")

        if self.choices is not None:
            for choice in self.choices:
                self._check_type(choice, SchemaError, "Choice")
            if self.default not in self.choices:
                raise SchemaError(
                    f"Default {self.default!r} is not one of {list(self.choices)}"
                )

    def _check_type(self, value: Any, error: type[Exception], label: str) -> None:
        # bool is an int subclass; keep the two apart
        if not isinstance(value, self.type_) or (
            self.type_ is not bool and isinstance(value, bool)
        ):
            raise error(
                f"{label} {value!r}: expected {self.type_.__name__}, "
                f"got {type(value).__name__}"
            )

    def validate(self, value: Any) -> None:
        """
        Check a value against this field.

        Raises:
            ValidationError: If the value has the wrong type or is not a choice
        """
        self._check_type(value, ValidationError, "Value")
        if self.choices is not None and value not in self.choices:
            raise ValidationError(
                f"Value {value!r} is not one of {list(self.choices)}"
            )


def defaults(schema: dict[str, ConfigField]) -> dict[str, Any]:
    """Every field's default, keyed by name."""
    return {name: field.default for name, field in schema.items()}


def complete_section(
    section: dict[str, Any], schema: dict[str, ConfigField]
) -> dict[str, Any]:
    """
    Fill a settings table from a file with defaults and validate it.

    Args:
        section: Values read from the file; may be partial
        schema: Field definitions

    Returns:
        A full settings table

    Raises:
        ValidationError: On unknown names or invalid values
    """
    unknown = sorted(set(section) - set(schema))
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(unknown)}")

    values = defaults(schema)
    for name, value in section.items():
        try:
            schema[name].validate(value)
        except ValidationError as e:
            raise ValidationError(f"Setting '{name}': {e}") from e
        values[name] = value
    return values
