"""Input parsing utilities for CLI commands."""

from typing import Any

FLAG_MODIFIERS = {
    "required": "is_required",
    "unique": "is_unique",
    "pk": "is_primary_key",
    "multiple": "accepts_multiple",
}


def parse_field_spec(spec: str) -> dict[str, Any]:
    """Parse field specification string.

    Format: name:type[:modifier1][:modifier2]...

    Examples:
        "email:string:required:unique" → {"name": "email", "type": "string", "is_required": True, "is_unique": True}
        "id:integer:pk" → {"name": "id", "type": "integer", "is_primary_key": True}
        "title:string:max_length=120:default=Untitled"

    Args:
        spec: Field specification string

    Returns:
        Field dictionary with FieldSpec attribute names

    Raises:
        ValueError: If spec format is invalid
    """
    parts = spec.split(":")
    if len(parts) < 2 or not parts[0]:
        raise ValueError(f"Invalid field spec: '{spec}'. Expected format: name:type[:modifier]...")

    field: dict[str, Any] = {"name": parts[0], "type": parts[1]}

    for modifier in parts[2:]:
        if "=" in modifier:
            key, value = modifier.split("=", 1)
            if key == "default":
                field["default_value"] = value
            elif key == "max_length":
                try:
                    field["max_length"] = int(value)
                except ValueError as e:
                    raise ValueError(f"max_length must be an integer, got '{value}'") from e
            else:
                raise ValueError(
                    f"Invalid modifier: '{modifier}'. Supported: default=value, max_length=N"
                )
        elif modifier in FLAG_MODIFIERS:
            field[FLAG_MODIFIERS[modifier]] = True
        else:
            raise ValueError(
                f"Invalid modifier: '{modifier}'. "
                f"Supported: {', '.join(FLAG_MODIFIERS)}, default=value, max_length=N"
            )

    return field
