"""TOML loading and value validation helpers for quizwise configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

import tomllib

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
    "require_bool",
    "require_float_range",
    "require_int_choices",
    "require_non_negative_int",
    "require_positive_int",
    "require_string",
    "optional_path",
    "optional_string",
]


class TomlConfigError(RuntimeError):
    """Raised when TOML config IO or validation fails."""


def load_toml(path: Path) -> Mapping[str, Any]:
    """Load a TOML document from ``path``.

    Missing files and syntax errors are reported as :class:`TomlConfigError`
    so callers can translate them into their own exception types.
    """

    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc
    return document


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Merge ``override`` into ``base`` in place, rejecting unknown keys."""

    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        current = base[key]
        if not isinstance(current, MutableMapping):
            base[key] = value
            continue
        if not isinstance(value, Mapping):
            raise TomlConfigError(
                f"Expected table for '{dotted}', found {type(value).__name__}."
            )
        merge_defaults(current, value, path=f"{dotted}.")


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Write ``template`` to ``path`` unless it exists and ``overwrite`` is off."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.write_text(template, encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


def require_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise TomlConfigError(f"'{field}' must be a positive integer.")
    return value


def require_non_negative_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TomlConfigError(f"'{field}' must be a non-negative integer.")
    return value


def require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise TomlConfigError(f"'{field}' must be a boolean.")
    return value


def require_float_range(
    value: Any, *, field: str, min_value: float, max_value: float
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TomlConfigError(f"'{field}' must be a number.")
    number = float(value)
    if not min_value <= number <= max_value:
        raise TomlConfigError(
            f"'{field}' must be between {min_value} and {max_value}."
        )
    return number


def require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise TomlConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def require_int_choices(value: Any, *, field: str) -> tuple[int, ...]:
    """Validate a non-empty list of unique positive integers."""

    if not isinstance(value, Sequence) or isinstance(value, str) or not value:
        raise TomlConfigError(f"'{field}' must be a non-empty list.")
    items = tuple(
        require_positive_int(item, field=f"{field}[{idx}]")
        for idx, item in enumerate(value)
    )
    if len(set(items)) != len(items):
        raise TomlConfigError(f"'{field}' must not contain duplicates.")
    return items


def optional_string(value: Any, *, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise TomlConfigError(f"'{field}' must be a string when set.")
    return value.strip() or None


def optional_path(value: Any, *, field: str) -> Path | None:
    text = optional_string(value, field=field)
    if text is None:
        return None
    return Path(text).expanduser().resolve()
