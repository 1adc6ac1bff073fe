# src/alchemist/validator/parsers.py
"""
Forgiving parsers for loosely-typed spreadsheet cells.

Cells holding lists arrive as real lists, as JSON-ish strings (``["a", "b"]``)
or as plain comma-separated text (``a, b``). The parsers never raise: malformed
input degrades to an empty or partial list and the validators report the gap.
"""

from __future__ import annotations

import json
import math
from typing import Any

Number = int | float


def parse_string_array(value: Any) -> list[str]:
    """
    @brief
    Normalize a cell value into a list of strings.

    @details
    Lists and tuples are returned element-wise as strings. Strings shaped like
    ``[a, b]`` are parsed as JSON, falling back to stripping the brackets and
    splitting on commas when JSON decoding fails. Any other string is split on
    commas. Tokens are trimmed and empty tokens dropped. A bare number becomes
    a one-element list; everything else yields an empty list.

    @params
        value : Any
            Raw cell value.

    @returns
        List of non-empty string tokens.
    """
    if isinstance(value, (list, tuple)):
        return [v if isinstance(v, str) else str(v) for v in value if v is not None]

    if isinstance(value, bool) or value is None:
        return []

    if isinstance(value, (int, float)):
        return [] if isinstance(value, float) and math.isnan(value) else [str(value)]

    if not isinstance(value, str):
        return []

    trimmed = value.strip()
    if not trimmed:
        return []

    # (1) JSON array format
    if trimmed.startswith("[") and trimmed.endswith("]"):
        try:
            parsed = json.loads(trimmed)
        except (json.JSONDecodeError, ValueError):
            return _split(trimmed[1:-1])
        if isinstance(parsed, list):
            return [s for s in (_stringify(item) for item in parsed if item is not None) if s]
        return []

    # (2) Comma-separated format
    return _split(trimmed)


def parse_number_array(value: Any) -> list[Number]:
    """
    @brief
    Normalize a cell value into a list of numbers.

    @details
    Delegates tokenisation to parse_string_array() and keeps only tokens that
    parse as finite numbers. Integral values are returned as int.
    """
    if isinstance(value, (list, tuple)):
        tokens: list[Any] = list(value)
    else:
        tokens = parse_string_array(value)

    numbers: list[Number] = []
    for token in tokens:
        number = to_number(token)
        if number is not None:
            numbers.append(number)
    return numbers


def to_number(value: Any) -> Number | None:
    """Convert a scalar to int/float, or None when it is not a finite number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def _stringify(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, float) and item.is_integer():
        return str(int(item))
    if isinstance(item, (dict, list)):
        return json.dumps(item)
    return str(item)


def _split(text: str) -> list[str]:
    tokens = (part.strip().strip("'\"").strip() for part in text.split(","))
    return [t for t in tokens if t]


__all__ = ["parse_number_array", "parse_string_array", "to_number"]
