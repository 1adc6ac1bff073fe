# src/alchemist/validator/fields.py
"""
Generic, entity-agnostic field checks.

Every validator takes the value plus its location (field, entity type, entity
id, row) and returns zero or more findings. Validators never mutate their input
and never raise for malformed values: a wrong type is a finding, not an
exception.
"""

from __future__ import annotations

import json
import math
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Literal

from alchemist.errors import ContractError
from alchemist.schemas.models import EntityType, Severity, ValidationFinding
from alchemist.validator.parsers import parse_string_array, to_number
from alchemist.validator.rules import MAX_JSON_SIZE, MAX_STRING_LENGTH, Bounds

ElementType = Literal["string", "number"]


def make_finding(
    entity_type: EntityType | str,
    entity_id: str,
    row: int,
    field: str,
    message: str,
    severity: Severity | str = Severity.ERROR,
    suggested_fix: str | None = None,
    column: str | None = None,
) -> ValidationFinding:
    """
    @brief
    Single factory for ValidationFinding objects.

    @details
    Generates a unique id and derives `auto_fixable`: true only when a
    suggested fix is present and the severity is not "error". An entity type
    or severity outside the closed sets is a caller bug and raises
    ContractError.

    @raises
        ContractError
            On unknown entity type or severity.
    """
    try:
        etype = EntityType(entity_type)
        sev = Severity(severity)
    except ValueError as e:
        raise ContractError(
            message=f"Invalid finding classification: {e}",
            source="fields.make_finding",
            suggested_action="Use one of client|worker|task and error|warning|info.",
        ) from e

    return ValidationFinding(
        id=f"val_{uuid.uuid4().hex[:12]}",
        entity_type=etype,
        entity_id=entity_id,
        row=row,
        column=column or field,
        field=field,
        message=message,
        severity=sev,
        suggested_fix=suggested_fix,
        auto_fixable=bool(suggested_fix) and sev is not Severity.ERROR,
    )


def is_number(value: Any) -> bool:
    """True for finite int/float values; bools are not numbers here."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, float) and not math.isfinite(value):
        return "non-finite number"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def validate_required_fields(
    record: Mapping[str, Any],
    fields: Iterable[str],
    entity_type: EntityType | str,
    entity_id: str,
    row: int = 0,
) -> list[ValidationFinding]:
    """Flag every listed field that is absent, None or an empty string."""
    findings: list[ValidationFinding] = []
    for field in fields:
        value = record.get(field)
        if value is None or value == "":
            findings.append(
                make_finding(
                    entity_type,
                    entity_id,
                    row,
                    field,
                    f'Required field "{field}" is missing or empty',
                    Severity.ERROR,
                    f"Provide a valid value for {field}",
                )
            )
    return findings


def validate_numeric_range(
    value: Any,
    min_value: float,
    max_value: float,
    field: str,
    entity_type: EntityType | str,
    entity_id: str,
    row: int = 0,
    *,
    integer: bool = False,
) -> list[ValidationFinding]:
    """
    @brief
    Check that a value is a number inside [min_value, max_value].

    @details
    None is left to the required-field check. Non-numbers (including bools and
    NaN) are reported with their type. With integer=True a fractional value is
    reported as well; out-of-range values are reported with the bound.
    """
    if value is None:
        return []

    if not is_number(value):
        return [
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} must be a number, got {_type_name(value)}",
                Severity.ERROR,
                f'Convert "{value}" to a number between {min_value} and {max_value}',
            )
        ]

    findings: list[ValidationFinding] = []
    if integer and not float(value).is_integer():
        findings.append(
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} ({value}) must be a whole number",
                Severity.ERROR,
                f"Round {field} to a whole number between {min_value} and {max_value}",
            )
        )

    if value < min_value or value > max_value:
        findings.append(
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} ({value}) must be between {min_value} and {max_value}",
                Severity.ERROR,
                f"Set {field} to a value between {min_value} and {max_value}",
            )
        )
    return findings


def validate_array_format(
    value: Any,
    field: str,
    entity_type: EntityType | str,
    entity_id: str,
    row: int = 0,
    *,
    max_length: int | None = None,
    element_type: ElementType | None = None,
    element_range: Bounds | None = None,
    allow_empty: bool = False,
) -> list[ValidationFinding]:
    """
    @brief
    Check shape, size, element types and duplicates of an array field.

    @details
    Strings are parsed with parse_string_array() first; for numeric arrays each
    token is converted and tokens that are not numbers are kept as-is so they
    are reported per element. Errors: not array-shaped, empty (unless
    allow_empty), longer than max_length, element of the wrong type, numeric
    element outside element_range, blank string element. Warning: duplicate
    elements.

    @returns
        Findings in check order; empty when the array is well-formed.
    """
    if value is None:
        if allow_empty:
            return []
        return [
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} is required but is missing",
                Severity.ERROR,
                f"Provide an array for {field}",
            )
        ]

    # (1) Normalize to a list of elements
    elements: list[Any]
    if isinstance(value, str):
        tokens = parse_string_array(value)
        if element_type == "number":
            elements = [n if (n := to_number(t)) is not None else t for t in tokens]
        else:
            elements = list(tokens)
    elif isinstance(value, (list, tuple)):
        elements = list(value)
    else:
        return [
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} must be an array, got {_type_name(value)}",
                Severity.ERROR,
                f'Convert "{value}" to an array format',
            )
        ]

    # (2) Emptiness
    if not elements:
        if allow_empty:
            return []
        return [
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} must contain at least one value",
                Severity.ERROR,
                f"Add at least one entry to {field}",
            )
        ]

    findings: list[ValidationFinding] = []

    # (3) Length
    if max_length is not None and len(elements) > max_length:
        findings.append(
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} array too long: {len(elements)} items (max {max_length})",
                Severity.ERROR,
                f"Reduce array size to {max_length} items",
            )
        )

    # (4) Element types and ranges
    if element_type is not None:
        for index, element in enumerate(elements):
            column = f"{field}[{index}]"
            matches = is_number(element) if element_type == "number" else isinstance(element, str)
            if not matches:
                findings.append(
                    make_finding(
                        entity_type,
                        entity_id,
                        row,
                        field,
                        f"Array element at index {index} must be {element_type}, "
                        f"got {_type_name(element)}",
                        Severity.ERROR,
                        f'Convert "{element}" to {element_type}',
                        column=column,
                    )
                )
                continue

            if element_type == "string" and not element.strip():
                findings.append(
                    make_finding(
                        entity_type,
                        entity_id,
                        row,
                        field,
                        f"Array element at index {index} is empty",
                        Severity.ERROR,
                        "Remove the empty entry",
                        column=column,
                    )
                )
                continue

            if element_type == "number" and element_range is not None:
                if element < element_range.min or element > element_range.max:
                    findings.append(
                        make_finding(
                            entity_type,
                            entity_id,
                            row,
                            field,
                            f"Array element {element} must be between "
                            f"{element_range.min} and {element_range.max}",
                            Severity.ERROR,
                            f"Change {element} to a value between "
                            f"{element_range.min} and {element_range.max}",
                            column=column,
                        )
                    )

    # (5) Duplicates (reported once, first-seen order)
    duplicates = _duplicates(elements)
    if duplicates:
        findings.append(
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} contains duplicate values: {', '.join(str(d) for d in duplicates)}",
                Severity.WARNING,
                "Remove duplicate entries",
            )
        )
    return findings


def validate_json_format(
    value: Any,
    field: str,
    entity_type: EntityType | str,
    entity_id: str,
    row: int = 0,
    max_size: int = MAX_JSON_SIZE,
) -> list[ValidationFinding]:
    """Check that a value is a JSON string no longer than max_size characters."""
    if value is None:
        return []

    if not isinstance(value, str):
        return [
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} must be a JSON string, got {_type_name(value)}",
                Severity.ERROR,
                "Convert to valid JSON string format",
            )
        ]

    if len(value) > max_size:
        return [
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"{field} JSON too large: {len(value)} characters (max {max_size})",
                Severity.ERROR,
                "Reduce JSON size or split into smaller objects",
            )
        ]

    try:
        json.loads(value)
    except ValueError as e:
        return [
            make_finding(
                entity_type,
                entity_id,
                row,
                field,
                f"Invalid JSON format: {e}",
                Severity.ERROR,
                "Fix JSON syntax errors (check quotes, brackets, commas)",
            )
        ]
    return []


def validate_string_length(
    value: Any,
    field: str,
    entity_type: EntityType | str,
    entity_id: str,
    row: int = 0,
    max_length: int = MAX_STRING_LENGTH,
) -> list[ValidationFinding]:
    if not isinstance(value, str) or len(value) <= max_length:
        return []
    return [
        make_finding(
            entity_type,
            entity_id,
            row,
            field,
            f"{field} too long: {len(value)} characters (max {max_length})",
            Severity.ERROR,
            f"Shorten {field} to under {max_length} characters",
        )
    ]


def _duplicates(elements: list[Any]) -> list[Any]:
    seen: set[Any] = set()
    reported: list[Any] = []
    for element in elements:
        key = repr(element) if not _hashable(element) else element
        if key in seen and element not in reported:
            reported.append(element)
        seen.add(key)
    return reported


def _hashable(value: Any) -> bool:
    try:
        hash(value)
    except TypeError:
        return False
    return True


__all__ = [
    "is_number",
    "make_finding",
    "validate_array_format",
    "validate_json_format",
    "validate_numeric_range",
    "validate_required_fields",
    "validate_string_length",
]
