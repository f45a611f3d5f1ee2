"""Domain validation rules — pure functions, zero external dependencies.

Checks sampled raw import rows against per-field rules and groups rows
sharing a composite key. Only stdlib and domain imports allowed.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime

from domain.models import (
    DuplicateGroup,
    FieldType,
    IssueCode,
    RawImportRow,
    ValidationIssue,
    ValidationRule,
)
from domain.normalization import as_record

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_DATE_FORMATS = ("%d/%m/%Y", "%d/%m/%y", "%d-%m-%Y", "%d.%m.%Y", "%Y/%m/%d")


def _is_empty(value):
    return value is None or value == ""


def as_string(value):
    """String form of a raw cell value ("true" for True, "10" for 10.0)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_number(value):
    """Coerce a raw cell value to float, or None when it is not numeric."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def is_date(value):
    """Return True if *value* is a date or a string parseable as one.

    Finite numbers pass too: spreadsheets hold dates as serials or bare years.
    """
    if isinstance(value, (date, datetime)):
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return math.isfinite(value)
    if not isinstance(value, str):
        return False
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    try:
        datetime.fromisoformat(text)
        return True
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            datetime.strptime(text, fmt)
            return True
        except ValueError:
            continue
    return False


def _is_valid_type(value, field_type):
    if field_type is FieldType.NUMBER:
        return to_number(value) is not None
    if field_type is FieldType.DATE:
        return is_date(value)
    if field_type is FieldType.EMAIL:
        return bool(_EMAIL.match(as_string(value)))
    if field_type is FieldType.CURRENCY:
        number = to_number(value)
        return number is not None and number >= 0
    return True


def _check_rule(row_index, value, rule):
    """Yield the issues of a single non-empty value against *rule*."""

    def issue(code, message):
        return ValidationIssue(
            row_index=row_index, field=rule.field, code=code,
            message=message, value=value,
        )

    if rule.type is not None and not _is_valid_type(value, rule.type):
        yield issue(IssueCode.TYPE, f"{rule.field} must be {rule.type.value}")

    text = as_string(value)

    if rule.pattern and not re.search(rule.pattern, text):
        yield issue(
            IssueCode.PATTERN,
            f"{rule.field} does not match pattern {rule.pattern}",
        )

    if rule.min_length is not None and len(text) < rule.min_length:
        yield issue(
            IssueCode.LENGTH,
            f"{rule.field} must be at least {rule.min_length} characters",
        )
    if rule.max_length is not None and len(text) > rule.max_length:
        yield issue(
            IssueCode.LENGTH,
            f"{rule.field} must be at most {rule.max_length} characters",
        )

    if rule.type in (FieldType.NUMBER, FieldType.CURRENCY):
        number = to_number(value)
        if number is None:
            return
        if rule.min is not None and number < rule.min:
            yield issue(IssueCode.RANGE, f"{rule.field} must be at least {rule.min}")
        if rule.max is not None and number > rule.max:
            yield issue(IssueCode.RANGE, f"{rule.field} must be at most {rule.max}")


def apply_validation_rules(
    rows: list[RawImportRow],
    rules: list[ValidationRule] | None = None,
) -> list[ValidationIssue]:
    """Check every row against every rule, in row order then rule order.

    A missing required value yields a single ``required`` issue for that
    rule; an empty optional value is skipped. Other checks (type, pattern,
    length, range) all run and may each report an issue.
    """
    if not rules:
        return []

    issues = []
    for row in rows:
        raw_data = as_record(row.raw_data)
        for rule in rules:
            value = raw_data.get(rule.field)
            if _is_empty(value):
                if rule.required:
                    issues.append(ValidationIssue(
                        row_index=row.row_index,
                        field=rule.field,
                        code=IssueCode.REQUIRED,
                        message=f"{rule.field} is required",
                        value=value,
                    ))
                continue
            issues.extend(_check_rule(row.row_index, value, rule))
    return issues


def detect_duplicate_groups(
    rows: list[RawImportRow],
    keys: list[str],
) -> list[DuplicateGroup]:
    """Group rows matching on all *keys* at once; return groups of 2+ rows.

    Groups come back in order of first occurrence.
    """
    if not keys:
        return []

    groups: dict[tuple, list[int]] = {}
    for row in rows:
        raw_data = as_record(row.raw_data)
        composite = tuple(
            (key, "" if raw_data.get(key) is None else as_string(raw_data[key]))
            for key in keys
        )
        groups.setdefault(composite, []).append(row.row_index)

    return [
        DuplicateGroup(
            key=", ".join(key for key, _ in composite),
            key_value=" | ".join(f"{key}={value}" for key, value in composite),
            row_indices=indices,
            count=len(indices),
        )
        for composite, indices in groups.items()
        if len(indices) > 1
    ]
