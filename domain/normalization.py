"""Domain normalization — pure functions, zero external dependencies.

Only stdlib imports allowed.
"""

import unicodedata

DEFAULT_SUPPLIER = "General"


def normalize_source_column(value):
    """Normalize a column header: strip accents, lowercase, trim.

    "Matière" and " matiere " share the key "matiere".
    """
    # Lowercase first: some capitals lowercase to a base letter + combining mark.
    decomposed = unicodedata.normalize("NFD", value.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.strip()


def normalize_supplier_name(value=None):
    """Normalize a supplier name: trim and collapse whitespace, "General" if blank."""
    if not value:
        return DEFAULT_SUPPLIER
    collapsed = " ".join(value.split())
    return collapsed or DEFAULT_SUPPLIER


def normalize_hex_code(value):
    """Normalize a catalogue HEX code: trim, uppercase."""
    return value.strip().upper()


def as_record(value):
    """Return *value* if it is a dict, otherwise an empty dict."""
    if isinstance(value, dict):
        return value
    return {}
