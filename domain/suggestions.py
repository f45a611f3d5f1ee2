"""Domain column-mapping suggestions — pure functions, zero external dependencies.

Only stdlib and domain imports allowed.
"""

from __future__ import annotations

from domain.models import (
    MappingMemoryRecord,
    MappingTemplate,
    Suggestion,
    SuggestionSource,
)
from domain.normalization import normalize_source_column

DEFAULT_CONFIDENCE = 0.5
TEMPLATE_CONFIDENCE = 0.6


def create_normalized_columns_map(source_columns: list[str]) -> dict[str, list[str]]:
    """Return ``{normalized_key: [original_column, ...]}`` in insertion order.

    Several spellings of a header ("HEX Code", "Hex Code ") fan in to the
    same key and are all kept.
    """
    columns_map: dict[str, list[str]] = {}
    for column in source_columns:
        columns_map.setdefault(normalize_source_column(column), []).append(column)
    return columns_map


def _memory_key(row: MappingMemoryRecord) -> str | None:
    if row.source_column_normalized:
        return row.source_column_normalized
    if row.source_column_original:
        return normalize_source_column(row.source_column_original)
    return None


def expand_suggestions_for_columns(
    normalized_columns_map: dict[str, list[str]],
    memory_rows: list[MappingMemoryRecord],
) -> list[Suggestion]:
    """Apply each learned mapping to every matching column of the current file.

    Columns are matched on their normalized key. When no column of the file
    shares the key, the memory row's original column is used as is. Rows
    with no candidate column produce nothing.
    """
    suggestions = []
    for row in memory_rows:
        key = _memory_key(row)
        candidates = normalized_columns_map.get(key) if key else None
        if candidates is None:
            candidates = [row.source_column_original] if row.source_column_original else []
        for source_column in candidates:
            suggestions.append(Suggestion(
                source_column=source_column,
                target_field=row.target_field,
                confidence=(
                    row.confidence if row.confidence is not None else DEFAULT_CONFIDENCE
                ),
                source=SuggestionSource.MEMORY,
                use_count=row.use_count,
            ))
    return suggestions


def suggestions_from_templates(
    normalized_columns_map: dict[str, list[str]],
    templates: list[MappingTemplate],
    confidence: float = TEMPLATE_CONFIDENCE,
) -> list[Suggestion]:
    """Suggest the mappings of saved templates for the columns they cover.

    Templates are read newest version first; a source column only takes the
    mapping of the first template that covers it.
    """
    suggestions = []
    seen = set()
    for template in sorted(templates, key=lambda t: t.version, reverse=True):
        for mapping in template.mappings:
            key = normalize_source_column(mapping.source_column)
            for source_column in normalized_columns_map.get(key, []):
                if source_column in seen:
                    continue
                seen.add(source_column)
                suggestions.append(Suggestion(
                    source_column=source_column,
                    target_field=mapping.target_field,
                    confidence=confidence,
                    source=SuggestionSource.TEMPLATE,
                ))
    return suggestions


def rank_suggestions(suggestions: list[Suggestion]) -> list[Suggestion]:
    """Sort by confidence then use count, both descending (stable)."""
    return sorted(
        suggestions,
        key=lambda s: (s.confidence, s.use_count or 0),
        reverse=True,
    )


def best_suggestion_per_column(suggestions: list[Suggestion]) -> dict[str, Suggestion]:
    """Return ``{source_column: best suggestion}`` in ranked order."""
    best: dict[str, Suggestion] = {}
    for suggestion in rank_suggestions(suggestions):
        best.setdefault(suggestion.source_column, suggestion)
    return best
