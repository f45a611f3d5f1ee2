"""Domain service for the column-mapping step of a DPGF import.

Pure Python: storage and cache are reached through the ports of
``domain.ports``, injected at construction.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime

from domain.models import (
    ColumnMapping,
    DuplicateReport,
    MappingMemoryRecord,
    MappingPreview,
    MappingSaveResult,
    MappingStatus,
    MappingTemplate,
    Suggestion,
    ValidationReport,
    ValidationRule,
)
from domain.normalization import normalize_supplier_name
from domain.ports import (
    CachePort,
    ColumnMappingRepository,
    ImportRepository,
    MappingMemoryRepository,
    MappingTemplateRepository,
)
from domain.suggestions import (
    best_suggestion_per_column,
    create_normalized_columns_map,
    expand_suggestions_for_columns,
    rank_suggestions,
    suggestions_from_templates,
)
from domain.validation_rules import apply_validation_rules, detect_duplicate_groups

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    "preview_limit": 10,
    "validation_sample_size": 1000,
    "max_issues": 100,
    "duplicates_sample_size": 5000,
    "max_duplicate_groups": 50,
}


def _memory_from_cache(data: dict) -> MappingMemoryRecord:
    last_used_at = data.get("last_used_at")
    if isinstance(last_used_at, str):
        data = {**data, "last_used_at": datetime.fromisoformat(last_used_at)}
    return MappingMemoryRecord(**data)


class MappingService:
    """Preview, suggest, validate and save the column mappings of an import."""

    CACHE_PREFIX = "mapping_memory:"

    def __init__(
        self,
        imports: ImportRepository,
        mappings: ColumnMappingRepository,
        memory: MappingMemoryRepository,
        templates: MappingTemplateRepository,
        cache: CachePort | None = None,
        limits: dict | None = None,
        cache_ttl: int = 3600,
        cache_namespace: str | None = None,
    ) -> None:
        self._imports = imports
        self._mappings = mappings
        self._memory = memory
        self._templates = templates
        self._cache = cache
        self._limits = {**DEFAULT_LIMITS, **(limits or {})}
        self._cache_ttl = cache_ttl
        self._cache_prefix = (
            f"{self.CACHE_PREFIX}{cache_namespace}:" if cache_namespace else self.CACHE_PREFIX
        )

    def _require_import(self, import_id: int) -> None:
        if not self._imports.exists(import_id):
            raise ValueError(f"Import {import_id} introuvable")

    # ── Preview ──────────────────────────────────────────────────────────

    def get_preview(self, import_id: int, limit: int | None = None, offset: int = 0) -> MappingPreview:
        """First rows of the import; columns are the keys of the first row."""
        self._require_import(import_id)
        limit = limit or self._limits["preview_limit"]
        rows = self._imports.list_rows(import_id, limit=limit, offset=offset)
        columns = list(rows[0].raw_data.keys()) if rows else []
        return MappingPreview(
            columns=columns,
            rows=[dict(r.raw_data) for r in rows],
            total_rows=self._imports.count_rows(import_id),
        )

    # ── Suggestions ──────────────────────────────────────────────────────

    def _memory_rows(self, supplier: str, normalized_columns: list[str]) -> list[MappingMemoryRecord]:
        if self._cache is None:
            return self._memory.find(supplier, normalized_columns)

        key = f"{self._cache_prefix}{supplier}:{'|'.join(sorted(normalized_columns))}"
        cached = self._cache.get(key)
        if cached is not None:
            return [_memory_from_cache(d) for d in cached]

        rows = self._memory.find(supplier, normalized_columns)
        self._cache.set(key, [asdict(r) for r in rows], ttl=self._cache_ttl)
        return rows

    def get_suggestions(self, supplier: str | None, source_columns: list[str]) -> list[Suggestion]:
        """Suggestions from mapping memory and templates, best first."""
        supplier = normalize_supplier_name(supplier)
        columns_map = create_normalized_columns_map(source_columns)

        memory_rows = self._memory_rows(supplier, list(columns_map))
        suggestions = expand_suggestions_for_columns(columns_map, memory_rows)
        suggestions += suggestions_from_templates(
            columns_map, self._templates.list_by_supplier(supplier)
        )
        logger.debug(
            "%d suggestions for %d columns (supplier=%s)",
            len(suggestions), len(source_columns), supplier,
        )
        return rank_suggestions(suggestions)

    def get_best_suggestions(self, supplier: str | None, source_columns: list[str]) -> dict[str, Suggestion]:
        """Top suggestion of each column that has one, as ``{source_column: suggestion}``."""
        return best_suggestion_per_column(self.get_suggestions(supplier, source_columns))

    # ── Saving ───────────────────────────────────────────────────────────

    def save_mappings(
        self,
        import_id: int,
        mappings: list[ColumnMapping],
        supplier: str | None = None,
    ) -> MappingSaveResult:
        """Upsert the mappings, bump the mapping version and learn from them.

        Each confirmed mapping increments its mapping memory counter.
        """
        if not mappings:
            raise ValueError("Au moins un mapping est requis")
        self._require_import(import_id)
        supplier = normalize_supplier_name(supplier)

        count = self._mappings.upsert(import_id, mappings)
        version = self._imports.get_mapping_version(import_id) + 1
        self._imports.set_mapping_status(import_id, MappingStatus.DRAFT, version)

        for mapping in mappings:
            self._memory.increment(supplier, mapping.source_column, mapping.target_field)
        if self._cache is not None:
            self._cache.invalidate(f"{self._cache_prefix}{supplier}:")

        logger.info(
            "Import %s: %d mappings saved (version %d, supplier=%s)",
            import_id, count, version, supplier,
        )
        return MappingSaveResult(version=version, count=count)

    # ── Templates ────────────────────────────────────────────────────────

    def get_templates(self, supplier: str | None) -> list[MappingTemplate]:
        return self._templates.list_by_supplier(normalize_supplier_name(supplier))

    def save_template(
        self,
        supplier: str | None,
        mappings: list[ColumnMapping],
        description: str | None = None,
        version: int | None = None,
    ) -> MappingTemplate:
        """Save a template; without an explicit version it follows the latest one."""
        if not mappings:
            raise ValueError("Au moins un mapping est requis")
        supplier = normalize_supplier_name(supplier)
        if version is None:
            existing = self._templates.list_by_supplier(supplier)
            version = existing[0].version + 1 if existing else 1
        return self._templates.save(MappingTemplate(
            supplier=supplier,
            mappings=list(mappings),
            version=version,
            description=description,
        ))

    # ── Validation ───────────────────────────────────────────────────────

    def validate(
        self,
        import_id: int,
        rules: list[ValidationRule] | None = None,
        sample_size: int | None = None,
    ) -> ValidationReport:
        """Check a sample of rows against *rules*; the issue list is truncated."""
        self._require_import(import_id)
        sample_size = sample_size or self._limits["validation_sample_size"]
        rows = self._imports.list_rows(import_id, limit=sample_size)
        issues = apply_validation_rules(rows, rules)
        if len(issues) > self._limits["max_issues"]:
            logger.info(
                "Import %s: %d validation issues, keeping %d",
                import_id, len(issues), self._limits["max_issues"],
            )
        return ValidationReport(
            issues=issues[: self._limits["max_issues"]],
            sample_size=len(rows),
            total_rows=self._imports.count_rows(import_id),
        )

    def get_duplicates(
        self,
        import_id: int,
        keys: list[str],
        sample_size: int | None = None,
    ) -> DuplicateReport:
        """Find rows sharing the same values on all *keys*, on a sample of rows."""
        self._require_import(import_id)
        sample_size = sample_size or self._limits["duplicates_sample_size"]
        rows = self._imports.list_rows(import_id, limit=sample_size)
        groups = detect_duplicate_groups(rows, keys)
        return DuplicateReport(
            duplicates=groups[: self._limits["max_duplicate_groups"]],
            sample_size=len(rows),
            total_rows=self._imports.count_rows(import_id),
        )
