"""Domain models — pure Python, zero external dependencies.

Only stdlib imports allowed: dataclasses, datetime, enum.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class FieldType(Enum):
    """Type of a mapped DPGF column."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    EMAIL = "email"
    CURRENCY = "currency"
    HEX_CODE = "hex_code"
    SUPPLIER_REF = "supplier_ref"


class IssueCode(Enum):
    """Kind of validation rule violation."""

    REQUIRED = "required"
    TYPE = "type"
    PATTERN = "pattern"
    RANGE = "range"
    LENGTH = "length"


class SuggestionSource(Enum):
    """Where a column-mapping suggestion comes from."""

    MEMORY = "memory"
    TEMPLATE = "template"


class MappingStatus(Enum):
    """Status of the column mapping of an import."""

    DRAFT = "draft"
    APPLIED = "applied"
    INVALID = "invalid"


class QualityFlag(Enum):
    """Data-quality flag attached to a calculated quote line."""

    PRIX_OBSOLETE = "prix_obsolete"
    PRIX_MANQUANT = "prix_manquant"
    INCOHERENCE_UM = "incoherence_um"
    TEMPS_MANQUANT = "temps_manquant"


# ── Import & mapping ────────────────────────────────────────────────────


@dataclass(frozen=True)
class RawImportRow:
    """One physical spreadsheet row of an import, as parsed."""

    row_index: int
    raw_data: dict = field(default_factory=dict)


@dataclass
class ColumnMapping:
    """User-confirmed mapping of a source column to a catalogue field."""

    source_column: str
    target_field: str
    field_type: FieldType = FieldType.TEXT
    mapping_order: int = 0


@dataclass(frozen=True)
class Suggestion:
    """Suggested target field for a source column."""

    source_column: str
    target_field: str
    confidence: float
    source: SuggestionSource = SuggestionSource.MEMORY
    use_count: int | None = None


@dataclass
class MappingMemoryRecord:
    """Learned mapping choice, accumulated across imports of a supplier."""

    supplier: str
    source_column_original: str | None
    target_field: str
    source_column_normalized: str | None = None
    confidence: float | None = None
    use_count: int | None = None
    last_used_at: datetime | None = None


@dataclass
class MappingTemplate:
    """Reusable set of column mappings saved for a supplier."""

    supplier: str
    mappings: list[ColumnMapping] = field(default_factory=list)
    version: int = 1
    description: str | None = None
    created_at: datetime | None = None
    id: int | None = None


@dataclass
class ValidationRule:
    """Per-field validation rule applied to sampled raw rows."""

    field: str
    required: bool = False
    type: FieldType | None = None
    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None


# ── Catalogue & prices ──────────────────────────────────────────────────


@dataclass
class CatalogueItem:
    """A catalogue article, identified by its HEX code."""

    id: int | str | None
    hex_code: str
    designation: str
    temps_unitaire_h: float | None = None
    matiere: str | None = None
    unite_mesure: str | None = None
    dn: str | None = None
    pn: str | None = None
    connexion: str | None = None
    discipline: str | None = None


@dataclass
class SupplierPrice:
    """A supplier price for a catalogue item.

    ``prix_net`` is authoritative; storage adapters derive it with
    :func:`domain.pricing.calculate_prix_net` when it is missing. A price
    without ``validite_fin`` never expires.
    """

    id: int | str | None
    supplier_name: str
    prix_brut: float
    prix_net: float
    remise_pct: float = 0.0
    catalogue_item_id: int | str | None = None
    validite_fin: date | None = None
    date_prix: date | None = None
    delai_jours: int | None = None


@dataclass(frozen=True)
class MaterialIndex:
    """Material cost multiplier snapshot."""

    matiere: str
    date: date
    coefficient: float


# ── Quote ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PricingContext:
    """Pricing parameters of a quote (hourly rate, margin, reference cost)."""

    taux_horaire_eur: float
    marge_pct: float
    lot: str | None = None
    cout_reference: float = 100.0


@dataclass
class QuoteLine:
    """Input of a quote line calculation."""

    quantite: float
    catalogue_item: CatalogueItem
    context: PricingContext
    supplier_prices: list[SupplierPrice] = field(default_factory=list)
    last_material_index: MaterialIndex | None = None


@dataclass
class CalculatedQuoteLine:
    """Output of a quote line calculation."""

    cout_achat_u: float
    mo_u: float
    pv_u: float
    total_ligne: float
    flags: list[QualityFlag] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ── Result Value Objects ────────────────────────────────────────────────


@dataclass(frozen=True)
class ValidationIssue:
    """Read-only result of a validation rule violation."""

    row_index: int
    field: str
    code: IssueCode
    message: str
    value: object = None


@dataclass(frozen=True)
class DuplicateGroup:
    """Rows sharing the same composite key."""

    key: str
    key_value: str
    row_indices: list[int]
    count: int


@dataclass
class CalculationResult:
    """Calculated lines and quote totals."""

    lines: list[CalculatedQuoteLine]
    total_achats: float
    total_mo: float
    total_pv: float


@dataclass(frozen=True)
class QualityReport:
    """Aggregated quality flags of a quote."""

    total_lines: int
    lines_with_flags: int
    flag_counts: dict
    requires_action: bool


@dataclass(frozen=True)
class MappingPreview:
    """First rows of an import with their column names."""

    columns: list[str]
    rows: list[dict]
    total_rows: int


@dataclass(frozen=True)
class MappingSaveResult:
    """Outcome of saving the column mappings of an import."""

    version: int
    count: int


@dataclass(frozen=True)
class ValidationReport:
    """Validation issues found on a sample of rows."""

    issues: list[ValidationIssue]
    sample_size: int
    total_rows: int


@dataclass(frozen=True)
class DuplicateReport:
    """Duplicate groups found on a sample of rows."""

    duplicates: list[DuplicateGroup]
    sample_size: int
    total_rows: int
