"""Domain ports — abstract interfaces for repositories and infrastructure.

Only stdlib (abc) and domain.models imports allowed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from domain.models import (
    CatalogueItem,
    ColumnMapping,
    MappingMemoryRecord,
    MappingStatus,
    MappingTemplate,
    MaterialIndex,
    RawImportRow,
    SupplierPrice,
)


# ── Repository Ports ──────────────────────────────────────────────────────


class ImportRepository(ABC):
    """Persistence port for DPGF imports and their raw rows."""

    @abstractmethod
    def exists(self, import_id: int) -> bool: ...

    @abstractmethod
    def count_rows(self, import_id: int) -> int: ...

    @abstractmethod
    def list_rows(self, import_id: int, limit: int, offset: int = 0) -> list[RawImportRow]:
        """Rows ordered by row_index."""

    @abstractmethod
    def get_mapping_version(self, import_id: int) -> int: ...

    @abstractmethod
    def set_mapping_status(self, import_id: int, status: MappingStatus, version: int) -> None: ...


class ColumnMappingRepository(ABC):
    """Persistence port for the confirmed column mappings of an import."""

    @abstractmethod
    def upsert(self, import_id: int, mappings: list[ColumnMapping]) -> int: ...

    @abstractmethod
    def list_by_import(self, import_id: int) -> list[ColumnMapping]: ...


class MappingMemoryRepository(ABC):
    """Persistence port for learned mappings (one counter per supplier/column/field)."""

    @abstractmethod
    def find(self, supplier: str, normalized_columns: list[str]) -> list[MappingMemoryRecord]: ...

    @abstractmethod
    def increment(self, supplier: str, source_column: str, target_field: str) -> MappingMemoryRecord: ...


class MappingTemplateRepository(ABC):
    """Persistence port for supplier mapping templates."""

    @abstractmethod
    def list_by_supplier(self, supplier: str) -> list[MappingTemplate]:
        """Templates of a supplier, newest version first."""

    @abstractmethod
    def save(self, template: MappingTemplate) -> MappingTemplate: ...


class CatalogueRepository(ABC):
    """Persistence port for catalogue items."""

    @abstractmethod
    def get_by_hex_code(self, hex_code: str) -> CatalogueItem | None: ...

    @abstractmethod
    def list_all(self) -> list[CatalogueItem]: ...


class SupplierPriceRepository(ABC):
    """Persistence port for supplier prices."""

    @abstractmethod
    def list_by_catalogue_item(self, catalogue_item_id) -> list[SupplierPrice]: ...


class MaterialIndexRepository(ABC):
    """Persistence port for material indices."""

    @abstractmethod
    def list_by_material(self, matiere: str) -> list[MaterialIndex]: ...


# ── Infrastructure Ports ──────────────────────────────────────────────────


class CachePort(ABC):
    """Port for key-value caching (Redis, in-memory, etc.)."""

    @abstractmethod
    def get(self, key: str) -> object | None: ...

    @abstractmethod
    def set(self, key: str, value: object, ttl: int = 3600) -> None: ...

    @abstractmethod
    def invalidate(self, prefix: str) -> None: ...
