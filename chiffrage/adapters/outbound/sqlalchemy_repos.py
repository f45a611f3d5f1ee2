"""SQLAlchemy implementations of domain repository ports.

Each adapter translates between ORM models (sqlalchemy_models) and
pure domain models (domain.models), keeping the domain layer free
of any infrastructure dependency. Every adapter is scoped to a tenant.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from chiffrage.adapters.outbound.sqlalchemy_models import (
    CatalogueItem as OrmCatalogueItem,
    DpgfImport as OrmDpgfImport,
    DpgfMapping as OrmDpgfMapping,
    DpgfRowRaw as OrmDpgfRowRaw,
    MappingMemory as OrmMappingMemory,
    MappingTemplate as OrmMappingTemplate,
    MaterialIndex as OrmMaterialIndex,
    SupplierPrice as OrmSupplierPrice,
)
from domain.models import (
    CatalogueItem as DomainCatalogueItem,
    ColumnMapping,
    FieldType,
    MappingMemoryRecord,
    MappingStatus,
    MappingTemplate as DomainMappingTemplate,
    MaterialIndex as DomainMaterialIndex,
    RawImportRow,
    SupplierPrice as DomainSupplierPrice,
)
from domain.normalization import normalize_source_column
from domain.ports import (
    CatalogueRepository,
    ColumnMappingRepository,
    ImportRepository,
    MappingMemoryRepository,
    MappingTemplateRepository,
    MaterialIndexRepository,
    SupplierPriceRepository,
)
from domain.pricing import calculate_prix_net


def _mapping_to_dict(mapping: ColumnMapping) -> dict:
    return {
        "source_column": mapping.source_column,
        "target_field": mapping.target_field,
        "field_type": mapping.field_type.value,
        "mapping_order": mapping.mapping_order,
    }


def _mapping_from_dict(data: dict) -> ColumnMapping:
    return ColumnMapping(
        source_column=data["source_column"],
        target_field=data["target_field"],
        field_type=FieldType(data.get("field_type") or "text"),
        mapping_order=data.get("mapping_order") or 0,
    )


class SqlAlchemyImportRepository(ImportRepository):
    """SQLAlchemy adapter for DPGF imports and their raw rows."""

    def __init__(self, session: Session, tenant_id: str) -> None:
        self._session = session
        self._tenant_id = tenant_id

    def _get(self, import_id: int) -> OrmDpgfImport:
        imp = self._session.get(OrmDpgfImport, import_id)
        if imp is None or imp.tenant_id != self._tenant_id:
            raise ValueError(f"Import {import_id} introuvable")
        return imp

    def exists(self, import_id: int) -> bool:
        imp = self._session.get(OrmDpgfImport, import_id)
        return imp is not None and imp.tenant_id == self._tenant_id

    def count_rows(self, import_id: int) -> int:
        stmt = (
            select(func.count(OrmDpgfRowRaw.id))
            .where(OrmDpgfRowRaw.import_id == import_id)
            .where(OrmDpgfRowRaw.tenant_id == self._tenant_id)
        )
        return self._session.execute(stmt).scalar_one()

    def list_rows(self, import_id: int, limit: int, offset: int = 0) -> list[RawImportRow]:
        stmt = (
            select(OrmDpgfRowRaw.row_index, OrmDpgfRowRaw.raw_data)
            .where(OrmDpgfRowRaw.import_id == import_id)
            .where(OrmDpgfRowRaw.tenant_id == self._tenant_id)
            .order_by(OrmDpgfRowRaw.row_index)
            .offset(offset)
            .limit(limit)
        )
        return [
            RawImportRow(row_index=row.row_index, raw_data=row.raw_data or {})
            for row in self._session.execute(stmt)
        ]

    def get_mapping_version(self, import_id: int) -> int:
        return self._get(import_id).mapping_version or 0

    def set_mapping_status(self, import_id: int, status: MappingStatus, version: int) -> None:
        imp = self._get(import_id)
        imp.mapping_status = status.value
        imp.mapping_version = version
        self._session.commit()


class SqlAlchemyColumnMappingRepository(ColumnMappingRepository):
    """SQLAlchemy adapter upserting mappings on (tenant, import, source column)."""

    def __init__(self, session: Session, tenant_id: str) -> None:
        self._session = session
        self._tenant_id = tenant_id

    def upsert(self, import_id: int, mappings: list[ColumnMapping]) -> int:
        existing = {
            m.source_column: m
            for m in self._session.query(OrmDpgfMapping).filter_by(
                tenant_id=self._tenant_id, import_id=import_id,
            )
        }
        for mapping in mappings:
            orm = existing.get(mapping.source_column)
            if orm is None:
                orm = OrmDpgfMapping(
                    tenant_id=self._tenant_id,
                    import_id=import_id,
                    source_column=mapping.source_column,
                )
                self._session.add(orm)
                existing[mapping.source_column] = orm
            orm.target_field = mapping.target_field
            orm.field_type = mapping.field_type.value
            orm.mapping_order = mapping.mapping_order
        self._session.commit()
        return len(mappings)

    def list_by_import(self, import_id: int) -> list[ColumnMapping]:
        stmt = (
            select(OrmDpgfMapping)
            .where(OrmDpgfMapping.tenant_id == self._tenant_id)
            .where(OrmDpgfMapping.import_id == import_id)
            .order_by(OrmDpgfMapping.mapping_order, OrmDpgfMapping.id)
        )
        return [
            ColumnMapping(
                source_column=m.source_column,
                target_field=m.target_field,
                field_type=FieldType(m.field_type or "text"),
                mapping_order=m.mapping_order or 0,
            )
            for m in self._session.scalars(stmt)
        ]


class SqlAlchemyMappingMemoryRepository(MappingMemoryRepository):
    """SQLAlchemy adapter for learned mappings.

    Confidence of a record is the share of its use count among all the
    target fields chosen for the same supplier and normalized column.
    """

    def __init__(self, session: Session, tenant_id: str) -> None:
        self._session = session
        self._tenant_id = tenant_id

    @staticmethod
    def _to_domain(orm: OrmMappingMemory) -> MappingMemoryRecord:
        return MappingMemoryRecord(
            supplier=orm.supplier,
            source_column_original=orm.source_column_original,
            target_field=orm.target_field,
            source_column_normalized=orm.source_column_normalized,
            confidence=orm.confidence,
            use_count=orm.use_count,
            last_used_at=orm.last_used_at,
        )

    def find(self, supplier: str, normalized_columns: list[str]) -> list[MappingMemoryRecord]:
        if not normalized_columns:
            return []
        stmt = (
            select(OrmMappingMemory)
            .where(OrmMappingMemory.tenant_id == self._tenant_id)
            .where(OrmMappingMemory.supplier == supplier)
            .where(OrmMappingMemory.source_column_normalized.in_(normalized_columns))
            .order_by(OrmMappingMemory.confidence.desc(), OrmMappingMemory.id)
        )
        return [self._to_domain(m) for m in self._session.scalars(stmt)]

    def increment(self, supplier: str, source_column: str, target_field: str) -> MappingMemoryRecord:
        normalized = normalize_source_column(source_column)
        siblings = list(self._session.scalars(
            select(OrmMappingMemory)
            .where(OrmMappingMemory.tenant_id == self._tenant_id)
            .where(OrmMappingMemory.supplier == supplier)
            .where(OrmMappingMemory.source_column_normalized == normalized)
        ))
        record = next((m for m in siblings if m.target_field == target_field), None)
        if record is None:
            record = OrmMappingMemory(
                tenant_id=self._tenant_id,
                supplier=supplier,
                source_column_normalized=normalized,
                target_field=target_field,
                use_count=0,
            )
            self._session.add(record)
            siblings.append(record)

        record.source_column_original = source_column
        record.use_count = (record.use_count or 0) + 1
        record.last_used_at = datetime.now(timezone.utc)

        total = sum(m.use_count or 0 for m in siblings)
        for sibling in siblings:
            sibling.confidence = (sibling.use_count or 0) / total

        self._session.commit()
        return self._to_domain(record)


class SqlAlchemyMappingTemplateRepository(MappingTemplateRepository):
    """SQLAlchemy adapter for supplier mapping templates."""

    def __init__(self, session: Session, tenant_id: str) -> None:
        self._session = session
        self._tenant_id = tenant_id

    def list_by_supplier(self, supplier: str) -> list[DomainMappingTemplate]:
        stmt = (
            select(OrmMappingTemplate)
            .where(OrmMappingTemplate.tenant_id == self._tenant_id)
            .where(OrmMappingTemplate.supplier_name == supplier)
            .order_by(OrmMappingTemplate.version.desc(), OrmMappingTemplate.id.desc())
        )
        return [
            DomainMappingTemplate(
                supplier=t.supplier_name,
                mappings=[_mapping_from_dict(m) for m in t.mappings or []],
                version=t.version,
                description=t.description,
                created_at=t.created_at,
                id=t.id,
            )
            for t in self._session.scalars(stmt)
        ]

    def save(self, template: DomainMappingTemplate) -> DomainMappingTemplate:
        orm = OrmMappingTemplate(
            tenant_id=self._tenant_id,
            supplier_name=template.supplier,
            mappings=[_mapping_to_dict(m) for m in template.mappings],
            version=template.version,
            description=template.description,
        )
        self._session.add(orm)
        self._session.commit()
        template.id = orm.id
        template.created_at = orm.created_at
        return template


class SqlAlchemyCatalogueRepository(CatalogueRepository):
    """SQLAlchemy adapter for catalogue items."""

    def __init__(self, session: Session, tenant_id: str) -> None:
        self._session = session
        self._tenant_id = tenant_id

    @staticmethod
    def _to_domain(orm: OrmCatalogueItem) -> DomainCatalogueItem:
        return DomainCatalogueItem(
            id=orm.id,
            hex_code=orm.hex_code,
            designation=orm.designation,
            temps_unitaire_h=orm.temps_unitaire_h,
            matiere=orm.matiere,
            unite_mesure=orm.unite_mesure,
            dn=orm.dn,
            pn=orm.pn,
            connexion=orm.connexion,
            discipline=orm.discipline,
        )

    def get_by_hex_code(self, hex_code: str) -> DomainCatalogueItem | None:
        orm = self._session.scalars(
            select(OrmCatalogueItem)
            .where(OrmCatalogueItem.tenant_id == self._tenant_id)
            .where(OrmCatalogueItem.hex_code == hex_code)
        ).first()
        return self._to_domain(orm) if orm else None

    def list_all(self) -> list[DomainCatalogueItem]:
        stmt = (
            select(OrmCatalogueItem)
            .where(OrmCatalogueItem.tenant_id == self._tenant_id)
            .order_by(OrmCatalogueItem.hex_code)
        )
        return [self._to_domain(o) for o in self._session.scalars(stmt)]


class SqlAlchemySupplierPriceRepository(SupplierPriceRepository):
    """SQLAlchemy adapter for supplier prices; derives prix_net when missing."""

    def __init__(self, session: Session, tenant_id: str) -> None:
        self._session = session
        self._tenant_id = tenant_id

    def list_by_catalogue_item(self, catalogue_item_id) -> list[DomainSupplierPrice]:
        stmt = (
            select(OrmSupplierPrice)
            .where(OrmSupplierPrice.tenant_id == self._tenant_id)
            .where(OrmSupplierPrice.catalogue_item_id == catalogue_item_id)
            .order_by(OrmSupplierPrice.id)
        )
        prices = []
        for p in self._session.scalars(stmt):
            remise = p.remise_pct or 0.0
            prices.append(DomainSupplierPrice(
                id=p.id,
                supplier_name=p.fournisseur,
                prix_brut=p.prix_brut,
                prix_net=(
                    p.prix_net if p.prix_net is not None
                    else calculate_prix_net(p.prix_brut, remise)
                ),
                remise_pct=remise,
                catalogue_item_id=p.catalogue_item_id,
                validite_fin=p.validite_fin,
                date_prix=p.date_prix,
                delai_jours=p.delai_jours,
            ))
        return prices


class SqlAlchemyMaterialIndexRepository(MaterialIndexRepository):
    """SQLAlchemy adapter for material indices."""

    def __init__(self, session: Session, tenant_id: str) -> None:
        self._session = session
        self._tenant_id = tenant_id

    def list_by_material(self, matiere: str) -> list[DomainMaterialIndex]:
        stmt = (
            select(OrmMaterialIndex)
            .where(OrmMaterialIndex.tenant_id == self._tenant_id)
            .where(func.lower(OrmMaterialIndex.matiere) == matiere.strip().lower())
            .order_by(OrmMaterialIndex.index_date)
        )
        return [
            DomainMaterialIndex(matiere=i.matiere, date=i.index_date, coefficient=i.coefficient)
            for i in self._session.scalars(stmt)
        ]
