from datetime import datetime, timezone
from sqlalchemy import (
    JSON, Column, Integer, String, Float, Date, DateTime, Text, ForeignKey, Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _now():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DpgfImport(Base):
    __tablename__ = "dpgf_imports"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False)
    filename = Column(String, nullable=False)
    storage_path = Column(String)
    status = Column(String, default="pending")  # "pending", "processing", "parsed", "failed"
    row_count = Column(Integer, default=0)
    supplier = Column(String)
    mapping_status = Column(String)  # "draft", "applied", "invalid"
    mapping_version = Column(Integer, default=0)
    parsed_at = Column(DateTime)
    created_at = Column(DateTime, default=_now)

    rows = relationship("DpgfRowRaw", back_populates="dpgf_import", cascade="all, delete-orphan")
    mappings = relationship("DpgfMapping", back_populates="dpgf_import", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_dpgf_imports_tenant", "tenant_id"),
    )


class DpgfRowRaw(Base):
    __tablename__ = "dpgf_rows_raw"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False)
    import_id = Column(Integer, ForeignKey("dpgf_imports.id"), nullable=False)
    row_index = Column(Integer, nullable=False)
    raw_data = Column(JSON, nullable=False)

    dpgf_import = relationship("DpgfImport", back_populates="rows")

    __table_args__ = (
        Index("idx_dpgf_rows_import_row", "import_id", "row_index", unique=True),
    )


class DpgfMapping(Base):
    __tablename__ = "dpgf_mappings"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False)
    import_id = Column(Integer, ForeignKey("dpgf_imports.id"), nullable=False)
    source_column = Column(String, nullable=False)
    target_field = Column(String, nullable=False)
    field_type = Column(String, default="text")
    mapping_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    dpgf_import = relationship("DpgfImport", back_populates="mappings")

    __table_args__ = (
        Index(
            "idx_dpgf_mappings_tenant_import_col",
            "tenant_id", "import_id", "source_column", unique=True,
        ),
    )


class MappingMemory(Base):
    __tablename__ = "mapping_memory"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False)
    supplier = Column(String, nullable=False)
    source_column_normalized = Column(String, nullable=False)
    source_column_original = Column(String, nullable=False)
    target_field = Column(String, nullable=False)
    confidence = Column(Float)
    use_count = Column(Integer, default=0)
    last_used_at = Column(DateTime)
    created_at = Column(DateTime, default=_now)

    __table_args__ = (
        Index(
            "idx_mapping_memory_key",
            "tenant_id", "supplier", "source_column_normalized", "target_field",
            unique=True,
        ),
    )


class MappingTemplate(Base):
    __tablename__ = "mapping_templates"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False)
    supplier_name = Column(String, nullable=False)
    mappings = Column(JSON, nullable=False)  # list of {source_column, target_field, field_type, mapping_order}
    version = Column(Integer, default=1)
    description = Column(Text)
    created_at = Column(DateTime, default=_now)

    __table_args__ = (
        Index("idx_mapping_templates_supplier", "tenant_id", "supplier_name"),
    )


class CatalogueItem(Base):
    __tablename__ = "catalogue_items"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False)
    hex_code = Column(String, nullable=False)
    designation = Column(Text, nullable=False)
    temps_unitaire_h = Column(Float)
    unite_mesure = Column(String)
    dn = Column(String)
    pn = Column(String)
    matiere = Column(String)
    connexion = Column(String)
    discipline = Column(String)
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    prix = relationship("SupplierPrice", back_populates="catalogue_item", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_catalogue_tenant_hex", "tenant_id", "hex_code", unique=True),
        Index("idx_catalogue_matiere", "matiere"),
    )


class SupplierPrice(Base):
    __tablename__ = "supplier_prices"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False)
    catalogue_item_id = Column(Integer, ForeignKey("catalogue_items.id"), nullable=False)
    fournisseur = Column(String, nullable=False)
    prix_brut = Column(Float, nullable=False)
    remise_pct = Column(Float)
    prix_net = Column(Float)  # derived from prix_brut and remise_pct when null
    date_prix = Column(Date)
    validite_fin = Column(Date)
    delai_jours = Column(Integer)
    reference_fournisseur = Column(String)
    created_at = Column(DateTime, default=_now)

    catalogue_item = relationship("CatalogueItem", back_populates="prix")

    __table_args__ = (
        Index("idx_supplier_prices_item", "catalogue_item_id"),
    )


class MaterialIndex(Base):
    __tablename__ = "material_indices"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False)
    matiere = Column(String, nullable=False)
    index_date = Column(Date, nullable=False)
    coefficient = Column(Float, nullable=False)
    source = Column(String)
    created_at = Column(DateTime, default=_now)

    __table_args__ = (
        Index("idx_material_indices_key", "tenant_id", "matiere", "index_date", unique=True),
    )
