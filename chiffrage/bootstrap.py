"""Composition root: wires SQLAlchemy and cache adapters into the domain services."""

from __future__ import annotations

from sqlalchemy.orm import Session

from chiffrage.adapters.outbound.redis_cache import DEFAULT_PREFIX, get_cache_adapter
from chiffrage.adapters.outbound.sqlalchemy_repos import (
    SqlAlchemyCatalogueRepository,
    SqlAlchemyColumnMappingRepository,
    SqlAlchemyImportRepository,
    SqlAlchemyMappingMemoryRepository,
    SqlAlchemyMappingTemplateRepository,
    SqlAlchemyMaterialIndexRepository,
    SqlAlchemySupplierPriceRepository,
)
from domain.mapping_service import MappingService
from domain.ports import CachePort
from domain.quality import STALE_AFTER_DAYS
from domain.quote_service import QuoteService


def build_mapping_service(
    session: Session,
    tenant_id: str,
    config: dict | None = None,
    cache: CachePort | None = None,
) -> MappingService:
    config = config or {}
    cache_config = config.get("cache", {})
    if cache is None:
        cache = get_cache_adapter(cache_config.get("redis_url"), cache_config.get("prefix", DEFAULT_PREFIX))
    return MappingService(
        imports=SqlAlchemyImportRepository(session, tenant_id),
        mappings=SqlAlchemyColumnMappingRepository(session, tenant_id),
        memory=SqlAlchemyMappingMemoryRepository(session, tenant_id),
        templates=SqlAlchemyMappingTemplateRepository(session, tenant_id),
        cache=cache,
        limits=config.get("mapping"),
        cache_ttl=cache_config.get("ttl", 3600),
        cache_namespace=tenant_id,
    )


def build_quote_service(session: Session, tenant_id: str, config: dict | None = None) -> QuoteService:
    config = config or {}
    return QuoteService(
        catalogue=SqlAlchemyCatalogueRepository(session, tenant_id),
        prices=SqlAlchemySupplierPriceRepository(session, tenant_id),
        indices=SqlAlchemyMaterialIndexRepository(session, tenant_id),
        stale_after_days=config.get("quality", {}).get("stale_after_days", STALE_AFTER_DAYS),
    )
