"""
API dependencies
"""
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shipping_engine.core.database import get_db
from shipping_engine.core.result_cache import ResultCache, build_result_cache
from shipping_engine.services.shipping_config_service import ShippingConfigService
from shipping_engine.services.shipping_service import ShippingService
from shipping_engine.services.shipping_store import SQLAlchemyShippingStore, ShippingStore

# Shared across requests so cached results outlive a single session
_result_cache: Optional[ResultCache] = None


def get_result_cache() -> ResultCache:
    global _result_cache
    if _result_cache is None:
        _result_cache = build_result_cache()
    return _result_cache


def get_shipping_store(db: AsyncSession = Depends(get_db)) -> ShippingStore:
    return SQLAlchemyShippingStore(db)


def get_shipping_service(
    store: ShippingStore = Depends(get_shipping_store),
    cache: ResultCache = Depends(get_result_cache),
) -> ShippingService:
    return ShippingService(store, cache)


def get_shipping_config_service(
    db: AsyncSession = Depends(get_db),
    cache: ResultCache = Depends(get_result_cache),
) -> ShippingConfigService:
    return ShippingConfigService(db, cache)
