from fastapi import APIRouter, Depends
import logging

from shop.core.config import settings
from shop.core.store import KeyedStore
from shop.utils import deps

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/health", response_model=dict)
async def health_check(store: KeyedStore = Depends(deps.get_store)):
    try:
        store_ok = await store.ping()
    except Exception as e:
        logger.error(f"Store health check failed: {e}")
        store_ok = False

    return {
        "status": "healthy" if store_ok else "degraded",
        "version": settings.VERSION,
        "store": {
            "backend": type(store).__name__,
            "reachable": store_ok,
        },
    }
