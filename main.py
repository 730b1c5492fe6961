from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from shop.core.config import settings
from shop.core.database import Base, engine
from shop.core.logging import configure_logging
from shop.core.store import KeyedStore, create_keyed_store
from shop.endpoints import admin, cart, catalog, utility
from shop.middleware.exceptions import global_exception_handler, http_exception_handler, validation_exception_handler
from shop.middleware.logging import RequestLoggingMiddleware
from shop.models import category, product  # noqa: F401  registers the tables on Base
import logging

logger = logging.getLogger(__name__)

def create_app(store: Optional[KeyedStore] = None) -> FastAPI:
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json"
    )
    app.state.store = store or create_keyed_store(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Cache"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(cart.router, prefix="/cart", tags=["Cart"])
    app.include_router(catalog.products_router, prefix="/products", tags=["Products"])
    app.include_router(catalog.categories_router, prefix="/categories", tags=["Categories"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])
    app.include_router(utility.router, prefix="/utility", tags=["utility"])

    @app.on_event("startup")
    async def startup_event():
        Base.metadata.create_all(bind=engine)
        logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started with {type(app.state.store).__name__}")

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.store.close()

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
