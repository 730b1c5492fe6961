from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "SimRacing Shop"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./shop.db"

    # Redis; when unset the in-memory store is used
    REDIS_URL: Optional[str] = None
    KEY_PREFIX: str = "SimRacingShop:"

    # Cart
    CART_TTL_SECONDS: int = 60 * 60 * 24 * 30  # 30 days
    MAX_QUANTITY_PER_PRODUCT: int = 99
    CART_SESSION_HEADER: str = "X-Cart-Session"

    # Catalog
    DEFAULT_LOCALE: str = "es"
    SUPPORTED_LOCALES: List[str] = ["es", "en"]
    CACHE_ENABLED: bool = True

    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"

settings = Settings()
