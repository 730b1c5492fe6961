"""Cache configuration and TTL settings"""

# Cache TTL (Time To Live) configurations in seconds
CACHE_TTL = {
    # Catalog detail pages - change only on admin writes
    "product_detail": 60 * 60 * 24,   # 24 hours
    "category_detail": 60 * 60 * 24,  # 24 hours

    # Catalog listings - swept on writes, short TTL as a backstop
    "product_list": 60 * 60,          # 1 hour
    "category_list": 60 * 60,         # 1 hour
}

# Catalog cache domains
PRODUCTS_DOMAIN = "products"
CATEGORIES_DOMAIN = "categories"

# Cache key patterns
CACHE_KEYS = {
    "detail_by_id": "{}:detail:id:{}:{}",
    "detail_by_slug": "{}:detail:slug:{}:{}",
    "list": "{}:list:{}",
}

# Cart key patterns; the first placeholder is always the opaque cart key
CART_KEYS = {
    "user_cart": "cart:user:{}",
    "session_cart": "cart:session:{}",
    "items": "{}",
    "modifiers": "{}:modifiers",
    "selected_options": "{}:selectedoptions",
}

# Cache invalidation patterns - what to sweep when data changes
INVALIDATION_PATTERNS = {
    "product_write": [
        "products:list:*",
    ],
    "category_write": [
        "categories:list:*",
    ],
}
