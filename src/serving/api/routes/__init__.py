"""
API Routes Module
"""
from .health import router as health_router
from .products import router as products_router
from .orders import router as orders_router
from .users import router as users_router
from .reviews import router as reviews_router
from .payment_methods import router as payment_methods_router
from .addresses import router as addresses_router
from .store_settings import router as store_settings_router
from .stats import router as stats_router
from .wishlist import router as wishlist_router

__all__ = [
    "health_router",
    "products_router",
    "orders_router",
    "users_router",
    "reviews_router",
    "payment_methods_router",
    "addresses_router",
    "store_settings_router",
    "stats_router",
    "wishlist_router",
]
