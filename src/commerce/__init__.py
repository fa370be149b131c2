"""
Storefront Domain Module
"""
from .defaults import DefaultRecordManager, addresses, payment_gateways, payment_methods, shipping_methods
from .exceptions import (
    NotFoundError,
    PermissionDenied,
    StatisticsUnavailable,
    StoreFailure,
    StorefrontError,
    ValidationFailure,
)
from .slugs import slugify
from .statistics import StatisticsReporter, change_ratio

__all__ = [
    "DefaultRecordManager",
    "addresses",
    "payment_gateways",
    "payment_methods",
    "shipping_methods",
    "NotFoundError",
    "PermissionDenied",
    "StatisticsUnavailable",
    "StoreFailure",
    "StorefrontError",
    "ValidationFailure",
    "slugify",
    "StatisticsReporter",
    "change_ratio",
]
