"""Enumerations and limits shared across the API."""

from enum import Enum


class OrderCategory(str, Enum):
    ELECTRONICS = "Electronics"
    CLOTHING = "Clothing"
    BOOKS = "Books"
    HOME_GARDEN = "Home & Garden"
    SPORTS = "Sports"
    AUTOMOTIVE = "Automotive"
    HEALTH_BEAUTY = "Health & Beauty"
    TOYS_GAMES = "Toys & Games"


class OrderSource(str, Enum):
    ONLINE = "Online"
    STORE = "Store"
    PHONE = "Phone"
    MOBILE_APP = "Mobile App"
    SOCIAL_MEDIA = "Social Media"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class SortField(str, Enum):
    DATE = "date"
    CUSTOMER = "customer"
    AMOUNT = "amount"
    CREATED_AT = "createdAt"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MAX_TEXT_LENGTH = 100

STATS_CACHE_PREFIX = "order-stats"
ORDERS_CACHE_NAMESPACE = "orders"
