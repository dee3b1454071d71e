"""Pydantic schemas for request/response bodies."""

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    MAX_TEXT_LENGTH,
    OrderCategory,
    OrderSource,
    OrderStatus,
    SortField,
    SortOrder,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)


class OrderBase(CamelModel):
    customer: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH, description="Customer name")
    category: OrderCategory
    date: dt.date = Field(..., description="Order date, YYYY-MM-DD")
    source: OrderSource
    geo: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH, description="Customer location")
    amount: Optional[float] = Field(None, ge=0, description="Order amount")
    status: OrderStatus = OrderStatus.PENDING

    @field_validator("customer", "geo", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class OrderCreate(OrderBase):
    pass


class OrderUpdate(CamelModel):
    customer: Optional[str] = Field(None, min_length=1, max_length=MAX_TEXT_LENGTH)
    category: Optional[OrderCategory] = None
    date: Optional[dt.date] = None
    source: Optional[OrderSource] = None
    geo: Optional[str] = Field(None, min_length=1, max_length=MAX_TEXT_LENGTH)
    amount: Optional[float] = Field(None, ge=0)
    status: Optional[OrderStatus] = None

    @field_validator("customer", "geo", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class OrderOut(OrderBase):
    id: str
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class OrderQuery(CamelModel):
    """Normalized list query. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    page: int = Field(1, ge=1)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    sort_by: SortField = SortField.DATE
    sort_order: SortOrder = SortOrder.DESC
    category: Optional[str] = None
    source: Optional[str] = None
    geo: Optional[str] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    search: Optional[str] = None

    @field_validator("category", "source", "geo", "search", "date_from", "date_to", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class Pagination(CamelModel):
    model_config = ConfigDict(frozen=True)

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class AppliedFilters(CamelModel):
    model_config = ConfigDict(frozen=True)

    category: Optional[str] = None
    source: Optional[str] = None
    geo: Optional[str] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    search: Optional[str] = None


class OrderListResponse(CamelModel):
    model_config = ConfigDict(frozen=True)

    orders: List[OrderOut]
    pagination: Pagination
    filters: AppliedFilters


class OrderStats(CamelModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    total_amount: float = 0
    average_amount: float = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_source: Dict[str, int] = Field(default_factory=dict)
    by_location: Dict[str, int] = Field(default_factory=dict)


class ErrorBody(BaseModel):
    error: str
    message: str
    details: Optional[Any] = None
