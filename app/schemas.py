"""
Pydantic Schemas for Request/Response Validation

Covers:
- Restaurant listing, menus and admin updates
- Order placement with delivery estimate
- Estimate preview
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum
import re

from app.models import OrderStatus


# =============================================================================
# ENUMS
# =============================================================================

class PaymentMethodEnum(str, Enum):
    CARD = "card"
    CASH = "cash"


TIME_OF_DAY = r"^([01]\d|2[0-3]):[0-5]\d$"


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class AddressIn(BaseModel):
    """Delivery address."""
    street: str = Field(..., min_length=5, max_length=255, examples=["350 Fifth Avenue"])
    city: str = Field(..., min_length=1, max_length=50, examples=["New York"])
    state: str = Field(..., min_length=1, max_length=50, examples=["NY"])
    zip_code: str = Field(..., examples=["10001"])

    @field_validator('street', 'city', 'state')
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator('city', 'state')
    @classmethod
    def validate_letters(cls, v: str) -> str:
        if not re.match(r'^[a-zA-Z\s]+$', v):
            raise ValueError('Only letters and spaces are allowed')
        return v

    @field_validator('zip_code')
    @classmethod
    def validate_zip(cls, v: str) -> str:
        if not re.match(r'^\d{5}$', v):
            raise ValueError('Invalid zip code format')
        return v


class OrderItemCreate(BaseModel):
    """Single item in an order. Prices come from the restaurant menu."""
    menu_item_id: int = Field(..., ge=1, examples=[12])
    quantity: int = Field(..., ge=1, le=99, examples=[2])


class OrderCreate(BaseModel):
    """Request schema for placing a new order."""
    restaurant_id: int = Field(..., ge=1, examples=[1])
    customer_name: str = Field(..., min_length=2, max_length=100, examples=["John Doe"])
    delivery_address: AddressIn
    items: List[OrderItemCreate] = Field(..., min_length=1)
    special_instructions: Optional[str] = Field(None, max_length=500)
    payment_method: PaymentMethodEnum = Field(default=PaymentMethodEnum.CARD)
    payment_id: str = Field(..., min_length=1, max_length=100, examples=["pay_12345678"])


class OrderStatusUpdate(BaseModel):
    """Admin status change."""
    status: OrderStatus


class OpeningHoursUpdate(BaseModel):
    """Partial opening-hours change."""
    open: Optional[str] = Field(None, pattern=TIME_OF_DAY, examples=["09:00"])
    close: Optional[str] = Field(None, pattern=TIME_OF_DAY, examples=["22:00"])
    days_open: Optional[List[int]] = Field(None, min_length=1, examples=[[1, 2, 3, 4, 5]])

    @field_validator('days_open')
    @classmethod
    def validate_days(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        if any(day < 0 or day > 6 for day in v):
            raise ValueError('Days must be between 0 (Sunday) and 6 (Saturday)')
        return sorted(set(v))


class MenuItemAvailabilityUpdate(BaseModel):
    """Admin toggle of a menu item."""
    restaurant_id: int = Field(..., ge=1)
    menu_item_id: int = Field(..., ge=1)
    available: bool


class RestaurantUpdate(BaseModel):
    """Admin partial update of a restaurant."""
    manually_closed: Optional[bool] = None
    opening_hours: Optional[OpeningHoursUpdate] = None
    delivery_time_minutes: Optional[int] = Field(None, ge=1, le=240)
    min_order_amount: Optional[float] = Field(None, ge=0)
    delivery_fee: Optional[float] = Field(None, ge=0)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class RestaurantResponse(BaseModel):
    """Response schema for a single restaurant."""
    id: int
    name: str
    description: str
    image: Optional[str]
    street: str
    city: str
    state: str
    zip_code: str
    cuisine: List[str]
    rating: float
    featured: bool
    delivery_time_minutes: int
    delivery_fee: float
    min_order_amount: float
    opening_time: str
    closing_time: str
    days_open: List[int]
    manually_closed: bool

    class Config:
        from_attributes = True


class MenuItemResponse(BaseModel):
    """Response schema for a menu item."""
    id: int
    name: str
    description: str
    price: float
    image: Optional[str]
    category: str
    popular: bool
    available: bool
    allergens: List[str]

    class Config:
        from_attributes = True


class RestaurantDetailResponse(RestaurantResponse):
    """Restaurant with its orderable menu."""
    menu: List[MenuItemResponse]


class MenuItemListResponse(BaseModel):
    menu_items: List[MenuItemResponse]


class MenuItemUpdateResponse(BaseModel):
    message: str
    menu_item: MenuItemResponse


class PaginationInfo(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_more: bool


class RestaurantListResponse(BaseModel):
    """Response for listing restaurants."""
    restaurants: List[RestaurantResponse]
    total_count: int
    pagination: PaginationInfo


class RestaurantUpdateResponse(BaseModel):
    message: str
    restaurant: RestaurantResponse


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: int
    restaurant_id: int
    customer_name: str
    street: str
    city: str
    state: str
    zip_code: str
    items: str
    special_instructions: Optional[str]
    subtotal: float
    tax: float
    delivery_fee: float
    total_amount: float
    payment_method: str
    payment_id: str
    status: OrderStatus
    estimated_minutes: float
    estimated_delivery_time: datetime
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class OrderCreateResponse(BaseModel):
    """Response after successfully placing an order."""
    success: bool
    message: str
    order: OrderResponse
    estimated_minutes: float
    estimated_delivery: str


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


class OrderStatusUpdateResponse(BaseModel):
    message: str
    order: OrderResponse


class EstimateResponse(BaseModel):
    """Delivery estimate preview for a restaurant."""
    restaurant_id: int
    base_minutes: int
    active_orders: int
    is_peak_hour: bool
    estimated_minutes: float
    estimated_delivery_time: datetime


class SeedResponse(BaseModel):
    message: str
    restaurants_created: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    timestamp: datetime
