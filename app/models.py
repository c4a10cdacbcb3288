"""
SQLAlchemy Database Models

Restaurants with their cuisines and menus, and customer orders. Each order
carries the delivery estimate computed when it was placed.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    JSON,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Orders that still occupy the kitchen and count toward its backlog
ACTIVE_ORDER_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING)


class Restaurant(Base):
    """
    Restaurant listed in the storefront.

    ``delivery_time_minutes`` is the nominal delivery duration used as the
    base of every order estimate.
    """
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    image = Column(String(500), nullable=True)

    # =========================================================================
    # ADDRESS
    # =========================================================================
    street = Column(String(255), nullable=False)
    city = Column(String(50), nullable=False)
    state = Column(String(50), nullable=False)
    zip_code = Column(String(10), nullable=False)

    # =========================================================================
    # LISTING
    # =========================================================================
    rating = Column(Float, nullable=False, default=0.0)
    featured = Column(Boolean, nullable=False, default=False, index=True)
    cuisines = relationship(
        "RestaurantCuisine",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RestaurantCuisine.id",
    )

    # =========================================================================
    # DELIVERY TERMS
    # =========================================================================
    delivery_time_minutes = Column(Integer, nullable=False)
    delivery_fee = Column(Float, nullable=False)
    min_order_amount = Column(Float, nullable=False)

    # =========================================================================
    # OPENING HOURS
    # =========================================================================
    opening_time = Column(String(5), nullable=False, default="09:00")
    closing_time = Column(String(5), nullable=False, default="22:00")
    # Weekdays the restaurant opens, 0 = Sunday
    days_open = Column(JSON, nullable=False, default=lambda: list(range(7)))
    manually_closed = Column(Boolean, nullable=False, default=False)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    menu_items = relationship(
        "MenuItem",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MenuItem.id",
    )
    orders = relationship("Order", back_populates="restaurant")

    @property
    def cuisine(self) -> list[str]:
        """Cuisine names in insertion order."""
        return [c.name for c in self.cuisines]

    @property
    def menu(self) -> list["MenuItem"]:
        """Menu items customers can order."""
        return [item for item in self.menu_items if item.available]

    def __repr__(self):
        return f"<Restaurant #{self.id} - {self.name}>"


class RestaurantCuisine(Base):
    """One cuisine tag of a restaurant."""
    __tablename__ = "restaurant_cuisines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(50), nullable=False, index=True)

    restaurant = relationship("Restaurant", back_populates="cuisines")


class MenuItem(Base):
    """
    Dish offered by a restaurant.

    Unavailable items stay on the admin menu but are hidden from customers
    and cannot be ordered.
    """
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    image = Column(String(500), nullable=True)
    category = Column(String(50), nullable=False)
    popular = Column(Boolean, nullable=False, default=False)
    available = Column(Boolean, nullable=False, default=True)
    allergens = Column(JSON, nullable=False, default=lambda: [])

    restaurant = relationship("Restaurant", back_populates="menu_items")

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} ({self.price:.2f})>"


class Order(Base):
    """
    Customer order placed against a single restaurant.

    ``estimated_minutes`` and ``estimated_delivery_time`` are written once,
    when the order is created.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id"),
        nullable=False,
        index=True,
    )

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)

    # =========================================================================
    # DELIVERY ADDRESS
    # =========================================================================
    street = Column(String(255), nullable=False)
    city = Column(String(50), nullable=False)
    state = Column(String(50), nullable=False)
    zip_code = Column(String(10), nullable=False)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(Text, nullable=False)  # JSON string of ordered items
    special_instructions = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    tax = Column(Float, nullable=False)
    delivery_fee = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_method = Column(String(50), nullable=False)
    payment_id = Column(String(100), nullable=False)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    # =========================================================================
    # DELIVERY ESTIMATE
    # =========================================================================
    estimated_minutes = Column(Float, nullable=False)
    estimated_delivery_time = Column(DateTime(timezone=True), nullable=False)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    restaurant = relationship("Restaurant", back_populates="orders")

    def __repr__(self):
        return f"<Order #{self.id} - {self.customer_name} - {self.status.value}>"
