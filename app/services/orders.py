"""
Order Service

Order-creation pipeline and admin order management.

Creation steps:
    1. Resolve the restaurant (aborts with RestaurantNotFound)
    2. Price the items from the restaurant menu (aborts on unknown or
       unavailable items)
    3. Estimate the delivery time from the restaurant's current backlog
    4. Persist the order, pending, with its estimate

The estimate is written once here and never recomputed on later updates.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models import Order, OrderStatus, Restaurant
from app.schemas import OrderCreate, OrderItemCreate
from app.services.estimation import (
    DeliveryEstimator,
    RestaurantNotFound,
    get_delivery_estimator,
)
from app.services.restaurants import find_menu_item

logger = logging.getLogger(__name__)


class OrderNotFound(Exception):
    """The requested order does not exist."""

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order #{order_id} not found")


@dataclass(frozen=True)
class OrderLine:
    """An order item priced from the menu at ordering time."""
    menu_item_id: int
    name: str
    unit_price: float
    quantity: int


def price_order_items(
    restaurant: Restaurant,
    items: Sequence[OrderItemCreate],
) -> list[OrderLine]:
    """
    Resolve requested items against the restaurant menu.

    Raises:
        MenuItemNotFound: If an item is not on this restaurant's menu
        MenuItemUnavailable: If an item is switched off
    """
    lines = []
    for item in items:
        menu_item = find_menu_item(restaurant, item.menu_item_id, orderable=True)
        lines.append(
            OrderLine(
                menu_item_id=menu_item.id,
                name=menu_item.name,
                unit_price=menu_item.price,
                quantity=item.quantity,
            )
        )
    return lines


def calculate_order_totals(
    items: Sequence[OrderLine],
    delivery_fee: float,
    tax_rate: float,
) -> dict[str, float]:
    """Calculate order subtotal, tax, and total."""
    subtotal = sum(item.quantity * item.unit_price for item in items)
    tax = round(subtotal * tax_rate, 2)
    total = round(subtotal + tax + delivery_fee, 2)

    return {
        "subtotal": round(subtotal, 2),
        "tax": tax,
        "delivery_fee": round(delivery_fee, 2),
        "total_amount": total,
    }


def order_export_payload(order: Order) -> dict[str, Any]:
    """Flatten an order into the row shape used by the Excel ledger."""
    return {
        "order_id": order.id,
        "restaurant_id": order.restaurant_id,
        "customer_name": order.customer_name,
        "delivery_address": order.street,
        "city": order.city,
        "state": order.state,
        "zip_code": order.zip_code,
        "items": order.items,
        "special_instructions": order.special_instructions,
        "subtotal": order.subtotal,
        "tax": order.tax,
        "delivery_fee": order.delivery_fee,
        "total_amount": order.total_amount,
        "payment_method": order.payment_method,
        "payment_id": order.payment_id,
        "order_status": order.status.value,
        "estimated_minutes": order.estimated_minutes,
        "estimated_delivery_time": order.estimated_delivery_time.isoformat(),
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


async def create_order(
    db: AsyncSession,
    order_data: OrderCreate,
    estimator: Optional[DeliveryEstimator] = None,
    now: Optional[datetime] = None,
) -> Order:
    """
    Place a new order.

    Args:
        db: Database session
        order_data: Validated order request
        estimator: Delivery estimator (defaults to one bound to ``db``)
        now: Evaluation time for the estimate (defaults to server time)

    Returns:
        Order: The persisted order

    Raises:
        RestaurantNotFound: If the restaurant does not exist; nothing is saved
        MenuItemNotFound, MenuItemUnavailable: If an item cannot be ordered;
            nothing is saved
    """
    settings = get_settings()
    estimator = estimator or get_delivery_estimator(db)

    restaurant = await db.get(Restaurant, order_data.restaurant_id)
    if restaurant is None:
        logger.warning(f"Order rejected: restaurant #{order_data.restaurant_id} not found")
        raise RestaurantNotFound(order_data.restaurant_id)

    lines = price_order_items(restaurant, order_data.items)
    totals = calculate_order_totals(
        lines,
        delivery_fee=restaurant.delivery_fee,
        tax_rate=settings.tax_rate,
    )

    # Counted before the insert: the new order is not part of its own backlog
    estimate = await estimator.estimate(restaurant.id, now=now)

    items_json = json.dumps([asdict(line) for line in lines])

    address = order_data.delivery_address
    new_order = Order(
        restaurant_id=restaurant.id,
        customer_name=order_data.customer_name,
        street=address.street,
        city=address.city,
        state=address.state,
        zip_code=address.zip_code,
        items=items_json,
        special_instructions=order_data.special_instructions,
        subtotal=totals["subtotal"],
        tax=totals["tax"],
        delivery_fee=totals["delivery_fee"],
        total_amount=totals["total_amount"],
        payment_method=order_data.payment_method.value,
        payment_id=order_data.payment_id,
        status=OrderStatus.PENDING,
        estimated_minutes=estimate.estimated_minutes,
        estimated_delivery_time=estimate.estimated_delivery_time,
    )

    db.add(new_order)
    await db.commit()
    await db.refresh(new_order)

    logger.info(
        f"Order #{new_order.id} created for {restaurant.name} "
        f"(total={new_order.total_amount:.2f}, eta={estimate.estimated_minutes:.1f} min)"
    )
    return new_order


async def get_order(db: AsyncSession, order_id: int) -> Order:
    """Get an order by ID or raise OrderNotFound."""
    order = await db.get(Order, order_id)
    if order is None:
        raise OrderNotFound(order_id)
    return order


async def list_orders(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 10,
    status: Optional[OrderStatus] = None,
) -> tuple[int, list[Order]]:
    """Return the total count and one page of orders, newest first."""
    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    count_query = select(func.count(Order.id))

    if status is not None:
        query = query.where(Order.status == status)
        count_query = count_query.where(Order.status == status)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    result = await db.execute(query.offset(skip).limit(limit))
    return total, list(result.scalars().all())


async def update_order_status(
    db: AsyncSession,
    order_id: int,
    status: OrderStatus,
) -> Order:
    """
    Change an order's status.

    The delivery estimate recorded at creation is left as is.
    """
    order = await get_order(db, order_id)
    previous = order.status
    order.status = status

    await db.commit()
    await db.refresh(order)

    logger.info(f"Order #{order_id} status: {previous.value} -> {status.value}")
    return order
