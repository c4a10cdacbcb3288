"""
Database-backed order load reader.

Reads restaurants and active-order counts through the request's
``AsyncSession``.
"""

from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import ACTIVE_ORDER_STATUSES, Order, OrderStatus, Restaurant
from app.services.estimation.base import OrderLoadReader, RestaurantSnapshot


class SqlAlchemyOrderLoadReader(OrderLoadReader):
    """Order load reader over the application database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "sqlalchemy"

    async def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantSnapshot]:
        result = await self.db.execute(
            select(
                Restaurant.id,
                Restaurant.name,
                Restaurant.delivery_time_minutes,
            ).where(Restaurant.id == restaurant_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return RestaurantSnapshot(
            id=row.id,
            name=row.name,
            base_delivery_minutes=row.delivery_time_minutes,
        )

    async def count_active_orders(
        self,
        restaurant_id: int,
        statuses: Iterable[OrderStatus] = ACTIVE_ORDER_STATUSES,
    ) -> int:
        result = await self.db.execute(
            select(func.count(Order.id)).where(
                Order.restaurant_id == restaurant_id,
                Order.status.in_(list(statuses)),
            )
        )
        return result.scalar() or 0
