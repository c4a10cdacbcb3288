"""
In-memory order load reader.

Keeps restaurants and order statuses in plain dictionaries. Useful for
exercising the estimator without a database.
"""

import logging
from typing import Iterable, Mapping, Optional

from app.models import ACTIVE_ORDER_STATUSES, OrderStatus
from app.services.estimation.base import OrderLoadReader, RestaurantSnapshot

logger = logging.getLogger(__name__)


class InMemoryOrderLoadReader(OrderLoadReader):
    """
    Dictionary-backed order load reader.

    Attributes:
        restaurants: Restaurant snapshots by id
        orders: Order statuses keyed by order id, grouped by restaurant id

    Example:
        >>> reader = InMemoryOrderLoadReader([RestaurantSnapshot(1, "Luigi's", 30)])
        >>> reader.add_order(1, order_id=10, status=OrderStatus.PENDING)
        >>> await reader.count_active_orders(1)
        1
    """

    def __init__(
        self,
        restaurants: Optional[Iterable[RestaurantSnapshot]] = None,
        orders: Optional[Mapping[int, Mapping[int, OrderStatus]]] = None,
    ):
        self.restaurants: dict[int, RestaurantSnapshot] = {}
        self.orders: dict[int, dict[int, OrderStatus]] = {}

        for restaurant in restaurants or ():
            self.add_restaurant(restaurant)
        for restaurant_id, statuses in (orders or {}).items():
            for order_id, status in statuses.items():
                self.add_order(restaurant_id, order_id, status)

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "memory"

    def add_restaurant(self, restaurant: RestaurantSnapshot) -> None:
        self.restaurants[restaurant.id] = restaurant
        self.orders.setdefault(restaurant.id, {})

    def add_order(
        self,
        restaurant_id: int,
        order_id: int,
        status: OrderStatus = OrderStatus.PENDING,
    ) -> None:
        self.orders.setdefault(restaurant_id, {})[order_id] = status

    def set_status(self, restaurant_id: int, order_id: int, status: OrderStatus) -> None:
        if order_id not in self.orders.get(restaurant_id, {}):
            raise KeyError(f"Order #{order_id} not found for restaurant #{restaurant_id}")
        self.orders[restaurant_id][order_id] = status
        logger.debug(f"Order #{order_id} -> {status.value}")

    async def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantSnapshot]:
        return self.restaurants.get(restaurant_id)

    async def count_active_orders(
        self,
        restaurant_id: int,
        statuses: Iterable[OrderStatus] = ACTIVE_ORDER_STATUSES,
    ) -> int:
        wanted = set(statuses)
        return sum(
            1 for status in self.orders.get(restaurant_id, {}).values()
            if status in wanted
        )
