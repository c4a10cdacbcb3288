"""
Delivery Estimation Interfaces

Defines the read-only collaborator the estimator depends on, the value
types it exchanges, and the errors it raises.

The estimator never touches the ORM directly. It receives an
``OrderLoadReader`` that answers two questions:
    - What is the base delivery time of this restaurant?
    - How many of its orders are still pending or preparing?
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from app.models import ACTIVE_ORDER_STATUSES, OrderStatus


class ValidationError(Exception):
    """Estimation inputs could not be resolved."""


class RestaurantNotFound(ValidationError):
    """The restaurant referenced by an order does not exist."""

    def __init__(self, restaurant_id: int):
        self.restaurant_id = restaurant_id
        super().__init__(f"Restaurant #{restaurant_id} not found")


@dataclass(frozen=True)
class RestaurantSnapshot:
    """
    The part of a restaurant the estimator reads.

    Attributes:
        id: Restaurant identifier
        name: Display name (for logging)
        base_delivery_minutes: Nominal delivery duration in minutes
    """
    id: int
    name: str
    base_delivery_minutes: int


@dataclass(frozen=True)
class EstimationResult:
    """
    Outcome of a single delivery estimate.

    Attributes:
        restaurant_id: Restaurant the estimate is for
        base_minutes: Restaurant base delivery time
        active_orders: Pending/preparing orders counted at estimation time
        is_peak_hour: Whether the peak multiplier was applied
        estimated_minutes: Final estimate in minutes
        estimated_delivery_time: ``now + estimated_minutes``
    """
    restaurant_id: int
    base_minutes: int
    active_orders: int
    is_peak_hour: bool
    estimated_minutes: float
    estimated_delivery_time: datetime


class OrderLoadReader(ABC):
    """
    Read-only view of restaurants and their order backlog.

    Implementations:
        - SqlAlchemyOrderLoadReader: backed by the application database
        - InMemoryOrderLoadReader: dictionary-backed, for development and tests
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the backing store.

        Returns:
            str: Provider name (e.g., "memory", "sqlalchemy")
        """
        pass

    @abstractmethod
    async def get_restaurant(self, restaurant_id: int) -> Optional[RestaurantSnapshot]:
        """
        Look up a restaurant.

        Args:
            restaurant_id: Restaurant identifier

        Returns:
            The restaurant snapshot, or None if it does not exist
        """
        pass

    @abstractmethod
    async def count_active_orders(
        self,
        restaurant_id: int,
        statuses: Iterable[OrderStatus] = ACTIVE_ORDER_STATUSES,
    ) -> int:
        """
        Count a restaurant's orders whose status is in ``statuses``.

        Args:
            restaurant_id: Restaurant identifier
            statuses: Statuses that count as backlog (pending, preparing)

        Returns:
            int: Number of matching orders
        """
        pass
