"""
Delivery Time Estimator

Computes the estimated delivery time of a new order:

    estimated = base_minutes + active_orders * load_penalty
    estimated *= peak_multiplier        (only during peak hours)
    delivery_time = now + estimated

The estimate is taken once, right before the order is persisted. The
active-order count is read without locking, so two orders created at the
same moment for the same restaurant may see the same backlog.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from app.core.config import get_settings
from app.services.estimation.base import (
    EstimationResult,
    OrderLoadReader,
    RestaurantNotFound,
)
from app.services.estimation.peak_hours import PEAK_WINDOWS, HourWindow, is_peak_hour

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    """Current server time, aware of the server's local UTC offset."""
    return datetime.now().astimezone()


class DeliveryEstimator:
    """
    Load- and time-of-day-aware delivery estimator.

    Attributes:
        reader: Source of restaurants and active-order counts
        load_penalty_minutes: Minutes added per pending/preparing order
        peak_multiplier: Factor applied once during peak hours
        peak_windows: Closed hour intervals considered peak
        clock: Returns the evaluation time when none is given

    Example:
        >>> estimator = DeliveryEstimator(reader)
        >>> result = await estimator.estimate(restaurant_id=1)
        >>> print(result.estimated_minutes)
        36.0
    """

    def __init__(
        self,
        reader: OrderLoadReader,
        load_penalty_minutes: Optional[float] = None,
        peak_multiplier: Optional[float] = None,
        peak_windows: Sequence[HourWindow] = PEAK_WINDOWS,
        clock: Callable[[], datetime] = local_now,
    ):
        settings = get_settings()
        self.reader = reader
        self.load_penalty_minutes = (
            settings.load_penalty_minutes
            if load_penalty_minutes is None else load_penalty_minutes
        )
        self.peak_multiplier = (
            settings.peak_multiplier
            if peak_multiplier is None else peak_multiplier
        )
        self.peak_windows = tuple(peak_windows)
        self.clock = clock

    def compute_minutes(
        self,
        base_minutes: int,
        active_orders: int,
        current_hour: int,
    ) -> float:
        """
        Pure estimate in minutes.

        The load penalty is added first; the peak multiplier is then
        applied to the sum.

        Args:
            base_minutes: Restaurant base delivery time (> 0)
            active_orders: Pending/preparing orders (>= 0)
            current_hour: Local hour of day in [0, 23]

        Returns:
            float: Estimated minutes
        """
        estimated = float(base_minutes + active_orders * self.load_penalty_minutes)
        if is_peak_hour(current_hour, self.peak_windows):
            estimated *= self.peak_multiplier
        return estimated

    async def estimate(
        self,
        restaurant_id: int,
        now: Optional[datetime] = None,
    ) -> EstimationResult:
        """
        Estimate the delivery time of a new order for a restaurant.

        Args:
            restaurant_id: Restaurant the order is placed with
            now: Evaluation time (defaults to ``clock()``). Its wall-clock
                hour decides peak pricing and its offset is kept on the
                delivery time

        Returns:
            EstimationResult: Minutes and absolute delivery time

        Raises:
            RestaurantNotFound: If the restaurant does not exist
        """
        restaurant = await self.reader.get_restaurant(restaurant_id)
        if restaurant is None:
            logger.warning(f"Cannot estimate delivery: restaurant #{restaurant_id} not found")
            raise RestaurantNotFound(restaurant_id)

        active_orders = await self.reader.count_active_orders(restaurant_id)

        now = now or self.clock()
        peak = is_peak_hour(now.hour, self.peak_windows)
        minutes = self.compute_minutes(
            restaurant.base_delivery_minutes,
            active_orders,
            now.hour,
        )

        result = EstimationResult(
            restaurant_id=restaurant_id,
            base_minutes=restaurant.base_delivery_minutes,
            active_orders=active_orders,
            is_peak_hour=peak,
            estimated_minutes=minutes,
            estimated_delivery_time=now + timedelta(minutes=minutes),
        )

        logger.info(
            f"Estimate for {restaurant.name} (#{restaurant_id}): "
            f"{minutes:.1f} min "
            f"(base={restaurant.base_delivery_minutes}, active={active_orders}, "
            f"peak={'yes' if peak else 'no'})"
        )
        return result
