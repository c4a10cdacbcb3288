"""
Delivery Estimation Service

Provides a single entry point for obtaining an estimator bound to the
current database session.

Usage:
    from app.services.estimation import get_delivery_estimator

    estimator = get_delivery_estimator(db)
    result = await estimator.estimate(restaurant_id=1)
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.estimation.base import (
    EstimationResult,
    OrderLoadReader,
    RestaurantNotFound,
    RestaurantSnapshot,
    ValidationError,
)
from app.services.estimation.estimator import DeliveryEstimator, local_now
from app.services.estimation.memory import InMemoryOrderLoadReader
from app.services.estimation.peak_hours import PEAK_WINDOWS, is_peak_hour
from app.services.estimation.sqlalchemy_reader import SqlAlchemyOrderLoadReader


def get_delivery_estimator(db: AsyncSession) -> DeliveryEstimator:
    """
    Build an estimator that reads from the given session.

    Args:
        db: Active database session of the current request

    Returns:
        DeliveryEstimator: Estimator using configured penalty and multiplier
    """
    return DeliveryEstimator(SqlAlchemyOrderLoadReader(db))


__all__ = [
    "get_delivery_estimator",
    "DeliveryEstimator",
    "local_now",
    "EstimationResult",
    "OrderLoadReader",
    "RestaurantSnapshot",
    "RestaurantNotFound",
    "ValidationError",
    "SqlAlchemyOrderLoadReader",
    "InMemoryOrderLoadReader",
    "PEAK_WINDOWS",
    "is_peak_hour",
]
