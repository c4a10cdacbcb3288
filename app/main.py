"""
FastAPI Application Entry Point

Food Ordering API - restaurants, orders and load-aware delivery estimates.

Endpoints:
    - GET /api/restaurants: Browse restaurants (search, filter, sort, paginate)
    - GET /api/restaurants/{id}: Restaurant details with its available menu
    - GET /api/restaurants/{id}/estimate: Current delivery estimate
    - POST /api/orders: Place an order
    - GET /api/orders: List orders
    - GET /api/admin/restaurants, PATCH /api/admin/restaurants/{id}
    - GET /api/admin/orders, PATCH /api/admin/orders/{id}
    - GET /api/admin/menu-items, PATCH /api/admin/menu-items
    - POST /api/seed: Demo data (development only)
    - GET /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Optional

import redis
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings, setup_logging
from app.database import engine, get_db, init_db
from app.models import Order, OrderStatus
from app.schemas import (
    EstimateResponse,
    ErrorResponse,
    HealthResponse,
    MenuItemAvailabilityUpdate,
    MenuItemListResponse,
    MenuItemResponse,
    MenuItemUpdateResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderStatusUpdateResponse,
    PaginationInfo,
    RestaurantDetailResponse,
    RestaurantListResponse,
    RestaurantResponse,
    RestaurantUpdate,
    RestaurantUpdateResponse,
    SeedResponse,
)
from app.services import orders as order_service
from app.services import restaurants as restaurant_service
from app.services.estimation import (
    DeliveryEstimator,
    RestaurantNotFound,
    get_delivery_estimator,
)
from app.services.orders import OrderNotFound, order_export_payload
from app.services.restaurants import MenuItemNotFound, MenuItemUnavailable
from app.tasks import export_order_to_excel

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info(
        f"   Estimation: +{settings.load_penalty_minutes} min/active order, "
        f"x{settings.peak_multiplier} at peak"
    )
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    yield  # Application runs

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Food ordering backend. Every order gets a delivery estimate based on "
        "the restaurant's base time, its current backlog and peak hours."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def parse_status(status: Optional[str]) -> Optional[OrderStatus]:
    """Convert a status query parameter into an OrderStatus."""
    if status is None:
        return None
    try:
        return OrderStatus(status.lower())
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Options: {[s.value for s in OrderStatus]}"
        )


async def get_estimator(db: AsyncSession = Depends(get_db)) -> DeliveryEstimator:
    """Delivery estimator bound to the request's database session."""
    return get_delivery_estimator(db)


def queue_order_export(order: Order) -> None:
    """Hand a placed order to the Celery export worker."""
    try:
        export_order_to_excel.delay(order_export_payload(order))
    except Exception as e:
        # The order is already committed; a broker outage only delays the ledger
        logger.error(f"Could not queue export for Order #{order.id}: {e}")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify database and broker connectivity."""

    db_status = "healthy"
    try:
        await db.execute(select(func.count()).select_from(Order))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# RESTAURANT ENDPOINTS
# =============================================================================

@app.get(
    "/api/restaurants",
    response_model=RestaurantListResponse,
    tags=["Restaurants"],
    summary="Browse Restaurants",
)
async def list_restaurants(
    search: Optional[str] = Query(None),
    cuisine: Optional[list[str]] = Query(None),
    featured: Optional[bool] = Query(None),
    sort: Optional[str] = Query(None, examples=["-rating"]),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> RestaurantListResponse:
    """Featured restaurants first, then by ``sort`` (``-field`` = descending)."""
    try:
        result = await restaurant_service.list_restaurants(
            db,
            search=search,
            cuisine=cuisine,
            featured=featured,
            sort=sort,
            page=page,
            limit=limit,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return RestaurantListResponse(
        restaurants=[RestaurantResponse.model_validate(r) for r in result.restaurants],
        total_count=result.total_count,
        pagination=PaginationInfo(
            current_page=result.current_page,
            total_pages=result.total_pages,
            total_count=result.total_count,
            has_more=result.has_more,
        ),
    )


@app.get(
    "/api/restaurants/{restaurant_id}",
    response_model=RestaurantDetailResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Restaurants"],
)
async def get_restaurant(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> RestaurantDetailResponse:
    """Get a restaurant with the menu items customers can order."""
    try:
        restaurant = await restaurant_service.get_restaurant(db, restaurant_id)
    except RestaurantNotFound:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return RestaurantDetailResponse.model_validate(restaurant)


@app.get(
    "/api/restaurants/{restaurant_id}/estimate",
    response_model=EstimateResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Restaurants"],
    summary="Delivery Estimate Preview",
)
async def get_delivery_estimate(
    restaurant_id: int,
    estimator: DeliveryEstimator = Depends(get_estimator),
) -> EstimateResponse:
    """Estimate a new order's delivery time without placing it."""
    try:
        result = await estimator.estimate(restaurant_id)
    except RestaurantNotFound:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return EstimateResponse(**asdict(result))


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    status_code=201,
    response_model=OrderCreateResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    estimator: DeliveryEstimator = Depends(get_estimator),
) -> OrderCreateResponse:
    """
    Place a new order.

    The delivery estimate is computed from the restaurant's current
    backlog right before the order is saved.
    """
    logger.info(
        f"Creating order for {order_data.customer_name} "
        f"at restaurant #{order_data.restaurant_id}"
    )

    try:
        new_order = await order_service.create_order(db, order_data, estimator=estimator)
    except RestaurantNotFound:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    except (MenuItemNotFound, MenuItemUnavailable) as e:
        logger.warning(f"Order rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    queue_order_export(new_order)

    return OrderCreateResponse(
        success=True,
        message="Order placed successfully!",
        order=OrderResponse.model_validate(new_order),
        estimated_minutes=new_order.estimated_minutes,
        estimated_delivery=(
            new_order.estimated_delivery_time.astimezone().strftime("%I:%M %p")
        ),
    )


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Retrieve paginated list of orders."""
    total, orders = await order_service.list_orders(
        db, skip=skip, limit=limit, status=parse_status(status)
    )
    return OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(order) for order in orders],
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Get a specific order by ID."""
    try:
        order = await order_service.get_order(db, order_id)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return OrderResponse.model_validate(order)


# =============================================================================
# ADMIN ENDPOINTS
# =============================================================================

@app.get(
    "/api/admin/restaurants",
    response_model=list[RestaurantResponse],
    tags=["Admin"],
)
async def admin_list_restaurants(
    db: AsyncSession = Depends(get_db),
) -> list[RestaurantResponse]:
    """All restaurants sorted by name."""
    restaurants = await restaurant_service.list_all_restaurants(db)
    return [RestaurantResponse.model_validate(r) for r in restaurants]


@app.patch(
    "/api/admin/restaurants/{restaurant_id}",
    response_model=RestaurantUpdateResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Admin"],
)
async def admin_update_restaurant(
    restaurant_id: int,
    changes: RestaurantUpdate,
    db: AsyncSession = Depends(get_db),
) -> RestaurantUpdateResponse:
    """Update opening hours, closure flag and delivery terms."""
    try:
        restaurant = await restaurant_service.update_restaurant(db, restaurant_id, changes)
    except RestaurantNotFound:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return RestaurantUpdateResponse(
        message="Restaurant updated successfully",
        restaurant=RestaurantResponse.model_validate(restaurant),
    )


@app.get(
    "/api/admin/menu-items",
    response_model=MenuItemListResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Admin"],
)
async def admin_list_menu_items(
    restaurant_id: int = Query(..., ge=1),
    db: AsyncSession = Depends(get_db),
) -> MenuItemListResponse:
    """Full menu of a restaurant, unavailable items included."""
    try:
        items = await restaurant_service.list_menu_items(db, restaurant_id)
    except RestaurantNotFound:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return MenuItemListResponse(
        menu_items=[MenuItemResponse.model_validate(item) for item in items]
    )


@app.patch(
    "/api/admin/menu-items",
    response_model=MenuItemUpdateResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Admin"],
)
async def admin_update_menu_item(
    update: MenuItemAvailabilityUpdate,
    db: AsyncSession = Depends(get_db),
) -> MenuItemUpdateResponse:
    """Switch a menu item on or off."""
    try:
        item = await restaurant_service.set_menu_item_availability(
            db, update.restaurant_id, update.menu_item_id, update.available
        )
    except RestaurantNotFound:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    except MenuItemNotFound:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return MenuItemUpdateResponse(
        message="Menu item updated successfully",
        menu_item=MenuItemResponse.model_validate(item),
    )


@app.get(
    "/api/admin/orders",
    response_model=OrderListResponse,
    tags=["Admin"],
)
async def admin_list_orders(
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """All orders, newest first, optionally filtered by status."""
    total, orders = await order_service.list_orders(
        db, skip=0, limit=1000, status=parse_status(status)
    )
    return OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(order) for order in orders],
    )


@app.patch(
    "/api/admin/orders/{order_id}",
    response_model=OrderStatusUpdateResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Admin"],
)
async def admin_update_order_status(
    order_id: int,
    update: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> OrderStatusUpdateResponse:
    """Move an order through its lifecycle."""
    try:
        order = await order_service.update_order_status(
            db, order_id, update.status
        )
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return OrderStatusUpdateResponse(
        message="Order status updated",
        order=OrderResponse.model_validate(order),
    )


# =============================================================================
# DEVELOPMENT ENDPOINTS
# =============================================================================

@app.post(
    "/api/seed",
    response_model=SeedResponse,
    tags=["Development"],
    summary="Seed Demo Restaurants",
)
async def seed_database(
    count: Optional[int] = Query(None, ge=1, le=500),
    clear: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> SeedResponse:
    """Create demo restaurants. Only available in development mode."""
    if not settings.is_development:
        raise HTTPException(
            status_code=403,
            detail="Seeding is not allowed outside development mode"
        )

    restaurants = await restaurant_service.seed_restaurants(
        db,
        count=count or settings.seed_restaurant_count,
        clear=clear,
    )
    return SeedResponse(
        message="Database seeded successfully",
        restaurants_created=len(restaurants),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
