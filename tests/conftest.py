import os
from datetime import datetime

# Must be set before the application settings are first loaded
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENV_MODE"] = "development"

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import app.models  # noqa: F401
from app.database import Base, build_engine, get_db
from app.models import MenuItem, Order, OrderStatus, Restaurant, RestaurantCuisine
from app.services.estimation import DeliveryEstimator, SqlAlchemyOrderLoadReader

DEFAULT_MENU = [
    {
        "name": "Margherita",
        "description": "Tomato, mozzarella and basil",
        "price": 12.5,
        "category": "Main Course",
        "popular": True,
    },
    {
        "name": "Tiramisu",
        "description": "Espresso-soaked ladyfingers",
        "price": 7.0,
        "category": "Desserts",
        "allergens": ["Dairy", "Gluten"],
    },
]


class FixedClock:
    """Evaluation time for estimates made through the API."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class FakeExportTask:
    """Stands in for the Celery task; records payloads instead of queuing."""

    def __init__(self):
        self.payloads = []

    def delay(self, payload):
        self.payloads.append(payload)


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_restaurant(db):
    async def _make(**overrides):
        cuisine = overrides.pop("cuisine", ["Italian"])
        menu = overrides.pop("menu", DEFAULT_MENU)
        fields = {
            "name": "Luigi's Trattoria",
            "description": "Wood-fired pizza and fresh pasta",
            "street": "12 Mulberry Street",
            "city": "New York",
            "state": "NY",
            "zip_code": "10013",
            "rating": 4.5,
            "featured": False,
            "delivery_time_minutes": 30,
            "delivery_fee": 5.0,
            "min_order_amount": 15.0,
        }
        fields.update(overrides)
        restaurant = Restaurant(**fields)
        for name in cuisine:
            restaurant.cuisines.append(RestaurantCuisine(name=name))
        for item in menu:
            restaurant.menu_items.append(MenuItem(**item))
        db.add(restaurant)
        await db.commit()
        await db.refresh(restaurant)
        return restaurant

    return _make


@pytest.fixture
def make_order(db):
    async def _make(restaurant, status=OrderStatus.PENDING, **overrides):
        fields = {
            "restaurant_id": restaurant.id,
            "customer_name": "Jane Smith",
            "street": "350 Fifth Avenue",
            "city": "New York",
            "state": "NY",
            "zip_code": "10001",
            "items": '[{"menu_item_id": 1, "name": "Margherita", "unit_price": 12.0, "quantity": 1}]',
            "subtotal": 12.0,
            "tax": 0.96,
            "delivery_fee": 5.0,
            "total_amount": 17.96,
            "payment_method": "card",
            "payment_id": "pay_00000001",
            "status": status,
            "estimated_minutes": 30.0,
            "estimated_delivery_time": datetime(2024, 1, 1, 12, 0),
        }
        fields.update(overrides)
        order = Order(**fields)
        db.add(order)
        await db.commit()
        await db.refresh(order)
        return order

    return _make


@pytest.fixture
def export_task(monkeypatch):
    from app import main

    task = FakeExportTask()
    monkeypatch.setattr(main, "export_order_to_excel", task)
    return task


@pytest.fixture
def clock():
    # Off-peak by default
    return FixedClock(datetime(2024, 5, 1, 9, 0).astimezone())


@pytest.fixture
async def client(session_maker, export_task, clock):
    from app.main import app, get_estimator

    async def override_get_db():
        async with session_maker() as session:
            yield session

    async def override_get_estimator(db=Depends(get_db)):
        return DeliveryEstimator(SqlAlchemyOrderLoadReader(db), clock=clock)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_estimator] = override_get_estimator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
