"""
Restaurant Service

Storefront queries (search, filter, sort, paginate), menus, admin updates
and development seeding of demo restaurants.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Optional, Sequence

from faker import Faker
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import MenuItem, Order, Restaurant, RestaurantCuisine
from app.schemas import RestaurantUpdate
from app.services.estimation import RestaurantNotFound

logger = logging.getLogger(__name__)

CUISINES = [
    "Italian",
    "Mexican",
    "Chinese",
    "Japanese",
    "Indian",
    "American",
    "Thai",
    "Mediterranean",
    "Greek",
    "French",
    "Spanish",
    "Korean",
    "Vietnamese",
]

MENU_CATEGORIES = [
    "Appetizers",
    "Main Course",
    "Desserts",
    "Drinks",
    "Sides",
    "Specials",
]

ALLERGENS = ["Dairy", "Nuts", "Gluten", "Soy", "Shellfish"]

SORTABLE_FIELDS = {
    "name": Restaurant.name,
    "rating": Restaurant.rating,
    "delivery_time_minutes": Restaurant.delivery_time_minutes,
    "delivery_fee": Restaurant.delivery_fee,
    "min_order_amount": Restaurant.min_order_amount,
    "created_at": Restaurant.created_at,
}


class MenuItemNotFound(Exception):
    """The menu item does not exist on this restaurant's menu."""

    def __init__(self, restaurant_id: int, menu_item_id: int):
        self.restaurant_id = restaurant_id
        self.menu_item_id = menu_item_id
        super().__init__(
            f"Menu item #{menu_item_id} not found for restaurant #{restaurant_id}"
        )


class MenuItemUnavailable(Exception):
    """The menu item exists but is currently switched off."""

    def __init__(self, menu_item: MenuItem):
        self.menu_item_id = menu_item.id
        super().__init__(f"Menu item '{menu_item.name}' is not available")


@dataclass
class RestaurantPage:
    """One page of a restaurant listing."""
    restaurants: list[Restaurant]
    current_page: int
    total_pages: int
    total_count: int

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages


def round_rating(value: float) -> float:
    """Ratings are kept in [0, 5] with one decimal."""
    return round(min(max(value, 0.0), 5.0), 1)


async def get_restaurant(db: AsyncSession, restaurant_id: int) -> Restaurant:
    """Get a restaurant by ID or raise RestaurantNotFound."""
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise RestaurantNotFound(restaurant_id)
    return restaurant


async def list_restaurants(
    db: AsyncSession,
    search: Optional[str] = None,
    cuisine: Optional[Sequence[str]] = None,
    featured: Optional[bool] = None,
    sort: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> RestaurantPage:
    """
    List restaurants for the storefront.

    Featured restaurants always come first; ``sort`` names a secondary
    field, prefixed with ``-`` for descending order.

    Args:
        search: Case-insensitive substring of the name
        cuisine: Keep restaurants serving any of these cuisines
        featured: Keep only featured (True) or non-featured (False)
        sort: Secondary sort field, e.g. ``rating`` or ``-rating``
        page: 1-based page number
        limit: Page size

    Raises:
        ValueError: If ``sort`` names an unknown field
    """
    page = max(1, page)
    limit = max(1, limit)

    conditions = []
    if search:
        conditions.append(Restaurant.name.ilike(f"%{search}%"))
    if cuisine:
        conditions.append(
            Restaurant.id.in_(
                select(RestaurantCuisine.restaurant_id).where(
                    RestaurantCuisine.name.in_(list(cuisine))
                )
            )
        )
    if featured is not None:
        conditions.append(Restaurant.featured.is_(featured))

    order_by = [Restaurant.featured.desc()]
    if sort:
        field = sort.lstrip("-")
        if field not in SORTABLE_FIELDS:
            raise ValueError(
                f"Invalid sort field '{field}'. Options: {sorted(SORTABLE_FIELDS)}"
            )
        column = SORTABLE_FIELDS[field]
        order_by.append(column.desc() if sort.startswith("-") else column.asc())
    order_by.append(Restaurant.id.asc())

    count_result = await db.execute(
        select(func.count(Restaurant.id)).where(*conditions)
    )
    total_count = count_result.scalar() or 0

    result = await db.execute(
        select(Restaurant)
        .where(*conditions)
        .order_by(*order_by)
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return RestaurantPage(
        restaurants=list(result.scalars().all()),
        current_page=page,
        total_pages=math.ceil(total_count / limit),
        total_count=total_count,
    )


async def list_all_restaurants(db: AsyncSession) -> list[Restaurant]:
    """All restaurants ordered by name (admin view)."""
    result = await db.execute(select(Restaurant).order_by(Restaurant.name.asc()))
    return list(result.scalars().all())


async def update_restaurant(
    db: AsyncSession,
    restaurant_id: int,
    changes: RestaurantUpdate,
) -> Restaurant:
    """Apply an admin partial update to a restaurant."""
    restaurant = await get_restaurant(db, restaurant_id)

    if changes.manually_closed is not None:
        restaurant.manually_closed = changes.manually_closed

    if changes.opening_hours is not None:
        if changes.opening_hours.open:
            restaurant.opening_time = changes.opening_hours.open
        if changes.opening_hours.close:
            restaurant.closing_time = changes.opening_hours.close
        if changes.opening_hours.days_open:
            restaurant.days_open = changes.opening_hours.days_open

    if changes.delivery_time_minutes is not None:
        restaurant.delivery_time_minutes = changes.delivery_time_minutes

    if changes.min_order_amount is not None:
        restaurant.min_order_amount = changes.min_order_amount

    if changes.delivery_fee is not None:
        restaurant.delivery_fee = changes.delivery_fee

    await db.commit()
    await db.refresh(restaurant)

    logger.info(f"Restaurant #{restaurant_id} updated")
    return restaurant


def find_menu_item(
    restaurant: Restaurant,
    menu_item_id: int,
    orderable: bool = False,
) -> MenuItem:
    """
    Look up an item on a restaurant's menu.

    Args:
        restaurant: Restaurant whose menu is searched
        menu_item_id: Menu item identifier
        orderable: Also require the item to be available

    Raises:
        MenuItemNotFound: If the item is not on this restaurant's menu
        MenuItemUnavailable: If ``orderable`` and the item is switched off
    """
    for item in restaurant.menu_items:
        if item.id == menu_item_id:
            if orderable and not item.available:
                raise MenuItemUnavailable(item)
            return item
    raise MenuItemNotFound(restaurant.id, menu_item_id)


async def list_menu_items(db: AsyncSession, restaurant_id: int) -> list[MenuItem]:
    """Full menu of a restaurant, unavailable items included (admin view)."""
    restaurant = await get_restaurant(db, restaurant_id)
    return list(restaurant.menu_items)


async def set_menu_item_availability(
    db: AsyncSession,
    restaurant_id: int,
    menu_item_id: int,
    available: bool,
) -> MenuItem:
    """Switch a menu item on or off."""
    restaurant = await get_restaurant(db, restaurant_id)
    item = find_menu_item(restaurant, menu_item_id)
    item.available = available

    await db.commit()
    await db.refresh(item)

    logger.info(
        f"Menu item #{menu_item_id} of restaurant #{restaurant_id} "
        f"{'enabled' if available else 'disabled'}"
    )
    return item


def build_fake_restaurant(fake: Faker, rng: random.Random) -> Restaurant:
    """Generate one demo restaurant."""
    restaurant = Restaurant(
        name=fake.company()[:100],
        description=fake.paragraph(nb_sentences=2),
        image=fake.image_url(),
        street=fake.street_address()[:255],
        city=fake.city()[:50],
        state=fake.state_abbr(),
        zip_code=fake.zipcode()[:10],
        rating=round_rating(rng.uniform(3.0, 5.0)),
        featured=rng.random() < 0.2,
        delivery_time_minutes=rng.randint(15, 60),
        delivery_fee=round(rng.uniform(0, 10), 2),
        min_order_amount=round(rng.uniform(10, 30), 2),
        opening_time=f"{rng.randint(7, 11):02d}:00",
        closing_time=f"{rng.randint(20, 23):02d}:00",
        days_open=[day for day in range(7) if rng.random() < 0.9] or list(range(7)),
        manually_closed=False,
    )
    for name in rng.sample(CUISINES, rng.randint(1, 3)):
        restaurant.cuisines.append(RestaurantCuisine(name=name))
    for _ in range(rng.randint(6, 15)):
        restaurant.menu_items.append(build_fake_menu_item(fake, rng))
    return restaurant


def build_fake_menu_item(fake: Faker, rng: random.Random) -> MenuItem:
    """Generate one demo dish."""
    return MenuItem(
        name=" ".join(fake.words(nb=2)).title()[:100],
        description=fake.sentence(nb_words=10),
        price=round(rng.uniform(5, 30), 2),
        image=fake.image_url(),
        category=rng.choice(MENU_CATEGORIES),
        popular=rng.random() < 0.2,
        available=rng.random() < 0.9,
        allergens=rng.sample(ALLERGENS, rng.randint(0, 3)),
    )


async def seed_restaurants(
    db: AsyncSession,
    count: int,
    clear: bool = False,
    seed: Optional[int] = None,
) -> list[Restaurant]:
    """
    Insert demo restaurants with menus.

    Args:
        count: Number of restaurants to create
        clear: Delete existing orders and restaurants first
        seed: Random seed for reproducible data

    Returns:
        The created restaurants
    """
    fake = Faker()
    rng = random.Random(seed)
    if seed is not None:
        fake.seed_instance(seed)

    if clear:
        await db.execute(delete(Order))
        await db.execute(delete(MenuItem))
        await db.execute(delete(RestaurantCuisine))
        await db.execute(delete(Restaurant))
        logger.info("Existing restaurants, menus and orders cleared")

    restaurants = [build_fake_restaurant(fake, rng) for _ in range(count)]
    db.add_all(restaurants)
    await db.commit()

    logger.info(f"Seeded {len(restaurants)} restaurants")
    return restaurants
