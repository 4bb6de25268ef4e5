# citymarket/mock_data.py
"""Static categories and seed listings loaded once at startup."""
from datetime import datetime, timedelta, timezone
from .models import ALL_CATEGORY, Category, Condition, MarketplaceItem, Seller

categories = (
    Category(id=ALL_CATEGORY, name="All Items", icon="🏪", count=8),
    Category(id="electronics", name="Electronics", icon="📱", count=3),
    Category(id="furniture", name="Furniture", icon="🛋️", count=2),
    Category(id="clothing", name="Clothing", icon="👕", count=1),
    Category(id="automotive", name="Automotive", icon="🚗", count=1),
    Category(id="sports", name="Sports & Outdoors", icon="⚽", count=1),
    Category(id="books", name="Books", icon="📚", count=0),
)

_SEED_TIME = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)

def _seller(name, rating, photo):
    return Seller(
        name=name,
        avatar=f"https://images.pexels.com/photos/{photo}/pexels-photo-{photo}.jpeg?auto=compress&cs=tinysrgb&w=100",
        rating=rating,
    )

def _image(photo):
    return f"https://images.pexels.com/photos/{photo}/pexels-photo-{photo}.jpeg?auto=compress&cs=tinysrgb&w=500"

mock_items = (
    MarketplaceItem(
        id="1",
        title="iPhone 14 Pro Max",
        price=899,
        description="256GB, deep purple. Battery health 92%, always used with a case. Box and cable included.",
        category="electronics",
        image=_image(788946),
        seller=_seller("Maria Santos", 4.9, 774909),
        location="Carmen, Cagayan de Oro",
        posted_at=_SEED_TIME - timedelta(hours=2),
        condition=Condition.LIKE_NEW,
    ),
    MarketplaceItem(
        id="2",
        title="Gaming Laptop RTX 3060",
        price=1299,
        description="15.6 inch 144Hz, 16GB RAM, 1TB SSD. Runs every current title on high settings.",
        category="electronics",
        image=_image(18105),
        seller=_seller("Paolo Reyes", 4.7, 220453),
        location="Lapasan, Cagayan de Oro",
        posted_at=_SEED_TIME - timedelta(hours=20),
        condition=Condition.GOOD,
    ),
    MarketplaceItem(
        id="3",
        title="Mid-century Floor Lamp",
        price=45,
        description="Brass floor Lamp with linen shade, warm light. Minor scratches on the base.",
        category="furniture",
        image=_image(1112598),
        seller=_seller("Ana Dizon", 4.5, 415829),
        location="Nazareth, Cagayan de Oro",
        posted_at=_SEED_TIME - timedelta(days=1),
        condition=Condition.GOOD,
    ),
    MarketplaceItem(
        id="4",
        title="Three-seater Sofa",
        price=320,
        description="Grey fabric sofa, pet-free and smoke-free home. Pick up only.",
        category="furniture",
        image=_image(1866149),
        seller=_seller("Ramon Cruz", 4.2, 91227),
        location="Kauswagan, Cagayan de Oro",
        posted_at=_SEED_TIME - timedelta(days=3),
        condition=Condition.FAIR,
    ),
    MarketplaceItem(
        id="5",
        title="Wireless Noise-cancelling Headphones",
        price=180,
        description="Over-ear, 30 hour battery. Comes with carrying case.",
        category="electronics",
        image=_image(3394650),
        seller=_seller("Maria Santos", 4.9, 774909),
        location="Carmen, Cagayan de Oro",
        posted_at=_SEED_TIME - timedelta(days=4),
        condition=Condition.NEW,
    ),
    MarketplaceItem(
        id="6",
        title="Denim Jacket",
        price=25,
        description="Vintage wash, size M. Worn twice.",
        category="clothing",
        image=_image(1040945),
        seller=_seller("Lea Villanueva", 4.8, 1239291),
        location="Bulua, Cagayan de Oro",
        posted_at=_SEED_TIME - timedelta(days=5),
        condition=Condition.LIKE_NEW,
    ),
    MarketplaceItem(
        id="7",
        title="Honda Click 125i",
        price=1500,
        description="2021 model, 12,000 km, complete papers. Regularly serviced.",
        category="automotive",
        image=_image(2393821),
        seller=_seller("Jun Bautista", 4.6, 1222271),
        location="Gusa, Cagayan de Oro",
        posted_at=_SEED_TIME - timedelta(days=6),
        condition=Condition.GOOD,
    ),
    MarketplaceItem(
        id="8",
        title="Mountain Bike 27.5",
        price=260,
        description="Aluminium frame, hydraulic disc brakes, new tires.",
        category="sports",
        image=_image(100582),
        seller=_seller("Paolo Reyes", 4.7, 220453),
        location="Lapasan, Cagayan de Oro",
        posted_at=_SEED_TIME - timedelta(days=8),
        condition=Condition.GOOD,
    ),
)
