"""
Product catalog for recommendations.

The catalog is loaded once at startup (built-in data, or a JSON file named by
PRODUCT_CATALOG_PATH) and handed to the ranker. It is read-only afterwards.
"""

import json
import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import TypeAdapter

from schemas import ProductOut

DEFAULT_BUCKET = "default"

_CATALOG_ADAPTER = TypeAdapter(Dict[str, List[ProductOut]])


@dataclass(frozen=True)
class Product:
    """Recommendable product."""
    id: int
    name: str
    description: str
    price: float
    image: str
    url: str

    def with_id(self, new_id: int) -> "Product":
        return Product(new_id, self.name, self.description, self.price, self.image, self.url)


class ProductCatalog:
    """Immutable mapping of bucket key to products, with a mandatory default bucket."""

    def __init__(self, buckets: Mapping[str, Iterable[Product]]):
        if DEFAULT_BUCKET not in buckets:
            raise ValueError(f"Product catalog needs a '{DEFAULT_BUCKET}' bucket")
        self._buckets = MappingProxyType(
            {key: tuple(products) for key, products in buckets.items()}
        )

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(self._buckets.keys())

    @property
    def default(self) -> Tuple[Product, ...]:
        return self._buckets[DEFAULT_BUCKET]

    def bucket(self, key: str) -> Tuple[Product, ...]:
        """Products for a category key, or the default bucket when there is none."""
        return self._buckets.get(key, self.default)

    def __len__(self) -> int:
        return sum(len(products) for products in self._buckets.values())

    @classmethod
    def from_dict(cls, data: Dict[str, list]) -> "ProductCatalog":
        """
        Build from ``{bucket: [{id, name, description, price, image, url}, ...]}``.

        Raises:
            pydantic.ValidationError: An entry lacks ``id``/``name`` or has
                an uncoercible value; the message names the offending path.
        """
        parsed = _CATALOG_ADAPTER.validate_python(data)
        return cls({
            key: [Product(**item.model_dump()) for item in items]
            for key, items in parsed.items()
        })


def _p(id, name, description, price, image, url):
    return Product(id, name, description, price,
                   f"https://images.unsplash.com/{image}?w=400&h=300&fit=crop", url)


BUILTIN_PRODUCTS: Dict[str, Tuple[Product, ...]] = {
    "Food": (
        _p(1, "Meal Prep Containers Set", "BPA-free glass containers perfect for meal prepping and saving money on food expenses.", 24.99, "photo-1556910096-6f5e72db6803", "https://www.amazon.com/s?k=meal+prep+containers"),
        _p(2, "Air Fryer", "Cook healthier meals with less oil. Save on dining out with restaurant-quality food at home.", 89.99, "photo-1556911220-bff31c812dba", "https://www.amazon.com/s?k=air+fryer"),
        _p(3, "Coffee Maker", "Brew your own coffee and save hundreds per year compared to buying daily coffee.", 49.99, "photo-1517668808823-d6c8b0e3b2e3", "https://www.amazon.com/s?k=coffee+maker"),
    ),
    "Travel": (
        _p(4, "Travel Credit Card", "Earn points and miles on every purchase. Perfect for frequent travelers.", 0, "photo-1553729459-efe14ef6055d", "https://www.creditcards.com/travel/"),
        _p(5, "Luggage Set", "Durable, lightweight luggage that will last for years of travel adventures.", 129.99, "photo-1540979388789-6cee28a1cdc9", "https://www.amazon.com/s?k=luggage+set"),
        _p(6, "Travel Insurance", "Protect your travel investments with comprehensive coverage at affordable rates.", 29.99, "photo-1488646953014-85cb44e25828", "https://www.travelinsurance.com/"),
    ),
    "Rent": (
        _p(7, "Smart Thermostat", "Save up to 23% on heating and cooling costs with intelligent temperature control.", 199.99, "photo-1558618666-fcd25c85cd64", "https://www.amazon.com/s?k=smart+thermostat"),
        _p(8, "LED Light Bulbs", "Energy-efficient bulbs that use 75% less energy and last 25x longer.", 19.99, "photo-1507003211169-0a1dd7228f2d", "https://www.amazon.com/s?k=led+light+bulbs"),
        _p(9, "Programmable Timer", "Automate your appliances to save energy and reduce utility bills.", 12.99, "photo-1581092160562-40aa08e78837", "https://www.amazon.com/s?k=programmable+timer"),
    ),
    "Groceries": (
        _p(10, "Grocery Delivery Service", "Save time and money with discounted grocery delivery subscriptions.", 9.99, "photo-1556910096-6f5e72db6803", "https://www.instacart.com/"),
        _p(11, "Reusable Shopping Bags", "Eco-friendly bags that help you save on bag fees and reduce waste.", 14.99, "photo-1558618047-3c8c76ca7d13", "https://www.amazon.com/s?k=reusable+shopping+bags"),
    ),
    DEFAULT_BUCKET: (
        _p(12, "Budgeting App Premium", "Advanced features to track expenses, set goals, and save more money.", 4.99, "photo-1551288049-bebda4e38f71", "https://www.mint.com/"),
        _p(13, "High-Yield Savings Account", "Earn more interest on your savings with competitive APY rates.", 0, "photo-1579621970563-ebec7560ff3e", "https://www.bankrate.com/banking/savings/"),
        _p(14, "Investment Platform", "Start investing with low fees and automated portfolio management.", 0, "photo-1460925895917-afdab827c52f", "https://www.wealthfront.com/"),
        _p(15, "Wireless Earbuds", "High-quality audio for work calls and entertainment. Save on replacement cables.", 79.99, "photo-1590658268037-6bf12165a8df", "https://www.amazon.com/s?k=wireless+earbuds"),
        _p(16, "Standing Desk Converter", "Improve productivity and health with an adjustable standing desk converter.", 149.99, "photo-1524758631624-e2822e304c36", "https://www.amazon.com/s?k=standing+desk+converter"),
        _p(17, "Fitness Tracker", "Monitor your health and activity to reduce medical expenses long-term.", 99.99, "photo-1576243345690-4e4b79b63288", "https://www.amazon.com/s?k=fitness+tracker"),
        _p(18, "Portable Phone Charger", "Never run out of battery. Essential for travel and daily use.", 29.99, "photo-1609091839311-d5365f5f087a", "https://www.amazon.com/s?k=portable+phone+charger"),
        _p(19, "Ergonomic Office Chair", "Reduce back pain and improve productivity with proper seating.", 199.99, "photo-1506439773649-6e0eb8cfb237", "https://www.amazon.com/s?k=ergonomic+office+chair"),
        _p(20, "Noise Cancelling Headphones", "Focus better at work and save on coffee shop expenses.", 149.99, "photo-1505740420928-5e560c06d30e", "https://www.amazon.com/s?k=noise+cancelling+headphones"),
        _p(21, "Meal Planning App Subscription", "Plan meals efficiently and reduce food waste.", 9.99, "photo-1556910096-6f5e72db6803", "https://www.mealime.com/"),
        _p(22, "Water Filter Pitcher", "Save money on bottled water with clean filtered tap water.", 34.99, "photo-1556911220-bff31c812dba", "https://www.amazon.com/s?k=water+filter+pitcher"),
        _p(23, "Reusable Water Bottle", "Eco-friendly and cost-effective alternative to disposable bottles.", 24.99, "photo-1602143407151-7111542de6e8", "https://www.amazon.com/s?k=reusable+water+bottle"),
        _p(24, "Electric Toothbrush", "Better oral health reduces dental expenses long-term.", 49.99, "photo-1607613009820-a29f7bb81c04", "https://www.amazon.com/s?k=electric+toothbrush"),
        _p(25, "Slow Cooker", "Cook large meals efficiently and save on dining out.", 39.99, "photo-1556911220-bff31c812dba", "https://www.amazon.com/s?k=slow+cooker"),
        _p(26, "Bulk Food Storage Containers", "Buy in bulk and save money on groceries.", 29.99, "photo-1556910096-6f5e72db6803", "https://www.amazon.com/s?k=bulk+food+storage"),
        _p(27, "Credit Score Monitoring", "Track your credit score for free and improve financial health.", 0, "photo-1579621970563-ebec7560ff3e", "https://www.creditkarma.com/"),
        _p(28, "Cashback Credit Card", "Earn money back on every purchase you make.", 0, "photo-1553729459-efe14ef6055d", "https://www.creditcards.com/cash-back/"),
        _p(29, "Expense Tracking App", "Automatically categorize expenses and find savings opportunities.", 0, "photo-1551288049-bebda4e38f71", "https://www.youneedabudget.com/"),
        _p(30, "Solar Phone Charger", "Charge devices for free using solar power.", 39.99, "photo-1609091839311-d5365f5f087a", "https://www.amazon.com/s?k=solar+phone+charger"),
    ),
}


def load_catalog(path: Optional[str] = None) -> ProductCatalog:
    """
    Load the product catalog.

    Args:
        path: JSON file to read. Defaults to PRODUCT_CATALOG_PATH, and to the
            built-in products when neither is set.
    """
    path = path or os.getenv("PRODUCT_CATALOG_PATH")
    if not path:
        return ProductCatalog(BUILTIN_PRODUCTS)

    with open(path, encoding="utf-8") as f:
        return ProductCatalog.from_dict(json.load(f))
