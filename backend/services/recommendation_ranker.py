"""Map spending categories and goals to catalog products, then paginate."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .observability import logger, timed
from .product_catalog import Product, ProductCatalog
from .spending_analyzer import top_categories


@dataclass
class Page:
    """Half-open slice ``[page*size, page*size+size)`` of a ranked list."""
    items: List[Product]
    page: int
    size: int
    total: int
    has_more: bool


def paginate(products: Sequence[Product], page: int, size: int) -> Page:
    """
    Slice one page out of ``products``.

    A page that starts past the end is empty. ``has_more`` is true while
    items remain after this page.
    """
    if page < 0:
        raise ValueError("page must be >= 0")
    if size < 1:
        raise ValueError("size must be >= 1")

    total = len(products)
    start = page * size
    end = min(start + size, total)
    items = list(products[start:end]) if start < total else []
    return Page(items=items, page=page, size=size, total=total, has_more=start + size < total)


class RecommendationRanker:
    """
    Rank catalog products for a user.

    Steps:
        1. Buckets for the top 3 spending categories (default bucket when
           a category has no dedicated one)
        2. Buckets triggered by open goal text
        3. Whole default bucket if nothing matched, then the default bucket
           again unconditionally
        4. Dedupe by id, first occurrence wins
        5. Pad to ``min_products`` by cloning with ids from ``padding_id_base``
    """

    TOP_CATEGORY_COUNT = 3
    TRAVEL_BUCKET = "Travel"
    HOME_BUCKET = "Rent"
    FITNESS_NAME_HINTS = ("fitness", "tracker")

    def __init__(
        self,
        catalog: ProductCatalog,
        min_products: int = 36,
        padding_id_base: int = 1000,
    ):
        self.catalog = catalog
        self.min_products = min_products
        self.padding_id_base = padding_id_base

    @timed("recommendation_ranking")
    def rank(
        self,
        spending: Dict[str, float],
        goal_texts: List[str],
        query: Optional[str] = None,
    ) -> List[Product]:
        """
        Build the full ranked list.

        Args:
            spending: Category -> expense total.
            goal_texts: Text of the user's open goals.
            query: Generated search keywords, kept for logging only.
        """
        candidates: List[Product] = []

        for category in top_categories(spending, self.TOP_CATEGORY_COUNT):
            candidates.extend(self.catalog.bucket(category))

        for goal in goal_texts:
            candidates.extend(self._products_for_goal(goal))

        if not candidates:
            candidates.extend(self.catalog.default)

        candidates.extend(self.catalog.default)

        ranked = self._dedupe(candidates)
        matched = len(ranked)
        ranked = self._pad(ranked)

        logger.debug("Ranked products", matched=matched, total=len(ranked), query=query or "")
        return ranked

    def _products_for_goal(self, goal: str) -> List[Product]:
        lower_goal = goal.lower()
        products: List[Product] = []

        if "travel" in lower_goal:
            products.extend(self.catalog.bucket(self.TRAVEL_BUCKET))
        if "house" in lower_goal or "home" in lower_goal:
            products.extend(self.catalog.bucket(self.HOME_BUCKET))
        if any(word in lower_goal for word in ("fitness", "health", "exercise")):
            products.extend(
                p for p in self.catalog.default
                if any(hint in p.name.lower() for hint in self.FITNESS_NAME_HINTS)
            )

        return products

    @staticmethod
    def _dedupe(products: List[Product]) -> List[Product]:
        unique: Dict[int, Product] = {}
        for product in products:
            unique.setdefault(product.id, product)
        return list(unique.values())

    def _pad(self, products: List[Product]) -> List[Product]:
        if not products or len(products) >= self.min_products:
            return products

        padded = list(products)
        original_size = len(products)
        i = 0
        while len(padded) < self.min_products:
            padded.append(products[i % original_size].with_id(self.padding_id_base + len(padded)))
            i += 1
        return padded

    def paginate(self, products: Sequence[Product], page: int, size: int) -> Page:
        return paginate(products, page, size)
