"""
Recommendation pipeline for one caller.

Flow:
    user lookup -> spending analysis -> query generation (best-effort)
    -> ranking -> pagination
"""

from dataclasses import asdict

from .account_store import AccountStore
from .observability import log_recommendation_request, timed_block
from .query_generator import QueryGenerator
from .recommendation_ranker import RecommendationRanker
from .spending_analyzer import analyze_spending


class RecommendationService:
    """Assemble a page of product recommendations for a user."""

    def __init__(
        self,
        store: AccountStore,
        ranker: RecommendationRanker,
        query_generator: QueryGenerator,
    ):
        self.store = store
        self.ranker = ranker
        self.query_generator = query_generator

    async def get_recommendations(self, email: str, page: int, size: int) -> dict:
        """
        Build one page of recommendations.

        Returns:
            Dict with products, page, size, total, hasMore, query, querySource.

        Raises:
            NotFoundError: Unknown email; nothing partial is returned.
            ValueError: Invalid page or size.
        """
        user = self.store.require_user(email)

        transactions = self.store.find_transactions_by_user(user)
        goals = self.store.find_goals_by_user(user)
        open_goal_texts = [g.text for g in goals if not g.completed]

        with timed_block("spending_analysis"):
            spending = analyze_spending(transactions)

        query = await self.query_generator.generate(spending, open_goal_texts)
        ranked = self.ranker.rank(spending, open_goal_texts, query.query)
        result = self.ranker.paginate(ranked, page, size)

        log_recommendation_request(user.id, page, size, result.total, query.source)

        return {
            "products": [asdict(p) for p in result.items],
            "page": result.page,
            "size": result.size,
            "total": result.total,
            "hasMore": result.has_more,
            "query": query.query,
            "querySource": query.source,
        }
