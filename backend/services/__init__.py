"""Backend services for transactions, goals and recommendations."""

from .account_store import AccountStore
from .errors import FinanceError, ValidationError, NotFoundError, TransactionImportError
from .goal_service import GoalService
from .ownership import ensure_owner
from .product_catalog import Product, ProductCatalog, load_catalog
from .query_generator import QueryGenerator, QueryResult, heuristic_query
from .recommendation_ranker import RecommendationRanker, Page, paginate
from .recommendation_service import RecommendationService
from .spending_analyzer import analyze_spending, top_categories
from .transaction_importer import TransactionImporter
from .transaction_service import TransactionService

__all__ = [
    "AccountStore",
    "FinanceError",
    "ValidationError",
    "NotFoundError",
    "TransactionImportError",
    "GoalService",
    "ensure_owner",
    "Product",
    "ProductCatalog",
    "load_catalog",
    "QueryGenerator",
    "QueryResult",
    "heuristic_query",
    "RecommendationRanker",
    "Page",
    "paginate",
    "RecommendationService",
    "analyze_spending",
    "top_categories",
    "TransactionImporter",
    "TransactionService",
]
