"""Expense totals per category."""

from typing import Dict, Iterable, List


EXPENSE_TYPE = "expense"


def analyze_spending(transactions: Iterable) -> Dict[str, float]:
    """
    Sum expense amounts by category.

    Only transactions whose ``type`` is exactly ``"expense"`` and whose
    category is set are counted. Category names are trimmed. The mapping
    keeps first-seen category order.

    Example:
        >>> analyze_spending([food_10_expense, food_5_income, none_7_expense])
        {'Food': 10.0}
    """
    spending: Dict[str, float] = {}
    for txn in transactions:
        if txn.type != EXPENSE_TYPE or txn.category is None:
            continue
        category = txn.category.strip()
        spending[category] = spending.get(category, 0.0) + txn.amount
    return spending


def top_categories(spending: Dict[str, float], limit: int) -> List[str]:
    """Category names by descending total; ties keep mapping order."""
    ranked = sorted(spending.items(), key=lambda item: item[1], reverse=True)
    return [category for category, _ in ranked[:limit]]
