"""Unit tests for expense totals per category."""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.spending_analyzer import analyze_spending, top_categories
from conftest import MockTransaction


def test_only_expenses_with_category_count():
    transactions = [
        MockTransaction("expense", "Food", 10),
        MockTransaction("income", "Food", 5),
        MockTransaction("expense", None, 7),
    ]

    assert analyze_spending(transactions) == {"Food": 10}


def test_type_match_is_case_sensitive():
    transactions = [
        MockTransaction("Expense", "Food", 10),
        MockTransaction("expense", "Rent", 900),
    ]

    assert analyze_spending(transactions) == {"Rent": 900}


def test_categories_are_trimmed_and_merged():
    transactions = [
        MockTransaction("expense", " Food", 10),
        MockTransaction("expense", "Food ", 2.5),
    ]

    assert analyze_spending(transactions) == {"Food": 12.5}


def test_no_transactions():
    assert analyze_spending([]) == {}


def test_top_categories_descending():
    spending = {"Food": 120.0, "Rent": 900.0, "Fun": 40.0, "Travel": 300.0}

    assert top_categories(spending, 3) == ["Rent", "Travel", "Food"]


def test_top_categories_ties_keep_mapping_order():
    spending = {"B": 50.0, "A": 50.0, "C": 50.0}

    assert top_categories(spending, 2) == ["B", "A"]
