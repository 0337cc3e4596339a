"""
Test Module: test_query_generator.py
Description: Unit tests for search-keyword generation.

Tests:
    - Heuristic keywords from categories and goals
    - Fallback reasons when the LLM is missing or failing
    - Model/version matrix walk against a mocked Gemini endpoint
"""

import asyncio

import httpx
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.query_generator import (
    QueryGenerator,
    SOURCE_HEURISTIC,
    SOURCE_LLM,
    build_prompt,
    clean_llm_text,
    heuristic_query,
)


def gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_generator(handler, calls=None):
    def _record(request):
        if calls is not None:
            calls.append(request.url.path)
        return handler(request)
    return QueryGenerator(api_key="test-key", transport=httpx.MockTransport(_record))


def generate(generator, spending=None, goals=None):
    return asyncio.run(generator.generate(spending or {"Food": 50.0}, goals or []))


# =============================================================================
# Heuristic Tests
# =============================================================================

class TestHeuristic:

    def test_categories_then_goal_keywords(self):
        query = heuristic_query({"Food": 120.0, "Rent": 900.0}, ["Save for travel"])

        assert query == "rent, food, travel, savings"

    def test_deterministic(self):
        spending = {"Food": 10.0, "Travel": 10.0, "Fun": 5.0}
        goals = ["Pay off debt", "Retire early"]

        first = heuristic_query(spending, goals)
        second = heuristic_query(spending, goals)

        assert first == second
        assert first == "food, travel, fun, debt, investment"

    def test_duplicate_keywords_collapsed(self):
        query = heuristic_query({"Travel": 10.0}, ["travel", "TRAVEL more"])

        assert query == "travel"

    def test_home_and_fitness_triggers(self):
        query = heuristic_query({}, ["Buy a home", "Better health"])

        assert query == "home, fitness"

    def test_nothing_to_say(self):
        assert heuristic_query({}, []) == ""


class TestPromptAndCleanup:

    def test_prompt_lists_categories_and_goals(self):
        prompt = build_prompt({"Food": 12.5}, ["Save for travel"])

        assert "- Food: $12.50" in prompt
        assert "- Save for travel" in prompt
        assert "comma-separated" in prompt

    def test_prompt_without_goals(self):
        prompt = build_prompt({"Food": 12.5}, [])

        assert "User Goals" not in prompt

    def test_clean_strips_fences_and_quotes(self):
        assert clean_llm_text('```json\n"budget app, meal prep"\n```') == "budget app, meal prep"


# =============================================================================
# Fallback Tests
# =============================================================================

class TestFallback:

    def test_no_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        result = generate(QueryGenerator())

        assert result.source == SOURCE_HEURISTIC
        assert result.fallback_reason == "not_configured"
        assert result.query == "food"

    def test_blank_api_key_counts_as_missing(self):
        generator = QueryGenerator(api_key="   ")

        assert not generator.is_configured

    def test_all_attempts_fail(self):
        calls = []
        generator = make_generator(lambda request: httpx.Response(503), calls)

        result = generate(generator)

        assert result.used_fallback
        assert result.fallback_reason == "llm_unavailable"
        assert len(calls) == 4

    def test_network_error_falls_back(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        result = generate(make_generator(handler))

        assert result.fallback_reason == "llm_unavailable"
        assert result.query == "food"

    def test_malformed_payload_falls_back(self):
        result = generate(make_generator(lambda request: httpx.Response(200, json={"candidates": []})))

        assert result.source == SOURCE_HEURISTIC

    def test_unexpected_exception_falls_back(self, monkeypatch):
        generator = QueryGenerator(api_key="test-key")

        async def explode(prompt):
            raise RuntimeError("bug")

        monkeypatch.setattr(generator, "_generate_with_gemini", explode)

        result = generate(generator)

        assert result.fallback_reason == "llm_error"


# =============================================================================
# LLM Tests
# =============================================================================

class TestGemini:

    def test_first_success_wins(self):
        calls = []
        generator = make_generator(
            lambda request: httpx.Response(200, json=gemini_reply('"meal prep, budgeting"')),
            calls,
        )

        result = generate(generator)

        assert result.source == SOURCE_LLM
        assert result.query == "meal prep, budgeting"
        assert result.fallback_reason is None
        assert calls == ["/v1/models/gemini-2.5-flash:generateContent"]

    def test_walks_versions_then_models(self):
        calls = []

        def handler(request):
            if request.url.path == "/v1beta/models/gemini-2.5-pro:generateContent":
                return httpx.Response(200, json=gemini_reply("coffee maker"))
            return httpx.Response(404)

        result = generate(make_generator(handler, calls))

        assert result.query == "coffee maker"
        assert calls == [
            "/v1/models/gemini-2.5-flash:generateContent",
            "/v1beta/models/gemini-2.5-flash:generateContent",
            "/v1/models/gemini-2.5-pro:generateContent",
            "/v1beta/models/gemini-2.5-pro:generateContent",
        ]

    def test_api_key_sent_as_query_param(self):
        seen = {}

        def handler(request):
            seen["key"] = request.url.params.get("key")
            return httpx.Response(200, json=gemini_reply("x"))

        generate(make_generator(handler))

        assert seen["key"] == "test-key"

    def test_empty_text_is_not_success(self):
        calls = []
        generator = make_generator(
            lambda request: httpx.Response(200, json=gemini_reply('```  ```')), calls
        )

        result = generate(generator)

        assert result.source == SOURCE_HEURISTIC
        assert len(calls) == 4

    @pytest.mark.parametrize("status", [400, 429, 500])
    def test_error_statuses_move_on(self, status):
        calls = []

        def handler(request):
            if len(calls) == 1:
                return httpx.Response(status)
            return httpx.Response(200, json=gemini_reply("luggage"))

        result = generate(make_generator(handler, calls))

        assert result.query == "luggage"
        assert len(calls) == 2
