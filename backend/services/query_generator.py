"""
Search-keyword generation for recommendations.

Features:
    - Optional Gemini call (GEMINI_API_KEY) over a fixed model/version matrix
    - Deterministic heuristic fallback that needs no network
    - Never raises: every failure degrades to the heuristic and reports why
"""

import os
import re
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx
from dotenv import load_dotenv

from .observability import logger, metrics, log_llm_attempt
from .spending_analyzer import top_categories

load_dotenv()


SOURCE_LLM = "llm"
SOURCE_HEURISTIC = "heuristic"

# (substrings, keyword); checked in this order
GOAL_KEYWORDS = [
    (("travel",), "travel"),
    (("house", "home"), "home"),
    (("retire",), "investment"),
    (("debt",), "debt"),
    (("save",), "savings"),
    (("fitness", "health"), "fitness"),
]


@dataclass
class QueryResult:
    """Generated keywords plus where they came from."""
    query: str
    source: str
    fallback_reason: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.source == SOURCE_HEURISTIC


def heuristic_query(spending: Dict[str, float], goal_texts: List[str]) -> str:
    """
    Keywords from the top 3 spending categories and goal trigger words.

    Example:
        >>> heuristic_query({"Food": 120.0, "Rent": 900.0}, ["Save for travel"])
        'rent, food, travel, savings'
    """
    keywords: Dict[str, None] = {}

    for category in top_categories(spending, 3):
        keywords.setdefault(category.lower(), None)

    for goal in goal_texts:
        lower_goal = goal.lower()
        for triggers, keyword in GOAL_KEYWORDS:
            if any(t in lower_goal for t in triggers):
                keywords.setdefault(keyword, None)

    return ", ".join(keywords)


def build_prompt(spending: Dict[str, float], goal_texts: List[str]) -> str:
    """Natural-language prompt asking for 3-5 comma-separated keywords."""
    lines = [
        "Based on the following financial data, generate 3-5 product search keywords:",
        "",
        "Top Spending Categories:",
    ]
    for category in top_categories(spending, 5):
        lines.append(f"- {category}: ${spending[category]:.2f}")

    if goal_texts:
        lines.append("")
        lines.append("User Goals:")
        lines.extend(f"- {goal}" for goal in goal_texts)

    lines.append("")
    lines.append(
        "Generate comma-separated product search keywords that would help "
        "this user save money or achieve their goals."
    )
    return "\n".join(lines)


def clean_llm_text(text: str) -> str:
    """Strip markdown fences and double quotes from a model reply."""
    text = re.sub(r"```(?:json)?", "", text)
    return text.replace('"', "").strip()


class QueryGenerator:
    """
    Generate a recommendation search query, via Gemini when configured.

    Tries each model against each API version in order and returns the first
    usable answer. No retries beyond that matrix.
    """

    BASE_URL = "https://generativelanguage.googleapis.com"
    MODELS = ("gemini-2.5-flash", "gemini-2.5-pro")
    API_VERSIONS = ("v1", "v1beta")
    DEFAULT_TIMEOUT = 15.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        raw_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY", "")
        self.api_key = raw_key.strip() if raw_key else None
        self.timeout = timeout or float(os.getenv("GEMINI_TIMEOUT_SECONDS", self.DEFAULT_TIMEOUT))
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, spending: Dict[str, float], goal_texts: List[str]) -> QueryResult:
        """
        Produce keywords for the ranker.

        Returns:
            QueryResult with ``source="llm"`` on success, otherwise the
            heuristic keywords and a ``fallback_reason``.
        """
        if not self.is_configured:
            return self._fallback(spending, goal_texts, "not_configured")

        try:
            text = await self._generate_with_gemini(build_prompt(spending, goal_texts))
        except Exception as e:
            logger.warning("LLM query generation failed", error=type(e).__name__)
            return self._fallback(spending, goal_texts, "llm_error")

        if text is None:
            return self._fallback(spending, goal_texts, "llm_unavailable")

        metrics.increment("query_generation.llm")
        return QueryResult(query=text, source=SOURCE_LLM)

    def _fallback(self, spending, goal_texts, reason: str) -> QueryResult:
        metrics.increment("query_generation.fallback", tags={"reason": reason})
        return QueryResult(
            query=heuristic_query(spending, goal_texts),
            source=SOURCE_HEURISTIC,
            fallback_reason=reason,
        )

    async def _generate_with_gemini(self, prompt: str) -> Optional[str]:
        body = {"contents": [{"parts": [{"text": prompt}]}]}

        async with httpx.AsyncClient(
            base_url=self.BASE_URL, timeout=self.timeout, transport=self.transport
        ) as client:
            for model in self.MODELS:
                for version in self.API_VERSIONS:
                    text = await self._attempt(client, model, version, body)
                    if text:
                        logger.info("LLM query generated", model=model, version=version)
                        return text

        logger.warning("All LLM model/version combinations failed")
        return None

    async def _attempt(self, client: httpx.AsyncClient, model: str, version: str, body: dict) -> Optional[str]:
        start = time.perf_counter()
        try:
            response = await client.post(
                f"/{version}/models/{model}:generateContent",
                params={"key": self.api_key},
                json=body,
            )
        except httpx.HTTPError as e:
            log_llm_attempt(model, version, type(e).__name__, (time.perf_counter() - start) * 1000)
            return None

        log_llm_attempt(model, version, response.status_code, (time.perf_counter() - start) * 1000)
        if response.status_code != 200:
            if response.status_code != 404:
                logger.warning("LLM error response", model=model, version=version,
                               status=response.status_code)
            return None

        try:
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning("Unexpected LLM response structure", model=model, version=version)
            return None

        if not isinstance(text, str):
            return None
        return clean_llm_text(text) or None
