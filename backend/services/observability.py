"""
Module: observability.py
Description: Logging, metrics and timing helpers for the Finance Tracker API.

Features:
    - Structured logging with context
    - Timing decorators for performance monitoring
    - Metrics collection and reporting

Usage:
    from services.observability import logger, metrics, timed

    @timed("transaction_import")
    def parse(content):
        logger.info("Parsing import", size=len(content))
        ...
"""

import os
import time
import logging
import functools
from datetime import datetime
from typing import Dict, Any, Optional, Callable
from collections import defaultdict
from contextlib import contextmanager


# =============================================================================
# Structured Logger
# =============================================================================

class StructuredLogger:
    """
    Logger that appends ``key=value`` context fields to every message.

    Output format: ``2025-01-31 12:00:00 | INFO | Import parsed | rows=12``
    """

    def __init__(self, name: str = "finance-tracker", level: Optional[str] = None):
        self.logger = logging.getLogger(name)
        level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
        self.logger.setLevel(getattr(logging, level_name, logging.INFO))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s | %(levelname)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

        self._context: Dict[str, Any] = {}

    def set_context(self, **kwargs) -> None:
        """Set context fields that will be included in all logs."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        """Clear all context fields."""
        self._context = {}

    def _format_message(self, message: str, **kwargs) -> str:
        fields = {**self._context, **kwargs}
        if fields:
            field_str = " | ".join(f"{k}={v}" for k, v in fields.items())
            return f"{message} | {field_str}"
        return message

    def info(self, message: str, **kwargs) -> None:
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs) -> None:
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs) -> None:
        self.logger.error(self._format_message(message, **kwargs))

    def debug(self, message: str, **kwargs) -> None:
        self.logger.debug(self._format_message(message, **kwargs))

    def exception(self, message: str, **kwargs) -> None:
        """Log exception with traceback."""
        self.logger.exception(self._format_message(message, **kwargs))


# =============================================================================
# Metrics Collector
# =============================================================================

class MetricsCollector:
    """
    In-memory counters, gauges and timing samples.

    Exposed through ``GET /metrics``. Values reset when the process restarts.
    """

    MAX_SAMPLES = 1000

    def __init__(self):
        self.counters: Dict[str, int] = defaultdict(int)
        self.gauges: Dict[str, float] = {}
        self.timings: Dict[str, list] = defaultdict(list)
        self._start_time = datetime.utcnow()

    def increment(self, name: str, value: int = 1, tags: Dict[str, str] = None) -> None:
        key = self._make_key(name, tags)
        self.counters[key] += value

    def gauge(self, name: str, value: float, tags: Dict[str, str] = None) -> None:
        key = self._make_key(name, tags)
        self.gauges[key] = value

    def timing(self, name: str, duration_ms: float, tags: Dict[str, str] = None) -> None:
        key = self._make_key(name, tags)
        self.timings[key].append(duration_ms)
        if len(self.timings[key]) > self.MAX_SAMPLES:
            self.timings[key] = self.timings[key][-self.MAX_SAMPLES:]

    def _make_key(self, name: str, tags: Optional[Dict[str, str]] = None) -> str:
        if tags:
            tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
            return f"{name}:{tag_str}"
        return name

    def reset(self) -> None:
        """Drop all collected values (used by tests)."""
        self.counters.clear()
        self.gauges.clear()
        self.timings.clear()

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of all metrics."""
        summary = {
            "uptime_seconds": (datetime.utcnow() - self._start_time).total_seconds(),
            "counters": dict(self.counters),
            "gauges": dict(self.gauges),
            "timings": {},
        }

        for name, values in self.timings.items():
            if values:
                ordered = sorted(values)
                summary["timings"][name] = {
                    "count": len(values),
                    "avg_ms": sum(values) / len(values),
                    "min_ms": ordered[0],
                    "max_ms": ordered[-1],
                    "p50_ms": ordered[len(values) // 2],
                    "p95_ms": ordered[int(len(values) * 0.95)] if len(values) >= 20 else None,
                }

        return summary


# =============================================================================
# Timing Decorators
# =============================================================================

def timed(name: str = None):
    """
    Decorator to time function execution and record metrics.

    Example:
        @timed("recommendation_ranking")
        def rank(...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        metric_name = name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                metrics.increment(f"{metric_name}.success")
                return result
            except Exception:
                metrics.increment(f"{metric_name}.error")
                raise
            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                metrics.timing(metric_name, duration_ms)
                logger.debug(f"{metric_name} completed", duration_ms=f"{duration_ms:.2f}")

        return wrapper

    return decorator


@contextmanager
def timed_block(name: str):
    """
    Context manager for timing code blocks.

    Example:
        with timed_block("spending_analysis"):
            analyze_spending(transactions)
    """
    start = time.perf_counter()
    try:
        yield
        metrics.increment(f"{name}.success")
    except Exception:
        metrics.increment(f"{name}.error")
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        metrics.timing(name, duration_ms)


# =============================================================================
# Global Instances
# =============================================================================

logger = StructuredLogger()

metrics = MetricsCollector()


# =============================================================================
# Convenience Functions
# =============================================================================

def log_import_complete(user_id: int, fmt: str, imported: int, skipped: int) -> None:
    """Log the outcome of a transaction import."""
    logger.info("Import completed", user_id=user_id, format=fmt,
                imported=imported, skipped=skipped)
    metrics.increment("imports.completed", tags={"format": fmt})
    metrics.increment("imports.rows", imported)


def log_import_failed(fmt: str, reason: str) -> None:
    """Log an import that produced nothing to save."""
    logger.warning("Import rejected", format=fmt, reason=reason)
    metrics.increment("imports.failed", tags={"reason": reason})


def log_recommendation_request(user_id: int, page: int, size: int, total: int, source: str) -> None:
    """Log a served recommendation page."""
    logger.info("Recommendations served", user_id=user_id, page=page,
                size=size, total=total, query_source=source)
    metrics.increment("recommendations.requests", tags={"source": source})


def log_llm_attempt(model: str, version: str, status: Any, duration_ms: float) -> None:
    """Log one call against the text-generation endpoint."""
    logger.debug("LLM attempt", model=model, version=version,
                 status=status, duration_ms=f"{duration_ms:.2f}")
    metrics.increment("llm.attempts", tags={"status": str(status)})
    metrics.timing("llm.latency", duration_ms)
