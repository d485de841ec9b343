"""Aggregate query package."""

from money_manager.queries.stats import StatsQueries, summarize

__all__ = ["StatsQueries", "summarize"]
