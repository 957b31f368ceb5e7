"""Structured marker documentation, with grouping and sorting."""

__all__ = ["docs", "sorting"]