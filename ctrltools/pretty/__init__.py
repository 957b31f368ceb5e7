"""Terminal rendering of marker help with width-aware spans and tables."""

__all__ = ["markerhelp", "spans", "table"]