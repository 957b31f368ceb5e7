"""Generator runtime, options parsing and input/output rules."""

__all__ = ["inputs", "options", "output", "runtime"]