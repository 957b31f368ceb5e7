"""Marker-driven code generation: deepcopy generation, generator runtime and marker help."""

__version__ = "0.1.0"