"""Operator CLI for reaching GameLift fleet instances.

The command surface is implemented with Typer and Rich; the selection
pipeline (fleet -> game session -> instance -> access) lives in plain modules
so it can be driven with fakes in tests.
"""

__all__ = ["__version__", "__build__"]

__version__ = "0.1.0"
__build__ = "unknown"
