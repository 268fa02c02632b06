"""Tokenizing, variable expansion, environment handling and pipeline parsing for a small shell."""

__version__ = "0.1.0"
__all__ = ["__version__"]