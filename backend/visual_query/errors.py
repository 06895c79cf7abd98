"""
Custom exceptions for the visual query translator.
"""


class VisualQueryError(Exception):
    """Base exception for translator errors."""
    pass


class QueryGenerationError(VisualQueryError, ValueError):
    """The IR cannot be rendered at all (no table to put in FROM)."""
    pass
