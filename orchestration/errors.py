# orchestration/errors.py
"""Exceptions surfaced by the generation and grading flows."""


class GenerationError(Exception):
    """Raised when a generation flow cannot produce a usable result."""


class PlanningError(GenerationError):
    """Raised when the planning phase yields no usable units."""


class InvalidRequestError(ValueError):
    """Raised when a request is rejected before any external call is made."""
