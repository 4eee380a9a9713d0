"""Command policy for the raw command escape hatch."""

from .guard import CommandGuard, GuardResult

__all__ = ["CommandGuard", "GuardResult"]
