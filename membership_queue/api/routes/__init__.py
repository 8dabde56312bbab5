"""API routes package."""

from . import business_rules

__all__ = ["business_rules"]
