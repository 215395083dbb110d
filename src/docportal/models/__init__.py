"""Central exports for SQLAlchemy models."""

from .identity import Grant, Identity

__all__ = ["Grant", "Identity"]
