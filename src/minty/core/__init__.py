"""Core value types shared across Minty."""

from .ranges import TextRange

__all__ = ["TextRange"]
