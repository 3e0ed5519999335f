"""
Reusable output pieces.
"""

from . import display

__all__ = ["display"]
