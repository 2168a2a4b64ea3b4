"""
StatPower utilities package.
Internal helpers - not part of public API.
"""

from . import formatters, validators

__all__ = ["formatters", "validators"]
