"""
Change detection between incoming rows and a live table.
"""

from .calculator import DiffCalculator
from .signature import SIGNATURE_SEPARATOR, build_signature, resolve_value, signature_parts

__all__ = [
    "DiffCalculator",
    "SIGNATURE_SEPARATOR",
    "build_signature",
    "resolve_value",
    "signature_parts",
]
