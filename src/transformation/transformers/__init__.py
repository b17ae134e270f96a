"""
Value-level transformations between spreadsheet cells and table columns.

- normalizer: canonical comparison form used by row signatures
- validator / sanitizer: type checks and best-effort repair
- masking: deterministic masking of sensitive columns
- pipeline: the validate, repair, mask sequence applied to every write
"""

from .base import Transformer
from .masking import DataMasker, MaskingConfig, MaskKind
from .normalizer import normalize_value
from .pipeline import WritePipeline
from .sanitizer import DataSanitizer
from .types import SqlTypeFamily, classify
from .validator import InvalidValueError, validate_value

__all__ = [
    "Transformer",
    "DataMasker",
    "DataSanitizer",
    "MaskingConfig",
    "MaskKind",
    "WritePipeline",
    "InvalidValueError",
    "SqlTypeFamily",
    "classify",
    "normalize_value",
    "validate_value",
]
