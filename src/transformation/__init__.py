"""
Value transformations for the synchronization engine.
"""

from transformation.transformers import (
    DataMasker,
    DataSanitizer,
    InvalidValueError,
    MaskingConfig,
    MaskKind,
    Transformer,
    WritePipeline,
    normalize_value,
    validate_value,
)

__all__ = [
    "Transformer",
    "DataMasker",
    "DataSanitizer",
    "MaskingConfig",
    "MaskKind",
    "WritePipeline",
    "InvalidValueError",
    "normalize_value",
    "validate_value",
]
