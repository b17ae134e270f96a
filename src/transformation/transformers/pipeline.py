"""
Per-value write preparation: validate, repair, re-validate, mask.
"""

import logging
from datetime import date
from typing import Any

from .base import TRANSFORMATION_ERRORS
from .dates import format_date
from .masking import DataMasker, MaskingConfig
from .sanitizer import DataSanitizer
from .types import SqlTypeFamily, classify
from .validator import InvalidValueError, validate_value

logger = logging.getLogger(__name__)


class WritePipeline:
    """
    Turns an incoming cell value into the value written to the database

    Args:
        masker: Masker applied last; defaults to one with no masked columns
        sanitizer: Repair step used after a failed validation
    """

    def __init__(
        self,
        masker: DataMasker | None = None,
        sanitizer: DataSanitizer | None = None,
    ):
        self.masker = masker or DataMasker(MaskingConfig())
        self.sanitizer = sanitizer or DataSanitizer()

    def prepare(self, value: Any, sql_type: str | None, table_name: str, column_name: str) -> Any:
        """
        Prepare one value for writing.

        Structured dates are rendered as local text first. A value that fails
        validation is repaired once and checked again.

        Args:
            value: Incoming cell value
            sql_type: Declared SQL type of the column
            table_name: Target table, used for the masking lookup
            column_name: Target database column, used for the masking lookup

        Returns:
            The value to bind, None for blanks

        Raises:
            InvalidValueError: If the value is still invalid after repair
        """
        if isinstance(value, date):
            family = classify(sql_type)
            value = format_date(value, date_only=family is SqlTypeFamily.DATE)

        if validate_value(value, sql_type) is not None:
            recovered = self.sanitizer.try_recover(value, sql_type)
            error = validate_value(recovered, sql_type)
            if error is not None:
                TRANSFORMATION_ERRORS.labels(
                    transformer_type=self.sanitizer.get_type(),
                    error_type=classify(sql_type).value,
                ).inc()
                raise InvalidValueError(error, value, sql_type)
            value = recovered

        if value == "":
            value = None

        return self.masker.mask(value, table_name, column_name)
