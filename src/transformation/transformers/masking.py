"""
Deterministic masking of sensitive columns.

Which columns are masked, and how, comes from an immutable ``MaskingConfig``
built once at startup. Masking is idempotent: a value that already contains
the mask character is left alone, so re-running a sync over stored data
never masks twice.
"""

import logging
import re
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple

from .base import TRANSFORMATION_TIME, TRANSFORMATIONS_APPLIED, Transformer

logger = logging.getLogger(__name__)

MASK_CHAR = "*"

_CJK = re.compile(r"[\u4e00-\u9fa5]")
_WHITESPACE = re.compile(r"\s+")
_MAINLAND_MOBILE = re.compile(r"^\d{11}$")
_ID_CARD_18 = re.compile(r"^\d{17}[\dXx]$")
_ID_CARD_15 = re.compile(r"^\d{15}$")
_EMAIL = re.compile(r"^([^@]+)@(.+)$")


class MaskKind(str, Enum):
    NAME = "name"
    PHONE = "phone"
    ID_CARD = "id_card"
    EMAIL = "email"


class MaskingConfig:
    """
    Read-only ``(table, column) -> MaskKind`` lookup

    Args:
        rules: ``{table: {column: kind}}`` where kind is a MaskKind or its value

    Raises:
        ValueError: If a kind is not a known MaskKind
    """

    def __init__(self, rules: Mapping[str, Mapping[str, Any]] | None = None):
        entries: Dict[Tuple[str, str], MaskKind] = {}
        for table, columns in (rules or {}).items():
            for column, kind in columns.items():
                entries[(table, column)] = MaskKind(kind)
        self._entries = MappingProxyType(entries)

    def kind_for(self, table_name: str, column_name: str) -> MaskKind | None:
        return self._entries.get((table_name, column_name))

    def tables(self) -> Iterable[str]:
        return sorted({table for table, _ in self._entries})

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        rules: Dict[str, Dict[str, str]] = {}
        for (table, column), kind in self._entries.items():
            rules.setdefault(table, {})[column] = kind.value
        return rules

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, MaskingConfig) and dict(self._entries) == dict(other._entries)

    def __hash__(self) -> int:
        return hash(frozenset(self._entries.items()))

    def __repr__(self) -> str:
        return f"MaskingConfig({self.to_dict()!r})"


def mask_name(name: str) -> str:
    """
    CJK names keep the first and last character, Latin names keep initials.

    Examples:
        >>> mask_name("张三丰")
        '张*丰'
        >>> mask_name("John Smith")
        'J*** S****'
    """
    name = name.strip()
    if _CJK.search(name):
        if len(name) <= 1:
            return name
        if len(name) == 2:
            return name[0] + MASK_CHAR
        return name[0] + MASK_CHAR * (len(name) - 2) + name[-1]

    return " ".join(
        word[0] + MASK_CHAR * (len(word) - 1) for word in name.split(" ") if word
    )


def mask_phone(phone: str) -> str:
    """Keep the first 3 and last 4 digits of an 11-digit mobile number."""
    digits = _WHITESPACE.sub("", phone)
    if _MAINLAND_MOBILE.match(digits):
        return digits[:3] + MASK_CHAR * 4 + digits[-4:]
    if len(digits) > 4:
        return digits[:2] + MASK_CHAR * (len(digits) - 4) + digits[-2:]
    return digits


def mask_id_card(id_number: str) -> str:
    """Keep the region prefix and last 4 characters of an identity number."""
    value = _WHITESPACE.sub("", id_number)
    if _ID_CARD_18.match(value):
        return value[:6] + MASK_CHAR * 8 + value[-4:]
    if _ID_CARD_15.match(value):
        return value[:6] + MASK_CHAR * 5 + value[-4:]
    if len(value) > 8:
        return value[:4] + MASK_CHAR * (len(value) - 8) + value[-4:]
    return value


def mask_email(email: str) -> str:
    """Keep the first two characters of the user name and the whole domain."""
    match = _EMAIL.match(email.strip())
    if not match:
        return email.strip()

    user, domain = match.groups()
    if len(user) <= 1:
        return f"{MASK_CHAR}@{domain}"
    if len(user) == 2:
        return f"{user[0]}{MASK_CHAR}@{domain}"
    return f"{user[:2]}{MASK_CHAR * (len(user) - 2)}@{domain}"


_MASKERS = {
    MaskKind.NAME: mask_name,
    MaskKind.PHONE: mask_phone,
    MaskKind.ID_CARD: mask_id_card,
    MaskKind.EMAIL: mask_email,
}


class DataMasker(Transformer):
    """
    Mask values of configured sensitive columns

    Context keys:
        table_name: Target table
        field_name: Target column (database field name)
    """

    def __init__(self, config: MaskingConfig):
        self.config = config

    def transform(self, value: Any, context: Dict[str, Any]) -> Any:
        return self.mask(value, context.get("table_name", ""), context.get("field_name", ""))

    def mask(self, value: Any, table_name: str, column_name: str) -> Any:
        """
        Mask ``value`` if ``(table_name, column_name)`` is configured.

        Unconfigured columns, blanks and already masked values pass through
        untouched.
        """
        if value is None or value == "":
            return value

        kind = self.config.kind_for(table_name, column_name)
        if kind is None:
            return value

        text = str(value)
        if MASK_CHAR in text:
            return text

        with TRANSFORMATION_TIME.labels(transformer_type=self.get_type()).time():
            masked = _MASKERS[kind](text)

        if masked != text:
            TRANSFORMATIONS_APPLIED.labels(
                transformer_type=self.get_type(),
                field_pattern=kind.value,
            ).inc()
            # Values are never logged
            logger.debug(f"Masked {table_name}.{column_name} as {kind.value}")

        return masked
