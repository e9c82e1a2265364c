"""
Document numbering conventions (``billing_kernel.domain.numbering``).

The stored document number is a plain integer handed out by
``SequenceService``.  Prefix and zero padding (``SO-00001``) are a display
convention applied here and nowhere else.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping


class DocumentType(str, Enum):
    """Numbered document types; the value doubles as the sequence name."""

    SALES_ORDER = "sales_order"
    INVOICE = "invoice"

    @property
    def default_prefix(self) -> str:
        return _DEFAULT_PREFIXES[self]


_DEFAULT_PREFIXES = {
    DocumentType.SALES_ORDER: "SO-",
    DocumentType.INVOICE: "INV-",
}

DEFAULT_NUMBER_WIDTH = 5


def format_document_number(
    document_type: DocumentType,
    number: int,
    prefixes: Mapping[str, str] | None = None,
    width: int = DEFAULT_NUMBER_WIDTH,
) -> str:
    """
    Render a stored number for display.

    >>> format_document_number(DocumentType.SALES_ORDER, 1)
    'SO-00001'

    Numbers wider than ``width`` are shown in full, never truncated.
    """
    prefix = document_type.default_prefix
    if prefixes and document_type.value in prefixes:
        prefix = prefixes[document_type.value]
    return f"{prefix}{number:0{width}d}"
