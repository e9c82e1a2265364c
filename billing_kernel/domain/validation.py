"""
Boundary checks run before any write.

Everything here is pure: the orchestrator calls these before it allocates a
document number, so a malformed request never burns one.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from billing_kernel.domain.dtos import DocumentMeta, LineRequest
from billing_kernel.domain.snapshot import validate_quantity
from billing_kernel.exceptions import (
    EmptyDocumentError,
    FieldTooLongError,
    InvalidDateRangeError,
)

PLACE_OF_SUPPLY_LENGTH = 100


def validate_date_range(issue_date: date, due_date: date) -> None:
    """Invoices fall due on or after the day they are issued."""
    if due_date < issue_date:
        raise InvalidDateRangeError(issue_date.isoformat(), due_date.isoformat())


def validate_line_requests(
    line_requests: Sequence[LineRequest], document_type: str
) -> tuple[LineRequest, ...]:
    """
    Reject empty documents and non-positive quantities up front.

    Catalog lookups happen later, inside the create transaction.
    """
    requests = tuple(line_requests)
    if not requests:
        raise EmptyDocumentError(document_type)
    for request in requests:
        validate_quantity(request.quantity)
    return requests


def validate_meta(meta: DocumentMeta | None) -> DocumentMeta:
    """Notes and terms are free text; place of supply must fit its column."""
    meta = meta or DocumentMeta()
    place = meta.place_of_supply
    if place is not None and len(place) > PLACE_OF_SUPPLY_LENGTH:
        raise FieldTooLongError("place_of_supply", len(place), PLACE_OF_SUPPLY_LENGTH)
    return meta
