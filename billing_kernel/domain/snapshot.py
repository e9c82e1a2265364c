"""
Inventory Snapshot Resolver.

Responsibility:
    Turns a caller's ``LineRequest`` plus the catalog item it references
    into a ``LineItemSnapshot``: explicit overrides win, catalog values fill
    the gaps, and the result no longer depends on the catalog.

Architecture position:
    Kernel > Domain -- pure function.  The catalog read happens in
    ``CatalogService.resolve_lines``; this module only decides.

Invariants enforced:
    - "Unset" (``None``) and "explicitly zero" are different: an override
      tax rate of 0 is kept, only ``None`` falls back to the catalog.
    - Snapshotted values are never re-resolved after the document exists.
"""

from __future__ import annotations

from billing_kernel.domain.dtos import (
    InventoryItemInfo,
    LineItemSnapshot,
    LineRequest,
)
from billing_kernel.domain.values import MAX_AMOUNT, Money, parse_tax_rate
from billing_kernel.exceptions import (
    FieldTooLongError,
    InvalidQuantityError,
    InventoryItemNotFoundError,
)

CLASSIFICATION_CODE_LENGTH = 20


def validate_quantity(quantity: object) -> int:
    """Quantities are plain integers >= 1 that fit a BIGINT column."""
    if (
        isinstance(quantity, bool)
        or not isinstance(quantity, int)
        or not 1 <= quantity <= MAX_AMOUNT
    ):
        raise InvalidQuantityError(quantity, maximum=MAX_AMOUNT)
    return quantity


def validate_classification_code(code: str | None) -> str | None:
    """HSN/SAC codes are short; None means not given."""
    if code is not None and len(code) > CLASSIFICATION_CODE_LENGTH:
        raise FieldTooLongError(
            "classification_code", len(code), CLASSIFICATION_CODE_LENGTH
        )
    return code


def resolve_line(
    inventory_item: InventoryItemInfo | None,
    overrides: LineRequest,
    line_number: int = 1,
) -> LineItemSnapshot:
    """
    Build a line snapshot from a catalog item and the caller's overrides.

    Preconditions:
        ``inventory_item`` is the catalog lookup result for
        ``overrides.inventory_item_id``, or ``None`` if the lookup missed.

    Raises:
        InventoryItemNotFoundError: the referenced item did not resolve.
        InvalidQuantityError: quantity is not an integer >= 1.
        InvalidAmountError: the resolved unit price is negative.
        InvalidTaxRateError: the resolved tax rate is out of range.
        FieldTooLongError: the classification code override is too long.
    """
    if inventory_item is None:
        raise InventoryItemNotFoundError(str(overrides.inventory_item_id))

    quantity = validate_quantity(overrides.quantity)

    if overrides.unit_price is not None:
        unit_price = Money.of(overrides.unit_price)
    else:
        unit_price = inventory_item.unit_price.require_non_negative()

    if overrides.tax_rate is not None:
        tax_rate = parse_tax_rate(overrides.tax_rate)
    else:
        tax_rate = parse_tax_rate(inventory_item.tax_rate)

    if overrides.classification_code is not None:
        classification_code = validate_classification_code(
            overrides.classification_code
        )
    else:
        classification_code = inventory_item.classification_code or ""

    return LineItemSnapshot(
        inventory_item_id=inventory_item.id,
        line_number=line_number,
        description=inventory_item.name,
        quantity=quantity,
        unit_price=unit_price,
        tax_rate=tax_rate,
        amount=unit_price.multiply_by_quantity(quantity),
        classification_code=classification_code,
    )
