"""
Service layer for catalog (inventory item) operations.

Catalog rows supply default prices, tax rates and classification codes at
the moment a line is added to a document.  Editing or deleting an item
afterwards never touches an existing document: lines are snapshots.

Returns InventoryItemInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import select

from billing_kernel.domain.dtos import (
    InventoryItemInfo,
    LineItemSnapshot,
    LineRequest,
)
from billing_kernel.domain.snapshot import (
    resolve_line,
    validate_classification_code,
)
from billing_kernel.domain.values import (
    MAX_AMOUNT,
    Money,
    parse_tax_rate,
    tax_rate_to_basis_points,
)
from billing_kernel.exceptions import (
    InvalidQuantityError,
    InventoryItemNotFoundError,
)
from billing_kernel.logging_config import get_logger
from billing_kernel.models.inventory import InventoryItem
from billing_kernel.services.base import BaseService

logger = get_logger("services.catalog")


def _validate_stock(quantity_on_hand: object) -> int:
    if (
        isinstance(quantity_on_hand, bool)
        or not isinstance(quantity_on_hand, int)
        or not 0 <= quantity_on_hand <= MAX_AMOUNT
    ):
        raise InvalidQuantityError(quantity_on_hand, minimum=0, maximum=MAX_AMOUNT)
    return quantity_on_hand


class CatalogService(BaseService[InventoryItem]):
    """
    Service for managing sellable catalog items.

    Contract:
        Prices are integer minor units; tax rates are percentages with at
        most two decimal places.  Values are validated before the row is
        touched.

    Non-goals:
        - Does NOT reserve or decrement stock when documents are created.
    """

    def _get_by_id(self, item_id: UUID) -> InventoryItem:
        item = self.session.get(InventoryItem, item_id)
        if item is None:
            raise InventoryItemNotFoundError(str(item_id))
        return item

    def get_item(self, item_id: UUID) -> InventoryItemInfo:
        """
        Get a catalog item by ID.

        Raises:
            InventoryItemNotFoundError: If the item doesn't exist.
        """
        return self._get_by_id(item_id).to_dto()

    def find_item(self, item_id: UUID) -> InventoryItemInfo | None:
        """Find a catalog item by ID, returning None if not found."""
        item = self.session.get(InventoryItem, item_id)
        return item.to_dto() if item else None

    def list_items(self) -> list[InventoryItemInfo]:
        """List all catalog items ordered by name."""
        stmt = select(InventoryItem).order_by(InventoryItem.name, InventoryItem.id)
        return [item.to_dto() for item in self.session.execute(stmt).scalars()]

    def create_item(
        self,
        name: str,
        unit_price: int,
        tax_rate: Decimal | int | str | None = None,
        quantity_on_hand: int = 0,
        description: str | None = None,
        classification_code: str | None = None,
    ) -> InventoryItemInfo:
        """
        Create a catalog item.

        Args:
            name: Display name; copied onto document lines as the description.
            unit_price: Default price in minor units.
            tax_rate: Default tax percentage (None means 0).
            quantity_on_hand: Stock count, informational only.
            description: Longer free-text description.
            classification_code: HSN/SAC code copied onto order lines.

        Returns:
            Created InventoryItemInfo DTO.
        """
        price = Money.of(unit_price)
        rate = parse_tax_rate(tax_rate)
        item = InventoryItem(
            name=name,
            description=description,
            unit_price=price.amount,
            tax_rate_bp=tax_rate_to_basis_points(rate),
            quantity_on_hand=_validate_stock(quantity_on_hand),
            classification_code=validate_classification_code(classification_code),
        )
        self.session.add(item)
        self.session.flush()

        logger.info(
            "inventory_item_created",
            extra={"inventory_item_id": str(item.id), "unit_price": price.amount},
        )
        return item.to_dto()

    def update_item(
        self,
        item_id: UUID,
        name: str | None = None,
        unit_price: int | None = None,
        tax_rate: Decimal | int | str | None = None,
        quantity_on_hand: int | None = None,
        description: str | None = None,
        classification_code: str | None = None,
    ) -> InventoryItemInfo:
        """
        Update catalog item details.  Only the arguments given are changed.

        Existing document lines keep the values they snapshotted.

        Raises:
            InventoryItemNotFoundError: If the item doesn't exist.
        """
        item = self._get_by_id(item_id)

        if name is not None:
            item.name = name
        if unit_price is not None:
            item.unit_price = Money.of(unit_price).amount
        if tax_rate is not None:
            item.tax_rate_bp = tax_rate_to_basis_points(parse_tax_rate(tax_rate))
        if quantity_on_hand is not None:
            item.quantity_on_hand = _validate_stock(quantity_on_hand)
        if description is not None:
            item.description = description
        if classification_code is not None:
            item.classification_code = validate_classification_code(
                classification_code
            )

        self.session.flush()
        logger.info(
            "inventory_item_updated", extra={"inventory_item_id": str(item_id)}
        )
        return item.to_dto()

    def delete_item(self, item_id: UUID) -> None:
        """
        Delete a catalog item.

        Documents that reference it keep their line snapshots.

        Raises:
            InventoryItemNotFoundError: If the item doesn't exist.
        """
        item = self._get_by_id(item_id)
        self.session.delete(item)
        self.session.flush()
        logger.info(
            "inventory_item_deleted", extra={"inventory_item_id": str(item_id)}
        )

    def resolve_lines(
        self, line_requests: Sequence[LineRequest]
    ) -> tuple[LineItemSnapshot, ...]:
        """
        Snapshot each requested line against the current catalog.

        Lines are numbered from 1 in request order.

        Raises:
            InventoryItemNotFoundError: A referenced item does not exist.
            InvalidQuantityError, InvalidAmountError, InvalidTaxRateError:
                an override or catalog value is out of range.
        """
        return tuple(
            resolve_line(self.find_item(request.inventory_item_id), request, index)
            for index, request in enumerate(line_requests, start=1)
        )
