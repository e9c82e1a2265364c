"""
Module: billing_kernel.models.inventory
Responsibility: ORM persistence for catalog items.  Catalog rows are the
    source of default prices, tax rates and classification codes at the
    moment a line is added to a document; documents copy those values and
    keep only the item id as a reference.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain value helpers only.

Invariants enforced:
    - unit_price is non-negative integer minor units.
    - tax_rate_bp is hundredths of a percent in [0, 10000].
    - quantity_on_hand is non-negative.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.dtos import InventoryItemInfo
from billing_kernel.domain.snapshot import CLASSIFICATION_CODE_LENGTH
from billing_kernel.domain.values import Money, tax_rate_from_basis_points


class InventoryItem(TrackedBase):
    """A sellable catalog item."""

    __tablename__ = "inventory_items"

    __table_args__ = (
        CheckConstraint("unit_price >= 0", name="ck_inventory_items_unit_price"),
        CheckConstraint(
            "tax_rate_bp >= 0 AND tax_rate_bp <= 10000",
            name="ck_inventory_items_tax_rate",
        ),
        CheckConstraint(
            "quantity_on_hand >= 0", name="ck_inventory_items_quantity"
        ),
        Index("idx_inventory_items_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit_price: Mapped[int] = mapped_column(nullable=False)
    tax_rate_bp: Mapped[int] = mapped_column(nullable=False, default=0)
    quantity_on_hand: Mapped[int] = mapped_column(nullable=False, default=0)
    classification_code: Mapped[str | None] = mapped_column(
        String(CLASSIFICATION_CODE_LENGTH), nullable=True
    )

    @property
    def tax_rate(self) -> Decimal:
        return tax_rate_from_basis_points(self.tax_rate_bp)

    def to_dto(self) -> InventoryItemInfo:
        return InventoryItemInfo(
            id=self.id,
            name=self.name,
            unit_price=Money(self.unit_price),
            tax_rate=self.tax_rate,
            quantity_on_hand=self.quantity_on_hand,
            description=self.description,
            classification_code=self.classification_code,
        )

    def __repr__(self) -> str:
        return f"<InventoryItem {self.name}: {self.unit_price}>"
