from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from creditledger.config import settings
from creditledger.errors import NotFoundError, ValidationError
from creditledger.models.product import Product
from creditledger.models.stock_movement import MovementType, StockMovement
from creditledger.repositories.product_repo import ProductRepository
from creditledger.repositories.stock_movement_repo import StockMovementRepository
from creditledger.utils.logs import get_logger
from creditledger.utils.units import GRAMS_PER_KG, describe_stock

log = get_logger("inventory")

REVERSE_SUFFIX = ":reverse"
RESTORE_SUFFIX = ":restore"
CREDIT_NOTE_SOURCE = "credit_notes"

_OPPOSITE = {
    MovementType.IN.value: MovementType.OUT.value,
    MovementType.OUT.value: MovementType.IN.value,
}


class InventoryService:
    """
    Append-only stock ledger plus the cached stock columns on Product.

    Every write goes through record_movement(), which inserts the movement and
    moves the product's cached level by the same delta, so the cache always
    equals the fold of the product's movements. Methods only flush; the caller
    owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db
        self.products = ProductRepository(db)
        self.movements = StockMovementRepository(db)

    def record_movement(
        self,
        product_id: int,
        movement_type: str,
        quantity: int = 0,
        quantity_grams: Optional[int] = None,
        reference: str = None,
        source_table: Optional[str] = None,
        source_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """
        IN/OUT take a positive magnitude (direction comes from the type),
        ADJUSTMENT takes a signed non-zero delta. For WEIGHT products
        quantity_grams is the operative amount and quantity is stored as 0.
        """
        try:
            mtype = MovementType(str(movement_type).upper()).value
        except ValueError:
            raise ValidationError(f"Unknown movement type: {movement_type!r}")
        if not reference:
            raise ValidationError("Movement reference is required")

        product = self.products.get_for_update(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")

        if product.is_weight:
            if quantity_grams is None:
                raise ValidationError(
                    f"quantity_grams is required for weight product {product.sku}"
                )
            amount = int(quantity_grams)
            quantity, quantity_grams = 0, amount
        else:
            amount = int(quantity or 0)
            quantity, quantity_grams = amount, None

        if mtype == MovementType.ADJUSTMENT.value:
            if amount == 0:
                raise ValidationError("Adjustment quantity must be non-zero")
            delta = amount
        else:
            if amount <= 0:
                raise ValidationError(f"{mtype} quantity must be positive")
            delta = -amount if mtype == MovementType.OUT.value else amount

        new_level = product.stock_level + delta
        if new_level < 0 and not settings.ALLOW_NEGATIVE_STOCK:
            raise ValidationError(
                f"Not enough stock for {product.sku}: have {product.stock_level}, need {-delta}"
            )

        movement = self.movements.add(
            StockMovement(
                product_id=product.id,
                movement_type=mtype,
                quantity=quantity,
                quantity_grams=quantity_grams,
                reference=reference,
                source_table=source_table,
                source_id=source_id,
                notes=notes,
            )
        )
        if product.is_weight:
            product.current_stock_grams = new_level
        else:
            product.current_stock = new_level
        self.db.flush()
        log.debug(
            f"movement {movement.id}: {mtype} {amount} sku={product.sku} ref={reference} -> {new_level}"
        )
        return movement

    def record_manual_movement(self, **kwargs) -> StockMovement:
        """
        record_movement() for movements entered by hand. The compensation tags
        and the credit note source are reserved for reversals and credit note
        returns, so a manual entry can never be mistaken for one of them.
        """
        reference = kwargs.get("reference") or ""
        if REVERSE_SUFFIX in reference or RESTORE_SUFFIX in reference:
            raise ValidationError(
                f"Reference {reference!r} uses a reserved suffix ({REVERSE_SUFFIX} / {RESTORE_SUFFIX})"
            )
        if kwargs.get("source_table") == CREDIT_NOTE_SOURCE:
            raise ValidationError("Credit note movements cannot be recorded manually")
        return self.record_movement(**kwargs)

    def is_reversed(
        self,
        reference: str,
        source_table: Optional[str] = None,
        source_id: Optional[int] = None,
    ) -> bool:
        """True while a reversal of `reference` is outstanding (not yet cancelled by a restore)."""
        latest = self.movements.latest_among(
            [reference + REVERSE_SUFFIX, reference + RESTORE_SUFFIX],
            source_table=source_table,
            source_id=source_id,
        )
        return bool(latest and latest.reference == reference + REVERSE_SUFFIX)

    def reverse(
        self,
        reference: str,
        notes: Optional[str] = None,
        source_table: Optional[str] = None,
        source_id: Optional[int] = None,
    ) -> List[StockMovement]:
        """
        Post one compensating movement per original movement tagged `reference`,
        tagged "<reference>:reverse". Returns the new movements; an empty list
        means no-op (already reversed, or nothing was ever posted).

        source_table/source_id narrow both the originals and the reversal
        markers to one owning document.
        """
        if self.is_reversed(reference, source_table, source_id):
            log.info(f"reverse({reference!r}): already reversed, no-op")
            return []
        originals = self.movements.by_reference(reference, source_table, source_id)
        if not originals:
            log.warning(f"reverse({reference!r}): no movements to reverse")
            return []
        return [
            self._post_copy(m, reference + REVERSE_SUFFIX, invert=True, notes=notes)
            for m in originals
        ]

    def reapply(
        self,
        reference: str,
        notes: Optional[str] = None,
        source_table: Optional[str] = None,
        source_id: Optional[int] = None,
    ) -> List[StockMovement]:
        """
        Cancel an outstanding reversal by re-posting the original movements,
        tagged "<reference>:restore". No-op unless a reversal is outstanding.
        """
        if not self.is_reversed(reference, source_table, source_id):
            log.info(f"reapply({reference!r}): no outstanding reversal, no-op")
            return []
        return [
            self._post_copy(m, reference + RESTORE_SUFFIX, invert=False, notes=notes)
            for m in self.movements.by_reference(reference, source_table, source_id)
        ]

    def _post_copy(
        self, original: StockMovement, reference: str, invert: bool, notes: Optional[str]
    ) -> StockMovement:
        mtype = original.movement_type
        quantity = original.quantity
        grams = original.quantity_grams
        if invert:
            if mtype == MovementType.ADJUSTMENT.value:
                quantity = -quantity
                grams = -grams if grams is not None else None
            else:
                mtype = _OPPOSITE[mtype]
        return self.record_movement(
            original.product_id,
            mtype,
            quantity=quantity,
            quantity_grams=grams,
            reference=reference,
            source_table=original.source_table,
            source_id=original.source_id,
            notes=notes,
        )

    @staticmethod
    def is_low_stock(product: Product) -> bool:
        level = product.reorder_level
        if level is None or level <= 0:
            return False
        if product.is_weight:
            return (product.current_stock_grams or 0) / GRAMS_PER_KG <= level
        return (product.current_stock or 0) <= level

    def stock_from_movements(self, product_id: int) -> int:
        return self.movements.fold(product_id)

    def verify(self, product_id: int) -> bool:
        """Cached stock column equals the fold of the movement history."""
        product = self.products.get(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product.stock_level == self.stock_from_movements(product_id)

    def describe(self, product: Product) -> Dict:
        d = describe_stock(
            product.stock_unit,
            product.current_stock,
            product.current_stock_grams,
            product.units_per_box,
        )
        d.update(
            {
                "product_id": product.id,
                "sku": product.sku,
                "name": product.name,
                "reorder_level": product.reorder_level,
                "low_stock": self.is_low_stock(product),
            }
        )
        return d

    def get_product(self, product_id: int) -> Product:
        product = self.products.get(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def list_low_stock(self) -> List[Product]:
        return [p for p in self.products.list_with_reorder_level() if self.is_low_stock(p)]

    def list_movements(self, **filters) -> List[StockMovement]:
        return self.movements.list(**filters)
