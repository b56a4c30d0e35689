"""
Transaction backfill for sold products.

Every product marked sold with a known buyer must have a completed
transaction for (product, seller, buyer). Missing ones are created from
the product's own sale data. The lookup uses exactly the fields the
creation writes, so re-running after a successful run creates nothing.

Runs strictly sequentially; the first store failure (FatalJobError)
aborts the remaining batch.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .database import PaymentMethod, TransactionStatus
from .logger import StructuredLogger, get_logger

# Reconciliation policy for backfilled records
BACKFILL_STATUS = TransactionStatus.COMPLETED
DEFAULT_PAYMENT_METHOD = PaymentMethod.CASH
DEFAULT_CLOCK: Callable[[], datetime] = datetime.now  # transaction_date when sold_at is missing


@dataclass
class BackfillResult:
    scanned: int = 0
    created: int = 0
    skipped_existing: int = 0
    skipped_no_buyer: int = 0
    dry_run: bool = False


def transaction_key(product) -> Dict[str, Any]:
    """Fields identifying the completed transaction a sold product must have."""
    return {
        "product_id": product.id,
        "seller_id": product.seller_id,
        "buyer_id": product.sold_to_id,
        "status": BACKFILL_STATUS.value,
    }


def find_missing(product_store, transaction_store) -> List[Any]:
    """
    Return sold products with a buyer but no matching completed transaction.

    Read-only; used to audit the store before or after a backfill.
    """
    missing = []
    for product in product_store.find({"is_sold": True}):
        if product.sold_to_id is None:
            continue
        if transaction_store.find_one(transaction_key(product)) is None:
            missing.append(product)
    return missing


class BackfillReconciler:
    """Creates the missing completed transactions for sold products."""

    def __init__(
        self,
        product_store,
        transaction_store,
        logger: Optional[StructuredLogger] = None,
        payment_method: PaymentMethod = DEFAULT_PAYMENT_METHOD,
        clock: Callable[[], datetime] = DEFAULT_CLOCK,
    ):
        self.product_store = product_store
        self.transaction_store = transaction_store
        self.logger = logger or get_logger()
        self.payment_method = payment_method
        self.clock = clock

    def build_transaction(self, product) -> Dict[str, Any]:
        fields = transaction_key(product)
        fields.update(
            price=product.price,
            payment_method=self.payment_method.value,
            transaction_date=product.sold_at or self.clock(),
        )
        return fields

    def run(self, dry_run: bool = False) -> BackfillResult:
        """
        Backfill missing transactions.

        Args:
            dry_run: Report what would be created without writing

        Returns:
            BackfillResult with per-outcome counts

        Raises:
            FatalJobError: On the first store failure; earlier creations are kept
        """
        result = BackfillResult(dry_run=dry_run)

        for product in self.product_store.find({"is_sold": True}):
            result.scanned += 1
            self.logger.record_scanned()

            if product.sold_to_id is None:
                result.skipped_no_buyer += 1
                self.logger.record_skip("no_buyer")
                self.logger.debug(f"Skipping product {product.id}: no buyer recorded")
                continue

            if self.transaction_store.find_one(transaction_key(product)) is not None:
                result.skipped_existing += 1
                self.logger.record_skip("existing")
                continue

            if dry_run:
                result.created += 1
                self.logger.info(f"Would create transaction for product {product.id}")
                continue

            transaction = self.transaction_store.create(self.build_transaction(product))
            result.created += 1
            self.logger.record_created()
            self.logger.info(
                f"Created transaction for product {product.id}",
                transaction_id=transaction.id,
            )

        if dry_run:
            self.logger.info(f"Dry run complete. Would create {result.created} transactions.")
        else:
            self.logger.info(f"Backfill complete. Created {result.created} transactions.")
        return result
