"""Customer purchases: the all-or-nothing stock decrement.

A purchase runs as one transaction:

1. resolve the customer by id, or create it from the payload;
2. row-lock the referenced products, then their variants;
3. validate every line item against the locked quantities;
4. deduct all line items (only once every item validated);
5. store the line items under the customer;
6. refresh the rollup of each touched product once;
7. queue a ``customer_purchase`` notification with the reference.

Any error before the commit rolls everything back, including a customer row
created in step 1.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.clock import Clock, make_reference, normalize_date, random_suffix, system_clock
from app.core.constants import NOTIFICATION_CUSTOMER_PURCHASE
from app.core.errors import InsufficientStock, NotFound, VariantNotFound
from app.database.session import atomic
from app.models.customer import Customer, CustomerProduct
from app.models.product import Product, ProductVariant
from app.schemas.customer import PurchaseCreate, PurchaseLineItem
from app.services.notification_service import notify
from app.services.stock_service import deduct, lock_products, lock_variants
from app.services.variant_aggregator import refresh_product_rollup

logger = logging.getLogger(__name__)


@dataclass
class PurchaseResult:
    reference: str
    customer: Customer
    items: int


def _resolve_customer(db: Session, payload: PurchaseCreate, clock: Clock) -> Customer:
    if payload.customer_id is not None:
        customer = db.get(Customer, payload.customer_id)
        if customer is None:
            raise NotFound("Customer not found.")
        return customer

    customer = Customer(
        name=payload.customer.name,
        phone=payload.customer.phone,
        purchase_date=payload.purchase_date or clock.now(),
    )
    db.add(customer)
    db.flush()
    return customer


def _plan_deductions(
    items: Sequence[PurchaseLineItem],
    variants: dict[int, ProductVariant],
) -> list[tuple[ProductVariant, int]]:
    """Check every line item before anything is deducted.

    Line items that share a variant are checked against what the earlier
    items left over, not against the full stock.
    """
    remaining: dict[int, int] = {}
    plan = []
    for item in items:
        variant = variants.get(item.variant_id)
        if variant is None or variant.product_id != item.product_id:
            raise VariantNotFound("Variant not found for product.")

        available = remaining.get(variant.id, variant.quantity or 0)
        if available < item.quantity:
            logger.warning(
                "Purchase rejected: %s needs %d, %d available",
                item.product_name,
                item.quantity,
                available,
            )
            raise InsufficientStock(
                "Not enough stock for {}".format(item.product_name),
                available=available,
                requested=item.quantity,
                status_code=422,
            )
        remaining[variant.id] = available - item.quantity
        plan.append((variant, item.quantity))
    return plan


def _touched_products(plan: Sequence[tuple[ProductVariant, int]]) -> list[Product]:
    products: dict[int, Product] = {}
    for variant, _quantity in plan:
        products.setdefault(variant.product_id, variant.product)
    return list(products.values())


def process_purchase(
    db: Session,
    payload: PurchaseCreate,
    *,
    actor: Optional[str] = None,
    clock: Clock = system_clock,
    suffix_factory: Callable[[], str] = random_suffix,
) -> PurchaseResult:
    settings = get_settings()
    reference = make_reference(settings.PURCHASE_REFERENCE_PREFIX, clock, suffix_factory)
    fallback_date = normalize_date(payload.purchase_date) or clock.now().date()

    with atomic(db):
        customer = _resolve_customer(db, payload, clock)

        lock_products(db, [item.product_id for item in payload.products])
        variants = lock_variants(db, [item.variant_id for item in payload.products])
        plan = _plan_deductions(payload.products, variants)

        for variant, quantity in plan:
            deduct(db, variant, quantity, refresh=False, status_code=422)

        for item in payload.products:
            customer.products.append(
                CustomerProduct(
                    product_name=item.product_name,
                    category=item.category,
                    unit=item.unit,
                    quantity=item.quantity,
                    purchase_date=item.purchase_date or fallback_date,
                    created_at=clock.now(),
                )
            )

        for product in _touched_products(plan):
            refresh_product_rollup(db, product)

        item_count = len(payload.products)
        notify(
            db,
            NOTIFICATION_CUSTOMER_PURCHASE,
            "Purchase {} processed for {} ({} items).".format(reference, customer.name, item_count),
            actor=actor,
            clock=clock,
        )

    logger.info(
        "Purchase %s committed for customer %s (%d items, paid %.2f)",
        reference,
        customer.id,
        item_count,
        payload.amount_paid,
        extra={"reference": reference, "customer_id": customer.id, "actor": actor},
    )
    return PurchaseResult(reference=reference, customer=customer, items=item_count)


__all__ = ["PurchaseResult", "process_purchase"]
