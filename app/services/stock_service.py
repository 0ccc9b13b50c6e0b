import logging
from typing import Iterable, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import InsufficientStock, NotFound, ValidationFailure, VariantNotFound
from app.database.session import atomic
from app.models.product import Product, ProductVariant
from app.services.variant_aggregator import refresh_product_rollup, resolve_default_variant

logger = logging.getLogger(__name__)

StockTarget = Union[Product, ProductVariant]


def _require_positive(amount) -> int:
    if amount is None or int(amount) < 1:
        raise ValidationFailure("quantity must be at least 1.")
    return int(amount)


def _describe(target: StockTarget) -> str:
    if isinstance(target, ProductVariant):
        return "variant {}".format(target.id)
    return "product {}".format(target.id)


def receive(db: Session, target: StockTarget, amount: int, *, refresh: bool = True) -> StockTarget:
    amount = _require_positive(amount)
    target.quantity = (target.quantity or 0) + amount
    logger.info("Received %d into %s (now %d)", amount, _describe(target), target.quantity)
    if refresh and isinstance(target, ProductVariant):
        refresh_product_rollup(db, target.product)
    return target


def deduct(
    db: Session,
    target: StockTarget,
    amount: int,
    *,
    refresh: bool = True,
    message: str = "Not enough stock to deduct.",
    status_code: Optional[int] = None,
) -> StockTarget:
    amount = _require_positive(amount)
    available = target.quantity or 0
    if available < amount:
        logger.warning(
            "Rejected deduction of %d from %s: only %d available",
            amount,
            _describe(target),
            available,
        )
        raise InsufficientStock(
            message,
            available=available,
            requested=amount,
            status_code=status_code,
        )
    target.quantity = available - amount
    logger.info("Deducted %d from %s (now %d)", amount, _describe(target), target.quantity)
    if refresh and isinstance(target, ProductVariant):
        refresh_product_rollup(db, target.product)
    return target


def lock_products(db: Session, product_ids: Iterable[int]) -> dict[int, Product]:
    """Row-lock products in ascending id order.

    Lock order everywhere: product rows first, then their variant rows, each
    in ascending id order.
    """
    ids = sorted({product_id for product_id in product_ids if product_id is not None})
    if not ids:
        return {}
    products = (
        db.execute(
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )
    return {product.id: product for product in products}


def lock_product(db: Session, product_id: int) -> Optional[Product]:
    return lock_products(db, [product_id]).get(product_id)


def lock_variants(db: Session, variant_ids: Iterable[int]) -> dict[int, ProductVariant]:
    """Row-lock the given variants for the rest of the transaction and return
    them keyed by id with freshly read quantities. Missing ids are absent
    from the result."""
    ids = sorted({variant_id for variant_id in variant_ids if variant_id is not None})
    if not ids:
        return {}
    # Ascending id order keeps concurrent lockers from deadlocking.
    variants = (
        db.execute(
            select(ProductVariant)
            .where(ProductVariant.id.in_(ids))
            .order_by(ProductVariant.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )
    return {variant.id: variant for variant in variants}


def lock_variant(db: Session, variant_id: int) -> Optional[ProductVariant]:
    return lock_variants(db, [variant_id]).get(variant_id)


def resolve_variant(product: Product, variant_id: Optional[int] = None) -> ProductVariant:
    variants = list(product.variants)
    if variant_id is not None:
        for variant in variants:
            if variant.id == variant_id:
                return variant
        raise VariantNotFound()
    variant = resolve_default_variant(variants)
    if variant is None:
        raise VariantNotFound()
    return variant


def _get_product(db: Session, *, product_id: Optional[int] = None, name: Optional[str] = None) -> Product:
    if product_id is None:
        product_id = db.execute(select(Product.id).where(Product.name == name)).scalar()
    product = lock_product(db, product_id) if product_id is not None else None
    if product is None:
        raise NotFound("Product not found.")
    return product


def _locked_target(db: Session, product: Product, variant_id: Optional[int]) -> StockTarget:
    if not product.variants:
        return product
    variant = resolve_variant(product, variant_id)
    locked = lock_variant(db, variant.id)
    if locked is None:
        raise VariantNotFound()
    return locked


def receive_stock(db: Session, product_id: int, quantity: int, variant_id: Optional[int] = None) -> Product:
    with atomic(db):
        product = _get_product(db, product_id=product_id)
        target = _locked_target(db, product, variant_id)
        receive(db, target, quantity)
    return product


def deduct_stock(db: Session, product_id: int, quantity: int, variant_id: Optional[int] = None) -> Product:
    with atomic(db):
        product = _get_product(db, product_id=product_id)
        target = _locked_target(db, product, variant_id)
        deduct(db, target, quantity)
    return product


def deduct_stock_by_name(
    db: Session,
    product_name: str,
    quantity: int,
    variant_id: Optional[int] = None,
) -> Product:
    with atomic(db):
        product = _get_product(db, name=product_name)
        target = _locked_target(db, product, variant_id)
        message = "Not enough stock to deduct."
        if isinstance(target, ProductVariant):
            message = "Not enough stock to deduct from the selected variant."
        deduct(db, target, quantity, message=message)
    return product


__all__ = [
    "deduct",
    "deduct_stock",
    "deduct_stock_by_name",
    "lock_product",
    "lock_products",
    "lock_variant",
    "lock_variants",
    "receive",
    "receive_stock",
    "resolve_variant",
]
