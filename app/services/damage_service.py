import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.constants import (
    NOTIFICATION_DAMAGE_REPORTED,
    NOTIFICATION_INVENTORY_DEDUCTED,
    NOTIFICATION_PRODUCT_REFUNDED,
)
from app.core.errors import AlreadyRefunded, NotFound, VariantNotFound
from app.database.session import atomic
from app.models.damaged_product import DamagedProduct
from app.models.product import Product, ProductVariant
from app.schemas.damaged_product import DamagedProductCreate, DamagedProductUpdate
from app.services.notification_service import notify
from app.services.stock_service import deduct, lock_product, lock_variant, resolve_variant

logger = logging.getLogger(__name__)

RECENT_DAMAGES_LIMIT = 5


def get_damaged_product(db: Session, damage_id: int) -> DamagedProduct:
    damaged = db.get(DamagedProduct, damage_id)
    if damaged is None:
        raise NotFound("Damaged product not found.")
    return damaged


def list_damaged_products(db: Session) -> list[DamagedProduct]:
    return list(
        db.execute(
            select(DamagedProduct).order_by(DamagedProduct.created_at.desc(), DamagedProduct.id.desc())
        )
        .scalars()
        .all()
    )


def damage_stats(db: Session) -> dict:
    total = db.execute(select(func.coalesce(func.sum(DamagedProduct.quantity), 0))).scalar_one()
    recent = (
        db.execute(
            select(DamagedProduct)
            .order_by(DamagedProduct.date.desc(), DamagedProduct.id.desc())
            .limit(RECENT_DAMAGES_LIMIT)
        )
        .scalars()
        .all()
    )
    return {"total_damaged": int(total), "recent_damages": list(recent)}


def report_damage(
    db: Session,
    payload: DamagedProductCreate,
    *,
    actor: Optional[str] = None,
    clock: Clock = system_clock,
) -> DamagedProduct:
    data = payload.model_dump()
    if data.get("logged_at") is None:
        data["logged_at"] = clock.now()

    with atomic(db):
        damaged = DamagedProduct(**data, refunded=False, created_at=clock.now())
        db.add(damaged)
        notify(
            db,
            NOTIFICATION_DAMAGE_REPORTED,
            "Damaged product reported: {} by {}".format(payload.product_name, payload.customer_name),
            actor=actor,
            clock=clock,
        )
    logger.info("Damage report %s recorded for %s", damaged.id, damaged.product_name)
    return damaged


def update_damaged_product(db: Session, damage_id: int, payload: DamagedProductUpdate) -> DamagedProduct:
    with atomic(db):
        damaged = get_damaged_product(db, damage_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(damaged, field, value)
    return damaged


def delete_damaged_product(db: Session, damage_id: int) -> None:
    with atomic(db):
        db.delete(get_damaged_product(db, damage_id))


def refund_damage(
    db: Session,
    damage_id: int,
    *,
    actor: Optional[str] = None,
    clock: Clock = system_clock,
) -> DamagedProduct:
    """Mark a damage report as refunded. One-way: a second refund fails and
    leaves ``refunded_at`` as it was. Inventory is not touched here."""
    with atomic(db):
        damaged = db.execute(
            select(DamagedProduct)
            .where(DamagedProduct.id == damage_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().first()
        if damaged is None:
            raise NotFound("Damaged product not found.")
        if damaged.refunded:
            raise AlreadyRefunded()

        damaged.refunded = True
        damaged.refunded_at = clock.now()
        notify(
            db,
            NOTIFICATION_PRODUCT_REFUNDED,
            "Refunded {} {} of {} to {}".format(
                damaged.quantity,
                damaged.unit_of_measurement,
                damaged.product_name,
                damaged.customer_name,
            ),
            actor=actor,
            clock=clock,
        )
    logger.info("Damage report %s refunded", damage_id, extra={"damage_id": damage_id, "actor": actor})
    return damaged


def deduct_from_inventory(
    db: Session,
    product_name: str,
    quantity: int,
    variant_id: Optional[int] = None,
    *,
    actor: Optional[str] = None,
    clock: Clock = system_clock,
) -> Product:
    """Remove damaged units from stock.

    An explicit ``variant_id`` always wins. Otherwise the product is looked up
    by name and its default (else first) variant is used, or the product's own
    quantity when it has no variants.
    """
    with atomic(db):
        if variant_id is not None:
            owner_id = db.execute(
                select(ProductVariant.product_id).where(ProductVariant.id == variant_id)
            ).scalar()
            product = lock_product(db, owner_id) if owner_id is not None else None
            variant = lock_variant(db, variant_id) if product is not None else None
            if variant is None:
                raise NotFound("Variant not found for the provided product.")
            deduct(db, variant, quantity, message="Insufficient quantity in the selected variant")
        else:
            product_id = db.execute(select(Product.id).where(Product.name == product_name)).scalar()
            product = lock_product(db, product_id) if product_id is not None else None
            if product is None:
                raise NotFound("Product not found in inventory")

            if product.variants:
                try:
                    default_variant = resolve_variant(product)
                except VariantNotFound as exc:
                    raise NotFound("No available variants to deduct from.") from exc
                variant = lock_variant(db, default_variant.id)
                if variant is None:
                    raise NotFound("No available variants to deduct from.")
                deduct(db, variant, quantity, message="Insufficient quantity in the default variant")
            else:
                deduct(db, product, quantity, message="Insufficient quantity in inventory")

        notify(
            db,
            NOTIFICATION_INVENTORY_DEDUCTED,
            "Deducted {} units of {} from inventory due to damage".format(quantity, product_name),
            product_id=product.id,
            actor=actor,
            clock=clock,
        )
    return product


__all__ = [
    "damage_stats",
    "deduct_from_inventory",
    "delete_damaged_product",
    "get_damaged_product",
    "list_damaged_products",
    "refund_damage",
    "report_damage",
    "update_damaged_product",
]
