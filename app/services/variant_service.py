from sqlalchemy.orm import Session

from app.core.errors import LastVariant, NotFound, ValidationFailure
from app.database.session import atomic
from app.models.product import Product, ProductVariant
from app.schemas.product import VariantCreate, VariantUpdate
from app.services.product_service import ensure_unique_sku, get_product
from app.services.stock_service import deduct, lock_variant, receive
from app.services.variant_aggregator import load_variants, mark_default_variant, refresh_product_rollup


def _get_owned_variant(db: Session, product: Product, variant_id: int, *, for_update: bool = False) -> ProductVariant:
    variant = lock_variant(db, variant_id) if for_update else db.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFound("Variant not found.")
    if variant.product_id != product.id:
        raise NotFound("Variant does not belong to this product.")
    return variant


def create_variant(db: Session, product_id: int, payload: VariantCreate) -> tuple[ProductVariant, Product]:
    with atomic(db):
        product = get_product(db, product_id, for_update=True)
        ensure_unique_sku(db, payload.sku)

        existing = list(product.variants)
        is_default = payload.is_default
        if is_default is None:
            is_default = not existing

        variant = ProductVariant(
            sku=payload.sku,
            unit_label=payload.unit_label,
            cost_price=payload.cost_price,
            unit_price=payload.unit_price,
            quantity=payload.quantity,
            conversion_factor=payload.conversion_factor or 1,
            barcode=payload.barcode,
            is_default=bool(is_default),
            hidden=False,
        )
        product.variants.append(variant)
        if variant.is_default:
            mark_default_variant(existing + [variant], variant)
        refresh_product_rollup(db, product)
    return variant, product


def update_variant(
    db: Session,
    product_id: int,
    variant_id: int,
    payload: VariantUpdate,
) -> tuple[ProductVariant, Product]:
    with atomic(db):
        product = get_product(db, product_id, for_update=True)
        variant = _get_owned_variant(db, product, variant_id, for_update=True)
        changes = payload.model_dump(exclude_unset=True)
        if "sku" in changes:
            ensure_unique_sku(db, changes["sku"], exclude_id=variant.id)
        make_default = changes.pop("is_default", None)
        for field, value in changes.items():
            if field == "conversion_factor" and value is None:
                continue
            setattr(variant, field, value)
        variants = list(product.variants)
        if make_default:
            mark_default_variant(variants, variant)
        elif make_default is False and variant.is_default:
            others = [other for other in variants if other is not variant]
            if not others:
                raise ValidationFailure("The only variant of a product must stay the default.")
            mark_default_variant(variants, others[0])
        refresh_product_rollup(db, product)
    return variant, product


def delete_variant(db: Session, product_id: int, variant_id: int) -> Product:
    with atomic(db):
        product = get_product(db, product_id, for_update=True)
        variant = _get_owned_variant(db, product, variant_id, for_update=True)
        if len(product.variants) <= 1:
            raise LastVariant()

        was_default = variant.is_default
        db.delete(variant)
        remaining = load_variants(db, product)
        if was_default and remaining:
            mark_default_variant(remaining, remaining[0])
        refresh_product_rollup(db, product)
    return product


def receive_variant(db: Session, product_id: int, variant_id: int, quantity: int) -> tuple[ProductVariant, Product]:
    with atomic(db):
        product = get_product(db, product_id, for_update=True)
        variant = _get_owned_variant(db, product, variant_id, for_update=True)
        receive(db, variant, quantity)
    return variant, product


def deduct_variant(db: Session, product_id: int, variant_id: int, quantity: int) -> tuple[ProductVariant, Product]:
    with atomic(db):
        product = get_product(db, product_id, for_update=True)
        variant = _get_owned_variant(db, product, variant_id, for_update=True)
        deduct(db, variant, quantity)
    return variant, product


def toggle_hidden(db: Session, product_id: int, variant_id: int) -> ProductVariant:
    with atomic(db):
        product = get_product(db, product_id, for_update=True)
        variant = _get_owned_variant(db, product, variant_id)
        variant.hidden = not variant.hidden
    return variant


def set_default(db: Session, product_id: int, variant_id: int) -> Product:
    with atomic(db):
        product = get_product(db, product_id, for_update=True)
        variant = _get_owned_variant(db, product, variant_id)
        mark_default_variant(list(product.variants), variant)
        refresh_product_rollup(db, product)
    return product


__all__ = [
    "create_variant",
    "delete_variant",
    "deduct_variant",
    "receive_variant",
    "set_default",
    "toggle_hidden",
    "update_variant",
]
