"""Keeps a product's rollup columns in step with its variants.

``Product.quantity``, ``unit_price``, ``unit_of_measurement`` and ``sku`` are
denormalized copies once a product has variants: quantity is the sum over
all variants, the rest mirror the default variant. Every write path that
touches a variant calls :func:`refresh_product_rollup` before committing.
"""
from sqlalchemy.orm import Session

from app.models.product import Product, ProductVariant


def resolve_default_variant(variants: list[ProductVariant]) -> ProductVariant | None:
    if not variants:
        return None
    for variant in variants:
        if variant.is_default:
            return variant
    return variants[0]


def mark_default_variant(variants: list[ProductVariant], chosen: ProductVariant) -> None:
    """Make ``chosen`` the only default among ``variants``."""
    for variant in variants:
        variant.is_default = variant is chosen


def load_variants(db: Session, product: Product) -> list[ProductVariant]:
    db.flush()
    db.expire(product, ["variants"])
    return list(product.variants)


def refresh_product_rollup(db: Session, product: Product) -> Product:
    variants = load_variants(db, product)
    if not variants:
        return product

    default_variant = resolve_default_variant(variants)
    mark_default_variant(variants, default_variant)

    product.quantity = sum(variant.quantity or 0 for variant in variants)
    product.unit_price = default_variant.unit_price
    product.unit_of_measurement = default_variant.unit_label
    if default_variant.sku:
        product.sku = default_variant.sku

    db.flush()
    return product


__all__ = [
    "load_variants",
    "mark_default_variant",
    "refresh_product_rollup",
    "resolve_default_variant",
]
