import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.clock import Clock, system_clock
from app.core.errors import NotFound, ValidationFailure
from app.core.images import delete_image, is_data_uri, save_data_uri
from app.database.session import atomic
from app.models.product import Product, ProductVariant
from app.schemas.product import ProductCreate, ProductUpdate, VariantCreate
from app.services.stock_service import lock_product
from app.services.variant_aggregator import mark_default_variant, refresh_product_rollup

logger = logging.getLogger(__name__)


def get_product(db: Session, product_id: int, *, for_update: bool = False) -> Product:
    product = lock_product(db, product_id) if for_update else db.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found.")
    return product


def list_products(db: Session) -> list[Product]:
    return list(
        db.execute(
            select(Product).options(selectinload(Product.variants)).order_by(Product.id)
        )
        .scalars()
        .all()
    )


def ensure_unique_name(db: Session, name: str, *, exclude_id: Optional[int] = None) -> None:
    stmt = select(Product.id).where(Product.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    if db.execute(stmt).first() is not None:
        raise ValidationFailure("The name has already been taken.")


def ensure_unique_sku(db: Session, sku: Optional[str], *, exclude_id: Optional[int] = None) -> None:
    if not sku:
        return
    stmt = select(ProductVariant.id).where(ProductVariant.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(ProductVariant.id != exclude_id)
    if db.execute(stmt).first() is not None:
        raise ValidationFailure("The sku {} has already been taken.".format(sku))


@contextmanager
def _discard_on_error(image_url: Optional[str]):
    """Remove an image written ahead of a transaction that did not commit."""
    try:
        yield
    except Exception:
        delete_image(image_url)
        raise


def _base_variant(payload: ProductCreate) -> VariantCreate:
    return VariantCreate(
        sku=payload.sku,
        unit_label=payload.unit_of_measurement,
        cost_price=payload.cost_price,
        unit_price=payload.unit_price,
        quantity=payload.quantity,
        conversion_factor=1,
        is_default=True,
    )


def create_product(db: Session, payload: ProductCreate, *, clock: Clock = system_clock) -> Product:
    """Create a product and its variants. Without explicit variants a single
    default variant is built from the product's own unit and price."""
    variant_payloads = payload.variants or [_base_variant(payload)]

    image_url = None
    if is_data_uri(payload.image_url):
        image_url = save_data_uri(payload.image_url, clock=clock)

    with _discard_on_error(image_url), atomic(db):
        ensure_unique_name(db, payload.name)
        for variant_data in variant_payloads:
            ensure_unique_sku(db, variant_data.sku)

        product = Product(
            name=payload.name,
            sku=payload.sku,
            category=payload.category,
            cost_price=payload.cost_price,
            unit_price=payload.unit_price,
            quantity=payload.quantity,
            unit_of_measurement=payload.unit_of_measurement,
            hidden=False,
            image_url=image_url,
            created_at=clock.now(),
            updated_at=clock.now(),
        )
        db.add(product)
        db.flush()

        for index, variant_data in enumerate(variant_payloads):
            is_default = variant_data.is_default
            if is_default is None:
                is_default = index == 0
            db.add(
                ProductVariant(
                    product_id=product.id,
                    sku=variant_data.sku,
                    unit_label=variant_data.unit_label,
                    cost_price=variant_data.cost_price,
                    unit_price=variant_data.unit_price,
                    quantity=variant_data.quantity,
                    conversion_factor=variant_data.conversion_factor or 1,
                    barcode=variant_data.barcode,
                    is_default=is_default,
                    hidden=False,
                )
            )

        refresh_product_rollup(db, product)

    logger.info("Created product %s with %d variants", product.name, len(variant_payloads))
    return product


def _apply_variant_edits(db: Session, product: Product, payload: ProductUpdate) -> None:
    variants_by_id = {variant.id: variant for variant in product.variants}
    for position, edit in enumerate(payload.variants, start=1):
        if edit.id not in variants_by_id:
            raise ValidationFailure("Variant #{} does not belong to this product.".format(position))
        ensure_unique_sku(db, edit.sku, exclude_id=edit.id)

    chosen = None
    for edit in payload.variants:
        variant = variants_by_id[edit.id]
        variant.unit_label = edit.unit_label
        variant.unit_price = edit.unit_price
        variant.sku = edit.sku
        variant.barcode = edit.barcode
        if edit.is_default and chosen is None:
            chosen = variant

    if chosen is None and payload.variants:
        chosen = variants_by_id[payload.variants[0].id]
    if chosen is not None:
        mark_default_variant(list(product.variants), chosen)


def _apply_base_edits(db: Session, product: Product, payload: ProductUpdate) -> None:
    missing = []
    if payload.unit_price is None:
        missing.append("unit_price")
    if payload.unit_of_measurement is None:
        missing.append("unit_of_measurement")
    if missing:
        raise ValidationFailure("Missing fields: {}".format(", ".join(missing)))

    product.unit_price = payload.unit_price
    product.unit_of_measurement = payload.unit_of_measurement
    product.sku = payload.sku or None

    variants = list(product.variants)
    if not variants:
        return
    base = variants[0]
    ensure_unique_sku(db, payload.sku, exclude_id=base.id)
    base.unit_label = payload.unit_of_measurement
    base.unit_price = payload.unit_price
    if payload.sku:
        base.sku = payload.sku
    mark_default_variant(variants, base)


def update_product(
    db: Session,
    product_id: int,
    payload: ProductUpdate,
    *,
    clock: Clock = system_clock,
) -> Product:
    new_image = None
    if payload.image:
        if not is_data_uri(payload.image):
            raise ValidationFailure("image must be a base64 data:image URI.")
        new_image = save_data_uri(payload.image, clock=clock)

    with _discard_on_error(new_image), atomic(db):
        product = get_product(db, product_id, for_update=True)
        ensure_unique_name(db, payload.name, exclude_id=product.id)
        old_image = product.image_url

        has_variants = payload.has_variants
        if has_variants is None:
            has_variants = len(product.variants) > 1

        product.name = payload.name
        product.category = payload.category or None

        if has_variants:
            _apply_variant_edits(db, product, payload)
        else:
            _apply_base_edits(db, product, payload)

        if new_image:
            product.image_url = new_image
        elif payload.remove_image:
            product.image_url = None

        product.updated_at = clock.now()
        refresh_product_rollup(db, product)

    if old_image and old_image != product.image_url:
        delete_image(old_image)
    return product


def set_hidden(db: Session, product_id: int, hidden: bool) -> Product:
    with atomic(db):
        product = get_product(db, product_id)
        product.hidden = hidden
    return product


__all__ = [
    "create_product",
    "ensure_unique_name",
    "ensure_unique_sku",
    "get_product",
    "list_products",
    "set_hidden",
    "update_product",
]
