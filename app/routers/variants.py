from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.dependencies import get_db, require_auth
from app.schemas.product import ProductRead, VariantCreate, VariantRead, VariantStockChange, VariantUpdate
from app.services import variant_service

router = APIRouter(
    prefix="/products/{product_id}/variants",
    tags=["Variants"],
    dependencies=[Depends(require_auth)],
)


def _variant_and_product(message, variant, product):
    return {
        "message": message,
        "variant": VariantRead.model_validate(variant),
        "product": ProductRead.model_validate(product),
    }


@router.post("", status_code=201)
def create_variant(product_id: int, payload: VariantCreate, db: Session = Depends(get_db)):
    variant, product = variant_service.create_variant(db, product_id, payload)
    return _variant_and_product("Variant added successfully.", variant, product)


@router.put("/{variant_id}")
def update_variant(product_id: int, variant_id: int, payload: VariantUpdate, db: Session = Depends(get_db)):
    variant, product = variant_service.update_variant(db, product_id, variant_id, payload)
    return _variant_and_product("Variant updated successfully.", variant, product)


@router.delete("/{variant_id}")
def delete_variant(product_id: int, variant_id: int, db: Session = Depends(get_db)):
    product = variant_service.delete_variant(db, product_id, variant_id)
    return {"message": "Variant removed successfully.", "product": ProductRead.model_validate(product)}


@router.put("/{variant_id}/receive")
def receive_variant(product_id: int, variant_id: int, payload: VariantStockChange, db: Session = Depends(get_db)):
    variant, product = variant_service.receive_variant(db, product_id, variant_id, payload.quantity)
    return _variant_and_product("Variant quantity increased successfully.", variant, product)


@router.put("/{variant_id}/deduct")
def deduct_variant(product_id: int, variant_id: int, payload: VariantStockChange, db: Session = Depends(get_db)):
    variant, product = variant_service.deduct_variant(db, product_id, variant_id, payload.quantity)
    return _variant_and_product("Variant quantity deducted successfully.", variant, product)


@router.post("/{variant_id}/toggle-hidden")
def toggle_hidden(product_id: int, variant_id: int, db: Session = Depends(get_db)):
    variant = variant_service.toggle_hidden(db, product_id, variant_id)
    return {"message": "Variant visibility updated.", "variant": VariantRead.model_validate(variant)}


@router.post("/{variant_id}/set-default")
def set_default(product_id: int, variant_id: int, db: Session = Depends(get_db)):
    product = variant_service.set_default(db, product_id, variant_id)
    return {"message": "Variant marked as default.", "product": ProductRead.model_validate(product)}


__all__ = ["router"]
