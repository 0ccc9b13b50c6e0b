from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.dependencies import get_clock, get_db, require_auth
from app.schemas.product import ProductCreate, ProductRead, ProductUpdate, StockChange
from app.services import product_service, stock_service

router = APIRouter(prefix="/products", tags=["Products"])


def _product_read(product) -> ProductRead:
    return ProductRead.model_validate(product)


@router.post("", status_code=201)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _auth=Depends(require_auth),
):
    product = product_service.create_product(db, payload, clock=clock)
    return {"message": "Product added successfully!", "product": _product_read(product)}


@router.get("", response_model=list[ProductRead])
def list_products(db: Session = Depends(get_db)):
    return product_service.list_products(db)


@router.get("/{product_id}", response_model=ProductRead)
def show_product(product_id: int, db: Session = Depends(get_db)):
    return product_service.get_product(db, product_id)


@router.put("/{product_id}/receive")
def receive_stock(
    product_id: int,
    payload: StockChange,
    db: Session = Depends(get_db),
    _auth=Depends(require_auth),
):
    product = stock_service.receive_stock(db, product_id, payload.quantity, payload.variant_id)
    return {"message": "Product quantity increased successfully.", "product": _product_read(product)}


@router.put("/{product_name}/deduct")
def deduct_stock_by_name(
    product_name: str,
    payload: StockChange,
    db: Session = Depends(get_db),
    _auth=Depends(require_auth),
):
    stock_service.deduct_stock_by_name(db, product_name, payload.quantity, payload.variant_id)
    return {"message": "Product quantity deducted successfully"}


@router.put("/{product_id}/deducted")
def deduct_stock(
    product_id: int,
    payload: StockChange,
    db: Session = Depends(get_db),
    _auth=Depends(require_auth),
):
    product = stock_service.deduct_stock(db, product_id, payload.quantity, payload.variant_id)
    return {"product": _product_read(product)}


@router.post("/{product_id}/hide")
def hide_product(product_id: int, db: Session = Depends(get_db), _auth=Depends(require_auth)):
    product = product_service.set_hidden(db, product_id, True)
    return {"message": "Product marked as hidden successfully.", "product": _product_read(product)}


@router.post("/{product_id}/unhide")
def unhide_product(product_id: int, db: Session = Depends(get_db), _auth=Depends(require_auth)):
    product_service.set_hidden(db, product_id, False)
    return {"message": "Product unhidden successfully"}


@router.put("/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _auth=Depends(require_auth),
):
    product = product_service.update_product(db, product_id, payload, clock=clock)
    return {"product": _product_read(product)}


__all__ = ["router"]
