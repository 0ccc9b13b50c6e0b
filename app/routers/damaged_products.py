from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.security import Principal
from app.dependencies import get_clock, get_db, require_auth
from app.schemas.damaged_product import (
    DamageDeductRequest,
    DamageDeductResult,
    DamagedProductCreate,
    DamagedProductRead,
    DamagedProductStats,
    DamagedProductUpdate,
)
from app.schemas.product import ProductRead
from app.services import damage_service

router = APIRouter(prefix="/damaged-products", tags=["Damaged Products"])
inventory_router = APIRouter(prefix="/inventory", tags=["Damaged Products"])


@router.get("", response_model=list[DamagedProductRead])
def list_damaged_products(db: Session = Depends(get_db)):
    return damage_service.list_damaged_products(db)


@router.post("", status_code=201)
def report_damage(
    payload: DamagedProductCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(require_auth),
):
    damaged = damage_service.report_damage(db, payload, actor=principal.actor, clock=clock)
    return {
        "message": "Damaged product recorded successfully!",
        "damagedProduct": DamagedProductRead.model_validate(damaged),
    }


@router.get("/stats", response_model=DamagedProductStats)
def damage_stats(db: Session = Depends(get_db)):
    return damage_service.damage_stats(db)


@router.get("/{damage_id}", response_model=DamagedProductRead)
def show_damaged_product(damage_id: int, db: Session = Depends(get_db)):
    return damage_service.get_damaged_product(db, damage_id)


@router.put("/{damage_id}")
def update_damaged_product(
    damage_id: int,
    payload: DamagedProductUpdate,
    db: Session = Depends(get_db),
    _auth=Depends(require_auth),
):
    damaged = damage_service.update_damaged_product(db, damage_id, payload)
    return {
        "message": "Damaged product updated successfully",
        "damagedProduct": DamagedProductRead.model_validate(damaged),
    }


@router.delete("/{damage_id}")
def delete_damaged_product(damage_id: int, db: Session = Depends(get_db), _auth=Depends(require_auth)):
    damage_service.delete_damaged_product(db, damage_id)
    return {"message": "Damaged product deleted successfully"}


@router.post("/{damage_id}/refund")
def refund_damage(
    damage_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(require_auth),
):
    damaged = damage_service.refund_damage(db, damage_id, actor=principal.actor, clock=clock)
    return {
        "message": "Refund processed successfully",
        "damagedProduct": DamagedProductRead.model_validate(damaged),
    }


@inventory_router.post("/deduct-from-damage", response_model=DamageDeductResult)
def deduct_from_damage(
    payload: DamageDeductRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(require_auth),
):
    product = damage_service.deduct_from_inventory(
        db,
        payload.product_name,
        payload.quantity,
        payload.variant_id,
        actor=principal.actor,
        clock=clock,
    )
    return DamageDeductResult(
        message="Inventory updated successfully",
        product=ProductRead.model_validate(product),
    )


__all__ = ["inventory_router", "router"]
