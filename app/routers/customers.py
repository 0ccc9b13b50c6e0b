from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.security import Principal
from app.dependencies import get_clock, get_db, require_auth
from app.schemas.customer import CustomerAppend, CustomerCreate, CustomerRead, PurchaseCreate, PurchaseRead
from app.services import customer_service
from app.services.purchase_service import process_purchase

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.get("", response_model=list[CustomerRead])
def list_customers(db: Session = Depends(get_db)):
    return customer_service.list_customers(db)


@router.post("", response_model=CustomerRead, status_code=201)
def create_customer(
    payload: CustomerCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(require_auth),
):
    return customer_service.create_customer(db, payload, actor=principal.actor, clock=clock)


@router.post("/purchase", response_model=PurchaseRead, status_code=201)
def purchase(
    payload: PurchaseCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(require_auth),
):
    result = process_purchase(db, payload, actor=principal.actor, clock=clock)
    return PurchaseRead(
        reference=result.reference,
        customer=CustomerRead.model_validate(result.customer),
        items=result.items,
    )


@router.get("/{customer_id}", response_model=CustomerRead)
def show_customer(customer_id: int, db: Session = Depends(get_db)):
    return customer_service.get_customer(db, customer_id)


@router.put("/{customer_id}", response_model=CustomerRead)
def append_products(
    customer_id: int,
    payload: CustomerAppend,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    _auth=Depends(require_auth),
):
    return customer_service.append_products(db, customer_id, payload, clock=clock)


__all__ = ["router"]
