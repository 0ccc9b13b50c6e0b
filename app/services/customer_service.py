from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.clock import Clock, system_clock
from app.core.constants import NOTIFICATION_CUSTOMER_ADDED
from app.core.errors import NotFound
from app.database.session import atomic
from app.models.customer import Customer, CustomerProduct
from app.schemas.customer import CustomerAppend, CustomerCreate, LineItem
from app.services.notification_service import notify


def list_customers(db: Session) -> list[Customer]:
    return list(
        db.execute(
            select(Customer).options(selectinload(Customer.products)).order_by(Customer.id)
        )
        .scalars()
        .all()
    )


def get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise NotFound("Customer not found.")
    return customer


def _line_item(item: LineItem, clock: Clock) -> CustomerProduct:
    return CustomerProduct(
        product_name=item.product_name,
        category=item.category,
        unit=item.unit,
        quantity=item.quantity,
        purchase_date=item.purchase_date,
        created_at=clock.now(),
    )


def create_customer(
    db: Session,
    payload: CustomerCreate,
    *,
    actor: Optional[str] = None,
    clock: Clock = system_clock,
) -> Customer:
    """Record a customer with already-settled line items. Stock is untouched;
    sales that move stock go through the purchase flow."""
    with atomic(db):
        customer = Customer(
            name=payload.name,
            phone=payload.phone,
            purchase_date=payload.purchase_date,
            created_at=clock.now(),
        )
        customer.products = [_line_item(item, clock) for item in payload.products]
        db.add(customer)
        notify(
            db,
            NOTIFICATION_CUSTOMER_ADDED,
            "New customer '{}' added.".format(customer.name),
            actor=actor,
            clock=clock,
        )
    return customer


def append_products(
    db: Session,
    customer_id: int,
    payload: CustomerAppend,
    *,
    clock: Clock = system_clock,
) -> Customer:
    with atomic(db):
        customer = get_customer(db, customer_id)
        for item in payload.products:
            customer.products.append(_line_item(item, clock))
    return customer


__all__ = ["append_products", "create_customer", "get_customer", "list_customers"]
