from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopcore.api.deps import get_customer_id
from shopcore.db import get_db
from shopcore.errors import InvalidInput
from shopcore.schemas.order_schema import OrderMetrics, OrderOut
from shopcore.services.order_service import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])
admin_router = APIRouter(prefix="/api/admin/orders", tags=["admin"])


def _require_customer(customer_id: Optional[str]) -> str:
    if not customer_id:
        raise InvalidInput("customer id required")
    return customer_id


@router.get("", response_model=List[OrderOut], summary="List my orders")
def list_my_orders(
    limit: int = Query(0),
    offset: int = Query(0),
    db: Session = Depends(get_db),
    customer_id: Optional[str] = Depends(get_customer_id),
):
    return OrderService(db).list_orders(limit, offset, customer_id=_require_customer(customer_id))


@router.get("/{order_id}", response_model=OrderOut, summary="Get one of my orders")
def get_my_order(
    order_id: str,
    db: Session = Depends(get_db),
    customer_id: Optional[str] = Depends(get_customer_id),
):
    return OrderService(db).get_order_by_id(order_id, customer_id=_require_customer(customer_id))


@admin_router.get("", response_model=List[OrderOut], summary="List orders")
def list_orders(limit: int = Query(0), offset: int = Query(0), db: Session = Depends(get_db)):
    return OrderService(db).list_orders(limit, offset)


@admin_router.get("/metrics", response_model=OrderMetrics, summary="Order counts by status")
def order_metrics(db: Session = Depends(get_db)):
    return OrderService(db).get_order_metrics()


@admin_router.get("/{order_id}", response_model=OrderOut, summary="Get order")
def get_order(order_id: str, db: Session = Depends(get_db)):
    return OrderService(db).get_order_by_id(order_id)
