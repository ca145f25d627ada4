from typing import List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, selectinload

from shopcore.models.order import (
    STATUS_CANCELLED,
    STATUS_PAID,
    STATUS_PENDING_PAYMENT,
    Order,
    OrderItem,
)


def _count_status(status: str):
    return func.coalesce(func.sum(case((Order.status == status, 1), else_=0)), 0)


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: Order) -> Order:
        self.db.add(order)
        self.db.flush()
        return order

    def add_item(self, item: OrderItem) -> OrderItem:
        self.db.add(item)
        self.db.flush()
        return item

    def list(self, limit: int, offset: int, customer_id: Optional[str] = None) -> List[Order]:
        q = select(Order)
        if customer_id is not None:
            q = q.where(Order.customer_id == customer_id)
        q = (
            q.options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id)
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.execute(q).scalars())

    def get_with_items(self, order_id: str) -> Optional[Order]:
        return self.db.execute(
            select(Order).where(Order.id == order_id).options(selectinload(Order.items))
        ).scalar_one_or_none()

    def metrics(self):
        return self.db.execute(
            select(
                func.count(Order.id),
                _count_status(STATUS_PENDING_PAYMENT),
                _count_status(STATUS_PAID),
                _count_status(STATUS_CANCELLED),
            )
        ).one()
