"""Production orders: header plus line items, written in one transaction.

Order numbers read ``PO-{YYYYMMDD}-{style_number}-{seq:02d}`` where ``seq``
counts the style's orders created the same (UTC) day, starting at 1. The
number column is unique, so two requests that compute the same number cannot
both commit; the loser is re-run from scratch.
"""

import logging
from datetime import datetime, time, timedelta

from flask import current_app
from sqlalchemy import exists, func
from sqlalchemy.exc import IntegrityError

from . import db
from .database import ci_like, retry_on_conflict, transaction, utcnow
from .errors import ConflictError, NotFoundError
from .models import OrderItem, ProductionOrder, ProductionPlan, Style
from .styles import get_or_create_style

logger = logging.getLogger(__name__)


def next_order_number(session, style: Style, now: datetime) -> str:
    day_start = datetime.combine(now.date(), time.min)
    count = (
        session.query(func.count(ProductionOrder.id))
        .filter(
            ProductionOrder.style_id == style.id,
            ProductionOrder.created_at >= day_start,
            ProductionOrder.created_at < day_start + timedelta(days=1),
        )
        .scalar()
    )
    seq = count + 1
    # a deleted order leaves a hole in the count; never reuse a live number
    while True:
        number = f"PO-{now:%Y%m%d}-{style.style_number}-{seq:02d}"
        taken = session.query(
            exists().where(ProductionOrder.order_number == number)
        ).scalar()
        if not taken:
            return number
        seq += 1


def _insert_order(style_number: str, items: list) -> int:
    with transaction() as session:
        style = get_or_create_style(session, style_number)
        now = utcnow()
        order = ProductionOrder(
            order_number=next_order_number(session, style, now),
            style_id=style.id,
            created_at=now,
        )
        session.add(order)
        session.flush()
        for item in items:
            session.add(OrderItem(order_id=order.id, **item))
        session.flush()
        order_id, number = order.id, order.order_number
    logger.info("order %s created with %d items", number, len(items))
    return order_id


def create_order(style_number: str, items: list) -> ProductionOrder:
    order_id = retry_on_conflict(
        lambda: _insert_order(style_number, items),
        current_app.config["ORDER_NUMBER_RETRIES"],
        f"order for style {style_number}",
    )
    return get_order(order_id)


def get_order(order_id: int) -> ProductionOrder:
    order = db.session.get(ProductionOrder, order_id)
    if order is None:
        raise NotFoundError(f"order {order_id} not found")
    return order


def list_orders(style_number_query: str = ""):
    q = ProductionOrder.query.outerjoin(Style, Style.id == ProductionOrder.style_id)
    if style_number_query:
        q = q.filter(ci_like(Style.style_number, style_number_query))
    return q.order_by(ProductionOrder.created_at.desc(), ProductionOrder.id.desc()).all()


def list_unplanned_orders():
    planned = exists().where(ProductionPlan.linked_order_id == ProductionOrder.id)
    return (
        ProductionOrder.query.filter(~planned)
        .order_by(ProductionOrder.created_at.desc(), ProductionOrder.id.desc())
        .all()
    )


def delete_order(order_id: int) -> None:
    try:
        with transaction() as session:
            # the row lock keeps a plan from being linked between check and delete
            order = (
                session.query(ProductionOrder)
                .filter_by(id=order_id)
                .with_for_update()
                .first()
            )
            if order is None:
                raise NotFoundError(f"order {order_id} not found")
            plan_id = (
                session.query(ProductionPlan.id)
                .filter_by(linked_order_id=order_id)
                .limit(1)
                .scalar()
            )
            if plan_id is not None:
                raise ConflictError(
                    f"order {order.order_number} is linked to production plan {plan_id}; "
                    "delete the plan first"
                )
            number = order.order_number
            session.delete(order)
    except IntegrityError:
        raise ConflictError(f"order {order_id} is still referenced by a production plan")
    logger.info("order %s deleted", number)
