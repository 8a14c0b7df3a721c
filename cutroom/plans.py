"""Production plans: plan -> cutting layouts -> size ratios + tasks.

A plan is always written as a whole tree inside one transaction. Updating a
plan does not diff the old tree against the new one: the layouts, their
ratios and their tasks are dropped and the new definition is written in their
place. Tasks therefore get new ids and their ``completed_layers`` restart at
zero; production logs keep the old task ids.
"""

import logging

from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError

from . import db
from .database import ci_like, transaction
from .errors import NotFoundError, PersistenceError
from .models import (
    CuttingLayout,
    LayoutSizeRatio,
    ProductionOrder,
    ProductionPlan,
    ProductionTask,
    Style,
)

logger = logging.getLogger(__name__)


def _check_references(session, style_id, linked_order_id):
    if session.get(Style, style_id) is None:
        raise NotFoundError(f"style {style_id} not found")
    if linked_order_id is not None:
        # locks the order so a concurrent delete waits for this link to commit
        order = (
            session.query(ProductionOrder)
            .filter_by(id=linked_order_id)
            .with_for_update()
            .first()
        )
        if order is None:
            raise NotFoundError(f"order {linked_order_id} not found")


def _write_layouts(session, plan_id: int, style_id: int, layouts: list) -> None:
    for entry in layouts:
        layout = CuttingLayout(
            plan_id=plan_id,
            layout_name=entry["layout_name"],
            description=entry["description"],
        )
        session.add(layout)
        session.flush()
        for r in entry["ratios"]:
            session.add(LayoutSizeRatio(layout_id=layout.id, size=r["size"], ratio=r["ratio"]))
        for t in entry["tasks"]:
            session.add(ProductionTask(
                style_id=style_id,
                layout_id=layout.id,
                layout_name=layout.layout_name,
                color=t["color"],
                planned_layers=t["planned_layers"],
                completed_layers=0,
            ))
        session.flush()


def _drop_layouts(session, plan_id: int) -> None:
    layout_ids = [
        row.id for row in session.query(CuttingLayout.id).filter_by(plan_id=plan_id)
    ]
    if not layout_ids:
        return
    session.execute(delete(ProductionTask).where(ProductionTask.layout_id.in_(layout_ids)))
    session.execute(delete(LayoutSizeRatio).where(LayoutSizeRatio.layout_id.in_(layout_ids)))
    session.execute(delete(CuttingLayout).where(CuttingLayout.id.in_(layout_ids)))


def create_plan(plan_name: str, style_id: int, linked_order_id, layouts: list) -> dict:
    try:
        with transaction() as session:
            _check_references(session, style_id, linked_order_id)
            plan = ProductionPlan(
                plan_name=plan_name, style_id=style_id, linked_order_id=linked_order_id,
            )
            session.add(plan)
            session.flush()
            _write_layouts(session, plan.id, style_id, layouts)
            plan_id = plan.id
    except IntegrityError as exc:
        logger.error("plan %r rolled back: %s", plan_name, exc.orig)
        raise PersistenceError(f"plan {plan_name!r} could not be stored") from exc
    logger.info("plan %d %r created with %d layouts", plan_id, plan_name, len(layouts))
    return get_plan(plan_id)


def update_plan(plan_id: int, plan_name: str, style_id: int, layouts: list) -> dict:
    """Replace the plan's whole layout tree with ``layouts``."""
    try:
        with transaction() as session:
            plan = session.query(ProductionPlan).filter_by(id=plan_id).with_for_update().first()
            if plan is None:
                raise NotFoundError(f"plan {plan_id} not found")
            _check_references(session, style_id, None)
            plan.plan_name = plan_name
            plan.style_id = style_id
            _drop_layouts(session, plan_id)
            _write_layouts(session, plan_id, style_id, layouts)
    except IntegrityError as exc:
        logger.error("plan %d update rolled back: %s", plan_id, exc.orig)
        raise PersistenceError(f"plan {plan_id} could not be stored") from exc
    logger.info("plan %d replaced with %d layouts", plan_id, len(layouts))
    return get_plan(plan_id)


def get_plan(plan_id: int) -> dict:
    plan = db.session.get(ProductionPlan, plan_id)
    if plan is None:
        raise NotFoundError(f"plan {plan_id} not found")
    layouts = []
    for layout in CuttingLayout.query.filter_by(plan_id=plan_id).order_by(CuttingLayout.id):
        ratios = (
            LayoutSizeRatio.query.filter_by(layout_id=layout.id)
            .order_by(LayoutSizeRatio.id)
            .all()
        )
        tasks = (
            ProductionTask.query.filter_by(layout_id=layout.id)
            .order_by(ProductionTask.id)
            .all()
        )
        layouts.append(layout.to_dict(ratios=ratios, tasks=tasks))
    return plan.to_dict(layouts=layouts)


def list_plans(search: str = ""):
    q = ProductionPlan.query.outerjoin(
        ProductionOrder, ProductionOrder.id == ProductionPlan.linked_order_id
    )
    if search:
        q = q.filter(or_(
            ci_like(ProductionPlan.plan_name, search),
            ci_like(ProductionOrder.order_number, search),
        ))
    return q.order_by(ProductionPlan.created_at.desc(), ProductionPlan.id.desc()).all()


def get_plan_by_order(order_id: int) -> ProductionPlan:
    plan = (
        ProductionPlan.query.filter_by(linked_order_id=order_id)
        .order_by(ProductionPlan.id)
        .first()
    )
    if plan is None:
        raise NotFoundError(f"no plan linked to order {order_id}")
    return plan


def delete_plan(plan_id: int) -> None:
    with transaction() as session:
        _drop_layouts(session, plan_id)
        deleted = session.execute(
            delete(ProductionPlan).where(ProductionPlan.id == plan_id)
        ).rowcount
        if not deleted:
            raise NotFoundError(f"plan {plan_id} not found")
    logger.info("plan %d deleted", plan_id)
