"""Read side of the worker API: lookups and the worker's task board."""

from sqlalchemy import func

from . import db
from .errors import NotFoundError
from .models import CuttingLayout, ProductionLog, ProductionPlan, ProductionTask, Style, Worker


def get_worker(worker_id: int) -> Worker:
    worker = db.session.get(Worker, worker_id)
    if worker is None:
        raise NotFoundError(f"worker {worker_id} not found")
    return worker


def get_worker_by_name(name: str):
    return Worker.query.filter_by(name=name).first()


def list_workers():
    return Worker.query.order_by(Worker.id).all()


def worker_logs(worker_id: int):
    get_worker(worker_id)
    return (
        ProductionLog.query.filter_by(worker_id=worker_id)
        .order_by(ProductionLog.log_time.desc(), ProductionLog.id.desc())
        .all()
    )


def worker_task_groups(worker_id: int) -> list:
    """Unfinished work grouped by plan.

    Totals cover the plan's unfinished tasks only; the ``tasks`` list carries
    every task of the plan so the board can show finished colours too. Every
    worker currently sees the same board.
    """
    get_worker(worker_id)
    totals = (
        db.session.query(
            ProductionPlan.id,
            ProductionPlan.plan_name,
            Style.style_number,
            func.sum(ProductionTask.planned_layers),
            func.sum(ProductionTask.completed_layers),
        )
        .select_from(ProductionTask)
        .join(CuttingLayout, CuttingLayout.id == ProductionTask.layout_id)
        .join(ProductionPlan, ProductionPlan.id == CuttingLayout.plan_id)
        .join(Style, Style.id == ProductionPlan.style_id)
        .filter(ProductionTask.completed_layers < ProductionTask.planned_layers)
        .group_by(ProductionPlan.id, ProductionPlan.plan_name, Style.style_number)
        .order_by(ProductionPlan.id)
        .all()
    )
    groups = {}
    for plan_id, plan_name, style_number, planned, completed in totals:
        groups[plan_id] = {
            "plan_id": plan_id,
            "plan_name": plan_name,
            "style_number": style_number,
            "total_planned": int(planned or 0),
            "total_completed": int(completed or 0),
            "tasks": [],
        }
    if groups:
        rows = (
            db.session.query(ProductionTask, CuttingLayout.plan_id)
            .join(CuttingLayout, CuttingLayout.id == ProductionTask.layout_id)
            .filter(CuttingLayout.plan_id.in_(list(groups)))
            .order_by(ProductionTask.id)
        )
        for task, plan_id in rows:
            groups[plan_id]["tasks"].append(task.to_dict())
    return list(groups.values())
