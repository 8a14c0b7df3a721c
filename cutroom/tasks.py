from . import db
from .errors import NotFoundError
from .models import ProductionTask


def progress_percent(completed: int, planned: int) -> float:
    """Share of planned layers already cut, as a percentage with 2 decimals."""
    if not planned:
        return 0.0
    return round(completed / planned * 100, 2)


def list_tasks(style_id=None):
    q = ProductionTask.query
    if style_id is not None:
        q = q.filter_by(style_id=style_id)
    return q.order_by(ProductionTask.id).all()


def get_task(task_id: int) -> ProductionTask:
    task = db.session.get(ProductionTask, task_id)
    if task is None:
        raise NotFoundError(f"task {task_id} not found")
    return task


def task_progress() -> list:
    rows = []
    for task in ProductionTask.query.order_by(ProductionTask.id):
        rows.append({
            "task_id": task.id,
            "style_id": task.style_id,
            "layout_name": task.layout_name,
            "color": task.color,
            "planned_layers": task.planned_layers,
            "completed_layers": task.completed_layers,
            "progress": progress_percent(task.completed_layers, task.planned_layers),
        })
    return rows
