"""Append-only production log.

Events are inserted once and never edited. A cutting event closes the
spreading event it names in ``parent_log_id``; spreading events nobody has
closed yet are the work in progress on the tables.
"""

import logging

from sqlalchemy import exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from . import db
from .database import transaction, utcnow
from .errors import NotFoundError, ValidationError
from .models import ProductionLog

logger = logging.getLogger(__name__)

SPREAD = "spread"
CUT = "cut"


def create_log(task_id, roll_id, parent_log_id, worker_id, process_name, layers_completed) -> ProductionLog:
    try:
        with transaction() as session:
            log = ProductionLog(
                task_id=task_id,
                roll_id=roll_id,
                parent_log_id=parent_log_id,
                worker_id=worker_id,
                process_name=process_name,
                layers_completed=layers_completed,
                log_time=utcnow(),
            )
            session.add(log)
    except IntegrityError:
        raise ValidationError("log references an unknown worker, fabric roll or parent log")
    logger.debug("log %d: %s by worker %d", log.id, process_name, worker_id)
    return log


def get_log(log_id: int) -> ProductionLog:
    log = db.session.get(ProductionLog, log_id)
    if log is None:
        raise NotFoundError(f"production log {log_id} not found")
    return log


def list_logs(task_id=None, roll_id=None, worker_id=None, process_name=None, parent_log_id=None):
    q = ProductionLog.query
    if task_id is not None:
        q = q.filter(ProductionLog.task_id == task_id)
    if roll_id is not None:
        q = q.filter(ProductionLog.roll_id == roll_id)
    if worker_id is not None:
        q = q.filter(ProductionLog.worker_id == worker_id)
    if process_name is not None:
        q = q.filter(ProductionLog.process_name == process_name)
    if parent_log_id is not None:
        q = q.filter(ProductionLog.parent_log_id == parent_log_id)
    return q.order_by(ProductionLog.log_time, ProductionLog.id).all()


def unprocessed_spreading_logs():
    cut = aliased(ProductionLog)
    followed = exists().where(
        cut.parent_log_id == ProductionLog.id,
        cut.process_name == CUT,
    )
    return (
        ProductionLog.query
        .filter(ProductionLog.process_name == SPREAD, ~followed)
        .order_by(ProductionLog.log_time, ProductionLog.id)
        .all()
    )
