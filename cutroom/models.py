"""Database models for the cutting workshop.

Plans own their layouts, layouts own their size ratios and (through the
denormalized ``style_id``/``layout_name`` copies) their tasks. Orders own their
items. Styles and workers are only referenced by id.
"""

from . import db
from .database import utcnow

ROLES = ("admin", "manager", "worker", "pattern_maker")
SINGLETON_ROLES = ("admin", "manager")
PROCESS_NAMES = ("issue", "spread", "cut", "pack")
ROLL_STATUSES = ("available", "in-use", "exhausted")

_singleton_role_clause = db.text("role IN ('admin', 'manager')")


def fmt_ts(v):
    return v.isoformat() if v else None


class Style(db.Model):
    __tablename__ = "styles"
    id = db.Column(db.Integer, primary_key=True)
    style_number = db.Column(db.String(120), unique=True, nullable=False)

    def to_dict(self):
        return {"id": self.id, "style_number": self.style_number}


class Worker(db.Model):
    """A person on the shop floor or in the office.

    Only one admin and one manager may exist; the partial unique index makes
    the database refuse a second one even when two requests race.
    """

    __tablename__ = "workers"
    __table_args__ = (
        db.Index(
            "uq_workers_singleton_role", "role", unique=True,
            postgresql_where=_singleton_role_clause,
            sqlite_where=_singleton_role_clause,
        ),
    )
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    role = db.Column(db.String(30), nullable=False, default="worker")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    password_hash = db.Column(db.String(255), nullable=True)
    worker_group = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "is_active": bool(self.is_active),
            "worker_group": self.worker_group,
            "notes": self.notes or "",
        }


class FabricRoll(db.Model):
    __tablename__ = "fabric_rolls"
    # {style_number}-{color}-{seq:03d}
    id = db.Column(db.String(255), primary_key=True)
    style_id = db.Column(db.Integer, db.ForeignKey("styles.id"), nullable=False, index=True)
    color = db.Column(db.String(60), nullable=False)
    registration_time = db.Column(db.DateTime, nullable=False, default=utcnow)
    status = db.Column(db.String(20), nullable=False, default="available")

    def to_dict(self):
        return {
            "id": self.id,
            "style_id": self.style_id,
            "color": self.color,
            "registration_time": fmt_ts(self.registration_time),
            "status": self.status,
        }


class ProductionOrder(db.Model):
    __tablename__ = "production_orders"
    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(120), unique=True, nullable=False)
    style_id = db.Column(db.Integer, db.ForeignKey("styles.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    items = db.relationship(
        "OrderItem", backref="order", lazy=True,
        order_by="OrderItem.id", cascade="all, delete-orphan",
    )

    def to_dict(self, with_items=False):
        out = {
            "id": self.id,
            "order_number": self.order_number,
            "style_id": self.style_id,
            "created_at": fmt_ts(self.created_at),
        }
        if with_items:
            out["items"] = [i.to_dict() for i in self.items]
        return out


class OrderItem(db.Model):
    __tablename__ = "order_items"
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer, db.ForeignKey("production_orders.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    color = db.Column(db.String(60), nullable=False)
    size = db.Column(db.String(30), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "color": self.color,
            "size": self.size,
            "quantity": self.quantity,
        }


class ProductionPlan(db.Model):
    __tablename__ = "production_plans"
    id = db.Column(db.Integer, primary_key=True)
    plan_name = db.Column(db.String(255), nullable=False)
    style_id = db.Column(db.Integer, db.ForeignKey("styles.id"), nullable=False)
    # no cascade: an order stays undeletable while a plan points at it
    linked_order_id = db.Column(
        db.Integer, db.ForeignKey("production_orders.id"), nullable=True, index=True,
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self, layouts=None):
        out = {
            "id": self.id,
            "plan_name": self.plan_name,
            "style_id": self.style_id,
            "linked_order_id": self.linked_order_id,
            "created_at": fmt_ts(self.created_at),
        }
        if layouts is not None:
            out["layouts"] = layouts
        return out


class CuttingLayout(db.Model):
    __tablename__ = "cutting_layouts"
    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(
        db.Integer, db.ForeignKey("production_plans.id"), nullable=False, index=True,
    )
    layout_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    def to_dict(self, ratios=None, tasks=None):
        out = {
            "id": self.id,
            "plan_id": self.plan_id,
            "layout_name": self.layout_name,
            "description": self.description or "",
        }
        if ratios is not None:
            out["ratios"] = [r.to_dict() for r in ratios]
        if tasks is not None:
            out["tasks"] = [t.to_dict() for t in tasks]
        return out


class LayoutSizeRatio(db.Model):
    __tablename__ = "layout_size_ratios"
    id = db.Column(db.Integer, primary_key=True)
    layout_id = db.Column(
        db.Integer, db.ForeignKey("cutting_layouts.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    size = db.Column(db.String(30), nullable=False)
    ratio = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        return {"id": self.id, "layout_id": self.layout_id, "size": self.size, "ratio": self.ratio}


class ProductionTask(db.Model):
    """One colour of one layout to be spread and cut.

    ``style_id`` and ``layout_name`` are copies taken when the task is written,
    so listing tasks never needs the layout or plan tables. Legacy tasks may
    have no ``layout_id`` at all.
    """

    __tablename__ = "production_tasks"
    id = db.Column(db.Integer, primary_key=True)
    style_id = db.Column(db.Integer, db.ForeignKey("styles.id"), nullable=False, index=True)
    layout_id = db.Column(
        db.Integer, db.ForeignKey("cutting_layouts.id"), nullable=True, index=True,
    )
    layout_name = db.Column(db.String(255), nullable=False, default="")
    color = db.Column(db.String(60), nullable=False)
    planned_layers = db.Column(db.Integer, nullable=False, default=0)
    completed_layers = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "style_id": self.style_id,
            "layout_id": self.layout_id,
            "layout_name": self.layout_name,
            "color": self.color,
            "planned_layers": self.planned_layers,
            "completed_layers": self.completed_layers,
        }


class ProductionLog(db.Model):
    """Append-only shop-floor event.

    ``task_id`` is a plain column: tasks are replaced when a plan is edited and
    the history must outlive them. A cut event points at the spread event it
    finishes through ``parent_log_id``.
    """

    __tablename__ = "production_logs"
    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, nullable=True, index=True)
    roll_id = db.Column(db.String(255), db.ForeignKey("fabric_rolls.id"), nullable=True, index=True)
    parent_log_id = db.Column(
        db.Integer, db.ForeignKey("production_logs.id"), nullable=True, index=True,
    )
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=False, index=True)
    process_name = db.Column(db.String(20), nullable=False, index=True)
    layers_completed = db.Column(db.Integer, nullable=True)
    log_time = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "roll_id": self.roll_id,
            "parent_log_id": self.parent_log_id,
            "worker_id": self.worker_id,
            "process_name": self.process_name,
            "layers_completed": self.layers_completed,
            "log_time": fmt_ts(self.log_time),
        }
