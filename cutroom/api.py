from flask import Blueprint, request, jsonify, current_app, send_file
from sqlalchemy.exc import SQLAlchemyError

from . import db
from . import fabric, logs, orders, plans, styles, tasks, worker_queries, workers
from .errors import PermissionDeniedError, ServiceError, ValidationError
from .importers import read_order_items
from .labels import roll_label_png
from .payloads import (
    parse_log, parse_order, parse_plan, parse_roll, parse_roll_status,
    parse_number, parse_worker, require_str,
)

api = Blueprint("api", __name__)


def ok(data=None, message="OK", status=200):
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def parse_id(raw: str, what: str) -> int:
    return parse_number(raw, f"{what} id")


def arg_int(name: str):
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    return parse_number(raw, name)


@api.errorhandler(ServiceError)
def handle_service_error(e: ServiceError):
    if e.status_code >= 500:
        current_app.logger.error("%s %s failed: %s", request.method, request.path, e.message)
    return jsonify({"success": False, "message": e.message, "error": e.code}), e.status_code


@api.errorhandler(SQLAlchemyError)
def handle_db_error(e: SQLAlchemyError):
    db.session.rollback()
    current_app.logger.error("%s %s database error: %s", request.method, request.path, e)
    return jsonify({"success": False, "message": "database error", "error": "PERSISTENCE"}), 500


# ---------------------------------------------------------------- styles

@api.post("/styles")
def create_style():
    style = styles.create_style(require_str(json_body(), "style_number"))
    return ok(style.to_dict(), "Style created", 201)


@api.get("/styles")
def list_styles():
    number = (request.args.get("style_number") or "").strip()
    if number:
        return ok([styles.get_style_by_number(number).to_dict()])
    return ok([s.to_dict() for s in styles.list_styles()])


@api.get("/styles/<style_id>")
def get_style(style_id):
    return ok(styles.get_style(parse_id(style_id, "style")).to_dict())


# ---------------------------------------------------------------- orders

@api.post("/production-orders")
def create_order():
    req = parse_order(json_body())
    order = orders.create_order(req["style_number"], req["items"])
    return ok(order.to_dict(with_items=True), "Production order created", 201)


@api.post("/production-orders/import")
def import_order():
    f = request.files.get("file")
    if not f or not f.filename:
        raise ValidationError("No file")
    style_number = require_str(request.form, "style_number")
    order = orders.create_order(style_number, read_order_items(f))
    return ok(order.to_dict(with_items=True), "Production order imported", 201)


@api.get("/production-orders")
def list_orders():
    query = (request.args.get("style_number") or "").strip()
    return ok([o.to_dict() for o in orders.list_orders(query)])


@api.get("/production-orders/unplanned")
def list_unplanned_orders():
    return ok([o.to_dict() for o in orders.list_unplanned_orders()])


@api.get("/production-orders/<order_id>")
def get_order(order_id):
    order = orders.get_order(parse_id(order_id, "order"))
    return ok(order.to_dict(with_items=True))


@api.delete("/production-orders/<order_id>")
def delete_order(order_id):
    orders.delete_order(parse_id(order_id, "order"))
    return ok(message="Production order deleted")


# ---------------------------------------------------------------- plans

@api.post("/production-plans")
def create_plan():
    req = parse_plan(json_body())
    plan = plans.create_plan(req["plan_name"], req["style_id"], req["linked_order_id"], req["layouts"])
    return ok(plan, "Production plan created", 201)


@api.get("/production-plans")
def list_plans():
    search = (request.args.get("search") or "").strip()
    return ok([p.to_dict() for p in plans.list_plans(search)])


@api.get("/production-plans/by-order/<order_id>")
def get_plan_by_order(order_id):
    plan = plans.get_plan_by_order(parse_id(order_id, "order"))
    return ok(plans.get_plan(plan.id))


@api.get("/production-plans/<plan_id>")
def get_plan(plan_id):
    return ok(plans.get_plan(parse_id(plan_id, "plan")))


@api.put("/production-plans/<plan_id>")
def update_plan(plan_id):
    plan_id = parse_id(plan_id, "plan")
    req = parse_plan(json_body())
    plan = plans.update_plan(plan_id, req["plan_name"], req["style_id"], req["layouts"])
    return ok(plan, "Production plan updated")


@api.delete("/production-plans/<plan_id>")
def delete_plan(plan_id):
    plans.delete_plan(parse_id(plan_id, "plan"))
    return ok(message="Production plan deleted")


# ---------------------------------------------------------------- tasks

@api.get("/tasks")
def list_tasks():
    return ok([t.to_dict() for t in tasks.list_tasks(arg_int("style_id"))])


@api.get("/tasks/progress")
def task_progress():
    return ok(tasks.task_progress())


@api.get("/tasks/<task_id>")
def get_task(task_id):
    return ok(tasks.get_task(parse_id(task_id, "task")).to_dict())


# ---------------------------------------------------------------- fabric rolls

@api.post("/fabric-rolls")
def create_roll():
    req = parse_roll(json_body())
    roll = fabric.create_roll(req["style_id"], req["color"])
    return ok(roll.to_dict(), "Fabric roll registered", 201)


@api.get("/fabric-rolls")
def list_rolls():
    rolls = fabric.list_rolls(
        style_id=arg_int("style_id"),
        color=(request.args.get("color") or "").strip() or None,
        status=(request.args.get("status") or "").strip() or None,
    )
    return ok([r.to_dict() for r in rolls])


@api.get("/fabric-rolls/next-id")
def preview_roll_id():
    style_id = arg_int("style_id")
    if style_id is None:
        raise ValidationError("style_id is required")
    color = require_str(request.args, "color")
    return ok({"id": fabric.next_roll_id(style_id, color)})


@api.get("/fabric-rolls/<roll_id>")
def get_roll(roll_id):
    return ok(fabric.get_roll(roll_id).to_dict())


@api.put("/fabric-rolls/<roll_id>/status")
def update_roll_status(roll_id):
    roll = fabric.update_roll_status(roll_id, parse_roll_status(json_body()))
    return ok(roll.to_dict(), "Fabric roll status updated")


@api.get("/fabric-rolls/<roll_id>/label")
def roll_label(roll_id):
    roll = fabric.get_roll(roll_id)
    return send_file(
        roll_label_png(roll.id), mimetype="image/png",
        as_attachment=True, download_name=f"roll_{roll.id}.png",
    )


# ---------------------------------------------------------------- production logs

@api.post("/production-logs")
def create_log():
    log = logs.create_log(**parse_log(json_body()))
    return ok(log.to_dict(), "Production log created", 201)


@api.get("/production-logs")
def list_logs():
    rows = logs.list_logs(
        task_id=arg_int("task_id"),
        roll_id=(request.args.get("roll_id") or "").strip() or None,
        worker_id=arg_int("worker_id"),
        process_name=(request.args.get("process_name") or "").strip() or None,
        parent_log_id=arg_int("parent_log_id"),
    )
    return ok([r.to_dict() for r in rows])


@api.get("/production-logs/unprocessed-spreads")
def unprocessed_spreads():
    return ok([r.to_dict() for r in logs.unprocessed_spreading_logs()])


@api.get("/production-logs/<log_id>")
def get_log(log_id):
    return ok(logs.get_log(parse_id(log_id, "log")).to_dict())


# ---------------------------------------------------------------- workers

@api.get("/workers")
def list_workers():
    return ok([w.to_dict() for w in worker_queries.list_workers()])


@api.post("/workers")
def create_worker():
    worker = workers.create_worker(**parse_worker(json_body()))
    return ok(worker.to_dict(), "Worker created", 201)


@api.get("/workers/<worker_id>")
def get_worker(worker_id):
    return ok(worker_queries.get_worker(parse_id(worker_id, "worker")).to_dict())


@api.put("/workers/<worker_id>")
def update_worker(worker_id):
    worker_id = parse_id(worker_id, "worker")
    fields = parse_worker(json_body())
    fields.pop("password")
    return ok(workers.update_worker(worker_id, **fields).to_dict(), "Worker updated")


@api.delete("/workers/<worker_id>")
def delete_worker(worker_id):
    workers.delete_worker(parse_id(worker_id, "worker"))
    return ok(message="Worker deleted")


@api.get("/workers/<worker_id>/tasks")
def worker_tasks(worker_id):
    return ok(worker_queries.worker_task_groups(parse_id(worker_id, "worker")))


@api.get("/workers/<worker_id>/logs")
def worker_logs(worker_id):
    rows = worker_queries.worker_logs(parse_id(worker_id, "worker"))
    return ok([r.to_dict() for r in rows])


@api.put("/workers/<worker_id>/password")
def update_worker_password(worker_id):
    target_id = parse_id(worker_id, "worker")
    try:
        actor = parse_number(request.headers.get("X-Worker-ID"), "X-Worker-ID")
    except ValidationError:
        raise PermissionDeniedError("X-Worker-ID header with the acting worker is required")
    password = require_str(json_body(), "password")
    workers.set_password(actor, target_id, password)
    return ok(message="Password updated")


@api.post("/auth/login")
def login():
    data = json_body()
    worker = workers.authenticate(require_str(data, "name"), require_str(data, "password"))
    return ok(worker.to_dict(), "Signed in")
