"""Request-body parsing.

Each ``parse_*`` function takes the decoded JSON body and returns plain dicts
with the fields the services need, raising :class:`ValidationError` with a
message naming the offending field.
"""

from .errors import ValidationError
from .models import PROCESS_NAMES, ROLES, ROLL_STATUSES

# every numeric column is a 32-bit INTEGER
MAX_INT = 2**31 - 1


def require_str(data: dict, key: str, where: str = "") -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{where}{key} is required")
    return value.strip()


def optional_str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()


def require_int(data: dict, key: str, where: str = "", minimum=None) -> int:
    value = data.get(key)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{where}{key} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{where}{key} must be >= {minimum}")
    if not -MAX_INT <= value <= MAX_INT:
        raise ValidationError(f"{where}{key} is out of range")
    return value


def parse_number(raw: str, what: str) -> int:
    """Parse a path or query-string id: ASCII digits only, within column range."""
    raw = (raw or "").strip()
    if not (raw.isascii() and raw.isdigit()):
        raise ValidationError(f"{what} must be a number")
    value = int(raw)
    if value > MAX_INT:
        raise ValidationError(f"{what} is out of range")
    return value


def optional_int(data: dict, key: str, where: str = ""):
    if data.get(key) is None:
        return None
    return require_int(data, key, where)


def require_list(data: dict, key: str, where: str = "") -> list:
    value = data.get(key)
    if not isinstance(value, list) or not value:
        raise ValidationError(f"{where}{key} must be a non-empty list")
    for entry in value:
        if not isinstance(entry, dict):
            raise ValidationError(f"{where}{key} entries must be objects")
    return value


def parse_order_items(raw_items: list) -> list:
    items = []
    for i, raw in enumerate(raw_items):
        where = f"items[{i}]."
        items.append({
            "color": require_str(raw, "color", where),
            "size": require_str(raw, "size", where),
            "quantity": require_int(raw, "quantity", where, minimum=1),
        })
    return items


def parse_order(data: dict) -> dict:
    return {
        "style_number": require_str(data, "style_number"),
        "items": parse_order_items(require_list(data, "items")),
    }


def parse_plan(data: dict) -> dict:
    layouts = []
    for i, raw in enumerate(require_list(data, "layouts")):
        where = f"layouts[{i}]."
        ratios = [
            {
                "size": require_str(r, "size", f"{where}ratios[{j}]."),
                "ratio": require_int(r, "ratio", f"{where}ratios[{j}].", minimum=1),
            }
            for j, r in enumerate(require_list(raw, "ratios", where))
        ]
        tasks = [
            {
                "color": require_str(t, "color", f"{where}tasks[{j}]."),
                "planned_layers": require_int(t, "planned_layers", f"{where}tasks[{j}].", minimum=1),
            }
            for j, t in enumerate(require_list(raw, "tasks", where))
        ]
        layouts.append({
            "layout_name": require_str(raw, "layout_name", where),
            "description": optional_str(raw, "description"),
            "ratios": ratios,
            "tasks": tasks,
        })
    return {
        "plan_name": require_str(data, "plan_name"),
        "style_id": require_int(data, "style_id"),
        "linked_order_id": optional_int(data, "linked_order_id"),
        "layouts": layouts,
    }


def parse_log(data: dict) -> dict:
    process_name = require_str(data, "process_name")
    if process_name not in PROCESS_NAMES:
        raise ValidationError(f"process_name must be one of: {'|'.join(PROCESS_NAMES)}")
    roll_id = data.get("roll_id")
    if roll_id is not None and not isinstance(roll_id, str):
        raise ValidationError("roll_id must be a string")
    layers = optional_int(data, "layers_completed")
    if layers is not None and layers < 0:
        raise ValidationError("layers_completed must be >= 0")
    return {
        "task_id": optional_int(data, "task_id"),
        "roll_id": roll_id or None,
        "parent_log_id": optional_int(data, "parent_log_id"),
        "worker_id": require_int(data, "worker_id"),
        "process_name": process_name,
        "layers_completed": layers,
    }


def parse_roll(data: dict) -> dict:
    return {"style_id": require_int(data, "style_id"), "color": require_str(data, "color")}


def parse_roll_status(data: dict) -> str:
    status = require_str(data, "status")
    if status not in ROLL_STATUSES:
        raise ValidationError(f"status must be one of: {'|'.join(ROLL_STATUSES)}")
    return status


def parse_worker(data: dict) -> dict:
    role = optional_str(data, "role") or "worker"
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {'|'.join(ROLES)}")
    is_active = data.get("is_active", True)
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be a boolean")
    return {
        "name": require_str(data, "name"),
        "role": role,
        "is_active": is_active,
        "worker_group": optional_str(data, "worker_group") or None,
        "notes": optional_str(data, "notes"),
        "password": optional_str(data, "password") or None,
    }
