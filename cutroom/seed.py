"""Demo workshop data: staff, one order with its cutting plan, a few rolls.

Safe to run repeatedly; workers are matched by name and the order, plan and
rolls are only seeded into an empty order book.
"""

import logging

from .fabric import create_roll
from .models import ProductionOrder
from .orders import create_order
from .plans import create_plan
from .styles import get_style_by_number
from .worker_queries import get_worker_by_name
from .workers import create_worker

logger = logging.getLogger(__name__)

DEMO_STYLE = "650010011410"

WORKERS = [
    ("Admin", "admin", None),
    ("Manager", "manager", None),
    ("Pattern Desk", "pattern_maker", None),
    ("Worker 1", "worker", "spreading"),
    ("Worker 2", "worker", "spreading"),
    ("Worker 3", "worker", "cutting"),
    ("Worker 4", "worker", "cutting"),
]

LAYOUTS = [
    {
        "layout_name": "Marker A",
        "description": "S/M/L on the long table",
        "ratios": [{"size": "S", "ratio": 1}, {"size": "M", "ratio": 2}, {"size": "L", "ratio": 1}],
        "tasks": [{"color": "Red", "planned_layers": 60}, {"color": "Navy", "planned_layers": 60}],
    },
    {
        "layout_name": "Marker B",
        "description": "L/XL",
        "ratios": [{"size": "L", "ratio": 1}, {"size": "XL", "ratio": 1}],
        "tasks": [{"color": "Red", "planned_layers": 30}, {"color": "Navy", "planned_layers": 30}],
    },
]


def seed_demo_data(office_password: str = "admin") -> None:
    for name, role, group in WORKERS:
        if get_worker_by_name(name) is None:
            password = office_password if role in ("admin", "manager") else None
            create_worker(name, role=role, worker_group=group, password=password)

    if ProductionOrder.query.count() == 0:
        items = [
            {"color": color, "size": size, "quantity": qty}
            for color in ("Red", "Navy")
            for size, qty in (("S", 120), ("M", 240), ("L", 180), ("XL", 60))
        ]
        order = create_order(DEMO_STYLE, items)
        style = get_style_by_number(DEMO_STYLE)
        create_plan(f"{order.order_number} plan", style.id, order.id, LAYOUTS)
        for color in ("Red", "Red", "Navy"):
            create_roll(style.id, color)
        logger.info("demo order %s seeded", order.order_number)
