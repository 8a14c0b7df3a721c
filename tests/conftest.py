import pytest

from cutroom import create_app, db
from cutroom.styles import create_style
from cutroom.workers import create_worker


@pytest.fixture()
def app():
    app = create_app(testing=True)
    with app.app_context():
        db.create_all()
        create_style("ABC")
        create_worker("Admin", role="admin", password="secret")
        create_worker("Maya", role="manager", password="manager-pw")
        create_worker("Ravi", role="worker", worker_group="spreading")
        yield app
        db.session.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


def plan_body(style_id=1, linked_order_id=None, name="Spring run"):
    return {
        "plan_name": name,
        "style_id": style_id,
        "linked_order_id": linked_order_id,
        "layouts": [
            {
                "layout_name": "L1",
                "description": "long table",
                "ratios": [{"size": "S", "ratio": 1}, {"size": "M", "ratio": 2}],
                "tasks": [{"color": "Red", "planned_layers": 40}, {"color": "Blue", "planned_layers": 20}],
            },
            {
                "layout_name": "L2",
                "ratios": [{"size": "L", "ratio": 1}],
                "tasks": [{"color": "Red", "planned_layers": 10}],
            },
        ],
    }
