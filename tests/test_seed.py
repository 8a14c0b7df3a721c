from cutroom import create_app, db
from cutroom.models import FabricRoll, ProductionOrder, ProductionPlan, Worker
from cutroom.seed import seed_demo_data


def test_seed_runs_twice_without_duplicates():
    app = create_app(testing=True)
    with app.app_context():
        db.create_all()
        seed_demo_data("pw")
        seed_demo_data("pw")
        assert Worker.query.count() == 7
        assert ProductionOrder.query.count() == 1
        assert ProductionPlan.query.count() == 1
        assert sorted(r.id for r in FabricRoll.query) == [
            "650010011410-Navy-001", "650010011410-Red-001", "650010011410-Red-002",
        ]
        db.session.remove()
