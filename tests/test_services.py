import pytest
from sqlalchemy.exc import IntegrityError

from cutroom import db
from cutroom import fabric, logs, orders, plans, workers
from cutroom.database import retry_on_conflict, transaction
from cutroom.errors import (
    ConflictError, NotFoundError, PermissionDeniedError, PersistenceError, ValidationError,
)
from cutroom.models import (
    CuttingLayout, FabricRoll, LayoutSizeRatio, OrderItem, ProductionOrder, ProductionTask, Style,
)
from cutroom.tasks import progress_percent
from cutroom.workers import create_worker, set_password

from conftest import plan_body

ITEMS = [{"color": "Red", "size": "M", "quantity": 4}]
UNIQUE_FAILED = "UNIQUE constraint failed: production_orders.order_number"


def test_progress_percent():
    assert progress_percent(0, 0) == 0.0
    assert progress_percent(5, 0) == 0.0
    assert progress_percent(1, 3) == 33.33
    assert progress_percent(40, 40) == 100.0


def test_retry_on_conflict_gives_up(app):
    calls = []

    def always_collides():
        calls.append(1)
        raise IntegrityError("INSERT", {}, Exception(UNIQUE_FAILED))

    with pytest.raises(ConflictError):
        retry_on_conflict(always_collides, 3, "test write")
    assert len(calls) == 3


def test_retry_on_conflict_returns_first_success(app):
    outcomes = [IntegrityError("INSERT", {}, Exception(UNIQUE_FAILED)), "ok"]

    def flaky():
        result = outcomes.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    assert retry_on_conflict(flaky, 3, "test write") == "ok"


def test_transaction_rolls_back(app):
    with pytest.raises(ValidationError):
        with transaction() as session:
            session.add(Style(style_number="GONE"))
            session.flush()
            raise ValidationError("boom")
    assert Style.query.filter_by(style_number="GONE").first() is None


def test_order_number_skips_live_numbers(app):
    made = [orders.create_order("ABC", ITEMS) for _ in range(3)]
    orders.delete_order(made[1].id)
    nxt = orders.create_order("ABC", ITEMS)
    assert nxt.order_number.endswith("-04")
    other = orders.create_order("XYZ", ITEMS)
    assert other.order_number.endswith("-XYZ-01")


def test_orders_list_filters(app):
    orders.create_order("ABC", ITEMS)
    orders.create_order("XYZ", ITEMS)
    assert [o.order_number[-6:] for o in orders.list_orders("xy")] == ["XYZ-01"]
    assert len(orders.list_orders()) == 2
    assert len(orders.list_unplanned_orders()) == 2


def test_update_missing_plan(app):
    with pytest.raises(NotFoundError):
        plans.update_plan(5, "x", 1, plan_body()["layouts"])


def test_update_plan_drops_old_rows(app):
    body = plan_body()
    plan = plans.create_plan(body["plan_name"], 1, None, body["layouts"])
    plans.update_plan(plan["id"], "again", 1, body["layouts"][1:])
    assert CuttingLayout.query.count() == 1
    assert LayoutSizeRatio.query.count() == 1
    plans.delete_plan(plan["id"])
    assert CuttingLayout.query.count() == 0


def test_plan_linked_to_unknown_order(app):
    body = plan_body(linked_order_id=77)
    with pytest.raises(NotFoundError):
        plans.create_plan(body["plan_name"], 1, 77, body["layouts"])
    assert plans.list_plans() == []


def test_roll_id_continues_after_highest_suffix(app):
    db.session.add(FabricRoll(id="ABC-Red-007", style_id=1, color="Red"))
    db.session.add(FabricRoll(id="ABC-Red-x", style_id=1, color="Red"))
    db.session.add(FabricRoll(id="ABC-Red-²", style_id=1, color="Red"))
    db.session.add(FabricRoll(id="ABC-Red-�", style_id=1, color="Red"))
    db.session.commit()
    assert fabric.create_roll(1, "Red").id == "ABC-Red-008"


def test_roll_for_unknown_style(app):
    with pytest.raises(NotFoundError):
        fabric.create_roll(9, "Red")


def test_list_rolls_filters(app):
    fabric.create_roll(1, "Red")
    fabric.create_roll(1, "Blue")
    assert [r.id for r in fabric.list_rolls(color="Blue")] == ["ABC-Blue-001"]
    assert len(fabric.list_rolls(style_id=1)) == 2


def test_unprocessed_ignores_non_cut_children(app):
    spread = logs.create_log(None, None, None, 3, "spread", 12)
    logs.create_log(None, None, spread.id, 3, "pack", None)
    assert [l.id for l in logs.unprocessed_spreading_logs()] == [spread.id]


def test_admin_needs_password(app):
    with pytest.raises(ValidationError):
        create_worker("Nobody", role="admin")


def test_manager_cannot_reset_manager(app):
    with pytest.raises(PermissionDeniedError):
        set_password(2, 2, "mine")
    with pytest.raises(PermissionDeniedError):
        set_password(42, 3, "ghost")


def test_retry_on_conflict_only_retries_unique_violations(app):
    calls = []

    def null_column():
        calls.append(1)
        raise IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: order_items.color"))

    with pytest.raises(PersistenceError):
        retry_on_conflict(null_column, 3, "test write")
    assert len(calls) == 1


def test_failed_item_rolls_back_whole_order(app):
    bad = [ITEMS[0], {"color": None, "size": "M", "quantity": 1}]
    with pytest.raises(PersistenceError):
        orders.create_order("FRESH", bad)
    assert Style.query.filter_by(style_number="FRESH").first() is None
    assert ProductionOrder.query.count() == 0
    assert OrderItem.query.count() == 0


def _tree_shape(plan):
    return [
        (l["layout_name"], [r["size"] for r in l["ratios"]], [t["color"] for t in l["tasks"]])
        for l in plan["layouts"]
    ]


def test_failed_update_keeps_old_tree(app):
    body = plan_body()
    plan = plans.create_plan(body["plan_name"], 1, None, body["layouts"])
    with pytest.raises(NotFoundError):
        plans.update_plan(plan["id"], "renamed", 42, body["layouts"][:1])
    after = plans.get_plan(plan["id"])
    assert after["plan_name"] == "Spring run"
    assert _tree_shape(after) == _tree_shape(plan)


def test_update_failing_mid_write_keeps_old_tree(app):
    body = plan_body()
    plan = plans.create_plan(body["plan_name"], 1, None, body["layouts"])
    broken = [{"layout_name": None, "description": "", "ratios": [], "tasks": []}]
    with pytest.raises(PersistenceError):
        plans.update_plan(plan["id"], "renamed", 1, broken)
    after = plans.get_plan(plan["id"])
    assert after["plan_name"] == "Spring run"
    assert _tree_shape(after) == _tree_shape(plan)
    assert ProductionTask.query.count() == 3


def test_role_race_reports_taken_role(app, monkeypatch):
    # skip the in-transaction check so the partial unique index has to refuse it
    monkeypatch.setattr(workers, "_check_unique", lambda *args, **kwargs: None)
    with pytest.raises(ValidationError) as err:
        workers.create_worker("Root", role="admin", password="pw")
    assert "role 'admin' already exists" in err.value.message


def test_search_terms_match_literally(app):
    orders.create_order("ABC", ITEMS)
    assert orders.list_orders("A_C") == []
    assert len(orders.list_orders("b")) == 1
    body = plan_body()
    plans.create_plan("100% cotton", 1, None, body["layouts"])
    plans.create_plan("Spring run", 1, None, body["layouts"])
    assert [p.plan_name for p in plans.list_plans("100%")] == ["100% cotton"]
    assert [p.plan_name for p in plans.list_plans("%")] == ["100% cotton"]
