"""Fabric rolls and their ``{style_number}-{color}-{seq:03d}`` ids.

The next sequence number is the highest numeric suffix already used for the
style and colour, plus one. Generation and insert share one transaction that
holds a lock on the style row, so concurrent registrations for the same style
queue up instead of computing the same id. The id is also the primary key: on
databases without row locks a collision fails the insert and the whole
registration is retried.
"""

import logging

from flask import current_app

from . import db
from .database import retry_on_conflict, transaction, utcnow
from .errors import NotFoundError
from .models import FabricRoll, Style

logger = logging.getLogger(__name__)


def _locked_style(session, style_id: int) -> Style:
    style = session.query(Style).filter_by(id=style_id).with_for_update().first()
    if style is None:
        raise NotFoundError(f"style {style_id} not found")
    return style


def _next_roll_id(session, style: Style, color: str) -> str:
    prefix = f"{style.style_number}-{color}-"
    existing = session.query(FabricRoll.id).filter(
        FabricRoll.id.startswith(prefix, autoescape=True)
    )
    highest = 0
    for (roll_id,) in existing:
        suffix = roll_id[len(prefix):]
        if suffix.isascii() and suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:03d}"


def next_roll_id(style_id: int, color: str) -> str:
    """Preview the id the next roll of this style and colour would get."""
    style = db.session.get(Style, style_id)
    if style is None:
        raise NotFoundError(f"style {style_id} not found")
    return _next_roll_id(db.session, style, color)


def _insert_roll(style_id: int, color: str) -> str:
    with transaction() as session:
        style = _locked_style(session, style_id)
        roll = FabricRoll(
            id=_next_roll_id(session, style, color),
            style_id=style.id,
            color=color,
            registration_time=utcnow(),
            status="available",
        )
        session.add(roll)
        session.flush()
        roll_id = roll.id
    logger.info("fabric roll %s registered", roll_id)
    return roll_id


def create_roll(style_id: int, color: str) -> FabricRoll:
    roll_id = retry_on_conflict(
        lambda: _insert_roll(style_id, color),
        current_app.config["ROLL_ID_RETRIES"],
        f"fabric roll for style {style_id}/{color}",
    )
    return get_roll(roll_id)


def get_roll(roll_id: str) -> FabricRoll:
    roll = db.session.get(FabricRoll, roll_id)
    if roll is None:
        raise NotFoundError(f"fabric roll {roll_id} not found")
    return roll


def list_rolls(style_id=None, color=None, status=None):
    q = FabricRoll.query
    if style_id is not None:
        q = q.filter_by(style_id=style_id)
    if color:
        q = q.filter_by(color=color)
    if status:
        q = q.filter_by(status=status)
    return q.order_by(FabricRoll.registration_time, FabricRoll.id).all()


def update_roll_status(roll_id: str, status: str) -> FabricRoll:
    with transaction() as session:
        roll = session.get(FabricRoll, roll_id)
        if roll is None:
            raise NotFoundError(f"fabric roll {roll_id} not found")
        roll.status = status
    logger.info("fabric roll %s is now %s", roll_id, status)
    return roll
