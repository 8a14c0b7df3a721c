import logging

from sqlalchemy.exc import IntegrityError

from . import db
from .database import transaction
from .errors import NotFoundError, ValidationError
from .models import Style

logger = logging.getLogger(__name__)


def create_style(style_number: str) -> Style:
    try:
        with transaction() as session:
            if session.query(Style).filter_by(style_number=style_number).first():
                raise ValidationError(f"style number {style_number!r} already exists")
            style = Style(style_number=style_number)
            session.add(style)
    except IntegrityError:
        raise ValidationError(f"style number {style_number!r} already exists")
    logger.info("style %s created", style_number)
    return style


def get_style(style_id: int) -> Style:
    style = db.session.get(Style, style_id)
    if style is None:
        raise NotFoundError(f"style {style_id} not found")
    return style


def get_style_by_number(style_number: str) -> Style:
    style = Style.query.filter_by(style_number=style_number).first()
    if style is None:
        raise NotFoundError(f"style {style_number!r} not found")
    return style


def list_styles():
    return Style.query.order_by(Style.id).all()


def get_or_create_style(session, style_number: str) -> Style:
    """Resolve a style by number inside the caller's transaction, adding it if
    missing. A concurrent insert of the same number makes the caller's commit
    fail with IntegrityError."""
    style = session.query(Style).filter_by(style_number=style_number).first()
    if style is None:
        style = Style(style_number=style_number)
        session.add(style)
        session.flush()
    return style
