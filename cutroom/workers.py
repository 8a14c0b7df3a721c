"""Worker management: create, update, delete, passwords, sign-in check.

Only one admin and one manager may exist. The rule is checked inside the same
transaction as the write and is also a partial unique index, so a request that
loses a race gets the same validation error as one caught by the check.
"""

import logging

from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from . import db
from .database import transaction
from .errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .models import SINGLETON_ROLES, Worker

logger = logging.getLogger(__name__)


def _uniqueness_problem(session, name: str, role: str, worker_id=None):
    others = session.query(Worker)
    if worker_id is not None:
        others = others.filter(Worker.id != worker_id)
    if others.filter(Worker.name == name).first():
        return f"worker name {name!r} already exists"
    if role in SINGLETON_ROLES and others.filter(Worker.role == role).first():
        return f"role {role!r} already exists and only one is allowed"
    return None


def _check_unique(session, name, role, worker_id=None):
    problem = _uniqueness_problem(session, name, role, worker_id)
    if problem:
        raise ValidationError(problem)


def _raced(name, role, worker_id=None):
    problem = _uniqueness_problem(db.session, name, role, worker_id)
    return ValidationError(problem or "worker conflicts with an existing worker")


def create_worker(name, role="worker", is_active=True, worker_group=None, notes="", password=None) -> Worker:
    if role == "admin" and not password:
        raise ValidationError("an admin account needs a password")
    try:
        with transaction() as session:
            _check_unique(session, name, role)
            worker = Worker(
                name=name,
                role=role,
                is_active=is_active,
                worker_group=worker_group,
                notes=notes,
                password_hash=generate_password_hash(password) if password else None,
            )
            session.add(worker)
            session.flush()
            worker_id = worker.id
    except IntegrityError:
        raise _raced(name, role)
    logger.info("worker %d %r created as %s", worker_id, name, role)
    return db.session.get(Worker, worker_id)


def update_worker(worker_id: int, name, role, is_active, worker_group=None, notes="") -> Worker:
    try:
        with transaction() as session:
            worker = session.get(Worker, worker_id)
            if worker is None:
                raise NotFoundError(f"worker {worker_id} not found")
            if role == "admin" and not worker.password_hash:
                raise ValidationError("an admin account needs a password")
            _check_unique(session, name, role, worker_id)
            worker.name = name
            worker.role = role
            worker.is_active = is_active
            worker.worker_group = worker_group
            worker.notes = notes
    except IntegrityError:
        raise _raced(name, role, worker_id)
    logger.info("worker %d updated", worker_id)
    return worker


def delete_worker(worker_id: int) -> None:
    try:
        with transaction() as session:
            worker = session.get(Worker, worker_id)
            if worker is None:
                raise NotFoundError(f"worker {worker_id} not found")
            if worker.role == "admin":
                raise ValidationError("the admin account cannot be deleted")
            session.delete(worker)
    except IntegrityError:
        raise ConflictError(f"worker {worker_id} has production logs and cannot be deleted")
    logger.info("worker %d deleted", worker_id)


def set_password(actor_id: int, target_id: int, password: str) -> None:
    """Admins may reset anyone's password, managers only those of staff below
    them."""
    with transaction() as session:
        actor = session.get(Worker, actor_id)
        if actor is None or not actor.is_active:
            raise PermissionDeniedError("acting worker is unknown or inactive")
        target = session.get(Worker, target_id)
        if target is None:
            raise NotFoundError(f"worker {target_id} not found")
        if actor.role == "manager":
            if target.role in SINGLETON_ROLES:
                raise PermissionDeniedError(f"a manager cannot change the {target.role}'s password")
        elif actor.role != "admin":
            raise PermissionDeniedError("only the admin or the manager can change passwords")
        target.password_hash = generate_password_hash(password)
    logger.info("password of worker %d changed by worker %d", target_id, actor_id)


def authenticate(name: str, password: str) -> Worker:
    worker = Worker.query.filter_by(name=name).first()
    if worker is None or not worker.password_hash:
        raise AuthenticationError("invalid name or password")
    if not worker.is_active:
        raise AuthenticationError("worker account is disabled")
    if not check_password_hash(worker.password_hash, password):
        raise AuthenticationError("invalid name or password")
    return worker
