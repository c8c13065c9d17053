from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import DuplicateEmail, EntityNotFound
from app.models.user import User, UserRole, normalize_roles
from app.schemas.modifiers import Modifiers
from app.schemas.users import UserUpsert
from app.services.query_modifiers import PaginatedList, get_page

logger = logging.getLogger(__name__)


def is_email_unique(db: Session, email: str, exclude_user_id: int | None = None) -> bool:
    query = db.query(User.id).filter(func.lower(User.email) == str(email or "").strip().lower())
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is None


def user_exists(db: Session, user_id: int) -> bool:
    return db.query(User.id).filter(User.id == user_id).first() is not None


def _load_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise EntityNotFound(f"User {user_id} not found")
    return user


def _commit_or_duplicate(db: Session, user: User, email: str) -> User:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEmail(email)
    db.refresh(user)
    return user


def create_user(db: Session, payload: UserUpsert) -> User:
    if not is_email_unique(db, payload.email):
        raise DuplicateEmail(payload.email)
    user = User(
        name=payload.name,
        age=payload.age,
        email=payload.email,
        roles=normalize_roles(payload.roles),
    )
    db.add(user)
    user = _commit_or_duplicate(db, user, payload.email)
    logger.info("user created id=%s email=%s roles=%s", user.id, user.email, ",".join(user.roles))
    return user


def add_user_role(db: Session, user_id: int, role: UserRole) -> User:
    user = _load_user_or_404(db, user_id)
    roles = normalize_roles([*user.roles, role])
    if roles == list(user.roles):
        return user
    # JSON columns are not mutation-tracked; assign a new list.
    user.roles = roles
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user role added id=%s role=%s", user.id, UserRole(role).value)
    return user


def get_user(db: Session, user_id: int) -> User:
    return _load_user_or_404(db, user_id)


def list_users(
    db: Session,
    modifiers: Modifiers | None,
    page_number: int,
    page_size: int,
) -> PaginatedList[User]:
    snapshot = db.query(User).order_by(User.id.asc()).all()
    return get_page(
        snapshot,
        modifiers,
        page_number,
        page_size,
        case_sensitive=settings.FILTER_CASE_SENSITIVE,
        max_page_size=settings.MAX_PAGE_SIZE,
    )


def update_user(db: Session, user_id: int, payload: UserUpsert) -> User:
    user = _load_user_or_404(db, user_id)
    if not is_email_unique(db, payload.email, exclude_user_id=user.id):
        raise DuplicateEmail(payload.email)
    user.name = payload.name
    user.age = payload.age
    user.email = payload.email
    user.roles = normalize_roles(payload.roles)
    db.add(user)
    user = _commit_or_duplicate(db, user, payload.email)
    logger.info("user updated id=%s", user.id)
    return user


def remove_user(db: Session, user_id: int) -> None:
    user = _load_user_or_404(db, user_id)
    db.delete(user)
    db.commit()
    logger.info("user removed id=%s", user_id)
