from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.models.user import UserRole
from app.schemas.modifiers import Modifiers, PaginatedListOut
from app.schemas.users import UserOut, UserUpsert
from app.services.query_modifiers import page_payload
from app.services.users import add_user_role, create_user, get_user, list_users, remove_user, update_user

router = APIRouter(tags=["Users"])


@router.post("/user", response_model=UserOut)
def add_user(payload: UserUpsert, db: Session = Depends(get_db)):
    return create_user(db, payload)


@router.post("/user/{user_id}", response_model=UserOut)
def add_role(
    user_id: int,
    role: Optional[UserRole] = Query(None),
    user_role: Optional[UserRole] = Query(None, alias="userRole"),
    db: Session = Depends(get_db),
):
    chosen = role or user_role
    if chosen is None:
        raise RequestValidationError(
            [{"type": "missing", "loc": ("query", "role"), "msg": "Field required", "input": None}]
        )
    return add_user_role(db, user_id, chosen)


@router.get("/user/{user_id}", response_model=UserOut)
def read_user(user_id: int, db: Session = Depends(get_db)):
    return get_user(db, user_id)


@router.post("/api/users", response_model=PaginatedListOut[UserOut])
def query_users(
    modifiers: Optional[Modifiers] = None,
    page_number: int = Query(1, alias="pageNumber"),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    db: Session = Depends(get_db),
):
    size = settings.DEFAULT_PAGE_SIZE if page_size is None else page_size
    page = list_users(db, modifiers, page_number, size)
    return page_payload(page, UserOut.model_validate)


@router.put("/user/{user_id}", response_model=UserOut)
def edit_user(user_id: int, payload: UserUpsert, db: Session = Depends(get_db)):
    return update_user(db, user_id, payload)


@router.delete("/user/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db)):
    remove_user(db, user_id)
    return {"status": "deleted"}
