import re
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.user import UserRole, normalize_roles

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserUpsert(BaseModel):
    name: str = Field(max_length=200)
    age: int = Field(ge=0, le=150)
    email: str = Field(max_length=200)
    roles: List[UserRole] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("name must not be empty")
        return text

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        text = str(value or "").strip().lower()
        if not _EMAIL_RE.fullmatch(text):
            raise ValueError("email is not a valid address")
        return text

    @field_validator("roles")
    @classmethod
    def collapse_roles(cls, value: List[UserRole]) -> List[UserRole]:
        return [UserRole(role) for role in normalize_roles(value)]


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    age: int
    email: str
    roles: List[UserRole]
