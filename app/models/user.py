import enum

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin


class UserRole(str, enum.Enum):
    USER = "User"
    ADMIN = "Admin"
    SUPER_ADMIN = "SuperAdmin"


def normalize_roles(roles) -> list[str]:
    """Collapse duplicates and keep roles in declaration order."""
    wanted = {UserRole(r).value for r in (roles or [])}
    return [role.value for role in UserRole if role.value in wanted]


class User(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "users"
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    email: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    roles: Mapped[list] = mapped_column(JSON, default=list, nullable=False)  # list of UserRole values
