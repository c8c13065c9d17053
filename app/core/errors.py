"""Typed failures raised by the query engine and the user service.

The HTTP layer maps every ``AppError`` to ``status_code`` and a
``{"detail": ..., "error": ...}`` body, see ``app.core.http_hardening``.
"""

from __future__ import annotations


class AppError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class QueryModifierError(AppError):
    """Client supplied modifiers or page arguments that cannot be applied."""

    status_code = 400
    default_message = "Invalid query modifiers"


def _allowed_suffix(allowed) -> str:
    names = [str(name) for name in (allowed or [])]
    return f"; allowed: {', '.join(names)}" if names else ""


class InvalidFilterProperty(QueryModifierError):
    default_message = "Unknown filter property"

    def __init__(self, property_name: str, allowed=None) -> None:
        self.property_name = property_name
        super().__init__(f'Cannot filter by unknown property "{property_name}"{_allowed_suffix(allowed)}')


class InvalidSortProperty(QueryModifierError):
    default_message = "Unknown sort property"

    def __init__(self, property_name: str, allowed=None) -> None:
        self.property_name = property_name
        super().__init__(f'Cannot sort by unknown property "{property_name}"{_allowed_suffix(allowed)}')


class InvalidPageRequest(QueryModifierError):
    default_message = "Invalid page request"


class EntityNotFound(AppError):
    status_code = 404
    default_message = "Entity not found"


class DuplicateEmail(AppError):
    status_code = 400

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f'User with email "{email}" already exists')
