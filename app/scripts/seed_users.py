from __future__ import annotations

from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.models.user import User, normalize_roles

DEMO_USERS = [
    {"name": "Anton", "age": 11, "email": "anton@example.com", "roles": ["User"]},
    {"name": "Bob", "age": 20, "email": "bob@example.com", "roles": ["User"]},
    {"name": "Ann", "age": 30, "email": "ann@example.com", "roles": ["User", "Admin"]},
    {"name": "Cal", "age": 20, "email": "cal@example.com", "roles": ["User"]},
    {"name": "Dora", "age": 45, "email": "dora@example.com", "roles": ["SuperAdmin"]},
]


def upsert_users(db: Session, users: list[dict]) -> tuple[int, int]:
    created = 0
    updated = 0

    for item in users:
        email = str(item["email"]).strip().lower()
        name = str(item["name"]).strip()
        age = int(item["age"])
        roles = normalize_roles(item.get("roles"))

        row = db.query(User).filter(User.email == email).first()
        if row is None:
            db.add(User(name=name, age=age, email=email, roles=roles))
            created += 1
            continue

        changed = False
        if row.name != name:
            row.name = name
            changed = True
        if row.age != age:
            row.age = age
            changed = True
        if list(row.roles or []) != roles:
            row.roles = roles
            changed = True

        if changed:
            db.add(row)
            updated += 1

    db.commit()
    return created, updated


def main() -> None:
    db = SessionLocal()
    try:
        created, updated = upsert_users(db, DEMO_USERS)
        total = db.query(User).count()
    finally:
        db.close()
    print(f"users upsert done: created={created}, updated={updated}, total={total}")


if __name__ == "__main__":
    main()
