import os
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure settings can be initialized in test environments
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from app.core.config import settings
from app.core.errors import DuplicateEmail
from app.db.session import get_db
from app.main import app
from app.models.user import User
from app.schemas.users import UserUpsert
from app.services.users import create_user, is_email_unique, user_exists


class UsersApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        User.__table__.create(bind=cls.engine)

    @classmethod
    def tearDownClass(cls):
        User.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            db.execute(delete(User))
            db.commit()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()

    def _create(self, name: str, age: int, email: str | None = None, roles=None) -> dict:
        response = self.client.post(
            "/user",
            json={"name": name, "age": age, "email": email or f"{name.lower()}@example.com", "roles": roles or ["User"]},
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def test_user_crud_roundtrip(self):
        created = self._create("Anton", 11, "Abc@Mail.ru", ["User", "SuperAdmin", "Admin", "User"])
        self.assertIsInstance(created["id"], int)
        self.assertEqual(created["email"], "abc@mail.ru")
        self.assertEqual(created["roles"], ["User", "Admin", "SuperAdmin"])

        got = self.client.get(f"/user/{created['id']}")
        self.assertEqual(got.status_code, 200)
        self.assertEqual(got.json()["name"], "Anton")

        updated = self.client.put(
            f"/user/{created['id']}",
            json={"name": "Anton B", "age": 12, "email": "abc@mail.ru", "roles": ["Admin"]},
        )
        self.assertEqual(updated.status_code, 200, updated.text)
        self.assertEqual(updated.json()["age"], 12)
        self.assertEqual(updated.json()["roles"], ["Admin"])

        deleted = self.client.delete(f"/user/{created['id']}")
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(deleted.json(), {"status": "deleted"})

        missing = self.client.get(f"/user/{created['id']}")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["error"], "EntityNotFound")

    def test_duplicate_email_is_rejected_on_create_and_update(self):
        self._create("Bob", 20, "bob@example.com")
        ann = self._create("Ann", 30, "ann@example.com")

        duplicate = self.client.post(
            "/user", json={"name": "Bobby", "age": 21, "email": "BOB@example.com", "roles": []}
        )
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.json()["error"], "DuplicateEmail")

        clash = self.client.put(
            f"/user/{ann['id']}", json={"name": "Ann", "age": 30, "email": "bob@example.com", "roles": []}
        )
        self.assertEqual(clash.status_code, 400)
        self.assertEqual(clash.json()["error"], "DuplicateEmail")

    def test_validation_failures_answer_400(self):
        for body in (
            {"name": "  ", "age": 20, "email": "x@example.com", "roles": []},
            {"name": "X", "age": -1, "email": "x@example.com", "roles": []},
            {"name": "X", "age": 20, "email": "not-an-email", "roles": []},
            {"name": "X", "age": 20, "email": "x@example.com", "roles": ["Root"]},
        ):
            response = self.client.post("/user", json=body)
            self.assertEqual(response.status_code, 400, body)
            self.assertEqual(response.json()["error"], "ValidationError")

    def test_add_role(self):
        user = self._create("Cal", 20)
        response = self.client.post(f"/user/{user['id']}", params={"role": "Admin"})
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["roles"], ["User", "Admin"])

        again = self.client.post(f"/user/{user['id']}", params={"role": "Admin"})
        self.assertEqual(again.json()["roles"], ["User", "Admin"])

        missing = self.client.post("/user/999999", params={"role": "Admin"})
        self.assertEqual(missing.status_code, 404)

        bad_role = self.client.post(f"/user/{user['id']}", params={"role": "Root"})
        self.assertEqual(bad_role.status_code, 400)

    def test_update_and_delete_missing_user_answer_404(self):
        body = {"name": "Ghost", "age": 1, "email": "ghost@example.com", "roles": []}
        self.assertEqual(self.client.put("/user/424242", json=body).status_code, 404)
        self.assertEqual(self.client.delete("/user/424242").status_code, 404)

    def test_list_users_filters_sorts_and_pages(self):
        self._create("Bob", 20)
        self._create("Ann", 30)
        self._create("Cal", 20)

        response = self.client.post(
            "/api/users",
            params={"pageNumber": 1, "pageSize": 10},
            json={"filterActions": [{"property": "name", "filterValue": "B", "method": "Start"}]},
        )
        self.assertEqual(response.status_code, 200, response.text)
        payload = response.json()
        self.assertEqual([row["name"] for row in payload["items"]], ["Bob"])
        self.assertEqual(payload["totalCount"], 1)
        self.assertEqual(payload["pageNumber"], 1)
        self.assertEqual(payload["pageSize"], 10)

        response = self.client.post(
            "/api/users",
            params={"pageNumber": 1, "pageSize": 2},
            json={"sorting": {"sortingActions": [{"property": "age", "isAscending": True}, {"property": "Name", "isAscending": True}]}},
        )
        payload = response.json()
        self.assertEqual([row["name"] for row in payload["items"]], ["Bob", "Cal"])
        self.assertEqual(payload["totalCount"], 3)
        self.assertEqual(payload["totalPages"], 2)
        self.assertTrue(payload["hasNextPage"])

    def test_list_users_defaults_to_id_order_and_allows_pages_past_the_end(self):
        names = [self._create(name, 25)["name"] for name in ("Zed", "Amy", "Kim")]

        first = self.client.post("/api/users", json={})
        self.assertEqual([row["name"] for row in first.json()["items"]], names)
        self.assertEqual(first.json()["pageSize"], settings.DEFAULT_PAGE_SIZE)

        beyond = self.client.post("/api/users", params={"pageNumber": 5, "pageSize": 2}, json={})
        self.assertEqual(beyond.status_code, 200)
        self.assertEqual(beyond.json()["items"], [])
        self.assertEqual(beyond.json()["totalCount"], 3)

    def test_list_users_rejects_bad_modifiers_and_pages(self):
        self._create("Bob", 20)
        cases = [
            ({"pageNumber": 0, "pageSize": 10}, {}, "InvalidPageRequest"),
            ({"pageNumber": 1, "pageSize": 0}, {}, "InvalidPageRequest"),
            ({"pageNumber": 1, "pageSize": settings.MAX_PAGE_SIZE + 1}, {}, "InvalidPageRequest"),
            (
                {"pageNumber": 1, "pageSize": 10},
                {"filterActions": [{"property": "nickname", "filterValue": "x", "method": "Equals"}]},
                "InvalidFilterProperty",
            ),
            (
                {"pageNumber": 1, "pageSize": 10},
                {"sortActions": [{"property": "height", "isAscending": True}]},
                "InvalidSortProperty",
            ),
        ]
        for params, body, error in cases:
            response = self.client.post("/api/users", params=params, json=body)
            self.assertEqual(response.status_code, 400, (params, body))
            self.assertEqual(response.json()["error"], error)

    def test_unique_index_race_is_reported_as_duplicate_email(self):
        self._create("Bob", 20, "bob@example.com")
        body = {"name": "Bob", "age": 20, "email": "bob@example.com", "roles": ["User"]}

        with patch("app.services.users.is_email_unique", return_value=True):
            response = self.client.post("/user", json=body)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "DuplicateEmail")

        with self.SessionLocal() as db:
            with patch("app.services.users.is_email_unique", return_value=True):
                with self.assertRaises(DuplicateEmail):
                    create_user(db, UserUpsert(**body))
            # Session stays usable after the rollback.
            self.assertEqual(db.query(User).count(), 1)
            other = create_user(db, UserUpsert(**dict(body, email="robert@example.com")))
            self.assertIsNotNone(other.id)
            self.assertEqual(db.query(User).count(), 2)

    def test_add_role_accepts_user_role_query_name(self):
        user = self._create("Dan", 40)
        response = self.client.post(f"/user/{user['id']}", params={"userRole": "SuperAdmin"})
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["roles"], ["User", "SuperAdmin"])

        missing_role = self.client.post(f"/user/{user['id']}")
        self.assertEqual(missing_role.status_code, 400)
        self.assertEqual(missing_role.json()["error"], "ValidationError")

    def test_list_users_rejects_unknown_modifier_keys(self):
        self._create("Bob", 20)
        response = self.client.post("/api/users", json={"sortingActions": [{"property": "nope"}]})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "ValidationError")

    def test_validation_service_helpers(self):
        bob = self._create("Bob", 20, "bob@example.com")
        with self.SessionLocal() as db:
            self.assertTrue(user_exists(db, bob["id"]))
            self.assertFalse(user_exists(db, bob["id"] + 1000))
            self.assertFalse(is_email_unique(db, "Bob@Example.com"))
            self.assertTrue(is_email_unique(db, "bob@example.com", exclude_user_id=bob["id"]))
            self.assertTrue(is_email_unique(db, "nobody@example.com"))

    def test_case_insensitive_filtering_is_configurable(self):
        self._create("Bob", 20)
        self._create("Ann", 30)
        self._create("Cal", 20)
        body = {"filterActions": [{"property": "name", "filterValue": "a", "method": "Contains"}]}

        sensitive = self.client.post("/api/users", json=body)
        self.assertEqual([row["name"] for row in sensitive.json()["items"]], ["Cal"])

        with patch.object(settings, "FILTER_CASE_SENSITIVE", False):
            insensitive = self.client.post("/api/users", json=body)
        self.assertEqual([row["name"] for row in insensitive.json()["items"]], ["Ann", "Cal"])


if __name__ == "__main__":
    unittest.main()
