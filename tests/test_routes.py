"""
HTTP surface tests

TestClient is used without its context manager so the startup hook does
not try to reach a real database.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from cats_admin.auth import create_access_token
from cats_admin.config import settings
from cats_admin.main import app
from cats_admin.schemas.activity_log import AuditLogEntry
from cats_admin.services.address_resolver import get_address_resolver
from conftest import ADMIN


@pytest.fixture(autouse=True)
def admin_addresses(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_ADDRESSES", ADMIN)


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client):
    client.cookies.set("token", create_access_token({"address": ADMIN}))
    return client


def audit_row(id, table, operation, record_key, new=None, old=None):
    return AuditLogEntry.model_validate({
        "id": id,
        "table_name": table,
        "operation": operation,
        "record_key": record_key,
        "old_data": old,
        "new_data": new,
        "actor_address": ADMIN,
        "db_user": "postgres",
        "created_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
    })


# ============================================================
# AUTH
# ============================================================

class TestAuth:

    def test_health_is_public(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_api_requires_token(self, client):
        assert client.get("/api/cats").status_code == 401

    def test_api_requires_admin(self, client):
        client.cookies.set("token", create_access_token({"address": "0xnotadmin"}))

        assert client.get("/api/cats").status_code == 403

    def test_bearer_header_accepted(self, client):
        token = create_access_token({"address": ADMIN})

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.json() == {"success": True, "address": ADMIN, "is_admin": True}

    def test_verify_sets_session_cookie(self, client):
        verified = AsyncMock(return_value={"address": ADMIN.upper(), "token": "upstream"})

        with patch("cats_admin.routes.auth.grails_client.verify_signature", verified):
            response = client.post("/auth/verify", json={"message": "sign in", "signature": "0xsig"})

        assert response.status_code == 200
        assert response.json()["address"] == ADMIN
        assert "token" in response.cookies
        verified.assert_awaited_once_with("sign in", "0xsig")

    def test_verify_rejects_non_admin(self, client):
        verified = AsyncMock(return_value={"address": "0xnotadmin", "token": "upstream"})

        with patch("cats_admin.routes.auth.grails_client.verify_signature", verified):
            response = client.post("/auth/verify", json={"message": "sign in", "signature": "0xsig"})

        assert response.status_code == 403
        assert "token" not in response.cookies

    def test_logout_clears_cookie(self, admin_client):
        response = admin_client.post("/auth/logout")

        assert response.status_code == 200
        assert 'token=""' in response.headers["set-cookie"]


# ============================================================
# MEMBERS
# ============================================================

class TestMembers:

    def test_add_members(self, admin_client, fake_db):
        response = admin_client.post("/api/cats/three_digits/members", json={"names": ["vitalik.eth", "nick"]})

        assert response.status_code == 200
        assert response.json()["added"] == 2
        assert fake_db.committed_actors == [ADMIN]

    def test_add_invalid_batch(self, admin_client, fake_db):
        response = admin_client.post(
            "/api/cats/three_digits/members",
            json={"names": ["vitalik.eth", "Not A Name!!"]}
        )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "invalid_names"
        assert detail["details"]["invalid_format"] == ["Not A Name!!"]
        assert fake_db.members("three_digits") == []

    def test_add_uppercase_name_gets_guidance(self, admin_client, fake_db):
        response = admin_client.post("/api/cats/three_digits/members", json={"names": ["Vitalik.eth"]})

        assert response.status_code == 400
        not_canonical = response.json()["detail"]["details"]["not_canonical"]
        assert not_canonical[0]["reason"] == "must be lowercase: vitalik.eth"
        assert fake_db.members("three_digits") == []

    def test_add_oversized_batch(self, admin_client, fake_db):
        names = [f"n{i}.eth" for i in range(1001)]

        response = admin_client.post("/api/cats/three_digits/members", json={"names": names})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "batch_too_large"

    def test_empty_names_rejected(self, admin_client, fake_db):
        response = admin_client.post("/api/cats/three_digits/members", json={"names": []})

        assert response.status_code == 422

    def test_remove_members(self, admin_client, fake_db):
        fake_db.add_member("three_digits", "vitalik.eth")

        response = admin_client.request(
            "DELETE", "/api/cats/three_digits/members", json={"names": ["vitalik.eth", "nick.eth"]}
        )

        assert response.status_code == 200
        assert response.json()["removed"] == 1

    def test_scan_invalid_names(self, admin_client, fake_db):
        fake_db.add_member("three_digits", "ab.eth")

        response = admin_client.get("/api/cats/three_digits/invalid-names")

        assert response.status_code == 200
        body = response.json()
        assert body["invalid_count"] == 1
        assert body["invalid_names"][0]["reason"] == "Too short (2 chars, minimum is 3)"

    def test_unknown_category(self, admin_client, fake_db):
        response = admin_client.get("/api/cats/missing/invalid-names")

        assert response.status_code == 404
        assert response.json() == {"detail": "Category not found"}

    def test_remove_name_from_categories(self, admin_client, fake_db):
        fake_db.add_member("three_digits", "vitalik.eth")

        response = admin_client.request(
            "DELETE", "/api/names/vitalik.eth/categories", json={"categories": ["three_digits"]}
        )

        assert response.status_code == 200
        assert response.json()["removed"] == 1


# ============================================================
# CATEGORIES
# ============================================================

class TestCategories:

    def test_create_rejects_unknown_classification(self, admin_client):
        with patch("cats_admin.routes.categories.category_service.create_category", AsyncMock()) as create:
            response = admin_client.post(
                "/api/cats",
                data={"name": "three_digits", "classifications": '["digits", "weird"]'}
            )

        assert response.status_code == 400
        create.assert_not_awaited()

    @pytest.mark.parametrize("raw", ['"digits"', "{}", "not json"])
    def test_create_requires_classification_array(self, admin_client, raw):
        with patch("cats_admin.routes.categories.category_service.create_category", AsyncMock()) as create:
            response = admin_client.post("/api/cats", data={"name": "three_digits", "classifications": raw})

        assert response.status_code == 400
        assert response.json() == {"detail": "classifications must be a JSON array"}
        create.assert_not_awaited()

    def test_create_rejects_bad_slug(self, admin_client):
        response = admin_client.post("/api/cats", data={"name": "Three Digits"})

        assert response.status_code == 400

    def test_create(self, admin_client):
        created = {
            "name": "three_digits",
            "display_name": None,
            "description": None,
            "name_count": 0,
            "classifications": ["digits"],
            "created_at": "2026-03-01T00:00:00+00:00",
            "updated_at": "2026-03-01T00:00:00+00:00",
        }

        with patch(
            "cats_admin.routes.categories.category_service.create_category",
            AsyncMock(return_value=created)
        ) as create:
            response = admin_client.post(
                "/api/cats",
                data={"name": "three_digits", "classifications": '["digits", "digits"]'}
            )

        assert response.status_code == 201
        data, actor, images = create.await_args.args
        assert [c.value for c in data.classifications] == ["digits"]
        assert actor == ADMIN
        assert images == []

    def test_update_rejects_unknown_classification(self, admin_client):
        response = admin_client.put("/api/cats/three_digits", json={"classifications": ["weird"]})

        assert response.status_code == 422

    def test_live_check(self, admin_client):
        result = {"slug": "three_digits", "is_live": False, "checks": {"avatar": True, "header": False}}

        with patch(
            "cats_admin.routes.categories.grails_client.check_category_live",
            AsyncMock(return_value=result)
        ):
            response = admin_client.get("/api/cats/check", params={"slug": "three_digits"})

        assert response.status_code == 200
        assert response.json() == result

    def test_image_type_must_be_known(self, client):
        with patch("cats_admin.services.category_service.StorageService.is_enabled", return_value=True):
            response = client.get("/api/cats/three_digits/images", params={"type": "banner"})

        assert response.status_code == 400

    def test_unexpected_error_is_500(self):
        raising_client = TestClient(app, raise_server_exceptions=False)
        raising_client.cookies.set("token", create_access_token({"address": ADMIN}))

        with patch(
            "cats_admin.routes.categories.category_service.list_categories",
            AsyncMock(side_effect=RuntimeError("pool exhausted at 10.0.0.5"))
        ):
            response = raising_client.get("/api/cats")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        assert "10.0.0.5" not in response.text
        assert "Traceback" not in response.text

    def test_error_middleware_not_in_debug_mode(self):
        assert app.debug is False


# ============================================================
# ACTIVITY
# ============================================================

class TestActivity:

    def test_list_groups_entries(self, admin_client):
        entries = [
            audit_row(2, "club_memberships", "INSERT", "three_digits:vitalik.eth",
                      new={"club_name": "three_digits", "ens_name": "vitalik.eth"}),
            audit_row(1, "clubs", "UPDATE", "three_digits",
                      old={"name": "three_digits", "member_count": 0},
                      new={"name": "three_digits", "member_count": 1}),
        ]
        pagination = {"page": 1, "limit": 50, "total_entries": 2, "total_pages": 1}

        with patch(
            "cats_admin.routes.activity.activity_log_service.list_entries",
            AsyncMock(return_value=(entries, pagination))
        ) as list_entries:
            response = admin_client.get("/api/activity", params={"hide_system": "true", "category": "three_digits"})

        assert response.status_code == 200
        body = response.json()
        assert len(body["entries"]) == 2
        assert len(body["groups"]) == 1
        assert body["groups"][0]["sub_events"][0]["id"] == 1
        filters = list_entries.await_args.args[0]
        assert filters.hide_system is True
        assert filters.category == "three_digits"

    def test_actors_are_resolved(self, admin_client):
        resolver = AsyncMock()
        resolver.resolve_many = AsyncMock(return_value={"0xaaa": "alice.eth", "0xbbb": None})
        app.dependency_overrides[get_address_resolver] = lambda: resolver

        with patch(
            "cats_admin.routes.activity.activity_log_service.list_actors",
            AsyncMock(return_value=["0xaaa", "0xbbb"])
        ):
            response = admin_client.get("/api/activity/actors")

        assert response.json() == [
            {"address": "0xaaa", "ens_name": "alice.eth"},
            {"address": "0xbbb", "ens_name": None},
        ]

    def test_invalid_table_filter(self, admin_client):
        response = admin_client.get("/api/activity", params={"table": "users"})

        assert response.status_code == 422
