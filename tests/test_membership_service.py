"""
Tests for bulk membership add/remove
"""

import asyncio

import pytest
from fastapi import HTTPException

from cats_admin.services.membership_service import membership_service
from conftest import ADMIN


# ============================================================
# ADD
# ============================================================

class TestAddNames:

    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, fake_db):
        first = await membership_service.add_names("three_digits", ["vitalik.eth"], ADMIN)
        second = await membership_service.add_names("three_digits", ["vitalik.eth"], ADMIN)

        assert (first["added"], first["skipped"]) == (1, 0)
        assert (second["added"], second["skipped"]) == (0, 1)
        assert fake_db.members("three_digits") == ["vitalik.eth"]
        assert fake_db.categories["three_digits"]["member_count"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_adds_insert_once(self, fake_db):
        results = await asyncio.gather(
            membership_service.add_names("three_digits", ["nick.eth"], ADMIN),
            membership_service.add_names("three_digits", ["nick.eth"], ADMIN),
        )

        assert sum(r["added"] for r in results) == 1
        assert sum(r["skipped"] for r in results) == 1
        assert fake_db.categories["three_digits"]["member_count"] == 1

    @pytest.mark.asyncio
    async def test_bare_label_gets_eth_suffix(self, fake_db):
        result = await membership_service.add_names("three_digits", ["  vitalik.eth ", "nick"], ADMIN)

        assert result["added"] == 2
        assert fake_db.members("three_digits") == ["nick.eth", "vitalik.eth"]

    @pytest.mark.asyncio
    async def test_non_canonical_spelling_rejects_whole_batch(self, fake_db):
        with pytest.raises(HTTPException) as exc:
            await membership_service.add_names("three_digits", ["VITALIK.ETH", "nick"], ADMIN)

        assert exc.value.status_code == 400
        detail = exc.value.detail
        assert detail["invalid_names"] == ["VITALIK.ETH"]
        assert detail["valid_names"] == ["nick.eth"]
        assert detail["details"]["not_canonical"] == [
            {"name": "VITALIK.ETH", "normalized": "vitalik.eth", "reason": "must be lowercase: vitalik.eth"},
        ]
        assert detail["details"]["invalid_format"] == []
        assert fake_db.members("three_digits") == []
        assert fake_db.committed_actors == []

    @pytest.mark.asyncio
    async def test_invalid_name_rejects_whole_batch(self, fake_db):
        with pytest.raises(HTTPException) as exc:
            await membership_service.add_names("three_digits", ["vitalik.eth", "Not A Name!!"], ADMIN)

        assert exc.value.status_code == 400
        detail = exc.value.detail
        assert detail["code"] == "invalid_names"
        assert detail["valid_names"] == ["vitalik.eth"]
        assert detail["invalid_names"] == ["Not A Name!!"]
        assert detail["details"]["invalid_format"] == ["Not A Name!!"]
        assert detail["details"]["not_in_database"] == []
        assert fake_db.members("three_digits") == []
        assert fake_db.committed_actors == []

    @pytest.mark.asyncio
    async def test_unknown_name_reported_separately(self, fake_db):
        with pytest.raises(HTTPException) as exc:
            await membership_service.add_names("three_digits", ["nick.eth", "nobodyhere.eth"], ADMIN)

        details = exc.value.detail["details"]
        assert details["invalid_format"] == []
        assert details["not_in_database"] == ["nobodyhere.eth"]
        assert fake_db.members("three_digits") == []

    @pytest.mark.asyncio
    async def test_oversized_batch_rejected_before_any_query(self, fake_db):
        names = [f"name{i}.eth" for i in range(1001)]

        with pytest.raises(HTTPException) as exc:
            await membership_service.add_names("three_digits", names, ADMIN)

        assert exc.value.status_code == 400
        assert exc.value.detail["code"] == "batch_too_large"
        assert exc.value.detail["limit"] == 1000
        assert fake_db.queries == []

    @pytest.mark.asyncio
    async def test_unknown_category(self, fake_db):
        with pytest.raises(HTTPException) as exc:
            await membership_service.add_names("missing", ["vitalik.eth"], ADMIN)

        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_failure_mid_batch_rolls_back(self, fake_db):
        fake_db.fail_on_insert = "nick.eth"

        with pytest.raises(RuntimeError):
            await membership_service.add_names("three_digits", ["vitalik.eth", "nick.eth"], ADMIN)

        assert fake_db.members("three_digits") == []
        assert fake_db.categories["three_digits"]["member_count"] == 0
        assert fake_db.rollbacks == 1

    @pytest.mark.asyncio
    async def test_actor_is_stamped_on_transaction(self, fake_db):
        await membership_service.add_names("three_digits", ["brantly.eth"], ADMIN)

        assert fake_db.committed_actors == [ADMIN]


# ============================================================
# REMOVE
# ============================================================

class TestRemoveNames:

    @pytest.mark.asyncio
    async def test_remove_non_member_is_noop(self, fake_db):
        result = await membership_service.remove_names("three_digits", ["vitalik.eth"], ADMIN)

        assert result["removed"] == 0
        assert result["success"] is True

    @pytest.mark.asyncio
    async def test_remove_is_case_insensitive(self, fake_db):
        fake_db.add_member("three_digits", "vitalik.eth")

        result = await membership_service.remove_names("three_digits", ["VITALIK.eth"], ADMIN)

        assert result["removed"] == 1
        assert fake_db.categories["three_digits"]["member_count"] == 0

    @pytest.mark.asyncio
    async def test_remove_name_that_no_longer_normalizes(self, fake_db):
        fake_db.add_member("three_digits", "bad name!.eth")

        result = await membership_service.remove_names("three_digits", ["Bad Name!.eth"], ADMIN)

        assert result["removed"] == 1
        assert fake_db.members("three_digits") == []

    @pytest.mark.asyncio
    async def test_remove_oversized_batch(self, fake_db):
        with pytest.raises(HTTPException) as exc:
            await membership_service.remove_names("three_digits", ["a.eth"] * 1001, ADMIN)

        assert exc.value.detail["code"] == "batch_too_large"
        assert fake_db.queries == []

    @pytest.mark.asyncio
    async def test_remove_unknown_category(self, fake_db):
        with pytest.raises(HTTPException) as exc:
            await membership_service.remove_names("missing", ["vitalik.eth"], ADMIN)

        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_remove_blank_names(self, fake_db):
        with pytest.raises(HTTPException) as exc:
            await membership_service.remove_names("three_digits", ["  "], ADMIN)

        assert exc.value.status_code == 400


class TestRemoveNameFromCategories:

    @pytest.mark.asyncio
    async def test_removes_from_each_listed_category(self, fake_db):
        fake_db.add_category("palindromes")
        fake_db.add_member("three_digits", "ab.eth")
        fake_db.add_member("palindromes", "ab.eth")

        result = await membership_service.remove_name_from_categories(
            "AB.eth", ["three_digits", "palindromes", "missing"], ADMIN
        )

        assert result["removed"] == 2
        assert fake_db.memberships == {}
        assert fake_db.committed_actors == [ADMIN]

    @pytest.mark.asyncio
    async def test_name_in_no_category(self, fake_db):
        with pytest.raises(HTTPException) as exc:
            await membership_service.remove_name_from_categories("vitalik.eth", ["three_digits"], ADMIN)

        assert exc.value.status_code == 404
