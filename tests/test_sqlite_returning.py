"""
End-to-end mutation tests on in-memory SQLite.
"""

import sqlite3
from dataclasses import dataclass
from typing import Optional

import pytest

from quarry.faults import NotSupportedFault, RecordNotFoundFault
from quarry.result import PlainResult, ReturningResult

pytestmark = pytest.mark.skipif(
    sqlite3.sqlite_version_info < (3, 35, 0),
    reason=f"sqlite {sqlite3.sqlite_version} has no RETURNING",
)


@dataclass
class User:
    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    score: int = 0


class TestInsertReturning:

    @pytest.mark.asyncio
    async def test_three_rows_with_named_fields(self, users_db):
        result = await (
            users_db.table("users")
            .data([{"name": "a"}, {"name": "b"}, {"name": "c"}])
            .returning("id", "name")
            .insert()
        )
        records = result.get_records()
        assert isinstance(result, ReturningResult)
        assert result.rows_affected() == 3
        assert records.column("name") == ["a", "b", "c"]
        assert records.column("id") == [1, 2, 3]
        assert list(records[0]) == ["id", "name"]
        with pytest.raises(NotSupportedFault):
            result.last_insert_id()

    @pytest.mark.asyncio
    async def test_rows_are_committed(self, users_db):
        await users_db.table("users").data({"name": "a"}).returning("id").insert()
        rows = await users_db.fetch_all("SELECT name FROM users")
        assert rows == [{"name": "a"}]

    @pytest.mark.asyncio
    async def test_auto_primary_key(self, users_db):
        result = await users_db.table("users").data([{"name": "a"}, {"name": "b"}]).insert()
        assert isinstance(result, PlainResult)
        assert result.rows_affected() == 2
        assert result.last_insert_id() == 2
        assert result.has_records is False

    @pytest.mark.asyncio
    async def test_plain_insert_uses_native_id(self, users_db):
        result = await users_db.table("users").data({"name": "a"}).auto_primary_key(False).insert()
        assert result.last_insert_id() == 1
        assert result.rows_affected() == 1

    @pytest.mark.asyncio
    async def test_insert_ignore_skips_duplicates(self, users_db):
        await users_db.table("users").data({"name": "a", "email": "a@x"}).insert()
        result = await (
            users_db.table("users")
            .data({"name": "dup", "email": "a@x"})
            .returning_all()
            .insert_ignore()
        )
        assert result.rows_affected() == 0

    @pytest.mark.asyncio
    async def test_save_upserts(self, users_db):
        await users_db.table("users").data({"id": 1, "name": "a"}).insert()
        result = await users_db.table("users").data({"id": 1, "name": "b"}).returning("id", "name").save()
        assert result.get_records().to_list() == [{"id": 1, "name": "b"}]


class TestUpdateDeleteReturning:

    @pytest.mark.asyncio
    async def test_update_returns_post_values(self, users_db):
        await users_db.table("users").data([{"name": "a"}, {"name": "b"}, {"name": "c"}]).insert()
        result = await (
            users_db.table("users")
            .where("id <= ?", 2)
            .data({"score": 10})
            .returning_all()
            .update()
        )
        assert result.rows_affected() == 2
        assert sorted(r["score"] for r in result.get_records()) == [10, 10]
        assert set(result.get_records().column("name")) == {"a", "b"}

    @pytest.mark.asyncio
    async def test_delete_returning(self, users_db):
        await users_db.table("users").data([{"name": "a"}, {"name": "b"}]).insert()
        result = await users_db.table("users").where(name="a").returning("id").delete()
        assert result.get_records().column("id") == [1]
        remaining = await users_db.fetch_all("SELECT name FROM users")
        assert remaining == [{"name": "b"}]

    @pytest.mark.asyncio
    async def test_plain_delete_count(self, users_db):
        await users_db.table("users").data([{"name": "a"}, {"name": "b"}]).insert()
        result = await users_db.table("users").where("1 = 1").delete()
        assert result.rows_affected() == 2


class TestScanHelpers:

    @pytest.mark.asyncio
    async def test_insert_and_scan_class(self, users_db):
        users = await users_db.table("users").data([{"name": "a"}, {"name": "b"}]).insert_and_scan(User)
        assert [u.name for u in users] == ["a", "b"]
        assert all(u.id is not None for u in users)
        assert users[0].score == 0

    @pytest.mark.asyncio
    async def test_update_and_scan_merges_instance(self, users_db):
        await users_db.table("users").data({"name": "a", "email": "a@x"}).insert()
        existing = User(id=1, name="stale", email="keep@me")
        out = await users_db.table("users").where(id=1).data({"name": "fresh"}).update_and_scan(existing)
        assert out is existing
        assert existing.name == "fresh"
        assert existing.email == "a@x"

    @pytest.mark.asyncio
    async def test_delete_and_scan_extends_list(self, users_db):
        await users_db.table("users").data([{"name": "a"}, {"name": "b"}]).insert()
        gone = [User(id=99, name="already")]
        await users_db.table("users").where("1 = 1").delete_and_scan(gone)
        assert [u.name for u in gone] == ["already", "a", "b"]

    @pytest.mark.asyncio
    async def test_zero_rows_not_found(self, users_db):
        with pytest.raises(RecordNotFoundFault):
            await users_db.table("users").where(id=404).data({"name": "x"}).update_and_scan(User)

    @pytest.mark.asyncio
    async def test_save_and_scan(self, users_db):
        rows = await users_db.table("users").data({"id": 5, "name": "e"}).save_and_scan(User)
        assert rows == [User(id=5, name="e", email=None, score=0)]


class TestTransactions:

    @pytest.mark.asyncio
    async def test_commit(self, users_db):
        async with users_db.transaction() as tx:
            result = await users_db.table("users").data({"name": "a"}).returning("id").insert()
            assert tx.is_transaction()
            assert result.rows_affected() == 1
        rows = await users_db.fetch_all("SELECT name FROM users")
        assert rows == [{"name": "a"}]

    @pytest.mark.asyncio
    async def test_rollback(self, users_db):
        with pytest.raises(RuntimeError):
            async with users_db.transaction():
                await users_db.table("users").data({"name": "a"}).returning("id").insert()
                raise RuntimeError("boom")
        rows = await users_db.fetch_all("SELECT name FROM users")
        assert rows == []

    @pytest.mark.asyncio
    async def test_nested_joins_outer(self, users_db):
        async with users_db.transaction() as outer:
            async with users_db.transaction() as inner:
                assert inner is outer
