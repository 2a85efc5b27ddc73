"""
Table Builder Tests — immutability, validation and routing to the executor.
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from quarry.db import QuarryDatabase
from quarry.dialects import Operation
from quarry.faults import MaterializeFault, NotSupportedFault
from quarry.table import Table


@dataclass
class Item:
    id: Optional[int] = None
    title: Optional[str] = None


@pytest.fixture
def offline_db():
    """Unconnected database; builder methods never touch the driver."""
    return QuarryDatabase("sqlite:///:memory:")


class TestBuilder:

    def test_chaining_returns_new_instances(self, offline_db):
        base = offline_db.table("items")
        narrowed = base.where(id=1)
        assert narrowed is not base
        assert base.returning("id").options.returning == ("id",)
        assert base.options.returning == ()

    def test_returning_all(self, offline_db):
        assert offline_db.table("items").returning_all().options.returning == ("*",)

    def test_data_from_objects(self, offline_db):
        t = offline_db.table("items").data(Item(id=None, title="x"))
        assert t._rows == ({"id": None, "title": "x"},)

    def test_data_rejects_scalars(self, offline_db):
        with pytest.raises(TypeError):
            offline_db.table("items").data(5)

    def test_requires_name(self, offline_db):
        with pytest.raises(ValueError):
            Table(offline_db, "")

    def test_timeout_and_primary_key(self, offline_db):
        t = offline_db.table("items").timeout(2.5).primary_key("item_id", "bigint")
        assert t.options.timeout == 2.5
        assert t.options.primary_key.name == "item_id"
        assert t.options.primary_key.is_integer


class TestValidation:

    @pytest.mark.asyncio
    async def test_delete_without_where(self, db, fake_link):
        with pytest.raises(ValueError):
            await db.table("items").link(fake_link()).delete()

    @pytest.mark.asyncio
    async def test_update_without_where(self, db, fake_link):
        with pytest.raises(ValueError):
            await db.table("items").data({"title": "x"}).link(fake_link()).update()

    @pytest.mark.asyncio
    async def test_update_needs_single_mapping(self, db, fake_link):
        t = db.table("items").where(id=1).data([{"title": "a"}, {"title": "b"}]).link(fake_link())
        with pytest.raises(ValueError):
            await t.update()

    @pytest.mark.asyncio
    async def test_insert_without_data(self, db, fake_link):
        with pytest.raises(ValueError):
            await db.table("items").link(fake_link()).insert()

    def test_positional_args_need_clause(self, offline_db):
        with pytest.raises(TypeError):
            offline_db.table("items").where(None, 1)


class TestWhereBinding:

    @pytest.mark.parametrize(
        "clause, args, kwargs, sql, values",
        [
            ("a = :b AND c = :a", (), {"a": 1, "b": 2}, "a = ? AND c = ?", (2, 1)),
            ("a = :x OR b = :x", (), {"x": 7}, "a = ? OR b = ?", (7, 7)),
            ("identifier = :identifier AND id = :id", (), {"id": 1, "identifier": "k"},
             "identifier = ? AND id = ?", ("k", 1)),
            ("a = ? AND b = :b AND c = ?", (5, 6), {"b": 2}, "a = ? AND b = ? AND c = ?", (5, 2, 6)),
            ("note = ':skip ?' AND id = :id", (), {"id": 3}, "note = ':skip ?' AND id = ?", (3,)),
            ("created::date = :day", (), {"day": "2024-01-01"}, "created::date = ?", ("2024-01-01",)),
        ],
    )
    def test_values_follow_placeholder_order(self, offline_db, clause, args, kwargs, sql, values):
        cond = offline_db.table("items").where(clause, *args, **kwargs)._conditions[0]
        assert cond.text == sql
        assert cond.args == values

    @pytest.mark.parametrize(
        "clause, args, kwargs",
        [
            ("a = :a AND b = :b", (), {"a": 1}),
            ("a = :a", (), {"a": 1, "b": 2}),
            ("a = ? AND b = :b", (), {"b": 2}),
            ("b = :b", (1,), {"b": 2}),
        ],
    )
    def test_mismatched_values_rejected(self, offline_db, clause, args, kwargs):
        with pytest.raises(TypeError):
            offline_db.table("items").where(clause, *args, **kwargs)


class TestRouting:

    @pytest.mark.asyncio
    async def test_named_where_params(self, db, fake_link):
        link = fake_link("postgresql", rowcount=1)
        await db.table("items").where("title = :t AND id > :min", t="x", min=3).link(link).delete()
        _, sql, params = link.calls[-1]
        assert sql == 'DELETE FROM "items" WHERE (title = ? AND id > ?)'
        assert params == ["x", 3]

    @pytest.mark.asyncio
    async def test_named_where_params_reversed(self, db, fake_link):
        link = fake_link("postgresql", rowcount=1)
        await db.table("items").where("a = :b AND c = :a", a=1, b=2).link(link).delete()
        _, sql, params = link.calls[-1]
        assert sql == 'DELETE FROM "items" WHERE (a = ? AND c = ?)'
        assert params == [2, 1]

    @pytest.mark.asyncio
    async def test_save_conflict_from_hint(self, db, fake_link):
        link = fake_link("postgresql", rows=[{"item_id": 1}])
        await db.table("items").primary_key("item_id").data({"item_id": 1, "title": "x"}).link(link).save()
        assert 'ON CONFLICT ("item_id") DO UPDATE SET "title" = EXCLUDED."title"' in link.last_sql

    @pytest.mark.asyncio
    async def test_save_conflict_from_introspection(self, db, fake_link, pk_column):
        link = fake_link("mysql", "8.0.36", primary_keys=[pk_column("id")])
        await db.table("items").data({"id": 1, "title": "x"}).link(link).save()
        assert link.last_sql.endswith("ON DUPLICATE KEY UPDATE `title` = VALUES(`title`)")

    @pytest.mark.asyncio
    async def test_explicit_on_conflict(self, db, fake_link):
        link = fake_link("postgresql")
        await db.table("items").on_conflict("title").data({"title": "x", "n": 1}).auto_primary_key(False).link(link).save()
        assert 'ON CONFLICT ("title")' in link.last_sql

    @pytest.mark.asyncio
    async def test_mysql_returning_delete_fails_plain_succeeds(self, db, fake_link):
        link = fake_link("mysql", "8.0.36", rowcount=2)
        with pytest.raises(NotSupportedFault):
            await db.table("items").where(id=[1, 2]).returning("id").link(link).delete()
        result = await db.table("items").where(id=[1, 2]).link(link).delete()
        assert result.rows_affected() == 2

    @pytest.mark.asyncio
    async def test_supports_multi_row_returning(self, db, fake_link):
        assert await db.table("items").link(fake_link("postgresql")).supports_multi_row_returning() is True
        assert await db.table("items").link(fake_link("mysql", "8.0")).supports_multi_row_returning(Operation.INSERT) is False


class TestScanRouting:

    @pytest.mark.asyncio
    async def test_scan_forces_returning_all(self, db, fake_link):
        link = fake_link("postgresql", rows=[{"id": 1, "title": "a"}])
        items = await db.table("items").data({"title": "a"}).returning("id").link(link).insert_and_scan(Item)
        assert items == [Item(1, "a")]
        assert link.last_sql.endswith("RETURNING *")

    @pytest.mark.asyncio
    async def test_scan_not_supported(self, db, fake_link):
        link = fake_link("mysql", "8.0")
        with pytest.raises(NotSupportedFault):
            await db.table("items").data({"title": "a"}).link(link).insert_and_scan(Item)
        assert link.calls == []

    @pytest.mark.asyncio
    async def test_scan_into_empty_list_needs_model(self, db, fake_link):
        link = fake_link("postgresql", rows=[{"id": 1, "title": "a"}])
        with pytest.raises(MaterializeFault):
            await db.table("items").data({"title": "a"}).link(link).insert_and_scan([])

        out = []
        await db.table("items").data({"title": "a"}).link(link).insert_and_scan(out, model=Item)
        assert out == [Item(1, "a")]

    @pytest.mark.asyncio
    async def test_scan_into_wrong_shape(self, db, fake_link):
        link = fake_link("postgresql", rows=[{"id": 1}])
        with pytest.raises(MaterializeFault):
            await db.table("items").data({"title": "a"}).link(link).insert_and_scan({"not": "allowed"})
