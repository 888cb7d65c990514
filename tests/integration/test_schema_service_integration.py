"""Integration tests for SchemaService against SQLite."""

import asyncio

import pytest

from tablebase.domain.entities import OwnerIdentity
from tablebase.domain.exceptions import NotFoundError, ProtectedColumnError, ValidationError
from tablebase.domain.services import RowService, SchemaService

ALICE = OwnerIdentity.user("alice")
BOB = OwnerIdentity.user("bob")


def _layout(columns):
    return [(c.name, c.position) for c in columns]


async def _create(session, name="Items", columns=None, owner=ALICE, **kwargs):
    table, created = await SchemaService(session).create_table(
        name=name,
        owner=owner,
        columns=columns if columns is not None else [{"name": "title", "type": "text"}],
        **kwargs,
    )
    return table.id, created


class TestCreateTable:

    @pytest.mark.asyncio
    async def test_positions_follow_definition_order(self, db_session):
        _, columns = await _create(
            db_session,
            columns=[
                {"name": "title", "type": "text"},
                {"name": "email", "type": "email"},
                {"name": "stars", "type": "rating"},
            ],
        )

        assert _layout(columns) == [("title", 0), ("email", 1), ("stars", 2)]

    @pytest.mark.asyncio
    async def test_explicit_positions_are_renumbered(self, db_session):
        _, columns = await _create(
            db_session,
            columns=[
                {"name": "b", "type": "text", "position": 7},
                {"name": "a", "type": "text", "position": 2},
            ],
        )

        assert _layout(columns) == [("a", 0), ("b", 1)]

    @pytest.mark.asyncio
    async def test_sale_table_gets_required_columns(self, db_session):
        table_id, columns = await _create(db_session, name="Shop", table_type="sale")

        assert _layout(columns) == [("title", 0), ("price", 1), ("qty", 2)]
        qty = columns[2]
        assert qty.type == "number" and qty.is_required and qty.default_value == "1"

        created = await SchemaService(db_session).ensure_required_columns(table_id)
        assert created == []
        assert len(await SchemaService(db_session).get_columns(table_id)) == 3

    @pytest.mark.asyncio
    async def test_rent_table_defaults_to_monthly(self, db_session):
        service = SchemaService(db_session)
        table, columns = await service.create_table("Bikes", ALICE, [], table_type="rent")

        assert table.rental_period == "month"
        assert [c.name for c in columns] == ["price", "fee", "used", "available"]

    @pytest.mark.asyncio
    async def test_case_variant_of_required_column_is_renamed(self, db_session):
        _, columns = await _create(
            db_session, columns=[{"name": "Price", "type": "currency"}], table_type="sale"
        )

        assert _layout(columns) == [("price", 0), ("qty", 1)]
        assert columns[0].type == "currency"

    @pytest.mark.asyncio
    async def test_invalid_definition_creates_nothing(self, db_session, alice):
        service = SchemaService(db_session)

        with pytest.raises(ValidationError) as exc_info:
            await service.create_table(
                "Items",
                ALICE,
                [{"name": "a", "type": "text"}, {"name": "A", "type": "text"}],
            )

        assert exc_info.value.errors[0].code == "column_name_duplicate"
        _, total = await service.list_tables(alice)
        assert total == 0

    @pytest.mark.asyncio
    async def test_unknown_product_id_column(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await _create(db_session, product_id_column="sku")

        assert exc_info.value.errors[0].code == "product_id_column_unknown"

    @pytest.mark.asyncio
    async def test_product_id_may_name_a_required_column(self, db_session):
        table_id, _ = await _create(db_session, table_type="sale", product_id_column="price")

        table = await SchemaService(db_session).get_table(table_id)
        assert table.product_id_column == "price"

    @pytest.mark.asyncio
    async def test_product_id_reference_stored_with_column_case(self, db_session):
        table_id, columns = await _create(
            db_session,
            columns=[{"name": "sku", "type": "text"}, {"name": "b", "type": "text"}],
            product_id_column="SKU",
        )
        service = SchemaService(db_session)
        assert (await service.get_table(table_id)).product_id_column == "sku"

        await service.delete_column(table_id, columns[0].id)

        assert (await service.get_table(table_id)).product_id_column is None
        assert [c.name for c in await service.get_columns(table_id)] == ["b"]

    @pytest.mark.asyncio
    async def test_product_id_case_variant_of_required_column(self, db_session):
        table_id, _ = await _create(
            db_session, columns=[{"name": "Price", "type": "number"}], table_type="sale", product_id_column="PRICE"
        )

        assert (await SchemaService(db_session).get_table(table_id)).product_id_column == "price"


class TestColumns:

    @pytest.mark.asyncio
    async def test_add_appends(self, db_session):
        table_id, _ = await _create(db_session)

        column = await SchemaService(db_session).add_column(table_id, {"name": "note", "type": "textarea"})

        assert column.position == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [0, 1, 2, 3])
    async def test_insert_at_position(self, db_session, target):
        names = ["a", "b", "c"]
        table_id, _ = await _create(db_session, columns=[{"name": n, "type": "text"} for n in names])
        service = SchemaService(db_session)

        await service.add_column(table_id, {"name": "new", "type": "text"}, position=target)

        expected = names[:target] + ["new"] + names[target:]
        assert _layout(await service.get_columns(table_id)) == [(n, i) for i, n in enumerate(expected)]

    @pytest.mark.asyncio
    async def test_move_text_above_email(self, db_session):
        table_id, columns = await _create(
            db_session,
            columns=[{"name": "email", "type": "email"}, {"name": "text", "type": "text"}],
        )
        text_id = columns[1].id

        moved = await SchemaService(db_session).move_column(table_id, text_id, "up")

        assert _layout(moved) == [("text", 0), ("email", 1)]

    @pytest.mark.asyncio
    async def test_swap(self, db_session):
        table_id, columns = await _create(
            db_session, columns=[{"name": n, "type": "text"} for n in ("a", "b", "c")]
        )

        swapped = await SchemaService(db_session).swap_columns(table_id, columns[0].id, columns[2].id)

        assert _layout(swapped) == [("c", 0), ("b", 1), ("a", 2)]

    @pytest.mark.asyncio
    async def test_delete_leaves_gap_until_next_positional_change(self, db_session):
        table_id, columns = await _create(
            db_session, columns=[{"name": n, "type": "text"} for n in ("a", "b", "c")]
        )
        service = SchemaService(db_session)

        await service.delete_column(table_id, columns[1].id)
        assert _layout(await service.get_columns(table_id)) == [("a", 0), ("c", 2)]

        await service.add_column(table_id, {"name": "d", "type": "text"})
        assert _layout(await service.get_columns(table_id)) == [("a", 0), ("c", 1), ("d", 2)]

    @pytest.mark.asyncio
    async def test_compact_positions(self, db_session):
        table_id, columns = await _create(
            db_session, columns=[{"name": n, "type": "text"} for n in ("a", "b", "c")]
        )
        service = SchemaService(db_session)
        await service.delete_column(table_id, columns[0].id)

        compacted = await service.compact_positions(table_id)

        assert _layout(compacted) == [("b", 0), ("c", 1)]

    @pytest.mark.asyncio
    async def test_duplicate_name_ignoring_case(self, db_session):
        table_id, _ = await _create(db_session)
        service = SchemaService(db_session)

        with pytest.raises(ValidationError) as exc_info:
            await service.add_column(table_id, {"name": "TITLE", "type": "text"})

        assert exc_info.value.errors[0].code == "column_name_duplicate"
        assert len(await service.get_columns(table_id)) == 1

    @pytest.mark.asyncio
    async def test_update_column_fields_and_position(self, db_session):
        table_id, columns = await _create(
            db_session, columns=[{"name": n, "type": "text"} for n in ("a", "b", "c")]
        )
        column_id = columns[0].id
        service = SchemaService(db_session)

        updated = await service.update_column(
            table_id, column_id, {"name": "alpha", "allow_duplicates": False, "position": 2}
        )

        assert updated.name == "alpha"
        assert updated.allow_duplicates is False
        assert _layout(await service.get_columns(table_id)) == [("b", 0), ("c", 1), ("alpha", 2)]

    @pytest.mark.asyncio
    async def test_update_column_rejects_bad_default(self, db_session):
        table_id, columns = await _create(db_session, columns=[{"name": "qty", "type": "integer"}])

        with pytest.raises(ValidationError):
            await SchemaService(db_session).update_column(table_id, columns[0].id, {"default_value": "many"})

    @pytest.mark.asyncio
    async def test_rename_updates_product_id_column(self, db_session):
        table_id, columns = await _create(db_session, product_id_column="title")
        service = SchemaService(db_session)

        await service.update_column(table_id, columns[0].id, {"name": "sku"})

        assert (await service.get_table(table_id)).product_id_column == "sku"

    @pytest.mark.asyncio
    async def test_update_table_stores_product_id_with_column_case(self, db_session):
        table_id, columns = await _create(db_session)
        service = SchemaService(db_session)

        await service.update_table(table_id, {"product_id_column": "TITLE"})
        await service.update_column(table_id, columns[0].id, {"name": "label"})

        assert (await service.get_table(table_id)).product_id_column == "label"

    @pytest.mark.asyncio
    async def test_unknown_column(self, db_session):
        table_id, _ = await _create(db_session)

        with pytest.raises(NotFoundError):
            await SchemaService(db_session).delete_column(table_id, "missing")


class TestProtectedColumns:

    @pytest.mark.asyncio
    async def test_protected_delete_rejected(self, db_session):
        table_id, columns = await _create(db_session, table_type="sale")
        price_id = columns[1].id
        before = _layout(columns)
        service = SchemaService(db_session)

        with pytest.raises(ProtectedColumnError) as exc_info:
            await service.delete_column(table_id, price_id)

        assert exc_info.value.column_name == "price"
        assert _layout(await service.get_columns(table_id)) == before

    @pytest.mark.asyncio
    async def test_protected_rename_rejected(self, db_session):
        table_id, columns = await _create(db_session, table_type="sale")
        qty_id = columns[2].id

        with pytest.raises(ProtectedColumnError):
            await SchemaService(db_session).update_column(table_id, qty_id, {"name": "quantity"})

    @pytest.mark.asyncio
    async def test_protected_column_may_change_type(self, db_session):
        table_id, columns = await _create(db_session, table_type="sale")
        price_id = columns[1].id

        updated = await SchemaService(db_session).update_column(table_id, price_id, {"type": "currency"})

        assert updated.type == "currency"

    @pytest.mark.asyncio
    async def test_is_column_protected(self, db_session):
        table_id, _ = await _create(db_session, table_type="rent")
        service = SchemaService(db_session)

        assert await service.is_column_protected(table_id, "fee") is True
        assert await service.is_column_protected(table_id, "title") is False

    @pytest.mark.asyncio
    async def test_switch_to_default_lifts_protection(self, db_session):
        table_id, columns = await _create(db_session, table_type="rent")
        fee_id = columns[2].id
        service = SchemaService(db_session)

        table = await service.update_table(table_id, {"table_type": "default"})
        assert table.rental_period is None
        assert [c.name for c in await service.get_columns(table_id)] == [
            "title", "price", "fee", "used", "available"
        ]

        await service.delete_column(table_id, fee_id)
        assert "fee" not in [c.name for c in await service.get_columns(table_id)]

    @pytest.mark.asyncio
    async def test_switch_to_sale_adds_columns(self, db_session):
        table_id, columns = await _create(
            db_session, columns=[{"name": n, "type": "text"} for n in ("a", "b", "c")]
        )
        service = SchemaService(db_session)
        await service.delete_column(table_id, columns[1].id)

        await service.update_table(table_id, {"table_type": "sale"})

        assert _layout(await service.get_columns(table_id)) == [
            ("a", 0), ("c", 1), ("price", 2), ("qty", 3)
        ]


class TestTables:

    @pytest.mark.asyncio
    async def test_visibility_change_touches_only_table(self, db_session):
        table_id, _ = await _create(db_session, columns=[{"name": "title", "type": "text"}])
        service = SchemaService(db_session)
        row = await RowService(db_session).insert_row(table_id, {"title": "Lamp"}, author=ALICE)
        row_updated_at = row.updated_at
        table = await service.get_table(table_id)
        previous = table.updated_at
        columns_before = _layout(await service.get_columns(table_id))

        for visibility in ("public", "shared", "private"):
            await asyncio.sleep(0.01)
            table = await service.update_table(table_id, {"visibility": visibility})
            assert table.visibility == visibility
            assert table.updated_at > previous
            previous = table.updated_at

        assert _layout(await service.get_columns(table_id)) == columns_before
        stored = await RowService(db_session).get_row(table_id, row.id)
        await db_session.refresh(stored)
        assert stored.updated_at == row_updated_at

    @pytest.mark.asyncio
    async def test_sparse_update(self, db_session):
        table_id, _ = await _create(db_session, description="Original")
        service = SchemaService(db_session)

        table = await service.update_table(table_id, {"name": "  Renamed "})

        assert table.name == "Renamed"
        assert table.description == "Original"

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, db_session):
        table_id, _ = await _create(db_session)

        with pytest.raises(ValidationError):
            await SchemaService(db_session).update_table(table_id, {})

    @pytest.mark.asyncio
    async def test_invalid_visibility_rejected(self, db_session):
        table_id, _ = await _create(db_session)

        with pytest.raises(ValidationError) as exc_info:
            await SchemaService(db_session).update_table(table_id, {"visibility": "hidden"})

        assert exc_info.value.errors[0].code == "visibility_invalid"

    @pytest.mark.asyncio
    async def test_delete_cascades(self, db_session):
        table_id, _ = await _create(db_session)
        rows = RowService(db_session)
        await rows.insert_row(table_id, {"title": "Lamp"}, author=ALICE)
        service = SchemaService(db_session)

        await service.delete_table(table_id)

        with pytest.raises(NotFoundError):
            await service.get_table(table_id)
        assert await service.columns.count_for_table(table_id) == 0
        assert await rows.rows.count_for_table(table_id) == 0

    @pytest.mark.asyncio
    async def test_delete_missing_table(self, db_session):
        with pytest.raises(NotFoundError):
            await SchemaService(db_session).delete_table("missing")

    @pytest.mark.asyncio
    async def test_listing_respects_visibility(self, db_session, alice, bob, admin, anonymous):
        await _create(db_session, name="Alice private", owner=ALICE)
        await _create(db_session, name="Alice public", owner=ALICE, visibility="public")
        await _create(db_session, name="Bob private", owner=BOB)
        await _create(db_session, name="Bob shared", owner=BOB, visibility="shared")
        service = SchemaService(db_session)

        async def names(requester, **kwargs):
            tables, _ = await service.list_tables(requester, sort_by="name", sort_order="asc", **kwargs)
            return [t.name for t in tables]

        assert await names(anonymous) == ["Alice public", "Bob shared"]
        assert await names(alice) == ["Alice private", "Alice public", "Bob shared"]
        assert await names(alice, owned=True) == ["Alice private", "Alice public"]
        assert await names(bob, name="alice") == ["Alice public"]
        assert len(await names(admin)) == 4
        assert await names(admin, visibility="private") == ["Alice private", "Bob private"]

    @pytest.mark.asyncio
    async def test_listing_pages(self, db_session, alice):
        for i in range(5):
            await _create(db_session, name=f"T{i}")

        tables, total = await SchemaService(db_session).list_tables(
            alice, page=2, page_size=2, sort_by="name", sort_order="asc"
        )

        assert total == 5
        assert [t.name for t in tables] == ["T2", "T3"]

    @pytest.mark.asyncio
    async def test_name_filter_matches_wildcards_literally(self, db_session, alice):
        for name in ("Q_1", "QX1", "50% off", "500 offers"):
            await _create(db_session, name=name)
        service = SchemaService(db_session)

        underscore, total = await service.list_tables(alice, name="q_1")
        percent, _ = await service.list_tables(alice, name="0% o")

        assert total == 1
        assert [t.name for t in underscore] == ["Q_1"]
        assert [t.name for t in percent] == ["50% off"]
