"""Integration tests for MassActionService against SQLite."""

import pytest
import pytest_asyncio

from tablebase.domain.entities import OwnerIdentity, decode_cells
from tablebase.domain.exceptions import ForbiddenError, ProtectedColumnError, ValidationError
from tablebase.domain.services import MassActionService, RowService, SchemaService

ALICE = OwnerIdentity.user("alice")
BOB = OwnerIdentity.user("bob")

COLUMNS = [{"name": "name", "type": "text"}, {"name": "note", "type": "text"}]


async def _table(session, name, owner, visibility="private", table_type="default"):
    table, _ = await SchemaService(session).create_table(
        name, owner, COLUMNS, visibility=visibility, table_type=table_type
    )
    return table.id


class TestTableActions:

    @pytest.mark.asyncio
    async def test_owner_only_affects_own_tables(self, db_session, alice):
        own = await _table(db_session, "Mine", ALICE)
        other = await _table(db_session, "Theirs", BOB)

        result = await MassActionService(db_session).execute_table_action("make_public", [own, other], alice)

        assert result.requested == 2
        assert result.affected == 1
        tables = SchemaService(db_session)
        assert (await tables.get_table(own)).visibility == "public"
        assert (await tables.get_table(other)).visibility == "private"

    @pytest.mark.asyncio
    async def test_admin_affects_every_table(self, db_session, admin):
        ids = [await _table(db_session, "A", ALICE), await _table(db_session, "B", BOB)]

        result = await MassActionService(db_session).execute_table_action("make_shared", ids, admin)

        assert result.affected == 2

    @pytest.mark.asyncio
    async def test_anonymous_affects_nothing(self, db_session, anonymous):
        table_id = await _table(db_session, "Mine", ALICE)

        result = await MassActionService(db_session).execute_table_action("delete", [table_id], anonymous)

        assert result.affected == 0

    @pytest.mark.asyncio
    async def test_delete_removes_rows_and_columns(self, db_session, alice):
        table_id = await _table(db_session, "Mine", ALICE)
        rows = RowService(db_session)
        await rows.insert_row(table_id, {"name": "a"})

        result = await MassActionService(db_session).execute_table_action(
            "delete", [table_id, table_id, "missing"], alice
        )

        assert result.requested == 2
        assert result.affected == 1
        assert await rows.rows.count_for_table(table_id) == 0
        assert await rows.columns.count_for_table(table_id) == 0

    @pytest.mark.asyncio
    async def test_unknown_action(self, db_session, alice):
        with pytest.raises(ValidationError) as exc_info:
            await MassActionService(db_session).execute_table_action("archive", ["x"], alice)

        assert exc_info.value.errors[0].code == "action_invalid"

    @pytest.mark.asyncio
    async def test_ids_required(self, db_session, alice):
        with pytest.raises(ValidationError) as exc_info:
            await MassActionService(db_session).execute_table_action("delete", [], alice)

        assert exc_info.value.errors[0].code == "ids_required"


class TestRowActions:

    @pytest_asyncio.fixture
    async def shared(self, db_session):
        table_id = await _table(db_session, "Board", ALICE, visibility="shared")
        rows = RowService(db_session)
        ids = {}
        for label, author in (("a", ALICE), ("b", BOB), ("c", BOB)):
            row = await rows.insert_row(table_id, {"name": label}, author=author)
            ids[label] = row.id
        return table_id, ids

    @pytest.mark.asyncio
    async def test_writer_deletes_only_own_rows(self, db_session, bob, shared):
        table_id, ids = shared

        result = await MassActionService(db_session).execute_row_action(
            table_id, "delete", list(ids.values()), bob
        )

        assert result.requested == 3
        assert result.affected == 2
        remaining, _ = await RowService(db_session).list_rows(table_id)
        assert [row.id for row in remaining] == [ids["a"]]

    @pytest.mark.asyncio
    async def test_owner_deletes_any_row(self, db_session, alice, shared):
        table_id, ids = shared

        result = await MassActionService(db_session).execute_row_action(
            table_id, "delete", list(ids.values()), alice
        )

        assert result.affected == 3

    @pytest.mark.asyncio
    async def test_anonymous_cannot_write(self, db_session, anonymous, shared):
        table_id, ids = shared

        with pytest.raises(ForbiddenError):
            await MassActionService(db_session).execute_row_action(table_id, "delete", [ids["a"]], anonymous)

    @pytest.mark.asyncio
    async def test_set_field_value(self, db_session, alice, shared):
        table_id, ids = shared

        result = await MassActionService(db_session).execute_row_action(
            table_id, "set_field_value", [ids["a"], ids["b"]], alice, field_name="note", value="checked"
        )

        assert result.affected == 2
        rows = RowService(db_session)
        for label in ("a", "b"):
            row = await rows.get_row(table_id, ids[label])
            assert decode_cells(row.data)["note"].value == "checked"
        untouched = await rows.get_row(table_id, ids["c"])
        assert "note" not in decode_cells(untouched.data)

    @pytest.mark.asyncio
    async def test_set_field_value_validates(self, db_session, alice, shared):
        table_id, ids = shared

        with pytest.raises(ValidationError) as exc_info:
            await MassActionService(db_session).execute_row_action(
                table_id, "set_field_value", [ids["a"]], alice, field_name="note", value=3
            )

        assert exc_info.value.errors[0].code == "invalid_type"

    @pytest.mark.asyncio
    async def test_set_field_value_unknown_column(self, db_session, alice, shared):
        table_id, ids = shared

        with pytest.raises(ValidationError) as exc_info:
            await MassActionService(db_session).execute_row_action(
                table_id, "set_field_value", [ids["a"]], alice, field_name="colour", value="red"
            )

        assert exc_info.value.errors[0].code == "unknown_field"


class TestColumnActions:

    @pytest.mark.asyncio
    async def test_delete_with_protected_column_rejected(self, db_session, alice):
        table_id = await _table(db_session, "Shop", ALICE, table_type="sale")
        columns = await SchemaService(db_session).get_columns(table_id)
        column_ids = [column.id for column in columns]

        with pytest.raises(ProtectedColumnError):
            await MassActionService(db_session).execute_column_action(table_id, "delete", column_ids, alice)

        assert len(await SchemaService(db_session).get_columns(table_id)) == len(column_ids)

    @pytest.mark.asyncio
    async def test_delete_columns(self, db_session, alice):
        table_id = await _table(db_session, "Mine", ALICE)
        columns = await SchemaService(db_session).get_columns(table_id)
        note_id = next(column.id for column in columns if column.name == "note")

        result = await MassActionService(db_session).execute_column_action(table_id, "delete", [note_id], alice)

        assert result.affected == 1
        assert [c.name for c in await SchemaService(db_session).get_columns(table_id)] == ["name"]

    @pytest.mark.asyncio
    async def test_make_required_then_optional(self, db_session, alice):
        table_id = await _table(db_session, "Mine", ALICE)
        schema = SchemaService(db_session)
        column_ids = [column.id for column in await schema.get_columns(table_id)]
        service = MassActionService(db_session)

        await service.execute_column_action(table_id, "make_required", column_ids, alice)
        assert all(c.is_required for c in await schema.get_columns(table_id))

        result = await service.execute_column_action(table_id, "make_optional", column_ids[:1], alice)
        assert result.affected == 1
        assert [c.is_required for c in await schema.get_columns(table_id)] == [False, True]

    @pytest.mark.asyncio
    async def test_requires_admin_access(self, db_session, bob):
        table_id = await _table(db_session, "Board", ALICE, visibility="shared")
        column_ids = [column.id for column in await SchemaService(db_session).get_columns(table_id)]

        with pytest.raises(ForbiddenError):
            await MassActionService(db_session).execute_column_action(table_id, "make_required", column_ids, bob)
