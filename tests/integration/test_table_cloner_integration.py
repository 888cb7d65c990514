"""Integration tests for TableCloner against SQLite."""

import pytest
import pytest_asyncio

from tablebase.domain.entities import OwnerIdentity
from tablebase.domain.exceptions import NotFoundError, ValidationError
from tablebase.domain.services import RowService, SchemaService, TableCloner

ALICE = OwnerIdentity.user("alice")
BOB = OwnerIdentity.user("bob")


@pytest_asyncio.fixture
async def source(db_session):
    schema = SchemaService(db_session)
    table, _ = await schema.create_table(
        "Items",
        ALICE,
        [
            {"name": "title", "type": "text", "is_required": True},
            {"name": "sku", "type": "text", "allow_duplicates": False},
            {"name": "stock", "type": "integer", "default_value": "0"},
        ],
        description="Stock list",
        visibility="public",
        table_type="sale",
    )
    await RowService(db_session).insert_row(table.id, {"title": "Lamp", "price": 10})
    return table.id


@pytest.mark.asyncio
async def test_clone_copies_structure_without_rows(db_session, source):
    schema = SchemaService(db_session)
    _, source_columns = await schema.get_table_schema(source)

    clone, columns = await TableCloner(db_session).clone_table(source, BOB)

    assert clone.id != source
    assert clone.name == "Items Copy"
    assert clone.owner == BOB
    assert clone.table_type == "sale"
    assert clone.description == "Stock list"
    assert clone.visibility == "public"
    assert [(c.name, c.type, c.position, c.is_required, c.allow_duplicates, c.default_value) for c in columns] == [
        (c.name, c.type, c.position, c.is_required, c.allow_duplicates, c.default_value) for c in source_columns
    ]
    assert await RowService(db_session).rows.count_for_table(clone.id) == 0


@pytest.mark.asyncio
async def test_repeated_clones_are_numbered(db_session, source):
    cloner = TableCloner(db_session)

    first, _ = await cloner.clone_table(source, ALICE)
    second, _ = await cloner.clone_table(source, ALICE)

    assert first.name == "Items Copy"
    assert second.name == "Items Copy 2"


@pytest.mark.asyncio
async def test_explicit_name_kept_when_free(db_session, source):
    clone, _ = await TableCloner(db_session).clone_table(source, ALICE, name="Inventory", visibility="private")

    assert clone.name == "Inventory"
    assert clone.visibility == "private"


@pytest.mark.asyncio
async def test_explicit_name_taken_gets_suffix(db_session, source):
    clone, _ = await TableCloner(db_session).clone_table(source, ALICE, name="items")

    assert clone.name == "items Copy"


@pytest.mark.asyncio
async def test_invalid_visibility_rejected(db_session, source):
    with pytest.raises(ValidationError):
        await TableCloner(db_session).clone_table(source, ALICE, visibility="hidden")


@pytest.mark.asyncio
async def test_missing_source(db_session):
    with pytest.raises(NotFoundError):
        await TableCloner(db_session).clone_table("missing", ALICE)


@pytest.mark.asyncio
async def test_clone_of_longest_name_fits_limit(db_session):
    table, _ = await SchemaService(db_session).create_table("N" * 100, ALICE, [{"name": "a", "type": "text"}])
    cloner = TableCloner(db_session)

    first, _ = await cloner.clone_table(table.id, ALICE)
    second, _ = await cloner.clone_table(table.id, ALICE)

    assert first.name == "N" * 95 + " Copy"
    assert second.name == "N" * 93 + " Copy 2"
    assert all(len(clone.name) <= 100 for clone in (first, second))
