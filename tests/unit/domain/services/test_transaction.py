"""Unit tests for the shared transaction scope."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from tablebase.domain.exceptions import ConflictError, ValidationError
from tablebase.domain.services.transaction import table_transaction, translate_integrity_error


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("UPDATE table_columns ...", {}, Exception(message))


def test_position_clash_is_conflict():
    error = _integrity_error("UNIQUE constraint failed: table_columns.table_id, table_columns.position")

    assert isinstance(translate_integrity_error(error), ConflictError)


def test_named_position_constraint_is_conflict():
    error = _integrity_error('duplicate key value violates unique constraint "uq_table_columns_table_position"')

    assert isinstance(translate_integrity_error(error), ConflictError)


def test_name_clash_is_validation_error():
    translated = translate_integrity_error(
        _integrity_error("UNIQUE constraint failed: table_columns.table_id, table_columns.name")
    )

    assert isinstance(translated, ValidationError)
    assert translated.errors[0].code == "column_name_duplicate"


def test_other_integrity_errors_pass_through():
    error = _integrity_error("FOREIGN KEY constraint failed")

    assert translate_integrity_error(error) is error


@pytest.mark.asyncio
async def test_commits_on_success():
    session = AsyncMock()

    async with table_transaction(session, "t1"):
        pass

    session.commit.assert_awaited_once()
    session.rollback.assert_not_called()


@pytest.mark.asyncio
async def test_rolls_back_on_error():
    session = AsyncMock()

    with pytest.raises(RuntimeError):
        async with table_transaction(session, "t1"):
            raise RuntimeError("boom")

    session.rollback.assert_awaited_once()
    session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_translates_integrity_error_on_commit():
    session = AsyncMock()
    session.commit.side_effect = _integrity_error("UNIQUE constraint failed: table_columns.position")

    with pytest.raises(ConflictError):
        async with table_transaction(session, "t1"):
            pass

    session.rollback.assert_awaited_once()
