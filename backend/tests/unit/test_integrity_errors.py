"""Unit tests for mapping store IntegrityErrors onto blind-index fields."""

import pytest
from sqlalchemy.exc import IntegrityError

from relish.domain.records.store import duplicate_index_field


class FakePgError(Exception):
    def __init__(self, message: str, sqlstate: str) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def _integrity_error(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, orig)


class TestDuplicateIndexField:
    """Test unique-violation detection."""

    def test_sqlite_unique_violation(self):
        exc = _integrity_error(
            Exception("UNIQUE constraint failed: contacts.user_id, contacts.email_idx")
        )
        assert duplicate_index_field(exc, ["email"]) == "email"

    def test_postgres_unique_violation(self):
        exc = _integrity_error(
            FakePgError(
                'duplicate key value violates unique constraint "uq_contacts_user_id_email_idx"',
                "23505",
            )
        )
        assert duplicate_index_field(exc, ["email"]) == "email"

    def test_unique_violation_on_other_column(self):
        exc = _integrity_error(Exception("UNIQUE constraint failed: tags.user_id, tags.slug"))
        assert duplicate_index_field(exc, ["email"]) is None

    @pytest.mark.parametrize(
        "message",
        [
            "FOREIGN KEY constraint failed",
            "NOT NULL constraint failed: contacts.full_name_idx",
        ],
    )
    def test_other_integrity_errors(self, message):
        assert duplicate_index_field(_integrity_error(Exception(message)), ["email"]) is None
