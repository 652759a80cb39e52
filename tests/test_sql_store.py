"""Unit tests for auth/store.py -- SqlDirectoryStore semantics.

Covers:
- account creation, duplicate email detection and credential checks
- record CRUD with structured RecordNotFoundError / DuplicateEmailError
- query_records(): role filter, OR-ed case-insensitive search, newest-first
  ordering, pagination and total count
- list_roles() returns one role per record
"""

import pytest

from auth.models import DirectoryUser
from auth.store import (
    DuplicateEmailError,
    InvalidCredentialsError,
    RecordNotFoundError,
    SqlDirectoryStore,
    UserQuery,
)
from auth.tokens import verify_password

# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


def _record(n: int, role: str = "photographer", **overrides) -> DirectoryUser:
    fields = {
        "id": f"00000000-0000-4000-8000-{n:012d}",
        "email": f"user{n}@example.com",
        "first_name": f"First{n}",
        "last_name": f"Last{n}",
        "role": role,
        "password_hash": "hash",
        "created_at": f"2024-01-{n:02d}T00:00:00+00:00",
    }
    fields.update(overrides)
    return DirectoryUser(**fields)


@pytest.fixture
def store():
    s = SqlDirectoryStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def populated(store):
    """Store with five records created on consecutive days.

    user3 has "Test" in its first name, user4 has "test" in its email and
    user5 has "TEST" in its last name; user1 and user2 do not match "test".
    """
    store.create_record(_record(1))
    store.create_record(_record(2, role="admin"))
    store.create_record(_record(3, first_name="Testa"))
    store.create_record(_record(4, email="contest@example.com"))
    store.create_record(_record(5, role="admin", last_name="LATEST"))
    return store


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class TestAccounts:
    def test_create_and_authenticate(self, store) -> None:
        account_id = store.create_account("ada@example.com", "secret123", {"role": "admin"})
        assert store.authenticate("ada@example.com", "secret123") == account_id

    def test_email_match_is_case_insensitive(self, store) -> None:
        account_id = store.create_account("Ada@Example.com", "secret123", {})
        assert store.authenticate("ADA@example.COM", "secret123") == account_id

    def test_duplicate_email_raises(self, store) -> None:
        store.create_account("ada@example.com", "secret123", {})
        with pytest.raises(DuplicateEmailError):
            store.create_account("ada@example.com", "another1", {})

    def test_wrong_password_and_unknown_email_raise_same_error(self, store) -> None:
        store.create_account("ada@example.com", "secret123", {})
        with pytest.raises(InvalidCredentialsError) as wrong_pw:
            store.authenticate("ada@example.com", "wrong-password")
        with pytest.raises(InvalidCredentialsError) as unknown:
            store.authenticate("nobody@example.com", "secret123")
        assert str(wrong_pw.value) == str(unknown.value)

    def test_update_account_password(self, store) -> None:
        account_id = store.create_account("ada@example.com", "secret123", {})
        store.update_account_password(account_id, "newsecret456")
        assert store.authenticate("ada@example.com", "newsecret456") == account_id
        with pytest.raises(InvalidCredentialsError):
            store.authenticate("ada@example.com", "secret123")

    def test_delete_account(self, store) -> None:
        account_id = store.create_account("ada@example.com", "secret123", {})
        store.delete_account(account_id)
        with pytest.raises(InvalidCredentialsError):
            store.authenticate("ada@example.com", "secret123")
        with pytest.raises(RecordNotFoundError):
            store.delete_account(account_id)

    def test_provider_stores_hash_not_plaintext(self, store) -> None:
        store.create_account("ada@example.com", "secret123", {})
        with store.engine.connect() as conn:
            row = conn.exec_driver_sql("SELECT password_hash FROM accounts").fetchone()
        assert row[0] != "secret123"
        assert verify_password("secret123", row[0])


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class TestRecords:
    def test_create_and_get(self, store) -> None:
        created = store.create_record(_record(1))
        assert created.email == "user1@example.com"
        assert created.created_at is not None
        assert created.updated_at is not None
        assert store.get_record(created.id) == created

    def test_duplicate_email_raises(self, store) -> None:
        store.create_record(_record(1))
        with pytest.raises(DuplicateEmailError):
            store.create_record(_record(2, email="USER1@example.com"))

    def test_get_missing_raises(self, store) -> None:
        with pytest.raises(RecordNotFoundError):
            store.get_record("00000000-0000-4000-8000-999999999999")

    def test_update_changes_fields_and_timestamp(self, store) -> None:
        created = store.create_record(_record(1, updated_at="2024-01-01T00:00:00+00:00"))
        updated = store.update_record(created.id, first_name="Grace", role="admin")
        assert updated.first_name == "Grace"
        assert updated.role == "admin"
        assert updated.last_name == created.last_name
        assert updated.updated_at > created.updated_at

    def test_update_missing_raises(self, store) -> None:
        with pytest.raises(RecordNotFoundError):
            store.update_record("00000000-0000-4000-8000-999999999999", first_name="Nobody")

    def test_update_rejects_immutable_fields(self, store) -> None:
        created = store.create_record(_record(1))
        with pytest.raises(ValueError):
            store.update_record(created.id, email="other@example.com")

    def test_delete(self, store) -> None:
        created = store.create_record(_record(1))
        store.delete_record(created.id)
        with pytest.raises(RecordNotFoundError):
            store.get_record(created.id)

    def test_delete_missing_raises(self, store) -> None:
        with pytest.raises(RecordNotFoundError):
            store.delete_record("00000000-0000-4000-8000-999999999999")

    def test_ping(self, store) -> None:
        assert store.ping() is True


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueryRecords:
    def test_default_page_is_newest_first(self, populated) -> None:
        page = populated.query_records(UserQuery())
        assert page.total == 5
        assert [u.email for u in page.users] == [
            "user5@example.com",
            "contest@example.com",
            "user3@example.com",
            "user2@example.com",
            "user1@example.com",
        ]

    def test_pagination(self, populated) -> None:
        first = populated.query_records(UserQuery(page=1, limit=2))
        second = populated.query_records(UserQuery(page=2, limit=2))
        third = populated.query_records(UserQuery(page=3, limit=2))
        assert [u.id for u in first.users] == [_record(5).id, _record(4).id]
        assert [u.id for u in second.users] == [_record(3).id, _record(2).id]
        assert [u.id for u in third.users] == [_record(1).id]
        assert first.total == second.total == third.total == 5

    def test_page_past_end_is_empty(self, populated) -> None:
        page = populated.query_records(UserQuery(page=10, limit=10))
        assert page.users == []
        assert page.total == 5

    def test_role_filter(self, populated) -> None:
        page = populated.query_records(UserQuery(role="admin"))
        assert {u.id for u in page.users} == {_record(2).id, _record(5).id}
        assert page.total == 2

    def test_search_is_case_insensitive_union_of_fields(self, populated) -> None:
        page = populated.query_records(UserQuery(search="test"))
        # first_name "Testa", email "contest@...", last_name "LATEST"
        assert {u.id for u in page.users} == {_record(3).id, _record(4).id, _record(5).id}
        assert page.total == 3

    def test_search_combined_with_role(self, populated) -> None:
        page = populated.query_records(UserQuery(search="test", role="admin"))
        assert [u.id for u in page.users] == [_record(5).id]

    def test_search_wildcards_match_literally(self, populated) -> None:
        assert populated.query_records(UserQuery(search="%")).total == 0
        assert populated.query_records(UserQuery(search="_")).total == 0

    def test_list_roles(self, populated) -> None:
        assert sorted(populated.list_roles()) == ["admin", "admin", "photographer", "photographer", "photographer"]
